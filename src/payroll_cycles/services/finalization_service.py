"""Finalization - the one-way active → completed transition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from payroll_cycles.errors import (
    AlreadyFinalizedError,
    ConcurrentModificationError,
    CycleNotFoundError,
    ValidationError,
    ValidationFailedError,
)
from payroll_cycles.models import CycleFinalization
from payroll_cycles.models.base import utcnow
from payroll_cycles.repository import PayrollRepository
from payroll_cycles.services.cycle_service import load_cycle_summary
from payroll_cycles.services.state_machine import CycleStateMachine, CycleStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizationRecord:
    """Outcome of a successful finalization."""

    finalization_id: UUID
    cycle_id: UUID
    finalized_at: datetime
    finalized_by: str
    total_employees: int
    total_amount: Decimal
    cycle_version: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "finalization_id": str(self.finalization_id),
            "cycle_id": str(self.cycle_id),
            "finalized_at": self.finalized_at.isoformat(),
            "finalized_by": self.finalized_by,
            "total_employees": self.total_employees,
            "total_amount": str(self.total_amount),
            "cycle_version": self.cycle_version,
        }


class FinalizationService:
    """Finalize payroll cycles.

    The gate is a fresh cycle summary: finalization is refused unless it
    reports ``can_finalize``. The status change, the totals snapshot and
    the audit event are written in one transaction, and the status change
    is conditional on the cycle version the summary was built from.
    """

    def __init__(self, repository: PayrollRepository):
        self.repository = repository

    async def finalize(
        self,
        cycle_id: UUID,
        actor_id: str,
        expected_version: int | None = None,
    ) -> FinalizationRecord:
        """Finalize a cycle.

        Raises:
            ValidationError: No actor given
            CycleNotFoundError: Unknown cycle
            AlreadyFinalizedError: Cycle is already completed
            InvalidTransitionError: Cycle status cannot move to completed
            ConcurrentModificationError: Version mismatch or lost race
            ValidationFailedError: Summary reports issues or no details
        """
        if not actor_id or not str(actor_id).strip():
            raise ValidationError("actor_id", "Finalization requires an actor")
        actor_id = str(actor_id).strip()

        cycle = await self.repository.get_cycle(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)

        if cycle.status == CycleStatus.COMPLETED:
            raise AlreadyFinalizedError(cycle_id)

        CycleStateMachine.validate_transition(cycle.status, CycleStatus.COMPLETED.value)

        if expected_version is not None and expected_version != cycle.version:
            raise ConcurrentModificationError(
                "payroll_cycle",
                cycle_id,
                f"expected version {expected_version}, found {cycle.version}",
            )

        version = cycle.version
        summary = await load_cycle_summary(self.repository, cycle)
        if not summary.can_finalize:
            logger.warning(
                "Finalization of cycle %s refused: %d issue(s), %d detail(s)",
                cycle_id,
                summary.validation.issues_count,
                summary.totals.total_employees,
            )
            raise ValidationFailedError(cycle_id, summary.issues)

        finalized_at = utcnow()
        total_employees = summary.totals.total_employees
        total_amount = summary.totals.total_net_pay

        completed = await self.repository.mark_cycle_completed(
            cycle_id,
            version,
            finalized_by=actor_id,
            total_employees=total_employees,
            total_amount=total_amount,
            finalized_at=finalized_at,
        )
        if not completed:
            await self.repository.refresh_cycle(cycle)
            if cycle.status == CycleStatus.COMPLETED:
                raise AlreadyFinalizedError(cycle_id)
            logger.warning("Cycle %s changed during finalization", cycle_id)
            raise ConcurrentModificationError("payroll_cycle", cycle_id)

        finalization = await self.repository.add_finalization(
            CycleFinalization(
                cycle_id=cycle_id,
                finalized_at=finalized_at,
                finalized_by=actor_id,
                cycle_version=version + 1,
                totals_json=summary.snapshot(),
            )
        )

        await self.repository.record_audit(
            entity_type="payroll_cycle",
            entity_id=cycle_id,
            action="finalized",
            actor_id=actor_id,
            before={"status": CycleStatus.ACTIVE.value, "version": version},
            after={
                "status": CycleStatus.COMPLETED.value,
                "version": version + 1,
                "total_employees": total_employees,
                "total_amount": str(total_amount),
            },
            description=f"Finalized {summary.name}",
        )

        logger.info(
            "Finalized cycle %s by %s: %d employees, net %s",
            cycle_id,
            actor_id,
            total_employees,
            total_amount,
        )

        return FinalizationRecord(
            finalization_id=finalization.finalization_id,
            cycle_id=cycle_id,
            finalized_at=finalized_at,
            finalized_by=actor_id,
            total_employees=total_employees,
            total_amount=total_amount,
            cycle_version=version + 1,
        )
