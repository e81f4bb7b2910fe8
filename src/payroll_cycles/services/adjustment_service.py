"""Bonus and deduction persistence for payroll details."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from payroll_cycles.errors import (
    ConcurrentModificationError,
    DetailNotFoundError,
    FinalizedCycleError,
)
from payroll_cycles.models import PayrollDetail
from payroll_cycles.repository import PayrollRepository
from payroll_cycles.services.adjustments import (
    MAX_REASON_LENGTH,
    NetPayPreview,
    PayFigures,
    clear_bonus,
    clear_deduction,
    describe_changes,
    preview_net_pay,
    set_bonus,
    set_deduction,
)
from payroll_cycles.services.cycle_service import claim_active_cycle
from payroll_cycles.services.state_machine import CycleStateMachine

logger = logging.getLogger(__name__)


class AdjustmentService:
    """Apply bonuses and deductions to payroll details.

    Every write is one transaction: the cycle is claimed with a guarded
    version bump, the detail is updated under its own version guard, and
    an audit event is recorded. Nothing is written when validation fails.
    """

    def __init__(self, repository: PayrollRepository, max_reason_length: int = MAX_REASON_LENGTH):
        self.repository = repository
        self.max_reason_length = max_reason_length

    async def set_bonus(
        self,
        detail_id: UUID,
        amount: Any,
        reason: str | None,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> PayrollDetail:
        return await self._apply(
            detail_id,
            "bonus_set",
            lambda figures: set_bonus(figures, amount, reason, self.max_reason_length),
            actor_id,
            expected_version,
        )

    async def set_deduction(
        self,
        detail_id: UUID,
        amount: Any,
        reason: str | None,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> PayrollDetail:
        return await self._apply(
            detail_id,
            "deduction_set",
            lambda figures: set_deduction(figures, amount, reason, self.max_reason_length),
            actor_id,
            expected_version,
        )

    async def clear_bonus(
        self,
        detail_id: UUID,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> PayrollDetail:
        return await self._apply(detail_id, "bonus_cleared", clear_bonus, actor_id, expected_version)

    async def clear_deduction(
        self,
        detail_id: UUID,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> PayrollDetail:
        return await self._apply(
            detail_id, "deduction_cleared", clear_deduction, actor_id, expected_version
        )

    async def preview(
        self,
        detail_id: UUID,
        bonus: Any = None,
        deduction: Any = None,
    ) -> NetPayPreview:
        """Show what net pay would become. Read-only; allowed on locked cycles."""
        detail = await self._get_detail(detail_id)
        return preview_net_pay(PayFigures.from_detail(detail), bonus=bonus, deduction=deduction)

    async def _get_detail(self, detail_id: UUID) -> PayrollDetail:
        detail = await self.repository.get_detail(detail_id)
        if detail is None:
            raise DetailNotFoundError(detail_id)
        return detail

    async def _apply(
        self,
        detail_id: UUID,
        action: str,
        change: Callable[[PayFigures], PayFigures],
        actor_id: str | None,
        expected_version: int | None,
    ) -> PayrollDetail:
        detail = await self._get_detail(detail_id)
        cycle = detail.cycle

        # Locked cycles are reported before any input problem
        if not CycleStateMachine.can_modify(cycle.status):
            raise FinalizedCycleError(cycle.cycle_id)

        before = PayFigures.from_detail(detail)
        after = change(before)

        if expected_version is not None and expected_version != detail.version:
            raise ConcurrentModificationError(
                "payroll_detail",
                detail_id,
                f"expected version {expected_version}, found {detail.version}",
            )

        await claim_active_cycle(self.repository, cycle, action)

        written = await self.repository.update_detail(
            detail_id,
            detail.version,
            bonus=after.bonus,
            bonus_reason=after.bonus_reason,
            deduction=after.deduction,
            deduction_reason=after.deduction_reason,
            net_pay=after.net_pay,
        )
        if not written:
            logger.warning("Detail %s changed during %s", detail_id, action)
            raise ConcurrentModificationError("payroll_detail", detail_id)

        changes = describe_changes(before, after)
        await self.repository.record_audit(
            entity_type="payroll_detail",
            entity_id=detail_id,
            action=action,
            actor_id=actor_id,
            before=before.to_dict(),
            after=after.to_dict(),
            description=changes.describe(),
        )

        return await self.repository.refresh_detail(detail)
