"""Persistence interface for payroll cycles.

All reads and writes of the engine go through ``PayrollRepository`` so that
services receive their storage explicitly. Guarded writes return ``False``
when their version or status condition no longer holds; callers re-read
and decide which error to raise.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_cycles.models import (
    AuditEvent,
    Branch,
    CycleFinalization,
    Employee,
    PayrollCycle,
    PayrollDetail,
    TimeEntry,
)
from payroll_cycles.models.base import utcnow
from payroll_cycles.services.state_machine import CycleStatus
from payroll_cycles.services.summary import EmployeeRef


class PayrollRepository:
    """Data access for cycles, details and the read-only reference tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ===== Cycles =====

    async def get_cycle(self, cycle_id: UUID) -> PayrollCycle | None:
        result = await self.session.execute(
            select(PayrollCycle).where(PayrollCycle.cycle_id == cycle_id)
        )
        return result.scalar_one_or_none()

    async def refresh_cycle(self, cycle: PayrollCycle) -> PayrollCycle:
        """Reload a cycle's columns after a guarded write lost its race."""
        await self.session.refresh(cycle)
        return cycle

    async def list_cycles(self) -> list[PayrollCycle]:
        result = await self.session.execute(
            select(PayrollCycle).order_by(
                PayrollCycle.start_date.desc(), PayrollCycle.name
            )
        )
        return list(result.scalars().all())

    async def find_overlapping_cycles(
        self, start_date: date, end_date: date
    ) -> list[PayrollCycle]:
        """Cycles whose [start, end] range intersects the given one."""
        result = await self.session.execute(
            select(PayrollCycle).where(
                PayrollCycle.start_date <= end_date,
                PayrollCycle.end_date >= start_date,
            )
        )
        return list(result.scalars().all())

    async def cycle_name_exists(self, name: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(PayrollCycle).where(PayrollCycle.name == name)
        )
        return result.scalar_one() > 0

    async def add_cycle(self, cycle: PayrollCycle) -> PayrollCycle:
        self.session.add(cycle)
        await self.session.flush()
        return cycle

    async def bump_cycle_version(self, cycle_id: UUID, version: int) -> bool:
        """Claim an active cycle for a mutation.

        Succeeds only while the cycle is still active and still at
        ``version``. On Postgres the updated row stays locked until commit,
        so concurrent writers to the same cycle are serialized here.
        """
        result = await self.session.execute(
            update(PayrollCycle)
            .where(
                PayrollCycle.cycle_id == cycle_id,
                PayrollCycle.status == CycleStatus.ACTIVE.value,
                PayrollCycle.version == version,
            )
            .values(version=version + 1)
        )
        return result.rowcount == 1

    async def mark_cycle_completed(
        self,
        cycle_id: UUID,
        version: int,
        finalized_by: str,
        total_employees: int,
        total_amount: Decimal,
        finalized_at: datetime | None = None,
    ) -> bool:
        """Guarded active → completed transition."""
        result = await self.session.execute(
            update(PayrollCycle)
            .where(
                PayrollCycle.cycle_id == cycle_id,
                PayrollCycle.status == CycleStatus.ACTIVE.value,
                PayrollCycle.version == version,
            )
            .values(
                status=CycleStatus.COMPLETED.value,
                finalized_at=finalized_at or utcnow(),
                finalized_by=finalized_by,
                total_employees=total_employees,
                total_amount=total_amount,
                version=version + 1,
            )
        )
        return result.rowcount == 1

    # ===== Details =====

    async def get_detail(self, detail_id: UUID) -> PayrollDetail | None:
        """Load a detail together with its cycle."""
        result = await self.session.execute(
            select(PayrollDetail)
            .where(PayrollDetail.detail_id == detail_id)
            .options(selectinload(PayrollDetail.cycle))
        )
        return result.scalar_one_or_none()

    async def refresh_detail(self, detail: PayrollDetail) -> PayrollDetail:
        await self.session.refresh(detail)
        return detail

    async def list_details(self, cycle_id: UUID) -> list[PayrollDetail]:
        result = await self.session.execute(
            select(PayrollDetail)
            .where(PayrollDetail.cycle_id == cycle_id)
            .order_by(PayrollDetail.created_at, PayrollDetail.employee_id)
        )
        return list(result.scalars().all())

    async def add_detail(self, detail: PayrollDetail) -> PayrollDetail:
        self.session.add(detail)
        await self.session.flush()
        return detail

    async def update_detail(self, detail_id: UUID, version: int, **values: Any) -> bool:
        """Guarded detail write; bumps the detail version and updated_at."""
        result = await self.session.execute(
            update(PayrollDetail)
            .where(
                PayrollDetail.detail_id == detail_id,
                PayrollDetail.version == version,
            )
            .values(version=version + 1, updated_at=utcnow(), **values)
        )
        return result.rowcount == 1

    async def delete_details(self, cycle_id: UUID) -> int:
        result = await self.session.execute(
            delete(PayrollDetail).where(PayrollDetail.cycle_id == cycle_id)
        )
        return result.rowcount or 0

    # ===== Reference data (read-only) =====

    async def get_employees(
        self, employee_ids: Iterable[UUID] | None = None
    ) -> dict[UUID, Employee]:
        """Employees keyed by id; all employees when ``employee_ids`` is None."""
        query = select(Employee)
        if employee_ids is not None:
            ids = set(employee_ids)
            if not ids:
                return {}
            query = query.where(Employee.employee_id.in_(ids))
        result = await self.session.execute(query)
        return {employee.employee_id: employee for employee in result.scalars().all()}

    async def get_branches(self, branch_ids: Iterable[UUID]) -> dict[UUID, Branch]:
        ids = {branch_id for branch_id in branch_ids if branch_id is not None}
        if not ids:
            return {}
        result = await self.session.execute(select(Branch).where(Branch.branch_id.in_(ids)))
        return {branch.branch_id: branch for branch in result.scalars().all()}

    async def get_employee_refs(self, employee_ids: Iterable[UUID]) -> dict[UUID, EmployeeRef]:
        """Employee identity with branch names, for summaries."""
        employees = await self.get_employees(employee_ids)
        branches = await self.get_branches(e.branch_id for e in employees.values())
        return {
            employee_id: EmployeeRef.from_model(employee, branches.get(employee.branch_id))
            for employee_id, employee in employees.items()
        }

    async def list_time_entries(
        self,
        start_date: date,
        end_date: date,
        closed_only: bool = True,
    ) -> list[TimeEntry]:
        """Time entries whose check-in falls on a date in [start, end].

        Check-in times are local wall-clock values, so the range is the
        half-open interval [start 00:00, end + 1 day 00:00).
        """
        query = select(TimeEntry).where(
            TimeEntry.check_in_time >= datetime.combine(start_date, time.min),
            TimeEntry.check_in_time < datetime.combine(end_date + timedelta(days=1), time.min),
        )
        if closed_only:
            query = query.where(TimeEntry.check_out_time.is_not(None))
        result = await self.session.execute(
            query.order_by(TimeEntry.employee_id, TimeEntry.check_in_time)
        )
        return list(result.scalars().all())

    # ===== Finalization and audit =====

    async def add_finalization(self, finalization: CycleFinalization) -> CycleFinalization:
        self.session.add(finalization)
        await self.session.flush()
        return finalization

    async def get_finalization(self, cycle_id: UUID) -> CycleFinalization | None:
        result = await self.session.execute(
            select(CycleFinalization).where(CycleFinalization.cycle_id == cycle_id)
        )
        return result.scalar_one_or_none()

    async def record_audit(
        self,
        entity_type: str,
        entity_id: UUID,
        action: str,
        actor_id: str | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> AuditEvent:
        """Record an audit event in the current transaction."""
        event = AuditEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            before_json=before,
            after_json=after,
            description=description,
        )
        self.session.add(event)
        return event

    async def list_audit_events(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        result = await self.session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at)
        )
        return list(result.scalars().all())
