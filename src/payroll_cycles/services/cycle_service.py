"""Payroll cycle service - creation, calculation, reset and summary."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from payroll_cycles.calculators import (
    EmployeeCalculation,
    EmployeeRates,
    PayMethod,
    TimeEntry,
    calculate_cycle,
    worked_employee_ids,
)
from payroll_cycles.calculators.policy import PayRulePolicy, policy_from_settings
from payroll_cycles.calculators.rounding import ZERO, round_hours, sum_money
from payroll_cycles.config import Settings, get_settings
from payroll_cycles.errors import (
    ConcurrentModificationError,
    CycleNotFoundError,
    FinalizedCycleError,
    ValidationError,
)
from payroll_cycles.models import PayrollCycle, PayrollDetail
from payroll_cycles.repository import PayrollRepository
from payroll_cycles.services.adjustments import compute_net_pay
from payroll_cycles.services.state_machine import CycleStateMachine, CycleStatus
from payroll_cycles.services.summary import CycleSummary, build_cycle_summary

logger = logging.getLogger(__name__)

# Columns written by calculation; adjustments are never touched
CALCULATED_FIELDS = (
    "base_pay",
    "total_hours",
    "total_days_worked",
    "calculation_method",
    "hourly_rate_used",
    "daily_rate_used",
)


async def claim_active_cycle(
    repository: PayrollRepository, cycle: PayrollCycle, action: str
) -> None:
    """Bump the cycle version before a mutation, or raise.

    Raises FinalizedCycleError when the cycle is (or has just become)
    completed and ConcurrentModificationError when another writer bumped
    the version first.
    """
    if not CycleStateMachine.can_modify(cycle.status):
        raise FinalizedCycleError(cycle.cycle_id)

    if await repository.bump_cycle_version(cycle.cycle_id, cycle.version):
        return

    await repository.refresh_cycle(cycle)
    if not CycleStateMachine.can_modify(cycle.status):
        raise FinalizedCycleError(cycle.cycle_id)
    logger.warning("Cycle %s changed concurrently during %s", cycle.cycle_id, action)
    raise ConcurrentModificationError("payroll_cycle", cycle.cycle_id)


async def load_cycle_summary(repository: PayrollRepository, cycle: PayrollCycle) -> CycleSummary:
    """Gather everything the summary builder needs and build a fresh summary."""
    details = await repository.list_details(cycle.cycle_id)

    worked: set[UUID] = set()
    if cycle.status == CycleStatus.ACTIVE:
        rows = await repository.list_time_entries(cycle.start_date, cycle.end_date)
        worked = worked_employee_ids(
            (TimeEntry.from_model(row) for row in rows), cycle.start_date, cycle.end_date
        )

    employees = await repository.get_employee_refs(
        {detail.employee_id for detail in details} | worked
    )
    finalization = None
    if cycle.status == CycleStatus.COMPLETED:
        finalization = await repository.get_finalization(cycle.cycle_id)

    return build_cycle_summary(cycle, details, employees, worked, finalization)


def generate_cycle_name(start_date: date, end_date: date) -> str:
    """Default name, e.g. "Payroll Jan 2024" or "Payroll Jan 2024 - Feb 2024"."""
    start_label = start_date.strftime("%b %Y")
    end_label = end_date.strftime("%b %Y")
    if start_label == end_label:
        return f"Payroll {start_label}"
    return f"Payroll {start_label} - {end_label}"


def add_years(day: date, years: int) -> date:
    """Same calendar day ``years`` later; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


@dataclass
class CycleCalculation:
    """Result of calculating a cycle."""

    cycle_id: UUID
    employees: list[EmployeeCalculation] = field(default_factory=list)
    details_created: int = 0
    details_updated: int = 0
    details_zeroed: int = 0

    @property
    def total_employees(self) -> int:
        return len(self.employees)

    @property
    def total_hours(self) -> Decimal:
        return round_hours(sum((e.total_hours for e in self.employees), ZERO))

    @property
    def total_base_pay(self) -> Decimal:
        return sum_money(e.base_pay for e in self.employees)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": str(self.cycle_id),
            "total_employees": self.total_employees,
            "total_hours": str(self.total_hours),
            "total_base_pay": str(self.total_base_pay),
            "details_created": self.details_created,
            "details_updated": self.details_updated,
            "details_zeroed": self.details_zeroed,
            "employees": [e.to_dict() for e in self.employees],
        }


class CycleService:
    """Service for the payroll cycle lifecycle.

    Operations:
    - create_cycle: Validate dates and name, then create an active cycle
    - calculate: (Re)compute base pay for every employee who worked
    - reset: Delete all details of an active cycle
    - get_summary: Fresh totals and validation issues
    """

    def __init__(
        self,
        repository: PayrollRepository,
        settings: Settings | None = None,
        policy: PayRulePolicy | None = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.policy = policy or policy_from_settings(self.settings)

    async def get_cycle(self, cycle_id: UUID) -> PayrollCycle:
        cycle = await self.repository.get_cycle(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)
        return cycle

    async def list_cycles(self) -> list[PayrollCycle]:
        return await self.repository.list_cycles()

    async def create_cycle(
        self,
        start_date: date,
        end_date: date,
        name: str | None = None,
        actor_id: str | None = None,
        today: date | None = None,
    ) -> PayrollCycle:
        """Create an active cycle.

        Raises:
            ValidationError: bad dates (``start_date``/``end_date``), an
                overlapping cycle (``date_range``) or a taken name (``name``)
        """
        self._validate_dates(start_date, end_date, today or date.today())

        overlapping = await self.repository.find_overlapping_cycles(start_date, end_date)
        if overlapping:
            raise ValidationError(
                "date_range",
                f"Dates overlap with existing cycle '{overlapping[0].name}'",
            )

        cycle_name = (name or "").strip()
        if cycle_name:
            if await self.repository.cycle_name_exists(cycle_name):
                raise ValidationError("name", f"A cycle named '{cycle_name}' already exists")
        else:
            cycle_name = await self._unique_name(generate_cycle_name(start_date, end_date))

        cycle = await self.repository.add_cycle(
            PayrollCycle(
                name=cycle_name,
                start_date=start_date,
                end_date=end_date,
                status=CycleStatus.ACTIVE.value,
                created_by=actor_id,
                version=1,
            )
        )
        await self.repository.record_audit(
            entity_type="payroll_cycle",
            entity_id=cycle.cycle_id,
            action="created",
            actor_id=actor_id,
            after={
                "name": cycle.name,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
        logger.info("Created payroll cycle %s (%s)", cycle.cycle_id, cycle.name)
        return cycle

    async def calculate(self, cycle_id: UUID, actor_id: str | None = None) -> CycleCalculation:
        """Calculate base pay for every employee with worked days.

        Existing details keep their bonus, deduction and reasons; only the
        calculated columns and net pay change. Details of employees who no
        longer have worked days are zeroed so the summary flags them.
        """
        cycle = await self.get_cycle(cycle_id)
        await claim_active_cycle(self.repository, cycle, "calculate")

        rows = await self.repository.list_time_entries(cycle.start_date, cycle.end_date)
        entries_by_employee: dict[UUID, list[TimeEntry]] = defaultdict(list)
        for row in rows:
            entries_by_employee[row.employee_id].append(TimeEntry.from_model(row))

        employees = await self.repository.get_employees(entries_by_employee.keys())
        rates = {
            employee_id: EmployeeRates.from_model(employee)
            for employee_id, employee in employees.items()
        }
        results = calculate_cycle(
            entries_by_employee, rates, cycle.start_date, cycle.end_date, self.policy
        )
        worked = {
            employee_id: calc for employee_id, calc in results.items() if calc.has_worked_days
        }

        outcome = CycleCalculation(cycle_id=cycle.cycle_id, employees=list(worked.values()))
        existing = {
            detail.employee_id: detail
            for detail in await self.repository.list_details(cycle.cycle_id)
        }

        for employee_id, calc in worked.items():
            values = {
                "base_pay": calc.base_pay,
                "total_hours": calc.total_hours,
                "total_days_worked": calc.total_days_worked,
                "calculation_method": calc.calculation_method.value,
                "hourly_rate_used": calc.rates.hourly_rate,
                "daily_rate_used": calc.rates.daily_rate,
            }
            detail = existing.get(employee_id)
            if detail is None:
                await self.repository.add_detail(
                    PayrollDetail(
                        cycle_id=cycle.cycle_id,
                        employee_id=employee_id,
                        net_pay=compute_net_pay(calc.base_pay),
                        **values,
                    )
                )
                outcome.details_created += 1
            elif await self._recalculate_detail(detail, values):
                outcome.details_updated += 1

        zeroed = {
            "base_pay": ZERO,
            "total_hours": ZERO,
            "total_days_worked": 0,
            "calculation_method": PayMethod.HOURLY.value,
        }
        for employee_id, detail in existing.items():
            if employee_id in worked:
                continue
            values = {
                **zeroed,
                "hourly_rate_used": detail.hourly_rate_used,
                "daily_rate_used": detail.daily_rate_used,
            }
            if await self._recalculate_detail(detail, values):
                outcome.details_zeroed += 1

        await self.repository.record_audit(
            entity_type="payroll_cycle",
            entity_id=cycle.cycle_id,
            action="calculated",
            actor_id=actor_id,
            after={
                "total_employees": outcome.total_employees,
                "total_base_pay": str(outcome.total_base_pay),
                "details_created": outcome.details_created,
                "details_updated": outcome.details_updated,
                "details_zeroed": outcome.details_zeroed,
            },
        )
        logger.info(
            "Calculated cycle %s: %d employees, base pay %s (%d new, %d updated, %d zeroed)",
            cycle.cycle_id,
            outcome.total_employees,
            outcome.total_base_pay,
            outcome.details_created,
            outcome.details_updated,
            outcome.details_zeroed,
        )
        return outcome

    async def reset(self, cycle_id: UUID, actor_id: str | None = None) -> int:
        """Delete all details of an active cycle; returns how many were removed."""
        cycle = await self.get_cycle(cycle_id)
        await claim_active_cycle(self.repository, cycle, "reset")

        deleted = await self.repository.delete_details(cycle.cycle_id)
        await self.repository.record_audit(
            entity_type="payroll_cycle",
            entity_id=cycle.cycle_id,
            action="reset",
            actor_id=actor_id,
            before={"details": deleted},
        )
        logger.info("Reset cycle %s: deleted %d details", cycle.cycle_id, deleted)
        return deleted

    async def get_summary(self, cycle_id: UUID) -> CycleSummary:
        cycle = await self.get_cycle(cycle_id)
        return await load_cycle_summary(self.repository, cycle)

    async def _recalculate_detail(self, detail: PayrollDetail, values: dict[str, Any]) -> bool:
        """Write calculated columns if they changed; returns True when written."""
        if all(getattr(detail, name) == values[name] for name in CALCULATED_FIELDS):
            return False

        net_pay = compute_net_pay(
            values["base_pay"], detail.overtime_pay, detail.bonus, detail.deduction
        )
        if not await self.repository.update_detail(
            detail.detail_id, detail.version, net_pay=net_pay, **values
        ):
            logger.warning("Detail %s changed during calculation", detail.detail_id)
            raise ConcurrentModificationError("payroll_detail", detail.detail_id)
        return True

    def _validate_dates(self, start_date: date, end_date: date, today: date) -> None:
        if not isinstance(start_date, date):
            raise ValidationError("start_date", "Start date is required")
        if not isinstance(end_date, date):
            raise ValidationError("end_date", "End date is required")
        if start_date >= end_date:
            raise ValidationError("end_date", "End date must be after start date")
        if (end_date - start_date).days > self.settings.max_cycle_days:
            raise ValidationError(
                "end_date",
                f"A cycle may span at most {self.settings.max_cycle_days} days",
            )
        if end_date > add_years(today, self.settings.max_future_years):
            raise ValidationError(
                "end_date",
                f"End date may be at most {self.settings.max_future_years} years ahead",
            )

    async def _unique_name(self, base_name: str) -> str:
        name = base_name
        suffix = 2
        while await self.repository.cycle_name_exists(name):
            name = f"{base_name} ({suffix})"
            suffix += 1
        return name
