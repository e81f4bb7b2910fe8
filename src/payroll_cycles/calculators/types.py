"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from payroll_cycles.calculators.rounding import ZERO, round_money, to_decimal
from payroll_cycles.errors import ValidationError

if TYPE_CHECKING:
    from payroll_cycles.models import Employee
    from payroll_cycles.models import TimeEntry as TimeEntryRow


class PayMethod(str, Enum):
    """Which pay rule produced an amount."""

    HOURLY = "hourly"
    DAILY = "daily"
    MIXED = "mixed"  # Employee level only: days used different rules


@dataclass(frozen=True)
class TimeEntry:
    """A check-in/check-out pair as consumed by the calculators.

    Timestamps may be datetimes or ISO-8601 strings; an unparsable value
    makes the pair non-qualifying rather than failing the calculation.
    """

    check_in_time: datetime | str | None
    check_out_time: datetime | str | None = None
    employee_id: UUID | None = None
    branch_id: UUID | None = None
    time_entry_id: UUID | None = None

    @classmethod
    def from_model(cls, row: TimeEntryRow) -> TimeEntry:
        return cls(
            check_in_time=row.check_in_time,
            check_out_time=row.check_out_time,
            employee_id=row.employee_id,
            branch_id=row.branch_id,
            time_entry_id=row.time_entry_id,
        )


@dataclass(frozen=True)
class EmployeeRates:
    """Rate snapshot taken at calculation time."""

    hourly_rate: Decimal = ZERO
    daily_rate: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("hourly_rate", "daily_rate"):
            try:
                value = to_decimal(getattr(self, name))
            except (TypeError, ValueError):
                raise ValidationError(name, f"{name} must be a finite number") from None
            if value < 0:
                raise ValidationError(name, f"{name} must not be negative")
            object.__setattr__(self, name, round_money(value))

    @classmethod
    def from_model(cls, employee: Employee) -> EmployeeRates:
        return cls(
            hourly_rate=employee.hourly_rate or ZERO,
            daily_rate=employee.daily_rate or ZERO,
        )


@dataclass(frozen=True)
class DayCalculation:
    """Hours and pay for one employee on one calendar day."""

    work_date: date
    hours: Decimal
    method: PayMethod
    pay: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "hours": str(self.hours),
            "method": self.method.value,
            "pay": str(self.pay),
        }


@dataclass
class EmployeeCalculation:
    """Aggregated base pay for one employee over a cycle."""

    employee_id: UUID | None
    total_hours: Decimal = ZERO
    total_days_worked: int = 0
    base_pay: Decimal = ZERO
    calculation_method: PayMethod = PayMethod.HOURLY
    daily_breakdown: list[DayCalculation] = field(default_factory=list)
    rates: EmployeeRates = field(default_factory=EmployeeRates)

    @property
    def has_worked_days(self) -> bool:
        return self.total_days_worked > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id) if self.employee_id else None,
            "total_hours": str(self.total_hours),
            "total_days_worked": self.total_days_worked,
            "base_pay": str(self.base_pay),
            "calculation_method": self.calculation_method.value,
            "daily_breakdown": [day.to_dict() for day in self.daily_breakdown],
        }
