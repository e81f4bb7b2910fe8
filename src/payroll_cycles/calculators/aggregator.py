"""Employee cycle aggregation: per-day calculations summed over a cycle."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from uuid import UUID

from payroll_cycles.calculators.daily_pay import (
    calculate_day_pay,
    hours_between,
    parse_timestamp,
    work_date_of,
)
from payroll_cycles.calculators.policy import DEFAULT_POLICY, PayRulePolicy
from payroll_cycles.calculators.rounding import ZERO, round_hours, sum_money
from payroll_cycles.calculators.types import (
    DayCalculation,
    EmployeeCalculation,
    EmployeeRates,
    PayMethod,
    TimeEntry,
)
from payroll_cycles.errors import ValidationError

logger = logging.getLogger(__name__)


def validate_period(start_date: date, end_date: date) -> None:
    """Fail fast on a malformed date range."""
    if not isinstance(start_date, date) or not isinstance(end_date, date):
        raise ValidationError("date_range", "Start and end dates are required")
    if end_date < start_date:
        raise ValidationError(
            "date_range",
            f"End date {end_date} is before start date {start_date}",
        )


def select_period_entries(
    entries: Iterable[TimeEntry], start_date: date, end_date: date
) -> list[TimeEntry]:
    """Closed entries whose check-in date falls within [start, end]."""
    selected = []
    for entry in entries:
        if parse_timestamp(entry.check_out_time) is None:
            continue
        work_date = work_date_of(entry)
        if work_date is None:
            continue
        if start_date <= work_date <= end_date:
            selected.append(entry)
    return selected


def group_entries_by_date(entries: Iterable[TimeEntry]) -> dict[date, list[TimeEntry]]:
    """Group entries by the calendar date of their check-in."""
    grouped: dict[date, list[TimeEntry]] = defaultdict(list)
    for entry in entries:
        work_date = work_date_of(entry)
        if work_date is not None:
            grouped[work_date].append(entry)
    return dict(grouped)


def classify_methods(days: Sequence[DayCalculation]) -> PayMethod:
    """Overall method: hourly, daily, or mixed; hourly when no days."""
    methods = {day.method for day in days}
    if methods == {PayMethod.DAILY}:
        return PayMethod.DAILY
    if not methods or methods == {PayMethod.HOURLY}:
        return PayMethod.HOURLY
    return PayMethod.MIXED


def aggregate_employee(
    entries: Iterable[TimeEntry],
    rates: EmployeeRates,
    start_date: date,
    end_date: date,
    policy: PayRulePolicy = DEFAULT_POLICY,
    employee_id: UUID | None = None,
) -> EmployeeCalculation:
    """Calculate one employee's base pay for a cycle."""
    validate_period(start_date, end_date)

    period_entries = select_period_entries(entries, start_date, end_date)
    by_date = group_entries_by_date(period_entries)

    days: list[DayCalculation] = []
    for work_date in sorted(by_date):
        day = calculate_day_pay(by_date[work_date], rates, policy)
        if day is not None:
            days.append(day)

    return EmployeeCalculation(
        employee_id=employee_id,
        total_hours=round_hours(sum((day.hours for day in days), ZERO)),
        total_days_worked=len(days),
        base_pay=sum_money(day.pay for day in days),
        calculation_method=classify_methods(days),
        daily_breakdown=days,
        rates=rates,
    )


def calculate_cycle(
    entries_by_employee: Mapping[UUID, Sequence[TimeEntry]],
    rates_by_employee: Mapping[UUID, EmployeeRates],
    start_date: date,
    end_date: date,
    policy: PayRulePolicy = DEFAULT_POLICY,
) -> dict[UUID, EmployeeCalculation]:
    """Aggregate every employee independently.

    Employees without a rate snapshot are skipped; the summary reports them
    as missing data.
    """
    validate_period(start_date, end_date)

    results: dict[UUID, EmployeeCalculation] = {}
    for employee_id, entries in entries_by_employee.items():
        rates = rates_by_employee.get(employee_id)
        if rates is None:
            logger.warning("No rates for employee %s; skipping calculation", employee_id)
            continue
        results[employee_id] = aggregate_employee(
            entries, rates, start_date, end_date, policy, employee_id=employee_id
        )
    return results


def worked_employee_ids(
    entries: Iterable[TimeEntry], start_date: date, end_date: date
) -> set[UUID]:
    """Employees with at least one qualifying pair in [start, end]."""
    validate_period(start_date, end_date)
    return {
        entry.employee_id
        for entry in select_period_entries(entries, start_date, end_date)
        if entry.employee_id is not None
        and hours_between(entry.check_in_time, entry.check_out_time) is not None
    }
