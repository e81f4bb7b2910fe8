"""Daily pay calculation: one employee, one calendar day."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from payroll_cycles.calculators.policy import DEFAULT_POLICY, PayRulePolicy
from payroll_cycles.calculators.rounding import ZERO, round_hours
from payroll_cycles.calculators.types import DayCalculation, EmployeeRates, TimeEntry

MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse a timestamp, returning None when it is missing or invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def hours_between(
    check_in: datetime | str | None, check_out: datetime | str | None
) -> Decimal | None:
    """Hours between two timestamps rounded to 2 places.

    Returns None when the pair does not qualify: a missing or unparsable
    timestamp, naive/aware mixing, or check-out not after check-in.
    """
    start = parse_timestamp(check_in)
    end = parse_timestamp(check_out)
    if start is None or end is None:
        return None
    try:
        if end <= start:
            return None
        delta = end - start
    except TypeError:
        return None

    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return round_hours(Decimal(micros) / MICROSECONDS_PER_HOUR)


def work_date_of(entry: TimeEntry) -> date | None:
    """Calendar date of the check-in in the entry's own offset."""
    check_in = parse_timestamp(entry.check_in_time)
    return check_in.date() if check_in is not None else None


def calculate_day_pay(
    entries: Iterable[TimeEntry],
    rates: EmployeeRates,
    policy: PayRulePolicy = DEFAULT_POLICY,
) -> DayCalculation | None:
    """Turn one day's check-in/check-out pairs into hours and pay.

    Each qualifying pair contributes its hours; the day total is rounded
    and handed to the pay-rule policy. Returns None when no pair
    qualifies, so the day is left out instead of becoming a zero-hour day.
    """
    total_hours = ZERO
    day: date | None = None
    qualifying = 0

    for entry in entries:
        hours = hours_between(entry.check_in_time, entry.check_out_time)
        if hours is None:
            continue
        qualifying += 1
        total_hours += hours
        if day is None:
            day = work_date_of(entry)

    if qualifying == 0 or day is None:
        return None

    total_hours = round_hours(total_hours)
    method, pay = policy.apply(total_hours, rates)
    return DayCalculation(work_date=day, hours=total_hours, method=method, pay=pay)
