"""Pay-rule policies: how a day's hours turn into a method and an amount.

The engine ships one business rule: a shift longer than a threshold
(12 hours by default) is paid the flat daily rate, anything else is paid by
the hour. Policies are small value objects so the rule can be swapped or
tuned without touching aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from payroll_cycles.calculators.rounding import round_money
from payroll_cycles.calculators.types import EmployeeRates, PayMethod

if TYPE_CHECKING:
    from payroll_cycles.config import Settings


class PayRulePolicy(Protocol):
    """Decides the pay method and amount for a day's total hours."""

    name: str

    def apply(self, hours: Decimal, rates: EmployeeRates) -> tuple[PayMethod, Decimal]:
        ...


@dataclass(frozen=True)
class LongShiftDailyRate:
    """Hours strictly above the threshold earn the flat daily rate.

    A 13-hour and a 20-hour day cost the same. Exactly the threshold is
    still paid hourly.
    """

    threshold_hours: Decimal = Decimal("12")
    name: str = "long_shift_daily_rate"

    def apply(self, hours: Decimal, rates: EmployeeRates) -> tuple[PayMethod, Decimal]:
        if hours > self.threshold_hours:
            return PayMethod.DAILY, round_money(rates.daily_rate)
        return PayMethod.HOURLY, round_money(hours * rates.hourly_rate)


@dataclass(frozen=True)
class HourlyOnly:
    """Every hour is paid at the hourly rate, regardless of shift length."""

    name: str = "hourly_only"

    def apply(self, hours: Decimal, rates: EmployeeRates) -> tuple[PayMethod, Decimal]:
        return PayMethod.HOURLY, round_money(hours * rates.hourly_rate)


DEFAULT_POLICY: PayRulePolicy = LongShiftDailyRate()


def policy_from_settings(settings: Settings) -> PayRulePolicy:
    """Build the configured pay-rule policy."""
    return LongShiftDailyRate(threshold_hours=settings.daily_rate_threshold_hours)
