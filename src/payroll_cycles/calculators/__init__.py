"""Pure payroll calculators (no I/O)."""

from payroll_cycles.calculators.aggregator import (
    aggregate_employee,
    calculate_cycle,
    worked_employee_ids,
)
from payroll_cycles.calculators.daily_pay import calculate_day_pay, hours_between
from payroll_cycles.calculators.policy import (
    DEFAULT_POLICY,
    HourlyOnly,
    LongShiftDailyRate,
    PayRulePolicy,
)
from payroll_cycles.calculators.types import (
    DayCalculation,
    EmployeeCalculation,
    EmployeeRates,
    PayMethod,
    TimeEntry,
)

__all__ = [
    "DEFAULT_POLICY",
    "DayCalculation",
    "EmployeeCalculation",
    "EmployeeRates",
    "HourlyOnly",
    "LongShiftDailyRate",
    "PayMethod",
    "PayRulePolicy",
    "TimeEntry",
    "aggregate_employee",
    "calculate_cycle",
    "calculate_day_pay",
    "hours_between",
    "worked_employee_ids",
]
