"""Tests for employee cycle aggregation."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings, strategies as st

from payroll_cycles.calculators.aggregator import (
    aggregate_employee,
    calculate_cycle,
    classify_methods,
    group_entries_by_date,
    worked_employee_ids,
)
from payroll_cycles.calculators.types import (
    DayCalculation,
    EmployeeRates,
    PayMethod,
    TimeEntry,
)
from payroll_cycles.errors import ValidationError

RATES = EmployeeRates(hourly_rate=Decimal("50"), daily_rate=Decimal("800"))
START = date(2024, 1, 1)
END = date(2024, 1, 31)


def shift(day: int, hour: int, hours: float, month: int = 1, year: int = 2024) -> TimeEntry:
    start = datetime(year, month, day, hour)
    return TimeEntry(check_in_time=start, check_out_time=start + timedelta(hours=hours))


class TestAggregateEmployee:
    """Test aggregation of one employee over a cycle."""

    def test_mixed_methods(self):
        """An hourly day and a daily day make the employee mixed."""
        entries = [shift(2, 8, 2), shift(2, 10, 3.5), shift(3, 7, 13)]

        result = aggregate_employee(entries, RATES, START, END)

        assert result.total_days_worked == 2
        assert result.total_hours == Decimal("18.50")
        assert result.base_pay == Decimal("1075.00")
        assert result.calculation_method == PayMethod.MIXED
        assert [day.work_date for day in result.daily_breakdown] == [
            date(2024, 1, 2),
            date(2024, 1, 3),
        ]

    def test_breakdown_sorted_by_date(self):
        """Entries arrive in any order; the breakdown is chronological."""
        entries = [shift(20, 8, 4), shift(5, 8, 4), shift(12, 8, 4)]

        result = aggregate_employee(entries, RATES, START, END)

        assert [day.work_date.day for day in result.daily_breakdown] == [5, 12, 20]

    def test_all_daily(self):
        """Only long shifts gives method daily."""
        result = aggregate_employee([shift(2, 6, 14), shift(3, 6, 13)], RATES, START, END)

        assert result.calculation_method == PayMethod.DAILY
        assert result.base_pay == Decimal("1600.00")

    def test_range_is_inclusive(self):
        """Entries on the first and last day count; neighbours do not."""
        entries = [
            shift(31, 8, 2, month=12, year=2023),
            shift(1, 8, 2),
            shift(31, 22, 1),
            shift(1, 0, 2, month=2),
        ]

        result = aggregate_employee(entries, RATES, START, END)

        assert result.total_days_worked == 2
        assert result.base_pay == Decimal("150.00")

    def test_shift_past_midnight_counts_on_check_in_date(self):
        """A night shift belongs to the day it started."""
        result = aggregate_employee([shift(31, 22, 4)], RATES, START, END)

        assert result.daily_breakdown[0].work_date == date(2024, 1, 31)
        assert result.total_hours == Decimal("4.00")

    def test_no_entries(self):
        """Zero worked days default to hourly with zero pay."""
        result = aggregate_employee([], RATES, START, END)

        assert result.total_days_worked == 0
        assert result.base_pay == Decimal("0.00")
        assert result.calculation_method == PayMethod.HOURLY
        assert result.has_worked_days is False

    def test_open_entries_ignored(self):
        """Entries without check-out never count."""
        open_entry = TimeEntry(check_in_time=datetime(2024, 1, 2, 8))

        result = aggregate_employee([open_entry], RATES, START, END)

        assert result.total_days_worked == 0

    def test_single_day_range(self):
        """A one-day range is valid."""
        result = aggregate_employee([shift(2, 8, 1)], RATES, date(2024, 1, 2), date(2024, 1, 2))

        assert result.total_days_worked == 1

    def test_end_before_start_rejected(self):
        """A reversed range fails fast."""
        with pytest.raises(ValidationError) as exc_info:
            aggregate_employee([], RATES, END, START)

        assert exc_info.value.field == "date_range"

    def test_to_dict_serializes_money_as_strings(self):
        """Money and hours are strings in the dict form."""
        data = aggregate_employee([shift(2, 8, 2)], RATES, START, END).to_dict()

        assert data["base_pay"] == "100.00"
        assert data["daily_breakdown"][0] == {
            "work_date": "2024-01-02",
            "hours": "2.00",
            "method": "hourly",
            "pay": "100.00",
        }

    @settings(max_examples=50, deadline=None)
    @given(
        st.lists(
            st.tuples(
                st.integers(min_value=1, max_value=28),
                st.integers(min_value=0, max_value=10),
                st.integers(min_value=1, max_value=16 * 60),
            ),
            max_size=20,
        )
    )
    def test_totals_equal_sum_of_days(self, shifts):
        """Base pay and hours are exactly the sums of the daily breakdown."""
        entries = [
            TimeEntry(
                check_in_time=datetime(2024, 1, day, hour),
                check_out_time=datetime(2024, 1, day, hour) + timedelta(minutes=minutes),
            )
            for day, hour, minutes in shifts
        ]

        result = aggregate_employee(entries, RATES, START, END)

        assert result.base_pay == sum((d.pay for d in result.daily_breakdown), Decimal("0"))
        assert result.total_hours == sum((d.hours for d in result.daily_breakdown), Decimal("0"))
        assert result.total_days_worked == len({day for day, _, _ in shifts})
        assert result.base_pay == result.base_pay.quantize(Decimal("0.01"))


class TestHelpers:
    """Test grouping and classification helpers."""

    def test_group_entries_by_date(self):
        """Entries are grouped by check-in date."""
        grouped = group_entries_by_date([shift(2, 8, 1), shift(2, 14, 1), shift(3, 8, 1)])

        assert sorted(grouped) == [date(2024, 1, 2), date(2024, 1, 3)]
        assert len(grouped[date(2024, 1, 2)]) == 2

    def test_classify_methods(self):
        """hourly, daily, mixed, and hourly for no days."""
        hourly = DayCalculation(date(2024, 1, 2), Decimal("8"), PayMethod.HOURLY, Decimal("1"))
        daily = DayCalculation(date(2024, 1, 3), Decimal("13"), PayMethod.DAILY, Decimal("1"))

        assert classify_methods([]) == PayMethod.HOURLY
        assert classify_methods([hourly]) == PayMethod.HOURLY
        assert classify_methods([daily]) == PayMethod.DAILY
        assert classify_methods([hourly, daily]) == PayMethod.MIXED


class TestCalculateCycle:
    """Test aggregation across employees."""

    def test_employees_are_independent(self):
        """Each employee is aggregated with their own rates."""
        first, second = uuid4(), uuid4()
        results = calculate_cycle(
            {first: [shift(2, 8, 2)], second: [shift(2, 8, 2)]},
            {first: RATES, second: EmployeeRates(hourly_rate=Decimal("10"))},
            START,
            END,
        )

        assert results[first].base_pay == Decimal("100.00")
        assert results[second].base_pay == Decimal("20.00")
        assert results[first].employee_id == first

    def test_employee_without_rates_skipped(self):
        """No rate snapshot, no calculation."""
        unknown = uuid4()
        results = calculate_cycle({unknown: [shift(2, 8, 2)]}, {}, START, END)

        assert results == {}

    def test_worked_employee_ids(self):
        """Only employees with a qualifying pair in range are returned."""
        worker, idle, outside = uuid4(), uuid4(), uuid4()
        entries = [
            TimeEntry(datetime(2024, 1, 2, 8), datetime(2024, 1, 2, 9), employee_id=worker),
            TimeEntry(datetime(2024, 1, 2, 8), None, employee_id=idle),
            TimeEntry(datetime(2024, 2, 2, 8), datetime(2024, 2, 2, 9), employee_id=outside),
        ]

        assert worked_employee_ids(entries, START, END) == {worker}
