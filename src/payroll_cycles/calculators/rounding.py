"""Decimal helpers for money and hours.

All money and hour figures are Decimals quantized to 2 places with
ROUND_HALF_UP (half away from zero).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")

# Largest value a Numeric(12, 2) money column holds
MAX_MONEY = Decimal("9999999999.99")


def round_money(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_hours(hours: Decimal) -> Decimal:
    """Round hours to 2 decimal places."""
    return hours.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric value to a finite Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion. Raises TypeError for non-numeric types and ValueError for
    unparsable strings or non-finite numbers.
    """
    if isinstance(value, bool):
        raise TypeError("Boolean is not a valid amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def sum_money(amounts: Any) -> Decimal:
    """Sum an iterable of Decimals and round the result to cents."""
    return round_money(sum(amounts, ZERO))
