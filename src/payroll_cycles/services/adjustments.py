"""Bonus and deduction rules.

Everything in this module is pure: functions take a ``PayFigures`` value
and return a new one. Persistence and locking live in
``adjustment_service``.

Rules:
- amounts are finite numbers >= 0, stored to the cent, at most 9,999,999,999.99
- a positive amount needs a reason (trimmed, at most 500 characters)
- clearing sets the amount to 0 and the reason to ""
- net pay = base + overtime + bonus - deduction, negative allowed
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from payroll_cycles.calculators.rounding import MAX_MONEY, ZERO, round_money, to_decimal
from payroll_cycles.errors import ValidationError

if TYPE_CHECKING:
    from payroll_cycles.models import PayrollDetail

MAX_REASON_LENGTH = 500


def validate_amount(value: Any) -> Decimal:
    """Return the amount as a cent-rounded Decimal or raise ValidationError."""
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError):
        raise ValidationError("amount", "Amount must be a finite number") from None
    if amount < 0:
        raise ValidationError("amount", "Amount must not be negative")
    if amount > MAX_MONEY:
        raise ValidationError("amount", f"Amount must be at most {MAX_MONEY}")
    rounded = round_money(amount)
    if amount > 0 and rounded == 0:
        raise ValidationError("amount", "Amount must be at least 0.01")
    return rounded


def validate_reason(
    amount: Decimal,
    reason: str | None,
    max_length: int = MAX_REASON_LENGTH,
) -> str:
    """Return the trimmed reason, or "" when the amount is zero."""
    if amount == 0:
        return ""
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason", "Reason must be text")
    text = (reason or "").strip()
    if not text:
        raise ValidationError("reason", "A reason is required for a non-zero amount")
    if len(text) > max_length:
        raise ValidationError(
            "reason", f"Reason must be at most {max_length} characters"
        )
    return text


def compute_net_pay(
    base_pay: Decimal,
    overtime_pay: Decimal = ZERO,
    bonus: Decimal = ZERO,
    deduction: Decimal = ZERO,
) -> Decimal:
    """Net pay formula. Inputs are already cent values, so this is exact."""
    return round_money(base_pay + overtime_pay + bonus - deduction)


@dataclass(frozen=True)
class PayFigures:
    """The money fields of a payroll detail, net pay derived."""

    base_pay: Decimal = ZERO
    overtime_pay: Decimal = ZERO
    bonus: Decimal = ZERO
    bonus_reason: str = ""
    deduction: Decimal = ZERO
    deduction_reason: str = ""

    @property
    def net_pay(self) -> Decimal:
        return compute_net_pay(self.base_pay, self.overtime_pay, self.bonus, self.deduction)

    @classmethod
    def from_detail(cls, detail: PayrollDetail) -> PayFigures:
        return cls(
            base_pay=detail.base_pay,
            overtime_pay=detail.overtime_pay,
            bonus=detail.bonus,
            bonus_reason=detail.bonus_reason or "",
            deduction=detail.deduction,
            deduction_reason=detail.deduction_reason or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_pay": str(self.base_pay),
            "overtime_pay": str(self.overtime_pay),
            "bonus": str(self.bonus),
            "bonus_reason": self.bonus_reason,
            "deduction": str(self.deduction),
            "deduction_reason": self.deduction_reason,
            "net_pay": str(self.net_pay),
        }


def _within_range(figures: PayFigures) -> PayFigures:
    if abs(figures.net_pay) > MAX_MONEY:
        raise ValidationError("amount", "Resulting net pay is out of range")
    return figures


def set_bonus(
    figures: PayFigures,
    amount: Any,
    reason: str | None,
    max_reason_length: int = MAX_REASON_LENGTH,
) -> PayFigures:
    value = validate_amount(amount)
    text = validate_reason(value, reason, max_reason_length)
    return _within_range(replace(figures, bonus=value, bonus_reason=text))


def set_deduction(
    figures: PayFigures,
    amount: Any,
    reason: str | None,
    max_reason_length: int = MAX_REASON_LENGTH,
) -> PayFigures:
    value = validate_amount(amount)
    text = validate_reason(value, reason, max_reason_length)
    return _within_range(replace(figures, deduction=value, deduction_reason=text))


def clear_bonus(figures: PayFigures) -> PayFigures:
    return replace(figures, bonus=ZERO, bonus_reason="")


def clear_deduction(figures: PayFigures) -> PayFigures:
    return replace(figures, deduction=ZERO, deduction_reason="")


# ===== Previews and change descriptions =====


def format_money(amount: Decimal) -> str:
    """Format as 1,234.56."""
    return f"{round_money(amount):,.2f}"


def low_net_pay_warning(net_pay: Decimal, base_pay: Decimal) -> str | None:
    """Warn when net pay is non-positive or a small share of base pay."""
    if net_pay <= 0:
        return "Net pay is zero or negative; check the deductions"
    if base_pay <= 0:
        return None

    share = net_pay / base_pay * 100
    if share < 50:
        return "Net pay is below 50% of base pay"
    if share < 70:
        return "Net pay is below 70% of base pay"
    return None


def breakdown_lines(figures: PayFigures) -> list[str]:
    """Human-readable steps of the net pay formula."""
    lines = [f"Base pay: {format_money(figures.base_pay)}"]
    if figures.overtime_pay > 0:
        lines.append(f"Overtime: {format_money(figures.overtime_pay)}")
    if figures.bonus > 0:
        lines.append(f"Bonus: +{format_money(figures.bonus)}")
    if figures.deduction > 0:
        lines.append(f"Deduction: -{format_money(figures.deduction)}")
    lines.append(f"= Net pay: {format_money(figures.net_pay)}")
    return lines


@dataclass(frozen=True)
class NetPayPreview:
    """Would-be figures for a proposed adjustment. Nothing is written."""

    current: PayFigures
    proposed: PayFigures
    breakdown: list[str] = field(default_factory=list)
    warning: str | None = None

    @property
    def net_pay(self) -> Decimal:
        return self.proposed.net_pay

    @property
    def difference(self) -> Decimal:
        return self.proposed.net_pay - self.current.net_pay

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current.to_dict(),
            "proposed": self.proposed.to_dict(),
            "net_pay": str(self.net_pay),
            "difference": str(self.difference),
            "breakdown": list(self.breakdown),
            "warning": self.warning,
        }


def preview_net_pay(
    figures: PayFigures,
    bonus: Any = None,
    deduction: Any = None,
) -> NetPayPreview:
    """Apply proposed amounts to a copy of the figures.

    Amounts are validated like real adjustments; reasons are not required
    so a preview can be shown before one is entered.
    """
    proposed = figures
    if bonus is not None:
        proposed = replace(proposed, bonus=validate_amount(bonus))
    if deduction is not None:
        proposed = replace(proposed, deduction=validate_amount(deduction))
    _within_range(proposed)

    return NetPayPreview(
        current=figures,
        proposed=proposed,
        breakdown=breakdown_lines(proposed),
        warning=low_net_pay_warning(proposed.net_pay, proposed.base_pay),
    )


@dataclass(frozen=True)
class ChangeSummary:
    """What an adjustment changed, for the audit trail and the caller."""

    changes: list[str]
    old_net_pay: Decimal
    new_net_pay: Decimal

    @property
    def difference(self) -> Decimal:
        return self.new_net_pay - self.old_net_pay

    @property
    def impact_text(self) -> str:
        if self.difference > 0:
            return f"Net pay increases by {format_money(self.difference)}"
        if self.difference < 0:
            return f"Net pay decreases by {format_money(-self.difference)}"
        return "Net pay unchanged"

    def describe(self) -> str:
        parts = list(self.changes) or ["No changes"]
        return "; ".join(parts + [self.impact_text])


def _describe_field(
    label: str, old: Decimal, new: Decimal, reason: str
) -> str | None:
    if old == new:
        return None
    suffix = f" ({reason})" if reason else ""
    if old == 0:
        return f"Added {label} {format_money(new)}{suffix}"
    if new == 0:
        return f"Removed {label} {format_money(old)}"
    return f"Changed {label} from {format_money(old)} to {format_money(new)}{suffix}"


def describe_changes(before: PayFigures, after: PayFigures) -> ChangeSummary:
    changes = [
        line
        for line in (
            _describe_field("bonus", before.bonus, after.bonus, after.bonus_reason),
            _describe_field(
                "deduction", before.deduction, after.deduction, after.deduction_reason
            ),
        )
        if line is not None
    ]
    return ChangeSummary(
        changes=changes,
        old_net_pay=before.net_pay,
        new_net_pay=after.net_pay,
    )
