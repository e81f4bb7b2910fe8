"""Payroll cycle, per-employee detail, and finalization snapshot models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycles.models.base import Base, JSONType, TimestampMixin, utcnow


class PayrollCycle(Base, TimestampMixin):
    """A payroll period.

    ``status`` and ``finalized_*`` are written only by the finalization
    service. ``version`` is bumped by every mutation of the cycle or its
    details and serves as the per-cycle optimistic lock.
    """

    __tablename__ = "payroll_cycle"

    cycle_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String, nullable=True)
    total_employees: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("name", name="payroll_cycle_name_unique"),
        CheckConstraint(
            "status IN ('active', 'completed')",
            name="payroll_cycle_status_check",
        ),
        CheckConstraint("end_date > start_date", name="payroll_cycle_dates_check"),
        CheckConstraint(
            "(status = 'completed') = (finalized_at IS NOT NULL)",
            name="payroll_cycle_finalized_at_check",
        ),
    )

    # Relationships
    details: Mapped[list[PayrollDetail]] = relationship(
        back_populates="cycle",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class PayrollDetail(Base, TimestampMixin):
    """One employee's figures within a cycle.

    ``net_pay`` is written only together with its inputs and always equals
    base_pay + overtime_pay + bonus - deduction. It may be negative; that is
    reported by the summary, not rejected here.
    """

    __tablename__ = "payroll_detail"

    detail_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    cycle_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_cycle.cycle_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Owned by the employee subsystem; no FK so that a dangling reference
    # surfaces as a summary issue instead of blocking the write
    employee_id: Mapped[UUID] = mapped_column(nullable=False)

    base_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    overtime_pay: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    bonus_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    deduction_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    net_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # Calculation metadata
    total_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    total_days_worked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    calculation_method: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    hourly_rate_used: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    daily_rate_used: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("cycle_id", "employee_id", name="payroll_detail_cycle_employee_unique"),
        CheckConstraint("bonus >= 0", name="payroll_detail_bonus_check"),
        CheckConstraint("deduction >= 0", name="payroll_detail_deduction_check"),
        CheckConstraint(
            "bonus = 0 OR bonus_reason <> ''",
            name="payroll_detail_bonus_reason_check",
        ),
        CheckConstraint(
            "deduction = 0 OR deduction_reason <> ''",
            name="payroll_detail_deduction_reason_check",
        ),
        CheckConstraint(
            "calculation_method IN ('hourly', 'daily', 'mixed')",
            name="payroll_detail_method_check",
        ),
    )

    # Relationships
    cycle: Mapped[PayrollCycle] = relationship(back_populates="details")


class CycleFinalization(Base):
    """Immutable snapshot written once when a cycle is finalized.

    ``totals_json`` holds the totals, branch breakdown and per-employee
    figures as they were at finalization, independent of later changes to
    reference data.
    """

    __tablename__ = "cycle_finalization"

    finalization_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    cycle_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_cycle.cycle_id", ondelete="RESTRICT"),
        nullable=False,
    )
    finalized_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finalized_by: Mapped[str] = mapped_column(String, nullable=False)
    cycle_version: Mapped[int] = mapped_column(Integer, nullable=False)
    totals_json: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    __table_args__ = (
        UniqueConstraint("cycle_id", name="cycle_finalization_cycle_unique"),
    )
