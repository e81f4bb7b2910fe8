"""Read-only views of attendance and employee data.

These tables are owned by the attendance and employee subsystems. The
payroll engine only reads them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_cycles.models.base import Base, TimestampMixin


class Branch(Base, TimestampMixin):
    """Work location an employee is assigned to."""

    __tablename__ = "branch"

    branch_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Employee(Base, TimestampMixin):
    """Employee with the rate snapshot used for payroll."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_code: Mapped[str | None] = mapped_column(String, nullable=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    branch_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("branch.branch_id", ondelete="SET NULL"),
        nullable=True,
    )
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    daily_rate: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="employee_hourly_rate_check"),
        CheckConstraint("daily_rate >= 0", name="employee_daily_rate_check"),
    )


class TimeEntry(Base, TimestampMixin):
    """A check-in/check-out pair.

    Timestamps are local wall-clock time of the branch, stored without a
    timezone, so the calendar date of ``check_in_time`` is the work date.
    """

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    branch_id: Mapped[UUID | None] = mapped_column(nullable=True)
    check_in_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    check_out_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    __table_args__ = (
        Index("time_entry_employee_check_in_idx", "employee_id", "check_in_time"),
    )

    @property
    def is_closed(self) -> bool:
        return self.check_out_time is not None
