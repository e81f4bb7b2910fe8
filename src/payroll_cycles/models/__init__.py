"""ORM models."""

from payroll_cycles.models.attendance import Branch, Employee, TimeEntry
from payroll_cycles.models.audit import AuditEvent
from payroll_cycles.models.base import Base, TimestampMixin
from payroll_cycles.models.payroll import CycleFinalization, PayrollCycle, PayrollDetail

__all__ = [
    "AuditEvent",
    "Base",
    "Branch",
    "CycleFinalization",
    "Employee",
    "PayrollCycle",
    "PayrollDetail",
    "TimeEntry",
    "TimestampMixin",
]
