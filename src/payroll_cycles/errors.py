"""Error taxonomy for payroll cycle operations.

Calculation and summary code reports soft failures as validation issues;
only the exceptions below cross the service boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from payroll_cycles.services.summary import ValidationIssue


class PayrollError(Exception):
    """Base class for all payroll engine errors."""

    code = "PAYROLL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self)}


class ValidationError(PayrollError):
    """Invalid input; always recoverable by the caller.

    ``field`` names the offending input (``amount``, ``reason``,
    ``date_range``, ``start_date``, ``end_date``, ``name``).
    """

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        self.message = message or f"Invalid value for '{field}'"
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "field": self.field, "detail": self.message}


class FinalizedCycleError(PayrollError):
    """Raised for any mutation against a completed (locked) cycle."""

    code = "CYCLE_LOCKED"

    def __init__(self, cycle_id: UUID):
        self.cycle_id = cycle_id
        super().__init__(f"Payroll cycle {cycle_id} is finalized and locked")


class AlreadyFinalizedError(PayrollError):
    """Raised when finalize is called on a cycle that is already completed."""

    code = "ALREADY_FINALIZED"

    def __init__(self, cycle_id: UUID):
        self.cycle_id = cycle_id
        super().__init__(f"Payroll cycle {cycle_id} has already been finalized")


class ValidationFailedError(PayrollError):
    """Raised when a cycle's summary does not allow finalization."""

    code = "VALIDATION_FAILED"

    def __init__(self, cycle_id: UUID, issues: list[ValidationIssue]):
        self.cycle_id = cycle_id
        self.issues = list(issues)
        msg = f"Payroll cycle {cycle_id} cannot be finalized"
        if self.issues:
            msg += f": {len(self.issues)} validation issue(s)"
        else:
            msg += ": no payroll details"
        super().__init__(msg)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["issues"] = [issue.to_dict() for issue in self.issues]
        return data


class ConcurrentModificationError(PayrollError):
    """Raised when an optimistic version check loses to another writer."""

    code = "CONFLICT"

    def __init__(self, entity: str, entity_id: UUID, reason: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} {entity_id} was modified concurrently"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(PayrollError):
    """Base class for missing records."""

    code = "NOT_FOUND"


class CycleNotFoundError(NotFoundError):
    def __init__(self, cycle_id: UUID):
        self.cycle_id = cycle_id
        super().__init__(f"Payroll cycle {cycle_id} not found")


class DetailNotFoundError(NotFoundError):
    def __init__(self, detail_id: UUID):
        self.detail_id = detail_id
        super().__init__(f"Payroll detail {detail_id} not found")
