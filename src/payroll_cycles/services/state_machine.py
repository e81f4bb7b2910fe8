"""Payroll cycle state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class CycleStatus(str, Enum):
    """Payroll cycle status values."""

    ACTIVE = "active"
    COMPLETED = "completed"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CycleStateMachine:
    """State machine for payroll cycle status transitions.

    Allowed transitions:
    - active → completed (finalize)

    There is no reopen: completed is terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        CycleStatus.ACTIVE: [CycleStatus.COMPLETED],
        CycleStatus.COMPLETED: [],  # Terminal state
    }

    # Statuses where calculation, adjustments and reset are allowed
    MUTABLE = {CycleStatus.ACTIVE}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_modify(cls, status: str) -> bool:
        """Check if details may be calculated, adjusted or reset."""
        return status in cls.MUTABLE

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transitions exist."""
        return not cls.VALID_TRANSITIONS.get(status, [])
