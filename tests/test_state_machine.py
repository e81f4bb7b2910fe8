"""Tests for payroll cycle state machine."""

import pytest

from payroll_cycles.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)


class TestCycleStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # active → completed
        assert CycleStateMachine.can_transition("active", "completed") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # No reopen
        assert CycleStateMachine.can_transition("completed", "active") is False

        # Completed is terminal
        assert CycleStateMachine.can_transition("completed", "completed") is False

        # Unknown statuses go nowhere
        assert CycleStateMachine.can_transition("draft", "completed") is False

    def test_can_modify(self):
        """Test statuses that allow calculate, adjust and reset."""
        assert CycleStateMachine.can_modify("active") is True
        assert CycleStateMachine.can_modify("completed") is False

    def test_is_terminal(self):
        """Test terminal status detection."""
        assert CycleStateMachine.is_terminal("completed") is True
        assert CycleStateMachine.is_terminal("active") is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            CycleStateMachine.validate_transition("completed", "active")

        assert exc_info.value.from_status == "completed"
        assert exc_info.value.to_status == "active"

        CycleStateMachine.validate_transition("active", "completed")

    def test_invalid_transition_error_message(self):
        """The error names both statuses and the reason."""
        error = InvalidTransitionError("archived", "completed", "unknown status")

        assert str(error) == "Invalid transition from 'archived' to 'completed': unknown status"

    def test_status_values(self):
        """Status enum compares equal to the stored strings."""
        assert CycleStatus.ACTIVE == "active"
        assert CycleStatus.COMPLETED.value == "completed"
