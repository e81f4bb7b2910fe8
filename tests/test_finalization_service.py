"""Tests for payroll cycle finalization."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import text

from payroll_cycles.errors import (
    AlreadyFinalizedError,
    ConcurrentModificationError,
    CycleNotFoundError,
    ValidationError,
    ValidationFailedError,
)
from payroll_cycles.services.adjustment_service import AdjustmentService
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.finalization_service import FinalizationService
from payroll_cycles.services.state_machine import InvalidTransitionError
from payroll_cycles.services.summary import IssueType


@pytest.fixture
def finalizer(repository):
    return FinalizationService(repository)


@pytest.fixture
async def calculated_cycle(repository, settings, payroll_data, cycle):
    """The January cycle after calculation (version 2)."""
    await CycleService(repository, settings).calculate(cycle.cycle_id)
    return cycle


class TestFinalize:
    """Test the active → completed transition."""

    async def test_finalize(self, finalizer, repository, session, calculated_cycle):
        """Finalization locks the cycle and stores a snapshot of the summary."""
        record = await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        assert record.total_employees == 3
        assert record.total_amount == Decimal("1715.00")
        assert record.finalized_by == "payroll-admin"
        assert record.cycle_version == 3

        assert calculated_cycle.status == "completed"
        assert calculated_cycle.finalized_by == "payroll-admin"
        assert calculated_cycle.finalized_at is not None
        assert calculated_cycle.version == 3

        finalization = await repository.get_finalization(calculated_cycle.cycle_id)
        assert finalization.finalization_id == record.finalization_id
        assert finalization.totals_json["totals"]["total_net_pay"] == "1715.00"
        assert len(finalization.totals_json["employee_details"]) == 3
        assert {b["branch_name"] for b in finalization.totals_json["branch_breakdown"]} == {
            "No branch",
            "North",
            "South",
        }

        await session.flush()
        events = await repository.list_audit_events("payroll_cycle", calculated_cycle.cycle_id)
        assert events[-1].action == "finalized"
        assert events[-1].actor_id == "payroll-admin"

    async def test_record_to_dict(self, finalizer, calculated_cycle):
        """The record serializes money as a string."""
        record = await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        data = record.to_dict()

        assert data["total_amount"] == "1715.00"
        assert data["cycle_id"] == str(calculated_cycle.cycle_id)

    async def test_finalize_only_once(self, finalizer, calculated_cycle):
        """A second finalize is refused."""
        await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        with pytest.raises(AlreadyFinalizedError):
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

    async def test_summary_shows_finalization(self, finalizer, repository, settings, calculated_cycle):
        """A completed cycle's summary carries the stored snapshot."""
        await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        summary = await CycleService(repository, settings).get_summary(calculated_cycle.cycle_id)

        assert summary.status == "completed"
        assert summary.can_finalize is False
        assert summary.finalization["finalized_by"] == "payroll-admin"
        assert summary.finalization["cycle_version"] == 3


class TestFinalizeRefused:
    """Test the finalization gate."""

    async def test_negative_net_pay_blocks(self, finalizer, repository, payroll_data, calculated_cycle):
        """One negative net pay refuses finalization and changes nothing."""
        details = await repository.list_details(calculated_cycle.cycle_id)
        bob = next(d for d in details if d.employee_id == payroll_data.employee_id("bob"))
        await AdjustmentService(repository).set_deduction(bob.detail_id, 290, "Advance")

        with pytest.raises(ValidationFailedError) as exc_info:
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        issues = exc_info.value.issues
        assert [issue.type for issue in issues] == [IssueType.NEGATIVE_NET_PAY]
        assert issues[0].net_pay == Decimal("-50.00")
        assert calculated_cycle.status == "active"
        assert await repository.get_finalization(calculated_cycle.cycle_id) is None

    async def test_uncalculated_attendance_blocks(self, finalizer, payroll_data, cycle):
        """Attendance without details is missing data."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await finalizer.finalize(cycle.cycle_id, actor_id="payroll-admin")

        assert {issue.type for issue in exc_info.value.issues} == {IssueType.MISSING_DATA}

    async def test_empty_cycle_blocks(self, finalizer, cycle):
        """A cycle with no details cannot be finalized even without issues."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await finalizer.finalize(cycle.cycle_id, actor_id="payroll-admin")

        assert exc_info.value.issues == []
        assert "no payroll details" in str(exc_info.value)

    async def test_unknown_status_is_invalid_transition(
        self, finalizer, repository, calculated_cycle
    ):
        """A status outside the lifecycle is not reported as already finalized."""
        calculated_cycle.status = "archived"

        with pytest.raises(InvalidTransitionError) as exc_info:
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

        assert exc_info.value.from_status == "archived"
        assert exc_info.value.to_status == "completed"
        assert await repository.get_finalization(calculated_cycle.cycle_id) is None

    @pytest.mark.parametrize("actor", ["", "   ", None])
    async def test_actor_required(self, finalizer, calculated_cycle, actor):
        """Finalization must name who did it."""
        with pytest.raises(ValidationError) as exc_info:
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id=actor)

        assert exc_info.value.field == "actor_id"

    async def test_unknown_cycle(self, finalizer):
        """Unknown ids raise CycleNotFoundError."""
        with pytest.raises(CycleNotFoundError):
            await finalizer.finalize(uuid4(), actor_id="payroll-admin")

    async def test_expected_version_mismatch(self, finalizer, calculated_cycle):
        """A stale expected version is a conflict."""
        with pytest.raises(ConcurrentModificationError):
            await finalizer.finalize(
                calculated_cycle.cycle_id, actor_id="payroll-admin", expected_version=1
            )

    async def test_expected_version_match(self, finalizer, calculated_cycle):
        """The current version is accepted."""
        record = await finalizer.finalize(
            calculated_cycle.cycle_id, actor_id="payroll-admin", expected_version=2
        )

        assert record.cycle_version == 3

    async def test_cycle_changed_during_finalize(self, finalizer, session, calculated_cycle):
        """A version bump by another writer makes the transition fail."""
        await session.execute(text("UPDATE payroll_cycle SET version = version + 1"))

        with pytest.raises(ConcurrentModificationError):
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")

    async def test_finalized_by_another_writer(self, finalizer, session, calculated_cycle):
        """Losing the race to another finalization reports AlreadyFinalized."""
        await session.execute(
            text(
                "UPDATE payroll_cycle SET status = 'completed', "
                "finalized_at = CURRENT_TIMESTAMP, version = version + 1"
            )
        )

        with pytest.raises(AlreadyFinalizedError):
            await finalizer.finalize(calculated_cycle.cycle_id, actor_id="payroll-admin")
