"""Pytest fixtures for payroll cycle tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycles.config import Settings
from payroll_cycles.database import (
    create_engine_for_url,
    create_schema,
    create_session_factory,
)
from payroll_cycles.models import Branch, Employee, PayrollCycle, TimeEntry
from payroll_cycles.repository import PayrollRepository

# In-memory SQLite; one connection shared through a StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CYCLE_START = date(2024, 1, 1)
CYCLE_END = date(2024, 1, 31)


@dataclass
class PayrollData:
    """Seeded reference data, keyed by short employee name."""

    branches: dict[str, Branch] = field(default_factory=dict)
    employees: dict[str, Employee] = field(default_factory=dict)
    entries: list[TimeEntry] = field(default_factory=list)

    def employee_id(self, name: str) -> UUID:
        return self.employees[name].employee_id


def make_entry(
    employee: Employee,
    check_in: datetime,
    check_out: datetime | None,
) -> TimeEntry:
    """Build a time entry for an employee at their branch."""
    return TimeEntry(
        time_entry_id=uuid4(),
        employee_id=employee.employee_id,
        branch_id=employee.branch_id,
        check_in_time=check_in,
        check_out_time=check_out,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings for tests."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="WARNING",
    )


@pytest.fixture
async def engine():
    """Create a fresh in-memory database per test."""
    engine = create_engine_for_url(TEST_DATABASE_URL)
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(session: AsyncSession) -> PayrollRepository:
    return PayrollRepository(session)


@pytest.fixture
async def payroll_data(session: AsyncSession) -> PayrollData:
    """Branches, employees and January 2024 attendance.

    Expected base pay for the January cycle:
    - alice: 5.5 h on Jan 2 (275.00 hourly) + 13 h on Jan 3 (800.00 daily) = 1075.00, mixed
    - bob: 12 h on Jan 4 (240.00 hourly); the open Jan 5 entry is ignored
    - carol: 14 h on Jan 10 (400.00 daily); the Feb 1 entry is outside the cycle
    - dave: no attendance, no detail
    """
    data = PayrollData()

    north = Branch(branch_id=uuid4(), name="North")
    south = Branch(branch_id=uuid4(), name="South")
    data.branches = {"north": north, "south": south}
    session.add_all([north, south])
    await session.flush()

    data.employees = {
        "alice": Employee(
            employee_id=uuid4(),
            employee_code="E001",
            full_name="Alice Archer",
            branch_id=north.branch_id,
            hourly_rate=Decimal("50.00"),
            daily_rate=Decimal("800.00"),
        ),
        "bob": Employee(
            employee_id=uuid4(),
            employee_code="E002",
            full_name="Bob Baker",
            branch_id=south.branch_id,
            hourly_rate=Decimal("20.00"),
            daily_rate=Decimal("300.00"),
        ),
        "carol": Employee(
            employee_id=uuid4(),
            employee_code="E003",
            full_name="Carol Chen",
            branch_id=None,
            hourly_rate=Decimal("30.00"),
            daily_rate=Decimal("400.00"),
        ),
        "dave": Employee(
            employee_id=uuid4(),
            employee_code="E004",
            full_name="Dave Diaz",
            branch_id=north.branch_id,
            hourly_rate=Decimal("25.00"),
            daily_rate=Decimal("350.00"),
        ),
    }
    session.add_all(data.employees.values())
    await session.flush()

    alice = data.employees["alice"]
    bob = data.employees["bob"]
    carol = data.employees["carol"]
    data.entries = [
        # Before the cycle
        make_entry(alice, datetime(2023, 12, 31, 8, 0), datetime(2023, 12, 31, 16, 0)),
        # Three pairs on one day: 2 + 2 + 1.5 hours
        make_entry(alice, datetime(2024, 1, 2, 8, 0), datetime(2024, 1, 2, 10, 0)),
        make_entry(alice, datetime(2024, 1, 2, 10, 30), datetime(2024, 1, 2, 12, 30)),
        make_entry(alice, datetime(2024, 1, 2, 13, 0), datetime(2024, 1, 2, 14, 30)),
        # 13 continuous hours
        make_entry(alice, datetime(2024, 1, 3, 7, 0), datetime(2024, 1, 3, 20, 0)),
        # Exactly 12 hours
        make_entry(bob, datetime(2024, 1, 4, 8, 0), datetime(2024, 1, 4, 20, 0)),
        # Still checked in
        make_entry(bob, datetime(2024, 1, 5, 8, 0), None),
        make_entry(carol, datetime(2024, 1, 10, 6, 0), datetime(2024, 1, 10, 20, 0)),
        # After the cycle
        make_entry(carol, datetime(2024, 2, 1, 8, 0), datetime(2024, 2, 1, 16, 0)),
    ]
    session.add_all(data.entries)
    await session.flush()

    return data


@pytest.fixture
async def cycle(repository: PayrollRepository) -> PayrollCycle:
    """An active January 2024 cycle."""
    return await repository.add_cycle(
        PayrollCycle(
            name="January 2024",
            start_date=CYCLE_START,
            end_date=CYCLE_END,
            status="active",
            version=1,
        )
    )
