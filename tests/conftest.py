"""Pytest fixtures for payroll ledger tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_ledger.calculators import calculate_from_ctc
from payroll_ledger.clock import FixedClock
from payroll_ledger.database import create_schema, make_session_factory
from payroll_ledger.models import CompanySettings, Employee, SalaryProfile
from payroll_ledger.services.locking_service import LockingService

# File-backed SQLite so background sync sessions see committed rows
# For advisory locks and full Postgres features, use a test Postgres database
TEST_NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to mid-October 2025 (current period: October 2025)."""
    return FixedClock(TEST_NOW)


@pytest.fixture
def locks() -> LockingService:
    return LockingService()


@pytest.fixture
async def engine(tmp_path):
    """Create test database engine."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def company_settings(session: AsyncSession) -> CompanySettings:
    """Company settings row as configured at the start of each test."""
    settings = CompanySettings(
        name="Acme Technologies",
        logo="https://cdn.example.com/acme.png",
        address_street="12 MG Road",
        address_city="Bengaluru",
        address_state="Karnataka",
        address_zip_code="560001",
        address_country="India",
        currency_code="INR",
        currency_symbol="₹",
        currency_display="INR (₹)",
        currency_exchange_rate=Decimal("1"),
    )
    session.add(settings)
    await session.commit()
    return settings


@pytest.fixture
async def employees(session: AsyncSession) -> dict[str, Employee]:
    """Two active employees and one inactive employee."""
    rows = [
        Employee(
            employee_id="EMP001",
            name="Asha Rao",
            email="asha@example.com",
            department="Engineering",
            designation="Senior Engineer",
            employment_type="Full-time",
            location="Bengaluru",
            date_of_joining=date(2021, 4, 1),
            status="active",
        ),
        Employee(
            employee_id="EMP002",
            name="Vikram Shah",
            email="vikram@example.com",
            department="Finance",
            designation="Accountant",
            employment_type="Full-time",
            location="Mumbai",
            date_of_joining=date(2022, 7, 18),
            status="active",
        ),
        Employee(
            employee_id="EMP003",
            name="Meera Iyer",
            email="meera@example.com",
            department="Sales",
            designation="Account Executive",
            employment_type="Contract",
            location="Chennai",
            date_of_joining=date(2020, 1, 6),
            status="inactive",
        ),
    ]
    session.add_all(rows)
    await session.commit()
    return {e.employee_id: e for e in rows}


@pytest.fixture
async def salary_profiles(
    session: AsyncSession, employees: dict[str, Employee], clock: FixedClock
) -> dict[str, SalaryProfile]:
    """Salary profiles for the active employees (EMP001: 600000, EMP002: 480000)."""
    profiles = {}
    for employee_id, ctc in (("EMP001", "600000"), ("EMP002", "480000")):
        profile = SalaryProfile(
            employee_id=employee_id,
            effective_from=datetime(2025, 4, 1, tzinfo=timezone.utc),
            created_at=clock.now(),
        )
        profile.apply_breakdown(calculate_from_ctc(ctc))
        session.add(profile)
        profiles[employee_id] = profile
    await session.commit()
    return profiles
