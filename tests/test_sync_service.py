"""Tests for background propagation of salary changes."""

import logging
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from payroll_ledger.clock import Period
from payroll_ledger.services.ledger_service import LedgerService
from payroll_ledger.services.payroll_service import PayrollService
from payroll_ledger.services.salary_service import SalaryService
from payroll_ledger.services.sync_service import SyncPropagator

OCTOBER = Period(year=2025, month=10)
SEPTEMBER = Period(year=2025, month=9)


@pytest.fixture
def propagator(session_factory, clock, locks) -> SyncPropagator:
    return SyncPropagator(session_factory, clock=clock, locks=locks)


@pytest.fixture
async def processed(session, clock, locks, salary_profiles):
    """September and October payroll already processed and committed."""
    payroll = PayrollService(session, clock=clock, locks=locks)
    await payroll.run_payroll(9, 2025)
    await payroll.run_payroll(10, 2025)
    await session.commit()


async def fetch(session_factory, clock, employee_id, period):
    async with session_factory() as fresh:
        return await LedgerService(fresh, clock).get_by_key(employee_id, period)


class TestSyncPropagator:
    """Tests for SyncPropagator."""

    async def test_salary_update_refreshes_current_period(
        self, session, session_factory, clock, propagator, processed
    ):
        salaries = SalaryService(session, clock=clock, propagator=propagator)

        await salaries.update_salary("EMP001", {"ctc": "720000"})
        await propagator.drain()

        october = await fetch(session_factory, clock, "EMP001", OCTOBER)
        assert october.basic_salary == Decimal("30000")
        assert october.edited_by == SyncPropagator.SYNC_EDITOR
        assert propagator.pending == 0
        assert list(propagator.failures) == []

    async def test_past_period_not_touched(
        self, session, session_factory, clock, propagator, processed
    ):
        salaries = SalaryService(session, clock=clock, propagator=propagator)

        await salaries.update_salary("EMP001", {"ctc": "720000"})
        await propagator.drain()

        september = await fetch(session_factory, clock, "EMP001", SEPTEMBER)
        assert september.basic_salary == Decimal("25000")
        assert september.net_pay == Decimal("46625")

    async def test_no_current_record_is_noop(
        self, session, session_factory, clock, propagator, salary_profiles
    ):
        salaries = SalaryService(session, clock=clock, propagator=propagator)

        await salaries.update_salary("EMP002", {"ctc": "600000"})
        await propagator.drain()

        assert await fetch(session_factory, clock, "EMP002", OCTOBER) is None
        assert list(propagator.failures) == []

    async def test_failure_is_logged_and_swallowed(
        self, session, clock, salary_profiles, caplog
    ):
        def broken_factory():
            raise RuntimeError("database unavailable")

        propagator = SyncPropagator(broken_factory, clock=clock)
        salaries = SalaryService(session, clock=clock, propagator=propagator)

        with caplog.at_level(logging.ERROR, logger="payroll_ledger.services.sync_service"):
            profile = await salaries.update_salary("EMP001", {"ctc": "720000"})
            await propagator.drain()

        # The salary write stands
        assert profile.basic_salary == Decimal("30000")
        latest = await salaries.get_latest("EMP001")
        assert latest.salary_profile_id == profile.salary_profile_id

        assert len(propagator.failures) == 1
        failure = propagator.failures[0]
        assert failure.employee_id == "EMP001"
        assert isinstance(failure.cause, RuntimeError)
        assert "Payroll sync failed for EMP001" in caplog.text

    def test_dispatch_without_running_loop(self):
        propagator = SyncPropagator(async_sessionmaker())

        assert propagator.dispatch("EMP001") is None
        assert len(propagator.failures) == 1
        assert propagator.pending == 0
