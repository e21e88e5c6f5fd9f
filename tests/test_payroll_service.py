"""Tests for payroll run/rerun orchestration and manual edits."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_ledger.clock import FixedClock, Period
from payroll_ledger.errors import (
    CurrentPeriodProtectedError,
    ImmutableRecordError,
    InvalidInputError,
    NotFoundError,
    PastPeriodImmutableError,
    ValidationError,
)
from payroll_ledger.services.ledger_service import LedgerService
from payroll_ledger.services.payroll_service import PayrollService
from payroll_ledger.services.salary_service import SalaryService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def payroll(session, clock, locks) -> PayrollService:
    return PayrollService(session, clock=clock, locks=locks)


@pytest.fixture
def salaries(session, clock) -> SalaryService:
    return SalaryService(session, clock=clock)


def by_employee(records):
    return {r.employee_id: r for r in records}


class TestRunPayroll:
    """Tests for run_payroll."""

    async def test_run_creates_records_for_active_employees(
        self, payroll, company_settings, salary_profiles
    ):
        result = await payroll.run_payroll(10, 2025, edited_by="hr-admin")

        assert result.created == ["EMP001", "EMP002"]
        assert result.updated == []
        assert result.is_current_period is True
        records = by_employee(result.records)
        assert records["EMP001"].net_pay == Decimal("46625")
        assert records["EMP001"].company.name == "Acme Technologies"
        assert records["EMP001"].company.address.city == "Bengaluru"
        assert records["EMP001"].currency.display == "INR (₹)"
        assert records["EMP001"].edited_by == "hr-admin"

    async def test_run_is_idempotent(self, payroll, company_settings, salary_profiles):
        """A second run updates the same records instead of duplicating."""
        first = await payroll.run_payroll(10, 2025)
        second = await payroll.run_payroll(10, 2025)

        assert first.created_count == 2
        assert second.created_count == 0
        assert second.updated_count == 2
        assert len(await payroll.ledger.list_for_period(first.period)) == 2
        assert {r.payroll_record_id for r in first.records} == {
            r.payroll_record_id for r in second.records
        }

    async def test_employee_without_profile_skipped(self, payroll, employees):
        result = await payroll.run_payroll("October", "2025")

        assert result.created == []
        assert result.skipped == ["EMP001", "EMP002"]

    async def test_unknown_employee_ids_skipped(self, payroll, salary_profiles):
        result = await payroll.run_payroll(10, 2025, employee_ids=["EMP001", "EMP999"])

        assert result.created == ["EMP001"]
        assert result.skipped == ["EMP999"]

    async def test_inactive_employee_can_be_targeted(self, payroll, salaries, salary_profiles):
        await salaries.append("EMP003", SalaryService.build_from_components({"ctc": "360000"}))

        result = await payroll.run_payroll(10, 2025, employee_ids=["EMP003"])

        assert result.created == ["EMP003"]

    async def test_invalid_month_rejected(self, payroll, salary_profiles):
        with pytest.raises(InvalidInputError):
            await payroll.run_payroll(13, 2025)

    async def test_current_period_rerun_picks_up_new_salary_and_settings(
        self, session, payroll, salaries, company_settings, salary_profiles
    ):
        await payroll.run_payroll(10, 2025)
        await salaries.append("EMP001", SalaryService.build_from_components({"ctc": "720000"}))
        company_settings.name = "Acme Global"
        await session.commit()

        result = await payroll.run_payroll(10, 2025)

        record = by_employee(result.records)["EMP001"]
        assert record.basic_salary == Decimal("30000")
        assert record.company.name == "Acme Global"

    async def test_past_period_run_keeps_history(
        self, session, payroll, salaries, company_settings, salary_profiles
    ):
        """Re-running a past period touches metadata only."""
        first = await payroll.run_payroll(9, 2025)
        assert first.is_current_period is False
        await salaries.append("EMP001", SalaryService.build_from_components({"ctc": "900000"}))
        company_settings.name = "Renamed Co"
        company_settings.currency_code = "USD"
        await session.commit()

        second = await payroll.run_payroll(9, 2025, edited_by="auditor")

        assert second.updated == ["EMP001", "EMP002"]
        record = by_employee(second.records)["EMP001"]
        assert record.net_pay == Decimal("46625")
        assert record.ctc == Decimal("600000")
        assert record.company.name == "Acme Technologies"
        assert record.currency.code == "INR"
        assert record.edited_by == "auditor"

    async def test_run_keeps_paid_status(self, payroll, salary_profiles):
        first = await payroll.run_payroll(10, 2025)
        record = by_employee(first.records)["EMP001"]
        await payroll.edit_payroll_record(record.payroll_record_id, {"status": "paid"})

        await payroll.run_payroll(10, 2025)

        assert record.status == "paid"

    async def test_period_rollover_mid_run_keeps_financials(
        self, payroll, salaries, salary_profiles
    ):
        """A record whose period closes during the run gets metadata only."""
        await payroll.run_payroll(10, 2025)
        await salaries.append("EMP001", SalaryService.build_from_components({"ctc": "720000"}))
        # The run starts in October but its writes land on 1 November
        payroll.ledger.clock = FixedClock(datetime(2025, 11, 1, tzinfo=timezone.utc))

        result = await payroll.run_payroll(10, 2025, edited_by="late-run")

        assert result.updated == ["EMP001", "EMP002"]
        record = by_employee(result.records)["EMP001"]
        assert record.basic_salary == Decimal("25000")
        assert record.net_pay == Decimal("46625")
        assert record.edited_by == "late-run"

    async def test_run_individual_payroll(self, payroll, salary_profiles):
        result = await payroll.run_individual_payroll(10, 2025, "EMP002")

        assert result.created == ["EMP002"]
        assert [r.employee_id for r in result.records] == ["EMP002"]

    async def test_run_individual_unknown_employee(self, payroll, salary_profiles):
        with pytest.raises(NotFoundError):
            await payroll.run_individual_payroll(10, 2025, "EMP404")


class TestRerunPayroll:
    """Tests for rerun_payroll."""

    async def test_rerun_past_period_rejected(self, payroll, salary_profiles):
        await payroll.run_payroll(9, 2025)

        with pytest.raises(PastPeriodImmutableError):
            await payroll.rerun_payroll(9, 2025)

    async def test_rerun_refreshes_existing_records_only(
        self, payroll, salaries, salary_profiles
    ):
        await payroll.run_payroll(10, 2025, employee_ids=["EMP001"])
        await salaries.append("EMP001", SalaryService.build_from_components({"ctc": "720000"}))

        result = await payroll.rerun_payroll(10, 2025, edited_by="hr")

        assert result.updated == ["EMP001"]
        assert result.created == []
        assert result.records[0].basic_salary == Decimal("30000")
        assert await payroll.ledger.get_by_key("EMP002", result.period) is None

    async def test_rerun_keeps_manual_edit(self, payroll, salary_profiles):
        run = await payroll.run_payroll(10, 2025)
        record = by_employee(run.records)["EMP001"]
        await payroll.edit_payroll_record(record.payroll_record_id, {"basic_salary": "30000"})

        await payroll.rerun_payroll(10, 2025)

        assert record.basic_salary == Decimal("30000")
        assert record.net_pay == Decimal("51625")


class TestSyncCurrentPeriod:
    async def test_sync_updates_current_record(self, payroll, salaries, salary_profiles):
        await payroll.run_payroll(10, 2025)
        await salaries.append("EMP002", SalaryService.build_from_components({"ctc": "600000"}))

        record = await payroll.sync_current_period("EMP002", edited_by="system-sync")

        assert record is not None
        assert record.net_pay == Decimal("46625")
        assert record.edited_by == "system-sync"

    async def test_sync_without_current_record_is_noop(self, payroll, salary_profiles):
        await payroll.run_payroll(9, 2025)
        assert await payroll.sync_current_period("EMP001") is None


class TestEditPayrollRecord:
    """Tests for manual record corrections."""

    async def test_financial_edit_rederives_totals(self, payroll, salaries, salary_profiles):
        run = await payroll.run_payroll(10, 2025)
        record = by_employee(run.records)["EMP001"]

        edited = await payroll.edit_payroll_record(
            record.payroll_record_id,
            {"basic_salary": "30000", "professional_tax": "200"},
            edited_by="hr",
        )

        assert edited.gross_earnings == Decimal("55000")
        assert edited.total_deductions == Decimal("3575")
        assert edited.net_pay == Decimal("51425")
        assert edited.edited_by == "hr"
        latest = await salaries.get_latest("EMP001")
        assert latest.basic_salary == Decimal("30000")
        assert latest.net_pay == Decimal("51425")

    async def test_edit_keeps_record_snapshot(
        self, session, payroll, company_settings, salary_profiles
    ):
        run = await payroll.run_payroll(10, 2025)
        record = by_employee(run.records)["EMP001"]
        company_settings.name = "Changed Later"
        await session.commit()

        await payroll.edit_payroll_record(record.payroll_record_id, {"hra": "6000"})

        assert record.company.name == "Acme Technologies"

    async def test_past_period_financial_edit_rejected(self, payroll, salaries, salary_profiles):
        run = await payroll.run_payroll(9, 2025)
        record = by_employee(run.records)["EMP001"]
        history_before = len(await salaries.get_salary_history("EMP001"))

        with pytest.raises(ImmutableRecordError):
            await payroll.edit_payroll_record(record.payroll_record_id, {"basic_salary": "1"})

        assert record.basic_salary == Decimal("25000")
        assert len(await salaries.get_salary_history("EMP001")) == history_before

    async def test_past_period_status_edit_allowed(self, payroll, salary_profiles):
        run = await payroll.run_payroll(9, 2025)
        record = by_employee(run.records)["EMP001"]

        await payroll.edit_payroll_record(
            record.payroll_record_id, {"status": "paid"}, edited_by="finance"
        )

        assert record.status == "paid"
        assert record.edited_by == "finance"

    async def test_edit_rejecting_negative_net_changes_nothing(
        self, payroll, salaries, salary_profiles
    ):
        run = await payroll.run_payroll(10, 2025)
        record = by_employee(run.records)["EMP001"]
        history_before = len(await salaries.get_salary_history("EMP001"))

        with pytest.raises(ValidationError):
            await payroll.edit_payroll_record(
                record.payroll_record_id, {"professional_tax": "100000"}
            )

        assert record.professional_tax == Decimal("0")
        assert record.net_pay == Decimal("46625")
        assert len(await salaries.get_salary_history("EMP001")) == history_before

    async def test_net_pay_not_settable(self, payroll, salary_profiles):
        run = await payroll.run_payroll(10, 2025)
        record = by_employee(run.records)["EMP001"]

        with pytest.raises(InvalidInputError):
            await payroll.edit_payroll_record(record.payroll_record_id, {"net_pay": "1"})

    async def test_edit_missing_record(self, payroll, salary_profiles):
        with pytest.raises(NotFoundError):
            await payroll.edit_payroll_record(uuid4(), {"status": "paid"})

    async def test_bulk_edit_collects_failures(self, payroll, salary_profiles):
        current = by_employee((await payroll.run_payroll(10, 2025)).records)
        past = by_employee((await payroll.run_payroll(9, 2025)).records)

        result = await payroll.edit_payroll_records(
            [
                {"payroll_record_id": current["EMP001"].payroll_record_id, "hra": "6000"},
                {"payroll_record_id": past["EMP001"].payroll_record_id, "hra": "6000"},
                {"payroll_record_id": "not-a-uuid", "status": "paid"},
            ],
            edited_by="hr",
        )

        assert [r.payroll_record_id for r in result.updated] == [
            current["EMP001"].payroll_record_id
        ]
        assert len(result.errors) == 2
        assert current["EMP001"].hra == Decimal("6000")
        assert past["EMP001"].hra == Decimal("5000")


class TestDeleteAndListings:
    async def test_delete_current_period_protected(self, payroll, salary_profiles):
        await payroll.run_payroll(10, 2025)
        with pytest.raises(CurrentPeriodProtectedError):
            await payroll.delete_payroll_for_period(10, 2025)

    async def test_delete_past_period(self, payroll, salary_profiles):
        await payroll.run_payroll(9, 2025)
        assert await payroll.delete_payroll_for_period("September", 2025) == 2

    async def test_get_payroll_for_period(self, payroll, salary_profiles):
        await payroll.run_payroll(9, 2025)
        await payroll.run_payroll(10, 2025)

        current = await payroll.get_payroll_for_period(10, 2025)
        past = await payroll.get_payroll_for_period(9, 2025)

        assert current.can_edit is True
        assert past.can_edit is False
        assert [item.employee.name for item in current.records] == ["Asha Rao", "Vikram Shah"]

    async def test_last_run_is_newest_period(self, payroll, salary_profiles):
        assert await payroll.get_last_payroll_run() is None

        await payroll.run_payroll(10, 2025)
        await payroll.run_payroll(8, 2025)

        last = await payroll.get_last_payroll_run()
        assert (last.summary.month, last.summary.year) == (10, 2025)
        assert len(last.records) == 2
        assert all(item.is_current_period for item in last.records)


class TestConcurrentWrites:
    """Writes to one ledger key from separate sessions queue on the key lock."""

    @pytest.fixture
    def run_own_session(self, session_factory, clock, locks):
        async def run():
            async with session_factory() as own:
                result = await PayrollService(own, clock=clock, locks=locks).run_payroll(
                    10, 2025, employee_ids=["EMP001"]
                )
                await own.commit()
                return result.created_count, result.updated_count

        return run

    async def test_same_key_runs_create_one_record(
        self, session_factory, clock, run_own_session, salary_profiles
    ):
        outcomes = await asyncio.gather(run_own_session(), run_own_session())

        assert sorted(outcomes) == [(0, 1), (1, 0)]
        async with session_factory() as fresh:
            records = await LedgerService(fresh, clock).list_for_period(
                Period(year=2025, month=10)
            )
        assert [r.employee_id for r in records] == ["EMP001"]

    async def test_key_held_until_transaction_ends(
        self, session, payroll, run_own_session, salary_profiles
    ):
        await payroll.run_payroll(10, 2025, employee_ids=["EMP001"])

        waiter = asyncio.create_task(run_own_session())
        await asyncio.sleep(0.05)
        assert not waiter.done()

        await session.commit()

        assert await waiter == (0, 1)

    async def test_same_session_reenters_held_key(self, payroll, locks, salary_profiles):
        period = Period(year=2025, month=10)

        async with locks.hold(payroll.session, "EMP001", period):
            result = await payroll.run_payroll(10, 2025, employee_ids=["EMP001"])

        assert result.created == ["EMP001"]


class TestUpdateSalary:
    async def test_ctc_beyond_storable_range_rejected(self, salaries, salary_profiles):
        with pytest.raises(InvalidInputError) as exc_info:
            await salaries.update_salary("EMP001", {"ctc": "1e30"})

        assert exc_info.value.field == "ctc"
        assert len(await salaries.get_salary_history("EMP001")) == 1

    async def test_overridden_basic_refreshes_employer_contributions(
        self, salaries, salary_profiles
    ):
        profile = await salaries.update_salary(
            "EMP001", {"ctc": "600000", "basic_salary": "30000"}
        )

        assert profile.gross_earnings == Decimal("55000")
        assert profile.employer_epf == Decimal("3600")
        assert profile.employer_esi == Decimal("1788")
