"""Payroll service - run/rerun orchestrator for monthly payroll."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.calculators.salary_calculator import (
    apply_update,
    parse_component_update,
    validate_breakdown,
)
from payroll_ledger.clock import Clock, Period, SystemClock, current_period, is_current_period
from payroll_ledger.errors import ImmutableRecordError, InvalidInputError, PayrollLedgerError
from payroll_ledger.models import Employee, PayrollRecord
from payroll_ledger.services.directory import EmployeeDirectory
from payroll_ledger.services.ledger_service import LedgerService, PeriodSummary
from payroll_ledger.services.locking_service import LockingService
from payroll_ledger.services.salary_service import SalaryService
from payroll_ledger.services.snapshot_provider import SettingsSnapshot, SnapshotProvider
from payroll_ledger.services.state_machine import PayrollRecordStateMachine

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of a run, individual run or rerun."""

    period: Period
    snapshot: SettingsSnapshot
    is_current_period: bool
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    records: list[PayrollRecord] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass
class RecordWithEmployee:
    record: PayrollRecord
    employee: Employee | None
    is_current_period: bool


@dataclass
class PeriodDetail:
    period: Period
    can_edit: bool
    records: list[RecordWithEmployee]


@dataclass
class LastRun:
    summary: PeriodSummary
    records: list[RecordWithEmployee]


@dataclass
class BulkEditResult:
    updated: list[PayrollRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class PayrollService:
    """Service driving payroll processing over the ledger.

    Operations:
    - run_payroll: create or refresh records for a period
    - run_individual_payroll: the same, for one employee
    - rerun_payroll: refresh every record of the current period
    - sync_current_period: refresh one employee after a salary change
    - edit_payroll_record(s): manual corrections, current period only
    - delete_payroll_for_period: drop a past period

    Run asymmetry: an existing record of the current period is recomputed
    from the latest salary profile and current settings; an existing record
    of a past period only has its metadata touched. Financial history is
    never rewritten by a run.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        snapshot_provider: SnapshotProvider | None = None,
        locks: LockingService | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.snapshot_provider = snapshot_provider or SnapshotProvider(session)
        self.locks = locks or LockingService()
        self.ledger = LedgerService(session, self.clock)
        self.salaries = SalaryService(session, self.clock)
        self.directory = EmployeeDirectory(session)

    # ------------------------------------------------------------------
    # Run / rerun
    # ------------------------------------------------------------------

    async def run_payroll(
        self,
        month: int | str,
        year: int | str,
        employee_ids: Iterable[str] | None = None,
        edited_by: str | None = None,
    ) -> RunResult:
        """Process payroll for a period.

        Targets the given employees, or every active employee. Employees
        without a salary profile, and ids unknown to the directory, are
        skipped. Safe to repeat: a second run updates instead of duplicating.
        """
        period = Period.of(month, year)
        snapshot = await self.snapshot_provider.current()
        result = RunResult(
            period=period,
            snapshot=snapshot,
            is_current_period=is_current_period(period.month, period.year, self.clock),
        )

        if employee_ids is None:
            targets = [e.employee_id for e in await self.directory.list_active()]
        else:
            requested = list(dict.fromkeys(employee_ids))
            known = await self.directory.get_many(requested)
            targets = []
            for employee_id in requested:
                if employee_id in known:
                    targets.append(employee_id)
                else:
                    logger.warning("Skipping unknown employee %s for %s", employee_id, period)
                    result.skipped.append(employee_id)

        for employee_id in targets:
            await self._process_employee(employee_id, period, snapshot, edited_by, result)

        logger.info(
            "Payroll processed for %s: created=%d updated=%d skipped=%d",
            period,
            result.created_count,
            result.updated_count,
            result.skipped_count,
        )
        return result

    async def run_individual_payroll(
        self,
        month: int | str,
        year: int | str,
        employee_id: str,
        edited_by: str | None = None,
    ) -> RunResult:
        """Run payroll for one employee. Raises NotFoundError if unknown."""
        await self.directory.require(employee_id)
        return await self.run_payroll(month, year, [employee_id], edited_by=edited_by)

    async def rerun_payroll(
        self,
        month: int | str,
        year: int | str,
        edited_by: str | None = None,
    ) -> RunResult:
        """Refresh every existing record of the current period.

        Raises PastPeriodImmutableError for any other period. Never creates
        missing records.
        """
        period = Period.of(month, year)
        PayrollRecordStateMachine.ensure_rerunnable(period.month, period.year, self.clock)
        snapshot = await self.snapshot_provider.current()
        result = RunResult(period=period, snapshot=snapshot, is_current_period=True)

        for record in await self.ledger.list_for_period(period):
            profile = await self.salaries.get_latest(record.employee_id)
            if profile is None:
                result.skipped.append(record.employee_id)
                continue
            async with self.locks.hold(self.session, record.employee_id, period):
                await self.ledger.overwrite_financials(
                    record, profile.to_breakdown(), snapshot, edited_by=edited_by
                )
            result.updated.append(record.employee_id)
            result.records.append(record)

        logger.info("Payroll rerun for %s: updated=%d", period, result.updated_count)
        return result

    async def sync_current_period(
        self,
        employee_id: str,
        edited_by: str | None = None,
    ) -> PayrollRecord | None:
        """Recompute the employee's current-period record, if one exists."""
        period = current_period(self.clock)
        profile = await self.salaries.get_latest(employee_id)
        if profile is None:
            return None
        async with self.locks.hold(self.session, employee_id, period):
            record = await self.ledger.get_by_key(employee_id, period)
            if record is None:
                return None
            snapshot = await self.snapshot_provider.current()
            return await self.ledger.overwrite_financials(
                record, profile.to_breakdown(), snapshot, edited_by=edited_by
            )

    async def _process_employee(
        self,
        employee_id: str,
        period: Period,
        snapshot: SettingsSnapshot,
        edited_by: str | None,
        result: RunResult,
    ) -> None:
        profile = await self.salaries.get_latest(employee_id)
        if profile is None:
            result.skipped.append(employee_id)
            return

        async with self.locks.hold(self.session, employee_id, period):
            record = await self.ledger.get_by_key(employee_id, period)
            if record is None:
                record = await self.ledger.create(
                    employee_id, period, profile.to_breakdown(), snapshot, edited_by=edited_by
                )
                result.created.append(employee_id)
            elif PayrollRecordStateMachine.is_financially_mutable(
                period.month, period.year, self.clock
            ):
                try:
                    await self.ledger.overwrite_financials(
                        record, profile.to_breakdown(), snapshot, edited_by=edited_by
                    )
                except ImmutableRecordError:
                    # Period rolled over mid-run
                    await self.ledger.update_metadata(record, edited_by=edited_by)
                result.updated.append(employee_id)
            else:
                await self.ledger.update_metadata(record, edited_by=edited_by)
                result.updated.append(employee_id)
        result.records.append(record)

    # ------------------------------------------------------------------
    # Edits and deletion
    # ------------------------------------------------------------------

    async def edit_payroll_record(
        self,
        record_id: UUID,
        components: Mapping[str, Any],
        edited_by: str | None = None,
        sync_salary_profile: bool = True,
    ) -> PayrollRecord:
        """Apply a manual correction to a payroll record.

        Financial fields: current period only (ImmutableRecordError
        otherwise), and deductions may not exceed gross (ValidationError).
        A status-only change is allowed in any period. A financial edit is
        mirrored into a new salary profile so a later rerun keeps it.
        Nothing is written unless every check passes.
        """
        update = parse_component_update(components)
        record = await self.ledger.require(record_id)

        async with self.locks.hold(self.session, record.employee_id, record.period):
            if not update.has_financial_changes:
                return await self.ledger.update_metadata(
                    record, status=update.status, edited_by=edited_by
                )

            PayrollRecordStateMachine.ensure_financially_mutable(record, self.clock)
            breakdown = apply_update(record.to_breakdown(), update)
            validate_breakdown(breakdown)
            if update.status is not None:
                PayrollRecordStateMachine.validate_transition(record.status, update.status)

            await self.ledger.overwrite_financials(
                record, breakdown, edited_by=edited_by, status=update.status
            )
            if sync_salary_profile:
                await self.salaries.append(record.employee_id, breakdown)
        return record

    async def edit_payroll_records(
        self,
        updates: Iterable[Mapping[str, Any]],
        edited_by: str | None = None,
    ) -> BulkEditResult:
        """Edit several records; each item succeeds or fails on its own."""
        result = BulkEditResult()
        for item in updates:
            components = dict(item)
            raw_id = components.pop("payroll_record_id", None)
            try:
                record_id = _parse_record_id(raw_id)
                record = await self.edit_payroll_record(record_id, components, edited_by)
            except PayrollLedgerError as e:
                result.errors.append(f"{raw_id}: {e}")
                continue
            result.updated.append(record)
        return result

    async def delete_payroll_for_period(self, month: int | str, year: int | str) -> int:
        """Delete a past period's payroll. Returns the number of records removed."""
        period = Period.of(month, year)
        deleted = await self.ledger.delete_period(period)
        logger.info("Deleted %d payroll records for %s", deleted, period)
        return deleted

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_payroll_history(self) -> list[PeriodSummary]:
        return await self.ledger.period_summaries()

    async def get_last_payroll_run(self) -> LastRun | None:
        summaries = await self.ledger.period_summaries(limit=1)
        if not summaries:
            return None
        summary = summaries[0]
        records = await self.ledger.list_for_period(summary.period)
        return LastRun(summary=summary, records=await self._with_employees(records))

    async def get_payroll_for_period(self, month: int | str, year: int | str) -> PeriodDetail:
        period = Period.of(month, year)
        records = await self.ledger.list_for_period(period)
        return PeriodDetail(
            period=period,
            can_edit=is_current_period(period.month, period.year, self.clock),
            records=await self._with_employees(records),
        )

    async def _with_employees(self, records: list[PayrollRecord]) -> list[RecordWithEmployee]:
        employees = await self.directory.get_many(r.employee_id for r in records)
        return [
            RecordWithEmployee(
                record=r,
                employee=employees.get(r.employee_id),
                is_current_period=r.is_current_period(self.clock),
            )
            for r in records
        ]


def _parse_record_id(raw: Any) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError:
        raise InvalidInputError("payroll_record_id", raw, "must be a UUID") from None
