"""Payroll ledger: uniqueness and mutability over per-period records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.calculators.salary_calculator import validate_breakdown
from payroll_ledger.calculators.types import ZERO, SalaryBreakdown
from payroll_ledger.clock import Clock, Period, SystemClock, is_current_period
from payroll_ledger.errors import ConflictError, NotFoundError
from payroll_ledger.models import PayrollRecord
from payroll_ledger.services.snapshot_provider import SettingsSnapshot
from payroll_ledger.services.state_machine import PayrollRecordStateMachine, RecordStatus


@dataclass
class PeriodSummary:
    """Aggregate view of one payroll period."""

    month: int
    year: int
    count: int
    total_net_pay: Decimal
    processed_date: datetime | None
    last_updated: datetime | None
    paid_count: int
    is_current_period: bool

    @property
    def period(self) -> Period:
        return Period(year=self.year, month=self.month)

    @property
    def overall_status(self) -> str:
        if self.paid_count == 0:
            return RecordStatus.PROCESSED.value
        if self.paid_count == self.count:
            return RecordStatus.PAID.value
        return "mixed"


class LedgerService:
    """CRUD over payroll records with the period mutability rule.

    Key invariants:
    1. One record per (employee_id, month, year) (unique constraint, and
       create() checks first so callers get ConflictError, not a DB error)
    2. Totals are always derived from components before a write
    3. Financial writes re-check the clock on every call; past periods
       accept metadata changes only
    4. The current period cannot be deleted
    """

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, record_id: UUID) -> PayrollRecord | None:
        return await self.session.get(PayrollRecord, record_id)

    async def require(self, record_id: UUID) -> PayrollRecord:
        record = await self.get(record_id)
        if record is None:
            raise NotFoundError("Payroll record", record_id)
        return record

    async def get_by_key(self, employee_id: str, period: Period) -> PayrollRecord | None:
        result = await self.session.execute(
            select(PayrollRecord).where(
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.month == period.month,
                PayrollRecord.year == period.year,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_period(self, period: Period) -> list[PayrollRecord]:
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.month == period.month, PayrollRecord.year == period.year)
            .order_by(PayrollRecord.employee_id)
        )
        return list(result.scalars().all())

    async def list_for_employee(self, employee_id: str) -> list[PayrollRecord]:
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.employee_id == employee_id)
            .order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc())
        )
        return list(result.scalars().all())

    async def period_summaries(self, limit: int | None = None) -> list[PeriodSummary]:
        """One summary per period, newest period first."""
        paid = func.sum(case((PayrollRecord.status == RecordStatus.PAID.value, 1), else_=0))
        query = (
            select(
                PayrollRecord.year,
                PayrollRecord.month,
                func.count().label("count"),
                func.sum(PayrollRecord.net_pay).label("total_net_pay"),
                func.max(PayrollRecord.created_at).label("processed_date"),
                func.max(PayrollRecord.updated_at).label("last_updated"),
                paid.label("paid_count"),
            )
            .group_by(PayrollRecord.year, PayrollRecord.month)
            .order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [
            PeriodSummary(
                month=row.month,
                year=row.year,
                count=row.count,
                total_net_pay=Decimal(row.total_net_pay or ZERO),
                processed_date=row.processed_date,
                last_updated=row.last_updated,
                paid_count=int(row.paid_count or 0),
                is_current_period=is_current_period(row.month, row.year, self.clock),
            )
            for row in result.all()
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        employee_id: str,
        period: Period,
        breakdown: SalaryBreakdown,
        snapshot: SettingsSnapshot,
        edited_by: str | None = None,
    ) -> PayrollRecord:
        """Insert a new record. Raises ConflictError if the key exists."""
        if await self.get_by_key(employee_id, period) is not None:
            raise ConflictError(employee_id, period.month, period.year)
        validate_breakdown(breakdown)

        record = PayrollRecord(
            employee_id=employee_id,
            month=period.month,
            year=period.year,
            status=RecordStatus.PROCESSED.value,
            edited_by=edited_by,
            created_at=self.clock.now(),
        )
        record.apply_breakdown(breakdown)
        record.stamp_snapshots(snapshot.company, snapshot.currency)
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(employee_id, period.month, period.year) from e
        return record

    async def overwrite_financials(
        self,
        record: PayrollRecord,
        breakdown: SalaryBreakdown,
        snapshot: SettingsSnapshot | None = None,
        edited_by: str | None = None,
        status: str | None = None,
    ) -> PayrollRecord:
        """Replace every financial field of a current-period record.

        Raises ImmutableRecordError for past periods and ValidationError
        when deductions exceed gross; the record is untouched in both cases.
        """
        PayrollRecordStateMachine.ensure_financially_mutable(record, self.clock)
        validate_breakdown(breakdown)
        if status is not None:
            PayrollRecordStateMachine.validate_transition(record.status, status)

        record.apply_breakdown(breakdown)
        if snapshot is not None:
            record.stamp_snapshots(snapshot.company, snapshot.currency)
        if status is not None:
            record.status = status
        self._touch(record, edited_by)
        await self.session.flush()
        return record

    async def update_metadata(
        self,
        record: PayrollRecord,
        status: str | None = None,
        edited_by: str | None = None,
    ) -> PayrollRecord:
        """Change status/editor only. Allowed in any period."""
        if status is not None:
            PayrollRecordStateMachine.validate_transition(record.status, status)
            record.status = status
        self._touch(record, edited_by)
        await self.session.flush()
        return record

    async def delete_period(self, period: Period) -> int:
        """Delete every record of a past period; returns the deleted count."""
        PayrollRecordStateMachine.ensure_deletable(period.month, period.year, self.clock)
        result = await self.session.execute(
            delete(PayrollRecord).where(
                PayrollRecord.month == period.month,
                PayrollRecord.year == period.year,
            )
        )
        deleted = result.rowcount or 0
        if deleted == 0:
            raise NotFoundError("Payroll period", str(period))
        return deleted

    def _touch(self, record: PayrollRecord, edited_by: str | None) -> None:
        record.last_edited_at = self.clock.now()
        record.edited_by = edited_by or "system"
