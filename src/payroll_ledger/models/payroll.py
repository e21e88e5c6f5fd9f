"""Salary profile history and payroll ledger models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_ledger.calculators.types import FINANCIAL_FIELDS, ZERO, SalaryBreakdown
from payroll_ledger.clock import Clock, Period, is_current_period
from payroll_ledger.models.base import Base, TimestampMixin, UpdateTimestampMixin, utcnow
from payroll_ledger.models.snapshots import CompanySnapshot, CurrencySnapshot


class CompensationMixin:
    """Financial columns shared by salary profiles and payroll records."""

    ctc: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    # Earnings
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    hra: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    fixed_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    conveyance_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    children_education_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    medical_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    shift_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    mobile_internet_allowance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gross_earnings: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    # Deductions
    employee_epf: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    employee_esi: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    professional_tax: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    # Employer contributions
    employer_epf: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    employer_esi: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    net_pay: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    def to_breakdown(self) -> SalaryBreakdown:
        return SalaryBreakdown(
            **{name: Decimal(getattr(self, name) or ZERO) for name in FINANCIAL_FIELDS}
        )

    def apply_breakdown(self, breakdown: SalaryBreakdown) -> None:
        """Overwrite every financial column, totals included."""
        for name in FINANCIAL_FIELDS:
            setattr(self, name, getattr(breakdown, name))


class SalaryProfile(Base, TimestampMixin, CompensationMixin):
    """Append-only compensation history row for one employee."""

    __tablename__ = "salary_profile"

    salary_profile_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    # Weak reference: directory rows may be removed without touching history
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("salary_profile_employee_effective_idx", "employee_id", "effective_from"),
    )


class RecordStatus(str, Enum):
    """Payroll record status values."""

    PROCESSED = "processed"
    PAID = "paid"


class PayrollRecord(Base, TimestampMixin, UpdateTimestampMixin, CompensationMixin):
    """Ledger entry for one employee for one calendar period."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Replaced wholesale on recompute, never mutated in place
    company_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    currency_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RecordStatus.PROCESSED.value
    )
    last_edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    edited_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "month", "year", name="payroll_record_employee_period_unique"
        ),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_record_month_check"),
        CheckConstraint(
            "status IN ('processed', 'paid')", name="payroll_record_status_check"
        ),
        Index("payroll_record_period_idx", "year", "month"),
    )

    @property
    def period(self) -> Period:
        return Period(year=self.year, month=self.month)

    @property
    def company(self) -> CompanySnapshot:
        return CompanySnapshot.from_dict(self.company_snapshot)

    @property
    def currency(self) -> CurrencySnapshot:
        return CurrencySnapshot.from_dict(self.currency_snapshot)

    def stamp_snapshots(self, company: CompanySnapshot, currency: CurrencySnapshot) -> None:
        self.company_snapshot = company.to_dict()
        self.currency_snapshot = currency.to_dict()

    def is_current_period(self, clock: Clock) -> bool:
        return is_current_period(self.month, self.year, clock)
