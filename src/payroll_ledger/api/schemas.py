"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_ledger.calculators.types import SalaryBreakdown
from payroll_ledger.clock import Clock
from payroll_ledger.models import (
    CompanySnapshot,
    CurrencySnapshot,
    Employee,
    PayrollRecord,
)
from payroll_ledger.services.ledger_service import PeriodSummary
from payroll_ledger.services.payroll_service import RecordWithEmployee, RunResult
from payroll_ledger.services.payslip_service import PayslipView


class ErrorResponse(BaseModel):
    """Error payload."""

    detail: str
    code: str


# ============================================================================
# Snapshots
# ============================================================================


class AddressSchema(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class CompanySnapshotSchema(BaseModel):
    name: str
    logo: str = ""
    address: AddressSchema

    @classmethod
    def from_snapshot(cls, snapshot: CompanySnapshot) -> CompanySnapshotSchema:
        return cls.model_validate(snapshot.to_dict())


class CurrencySnapshotSchema(BaseModel):
    code: str
    symbol: str
    display: str
    exchange_rate: Decimal

    @classmethod
    def from_snapshot(cls, snapshot: CurrencySnapshot) -> CurrencySnapshotSchema:
        return cls(
            code=snapshot.code,
            symbol=snapshot.symbol,
            display=snapshot.display,
            exchange_rate=snapshot.exchange_rate,
        )


# ============================================================================
# Salary schemas
# ============================================================================


class ComponentFields(BaseModel):
    """Settable compensation components (all optional)."""

    model_config = ConfigDict(extra="forbid")

    ctc: Decimal | None = None
    basic_salary: Decimal | None = None
    hra: Decimal | None = None
    fixed_allowance: Decimal | None = None
    conveyance_allowance: Decimal | None = None
    children_education_allowance: Decimal | None = None
    medical_allowance: Decimal | None = None
    shift_allowance: Decimal | None = None
    mobile_internet_allowance: Decimal | None = None
    employee_epf: Decimal | None = None
    employee_esi: Decimal | None = None
    professional_tax: Decimal | None = None
    employer_epf: Decimal | None = None
    employer_esi: Decimal | None = None

    def components(self) -> dict[str, Any]:
        return self.model_dump(
            exclude_none=True,
            exclude={"employee_id", "effective_from", "payroll_record_id"},
        )


class SalaryUpdateRequest(ComponentFields):
    """Schema for recording a compensation change."""

    employee_id: str
    effective_from: datetime | None = None


class SalaryBreakdownResponse(BaseModel):
    """Monthly compensation structure."""

    model_config = ConfigDict(from_attributes=True)

    ctc: Decimal
    basic_salary: Decimal
    hra: Decimal
    fixed_allowance: Decimal
    conveyance_allowance: Decimal
    children_education_allowance: Decimal
    medical_allowance: Decimal
    shift_allowance: Decimal
    mobile_internet_allowance: Decimal
    gross_earnings: Decimal
    employee_epf: Decimal
    employee_esi: Decimal
    professional_tax: Decimal
    total_deductions: Decimal
    employer_epf: Decimal
    employer_esi: Decimal
    net_pay: Decimal

    @classmethod
    def from_breakdown(cls, breakdown: SalaryBreakdown) -> SalaryBreakdownResponse:
        return cls.model_validate(breakdown.to_dict())


class SalaryProfileResponse(SalaryBreakdownResponse):
    """Schema for one salary history row."""

    salary_profile_id: UUID
    employee_id: str
    effective_from: datetime
    created_at: datetime


class EmployeeSummary(BaseModel):
    """Directory fields shown next to payroll data."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    name: str
    email: str | None = None
    department: str | None = None
    designation: str | None = None


class EmployeeSalaryResponse(BaseModel):
    """Active employee with latest salary."""

    employee_id: str
    name: str
    email: str | None = None
    department: str | None = None
    designation: str | None = None
    employment_type: str | None = None
    status: str
    location: str | None = None
    date_of_joining: date | None = None
    has_salary_profile: bool
    effective_from: datetime | None = None
    salary: SalaryBreakdownResponse


class SalaryUpdateResponse(BaseModel):
    message: str
    salary_record: SalaryProfileResponse
    employee: EmployeeSummary


# ============================================================================
# Payroll record schemas
# ============================================================================


class PayrollRecordResponse(SalaryBreakdownResponse):
    """Schema for a payroll ledger record."""

    payroll_record_id: UUID
    employee_id: str
    month: int
    month_name: str
    year: int
    status: str
    company: CompanySnapshotSchema
    currency: CurrencySnapshotSchema
    is_current_period: bool
    can_edit: bool
    last_edited_at: datetime | None = None
    edited_by: str | None = None
    created_at: datetime
    updated_at: datetime
    employee: EmployeeSummary | None = None

    @classmethod
    def from_record(
        cls,
        record: PayrollRecord,
        clock: Clock,
        employee: Employee | None = None,
    ) -> PayrollRecordResponse:
        current = record.is_current_period(clock)
        return cls(
            **record.to_breakdown().to_dict(),
            payroll_record_id=record.payroll_record_id,
            employee_id=record.employee_id,
            month=record.month,
            month_name=record.period.month_name,
            year=record.year,
            status=record.status,
            company=CompanySnapshotSchema.from_snapshot(record.company),
            currency=CurrencySnapshotSchema.from_snapshot(record.currency),
            is_current_period=current,
            can_edit=current,
            last_edited_at=record.last_edited_at,
            edited_by=record.edited_by,
            created_at=record.created_at,
            updated_at=record.updated_at,
            employee=EmployeeSummary.model_validate(employee) if employee else None,
        )

    @classmethod
    def from_joined(cls, item: RecordWithEmployee, clock: Clock) -> PayrollRecordResponse:
        return cls.from_record(item.record, clock, item.employee)


class PeriodRequest(BaseModel):
    """Month may be 1-12 or a month name."""

    month: int | str
    year: int | str


class RunPayrollRequest(PeriodRequest):
    employee_ids: list[str] | None = None


class RunResponse(BaseModel):
    message: str
    month: int
    month_name: str
    year: int
    is_current_period: bool
    created_count: int
    updated_count: int
    skipped_count: int
    created: list[str]
    updated: list[str]
    skipped: list[str]
    company: CompanySnapshotSchema
    currency: CurrencySnapshotSchema
    payrolls: list[PayrollRecordResponse]

    @classmethod
    def from_result(cls, message: str, result: RunResult, clock: Clock) -> RunResponse:
        return cls(
            message=message,
            month=result.period.month,
            month_name=result.period.month_name,
            year=result.period.year,
            is_current_period=result.is_current_period,
            created_count=result.created_count,
            updated_count=result.updated_count,
            skipped_count=result.skipped_count,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            company=CompanySnapshotSchema.from_snapshot(result.snapshot.company),
            currency=CurrencySnapshotSchema.from_snapshot(result.snapshot.currency),
            payrolls=[PayrollRecordResponse.from_record(r, clock) for r in result.records],
        )


class PayrollRecordUpdate(ComponentFields):
    """Partial edit of a payroll record; totals are always re-derived."""

    status: str | None = None


class BulkUpdateItem(PayrollRecordUpdate):
    payroll_record_id: UUID


class BulkUpdateRequest(BaseModel):
    updates: list[BulkUpdateItem] = Field(min_length=1)


class BulkUpdateResponse(BaseModel):
    message: str
    updated_payrolls: list[PayrollRecordResponse]
    errors: list[str] = Field(default_factory=list)


class PeriodSummaryResponse(BaseModel):
    month: int
    month_name: str
    year: int
    count: int
    total_net_pay: Decimal
    processed_date: datetime | None = None
    last_updated: datetime | None = None
    overall_status: str
    is_current_period: bool

    @classmethod
    def from_summary(cls, summary: PeriodSummary) -> PeriodSummaryResponse:
        return cls(
            month=summary.month,
            month_name=summary.period.month_name,
            year=summary.year,
            count=summary.count,
            total_net_pay=summary.total_net_pay,
            processed_date=summary.processed_date,
            last_updated=summary.last_updated,
            overall_status=summary.overall_status,
            is_current_period=summary.is_current_period,
        )


class PeriodDetailResponse(BaseModel):
    month: int
    month_name: str
    year: int
    can_edit: bool
    payrolls: list[PayrollRecordResponse]


class LastRunResponse(BaseModel):
    exists: bool
    message: str | None = None
    summary: PeriodSummaryResponse | None = None
    payrolls: list[PayrollRecordResponse] = Field(default_factory=list)


class DeletePeriodResponse(BaseModel):
    message: str
    deleted_count: int
    month: int
    year: int


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    label: str
    amount: Decimal


class PayslipEmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    name: str
    department: str | None = None
    designation: str | None = None
    employment_type: str | None = None
    date_of_joining: date | None = None


class PayslipResponse(BaseModel):
    payroll_record_id: UUID
    employee: PayslipEmployeeResponse
    month: int
    month_name: str
    year: int
    company: CompanySnapshotSchema
    currency: CurrencySnapshotSchema
    earnings: list[PayslipLineResponse]
    deductions: list[PayslipLineResponse]
    employer_contributions: list[PayslipLineResponse]
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    ctc: Decimal
    status: str
    processed_at: datetime

    @classmethod
    def from_view(cls, view: PayslipView) -> PayslipResponse:
        return cls(
            payroll_record_id=view.payroll_record_id,
            employee=PayslipEmployeeResponse.model_validate(view.employee),
            month=view.month,
            month_name=view.month_name,
            year=view.year,
            company=CompanySnapshotSchema.from_snapshot(view.company),
            currency=CurrencySnapshotSchema.from_snapshot(view.currency),
            earnings=[PayslipLineResponse.model_validate(line) for line in view.earnings],
            deductions=[PayslipLineResponse.model_validate(line) for line in view.deductions],
            employer_contributions=[
                PayslipLineResponse.model_validate(line) for line in view.employer_contributions
            ],
            gross_earnings=view.gross_earnings,
            total_deductions=view.total_deductions,
            net_pay=view.net_pay,
            ctc=view.ctc,
            status=view.status,
            processed_at=view.processed_at,
        )
