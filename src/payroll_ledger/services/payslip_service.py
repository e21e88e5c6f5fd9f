"""Payslip assembly from a frozen payroll record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.calculators.types import (
    COMPONENT_LABELS,
    DEDUCTION_FIELDS,
    EARNING_FIELDS,
    EMPLOYER_FIELDS,
    LineType,
    PayslipLine,
)
from payroll_ledger.models import CompanySnapshot, CurrencySnapshot, PayrollRecord
from payroll_ledger.services.directory import EmployeeDirectory
from payroll_ledger.services.ledger_service import LedgerService


@dataclass(frozen=True)
class PayslipEmployee:
    employee_id: str
    name: str
    department: str | None
    designation: str | None
    employment_type: str | None
    date_of_joining: date | None


@dataclass
class PayslipView:
    """Everything a payslip renders, taken from one record.

    Company and currency come from the record's embedded snapshots, and no
    field depends on the time of assembly, so assembling the same past
    record twice yields equal views.
    """

    payroll_record_id: UUID
    employee: PayslipEmployee
    month: int
    month_name: str
    year: int
    company: CompanySnapshot
    currency: CurrencySnapshot
    earnings: list[PayslipLine]
    deductions: list[PayslipLine]
    employer_contributions: list[PayslipLine]
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    ctc: Decimal
    status: str
    processed_at: datetime


class PayslipService:
    """Builds payslip views. Never reads live company settings or salary."""

    def __init__(self, session: AsyncSession):
        self.ledger = LedgerService(session)
        self.directory = EmployeeDirectory(session)

    async def get_payslip(self, record_id: UUID) -> PayslipView:
        """Raises NotFoundError for a missing record or employee."""
        record = await self.ledger.require(record_id)
        employee = await self.directory.require(record.employee_id)
        return self.assemble(
            record,
            PayslipEmployee(
                employee_id=employee.employee_id,
                name=employee.name,
                department=employee.department,
                designation=employee.designation,
                employment_type=employee.employment_type,
                date_of_joining=employee.date_of_joining,
            ),
        )

    async def list_employee_payslips(self, employee_id: str) -> list[PayrollRecord]:
        """Records of one employee, newest period first."""
        await self.directory.require(employee_id)
        return await self.ledger.list_for_employee(employee_id)

    @staticmethod
    def assemble(record: PayrollRecord, employee: PayslipEmployee) -> PayslipView:
        return PayslipView(
            payroll_record_id=record.payroll_record_id,
            employee=employee,
            month=record.month,
            month_name=record.period.month_name,
            year=record.year,
            company=record.company,
            currency=record.currency,
            earnings=_lines(record, EARNING_FIELDS, LineType.EARNING),
            deductions=_lines(record, DEDUCTION_FIELDS, LineType.DEDUCTION),
            employer_contributions=_lines(
                record, EMPLOYER_FIELDS, LineType.EMPLOYER_CONTRIBUTION
            ),
            gross_earnings=Decimal(record.gross_earnings),
            total_deductions=Decimal(record.total_deductions),
            net_pay=Decimal(record.net_pay),
            ctc=Decimal(record.ctc),
            status=record.status,
            processed_at=record.created_at,
        )


def _lines(record: PayrollRecord, fields: tuple[str, ...], line_type: LineType) -> list[PayslipLine]:
    """Non-zero lines in payslip order."""
    lines = []
    for name in fields:
        amount = Decimal(getattr(record, name) or 0)
        if amount:
            lines.append(
                PayslipLine(
                    line_type=line_type,
                    code=name,
                    label=COMPONENT_LABELS[name],
                    amount=amount,
                )
            )
    return lines
