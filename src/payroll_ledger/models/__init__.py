"""ORM models."""

from payroll_ledger.models.base import Base, TimestampMixin, UpdateTimestampMixin
from payroll_ledger.models.employee import CompanySettings, Employee
from payroll_ledger.models.payroll import (
    PayrollRecord,
    RecordStatus,
    SalaryProfile,
)
from payroll_ledger.models.snapshots import AddressSnapshot, CompanySnapshot, CurrencySnapshot

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdateTimestampMixin",
    "CompanySettings",
    "Employee",
    "PayrollRecord",
    "RecordStatus",
    "SalaryProfile",
    "AddressSnapshot",
    "CompanySnapshot",
    "CurrencySnapshot",
]
