"""Payroll ledger services."""

from payroll_ledger.services.ledger_service import LedgerService, PeriodSummary
from payroll_ledger.services.locking_service import LockingService
from payroll_ledger.services.payroll_service import PayrollService, RunResult
from payroll_ledger.services.payslip_service import PayslipService, PayslipView
from payroll_ledger.services.salary_service import SalaryService
from payroll_ledger.services.snapshot_provider import SettingsSnapshot, SnapshotProvider
from payroll_ledger.services.state_machine import PayrollRecordStateMachine, RecordStatus
from payroll_ledger.services.sync_service import SyncPropagator

__all__ = [
    "LedgerService",
    "PeriodSummary",
    "LockingService",
    "PayrollService",
    "RunResult",
    "PayslipService",
    "PayslipView",
    "SalaryService",
    "SettingsSnapshot",
    "SnapshotProvider",
    "PayrollRecordStateMachine",
    "RecordStatus",
    "SyncPropagator",
]
