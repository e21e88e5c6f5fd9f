"""Typed errors raised by the payroll ledger.

Every error carries a machine-readable ``code`` plus the structured values
that caused it, so the API layer maps errors by type rather than by message.

    PayrollLedgerError
    +-- InvalidInputError
    +-- ValidationError
    +-- NotFoundError
    +-- ConflictError
    +-- InvalidStatusTransitionError
    +-- ImmutableRecordError
    |   +-- CurrentPeriodProtectedError
    |   +-- PastPeriodImmutableError
    +-- PropagationFailure
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class PayrollLedgerError(Exception):
    """Base class for payroll ledger errors."""

    code: str = "PAYROLL_ERROR"


class InvalidInputError(PayrollLedgerError):
    """Raised when an argument is malformed (negative CTC, bad month...)."""

    code = "INVALID_INPUT"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class ValidationError(PayrollLedgerError):
    """Raised when a compensation structure is internally inconsistent."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, gross: Decimal | None = None, deductions: Decimal | None = None):
        self.gross = gross
        self.deductions = deductions
        super().__init__(message)


class NotFoundError(PayrollLedgerError):
    """Raised when an employee or payroll record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class ConflictError(PayrollLedgerError):
    """Raised when a payroll record already exists for a period key."""

    code = "CONFLICT"

    def __init__(self, employee_id: str, month: int, year: int):
        self.employee_id = employee_id
        self.month = month
        self.year = year
        super().__init__(
            f"Payroll record for {employee_id} already exists for {month:02d}/{year}"
        )


class InvalidStatusTransitionError(PayrollLedgerError):
    """Raised when a record status change is not allowed."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid status transition from '{from_status}' to '{to_status}'")


class ImmutableRecordError(PayrollLedgerError):
    """Raised when a financial write targets a period that is no longer current."""

    code = "IMMUTABLE"

    def __init__(self, month: int, year: int, reason: str | None = None):
        self.month = month
        self.year = year
        msg = f"Payroll for {month:02d}/{year} is read-only"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CurrentPeriodProtectedError(ImmutableRecordError):
    """Raised when deleting payroll of the current period."""

    code = "CURRENT_PERIOD_PROTECTED"

    def __init__(self, month: int, year: int):
        super().__init__(
            month,
            year,
            "cannot delete current month payroll, only previous months can be deleted",
        )


class PastPeriodImmutableError(ImmutableRecordError):
    """Raised when a rerun targets a period other than the current one."""

    code = "PAST_PERIOD_IMMUTABLE"

    def __init__(self, month: int, year: int):
        super().__init__(month, year, "only current month payroll can be rerun")


class PropagationFailure(PayrollLedgerError):
    """Wraps a failed salary-to-payroll sync. Logged, never raised to callers."""

    code = "PROPAGATION_FAILURE"

    def __init__(self, employee_id: str, cause: BaseException):
        self.employee_id = employee_id
        self.cause = cause
        super().__init__(f"Payroll sync failed for {employee_id}: {cause}")
