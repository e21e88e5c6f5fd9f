"""Payroll record status transitions and period-derived mutability."""

from __future__ import annotations

from typing import TYPE_CHECKING

from payroll_ledger.clock import Clock, is_current_period
from payroll_ledger.errors import (
    CurrentPeriodProtectedError,
    ImmutableRecordError,
    InvalidStatusTransitionError,
    PastPeriodImmutableError,
)
from payroll_ledger.models.payroll import RecordStatus

if TYPE_CHECKING:
    from payroll_ledger.models import PayrollRecord


class PayrollRecordStateMachine:
    """Status transitions plus the period-based mutability rule.

    Allowed transitions:
    - processed → paid
    - paid → processed (payment reversal)
    - any status → itself (no-op)

    Mutability is never stored. Each check asks the clock whether the
    record's (month, year) is the current calendar period:
    - current period: financial fields may be overwritten in place
    - past period: only status, edited_by and last_edited_at may change;
      deleting is allowed
    - the current period can never be deleted
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        RecordStatus.PROCESSED: [RecordStatus.PROCESSED, RecordStatus.PAID],
        RecordStatus.PAID: [RecordStatus.PAID, RecordStatus.PROCESSED],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStatusTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(from_status, to_status)

    @classmethod
    def is_financially_mutable(cls, month: int, year: int, clock: Clock) -> bool:
        """Financial fields are writable only while the period is current."""
        return is_current_period(month, year, clock)

    @classmethod
    def ensure_financially_mutable(cls, record: PayrollRecord, clock: Clock) -> None:
        if not cls.is_financially_mutable(record.month, record.year, clock):
            raise ImmutableRecordError(
                record.month,
                record.year,
                "cannot edit payroll for previous months, only current month payroll can be edited",
            )

    @classmethod
    def ensure_rerunnable(cls, month: int, year: int, clock: Clock) -> None:
        if not is_current_period(month, year, clock):
            raise PastPeriodImmutableError(month, year)

    @classmethod
    def ensure_deletable(cls, month: int, year: int, clock: Clock) -> None:
        if is_current_period(month, year, clock):
            raise CurrentPeriodProtectedError(month, year)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
