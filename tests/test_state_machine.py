"""Tests for payroll record state machine."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from payroll_ledger.clock import FixedClock
from payroll_ledger.errors import (
    CurrentPeriodProtectedError,
    ImmutableRecordError,
    InvalidStatusTransitionError,
    PastPeriodImmutableError,
)
from payroll_ledger.services.state_machine import PayrollRecordStateMachine, RecordStatus


@pytest.fixture
def october() -> FixedClock:
    return FixedClock(datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc))


class TestPayrollRecordStateMachine:
    """Test status transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # processed → paid
        assert PayrollRecordStateMachine.can_transition("processed", "paid") is True

        # paid → processed (payment reversal)
        assert PayrollRecordStateMachine.can_transition("paid", "processed") is True

        # No-op transitions
        assert PayrollRecordStateMachine.can_transition("processed", "processed") is True
        assert PayrollRecordStateMachine.can_transition("paid", "paid") is True

    def test_invalid_transitions(self):
        """Test that unknown statuses are blocked."""
        assert PayrollRecordStateMachine.can_transition("processed", "cancelled") is False
        assert PayrollRecordStateMachine.can_transition("draft", "paid") is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            PayrollRecordStateMachine.validate_transition("paid", "voided")

        assert exc_info.value.from_status == "paid"
        assert exc_info.value.to_status == "voided"

    def test_enum_values_compare_as_strings(self):
        assert RecordStatus.PAID == "paid"
        assert PayrollRecordStateMachine.can_transition(RecordStatus.PROCESSED, "paid")

    def test_get_next_statuses(self):
        """Test getting valid next statuses."""
        assert set(PayrollRecordStateMachine.get_next_statuses("processed")) == {
            "processed",
            "paid",
        }
        assert PayrollRecordStateMachine.get_next_statuses("unknown") == []


class TestPeriodMutability:
    """Test the period-derived mutability rule."""

    def test_current_period_is_financially_mutable(self, october):
        assert PayrollRecordStateMachine.is_financially_mutable(10, 2025, october) is True

    def test_past_and_future_periods_are_not(self, october):
        assert PayrollRecordStateMachine.is_financially_mutable(9, 2025, october) is False
        assert PayrollRecordStateMachine.is_financially_mutable(10, 2024, october) is False
        assert PayrollRecordStateMachine.is_financially_mutable(11, 2025, october) is False

    def test_mutability_follows_the_clock(self, october):
        """Nothing is cached: advancing the clock freezes the old period."""
        record = SimpleNamespace(month=10, year=2025)
        PayrollRecordStateMachine.ensure_financially_mutable(record, october)

        october.set_time(datetime(2025, 11, 1, 0, 0, tzinfo=timezone.utc))

        with pytest.raises(ImmutableRecordError) as exc_info:
            PayrollRecordStateMachine.ensure_financially_mutable(record, october)
        assert (exc_info.value.month, exc_info.value.year) == (10, 2025)

    def test_rerun_only_current_period(self, october):
        PayrollRecordStateMachine.ensure_rerunnable(10, 2025, october)
        with pytest.raises(PastPeriodImmutableError):
            PayrollRecordStateMachine.ensure_rerunnable(9, 2025, october)

    def test_delete_only_other_periods(self, october):
        PayrollRecordStateMachine.ensure_deletable(9, 2025, october)
        with pytest.raises(CurrentPeriodProtectedError):
            PayrollRecordStateMachine.ensure_deletable(10, 2025, october)

    def test_protected_errors_are_immutable_errors(self):
        assert issubclass(CurrentPeriodProtectedError, ImmutableRecordError)
        assert issubclass(PastPeriodImmutableError, ImmutableRecordError)
