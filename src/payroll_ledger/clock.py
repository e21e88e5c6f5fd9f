"""Clock capability and calendar-period helpers.

Services never call ``datetime.now()`` directly; they receive a ``Clock``
so month rollover can be pinned in tests. A period is a calendar
``(month, year)`` pair. "Current" means the month and year of ``now()``
with no timezone normalization: ``SystemClock`` answers in UTC, so a
company operating far from UTC sees the period flip at UTC midnight.
"""

from __future__ import annotations

import calendar
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from payroll_ledger.errors import InvalidInputError

MONTH_NAMES: tuple[str, ...] = tuple(calendar.month_name[1:])
_MONTHS_BY_NAME = {name.lower(): index for index, name in enumerate(MONTH_NAMES, 1)}


class Clock(ABC):
    """Abstract clock interface."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock returning timezone-aware UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock pinned to a controlled instant (tests and replays)."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time

    def advance(self, **kwargs: float) -> None:
        """Advance by a ``timedelta``-style amount, e.g. ``advance(days=31)``."""
        self._fixed_time = self._fixed_time + timedelta(**kwargs)


@dataclass(frozen=True, order=True)
class Period:
    """A calendar payroll period. Orders chronologically (year, then month)."""

    year: int
    month: int

    @classmethod
    def of(cls, month: int | str, year: int | str) -> Period:
        return cls(year=parse_year(year), month=parse_month(month))

    @classmethod
    def containing(cls, instant: datetime) -> Period:
        return cls(year=instant.year, month=instant.month)

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def lock_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return f"{self.month_name} {self.year}"


def current_period(clock: Clock) -> Period:
    """Period containing the clock's current instant."""
    return Period.containing(clock.now())


def is_current_period(month: int, year: int, clock: Clock) -> bool:
    """Whether (month, year) is the clock's current period.

    Evaluated on each call; callers must not cache the answer across a
    request because the period can roll over between calls.
    """
    return Period(year=year, month=month) == current_period(clock)


def parse_month(value: int | str) -> int:
    """Accept 1-12, "10", or an English month name ("October")."""
    if isinstance(value, bool):
        raise InvalidInputError("month", value, "must be 1-12 or a month name")
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lower() in _MONTHS_BY_NAME:
            return _MONTHS_BY_NAME[stripped.lower()]
        if not stripped.isdigit():
            raise InvalidInputError("month", value, "must be 1-12 or a month name")
        value = int(stripped)
    if not isinstance(value, int) or not 1 <= value <= 12:
        raise InvalidInputError("month", value, "must be 1-12 or a month name")
    return value


def parse_year(value: int | str) -> int:
    """Accept a four-digit year as int or numeric string."""
    if isinstance(value, bool):
        raise InvalidInputError("year", value, "must be a four-digit year")
    if isinstance(value, str):
        if not value.strip().isdigit():
            raise InvalidInputError("year", value, "must be a four-digit year")
        value = int(value.strip())
    if not isinstance(value, int) or not 1000 <= value <= 9999:
        raise InvalidInputError("year", value, "must be a four-digit year")
    return value
