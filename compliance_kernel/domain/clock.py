"""
Clock -- the only source of "now" for the compliance kernel.

Spawning reads "today" to pick the next due date, every decision stamps its
movement with "now", and the classifier compares "today" against due dates.
None of that code calls ``datetime.now()`` itself; it asks an injected
``Clock``.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the single place that touches the
    real system time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta, tzinfo


class Clock(ABC):
    """Time source handed to services through their constructor."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Calendar date of ``now()``; due dates compare against this."""
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time, timezone-aware (UTC unless told otherwise)."""

    def __init__(self, tz: tzinfo = UTC):
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Manually driven clock for tests and replays.

    ``now()`` stays put until the test moves it.  Moving by whole days is
    the common case: turnaround times and compliance buckets only look at
    calendar dates.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, 0)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
