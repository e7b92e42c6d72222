"""
Calendar arithmetic -- pure date-math primitives for the recurrence engine.

Architecture position:
    Kernel > Domain.  ZERO I/O, no imports from other kernel modules.

Conventions:
    - Weekdays use ISO numbering: 1 = Monday ... 7 = Sunday.
    - Every ``next_*`` helper returns a boundary STRICTLY after its argument.
    - Periods are closed intervals ``[start, end]`` of calendar dates.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

HALF_MONTH_SPLIT_DAY = 15
QUARTER_START_MONTHS = (1, 4, 7, 10)
HALF_YEAR_START_MONTHS = (1, 7)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month (28..31)."""
    return calendar.monthrange(year, month)[1]


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Shift a (year, month) pair by ``months``, rolling over years."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def clamp_day(year: int, month: int, day: int) -> date:
    """Day ``day`` of the month, clamped to the month's last day."""
    return date(year, month, min(day, days_in_month(year, month)))


def month_end(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def period_end(start: date, months: int) -> date:
    """Last day of the period of ``months`` calendar months beginning at ``start``."""
    year, month = add_months(start.year, start.month, months)
    return date(year, month, 1) - timedelta(days=1)


def offset_within(start: date, end: date, offset_days: int) -> date:
    """``start + offset_days`` clamped to ``end``.

    The offset is zero-based: offset 0 is ``start`` itself.
    """
    assert offset_days >= 0, "offset must be non-negative"
    return min(start + timedelta(days=offset_days), end)


def next_weekday_after(day: date, iso_weekday: int) -> date:
    """First date strictly after ``day`` falling on ``iso_weekday``."""
    assert 1 <= iso_weekday <= 7, "iso_weekday must be 1..7"
    delta = (iso_weekday - day.isoweekday()) % 7
    return day + timedelta(days=delta or 7)


# ---------------------------------------------------------------------------
# Half-month windows (1-15, 16-month end)
# ---------------------------------------------------------------------------


def half_month_window(day: date) -> tuple[date, date]:
    """The half-month window ``[start, end]`` containing ``day``."""
    if day.day <= HALF_MONTH_SPLIT_DAY:
        return (
            date(day.year, day.month, 1),
            date(day.year, day.month, HALF_MONTH_SPLIT_DAY),
        )
    return (
        date(day.year, day.month, HALF_MONTH_SPLIT_DAY + 1),
        month_end(day.year, day.month),
    )


def next_half_month_start(day: date) -> date:
    """The first half-month boundary strictly after ``day``."""
    _, end = half_month_window(day)
    return end + timedelta(days=1)


# ---------------------------------------------------------------------------
# Multi-month periods (quarters, half-years, years)
# ---------------------------------------------------------------------------


def _next_period_start(day: date, start_months: tuple[int, ...]) -> date:
    for month in start_months:
        if month > day.month:
            return date(day.year, month, 1)
    return date(day.year + 1, start_months[0], 1)


def next_quarter_start(day: date) -> date:
    """The first quarter start (Jan/Apr/Jul/Oct 1) strictly after ``day``."""
    return _next_period_start(day, QUARTER_START_MONTHS)


def next_half_year_start(day: date) -> date:
    """The first half-year anchor (Jan 1 or Jul 1) strictly after ``day``."""
    return _next_period_start(day, HALF_YEAR_START_MONTHS)


def next_year_start(day: date) -> date:
    return date(day.year + 1, 1, 1)


def half_year_index(day: date) -> int:
    """0 for January-June, 1 for July-December."""
    return 0 if day.month < 7 else 1


# ---------------------------------------------------------------------------
# Whole-day differences
# ---------------------------------------------------------------------------


def as_date(value: date | datetime) -> date:
    """Truncate a datetime to its calendar date; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def whole_days_between(start: date | datetime, end: date | datetime) -> int:
    """Calendar days from ``start`` to ``end``.

    Both ends are truncated to calendar dates first, so two timestamps on
    the same day are 0 days apart regardless of elapsed hours.  Negative when
    ``end`` precedes ``start``.
    """
    return (as_date(end) - as_date(start)).days
