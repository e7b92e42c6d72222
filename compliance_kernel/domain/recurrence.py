"""
Recurrence engine -- pure due-date evaluation for recurring activities.

Contract:
    ``iter_due_dates(frequency, due_day, start)`` is a PURE generator: no
    I/O, no mutable cursor.  Calling it again with the same arguments yields
    the same sequence, so callers may restart it freely.
    ``compute_next_due_dates()`` materializes the first ``count`` dates.

Architecture: compliance_kernel/domain.  ZERO I/O.  All "now" values come
from the caller.

Guarantees:
    - Every yielded date is strictly after ``start``.
    - Dates are strictly increasing.
    - Half-month, quarter and half-year schedules advance period by period
      from the previous period, so consecutive dates never share a window.
    - Offsets that overrun a short period are clamped to the period's last
      day (Monthly 31 in April is April 30; Fortnightly 15 in the second
      half of February is the last day of February).

Preconditions:
    ``due_day`` has been validated at activity save time (see
    ``domain.activity.validate_activity``).  Out-of-range values here are a
    programming error and trip an assertion.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from itertools import islice
from typing import Callable, Iterator

from compliance_kernel.domain.calendar_math import (
    add_months,
    as_date,
    clamp_day,
    half_month_window,
    next_half_month_start,
    next_half_year_start,
    next_quarter_start,
    next_weekday_after,
    next_year_start,
    offset_within,
    period_end,
)
from compliance_kernel.exceptions import UnsupportedFrequencyError

DEFAULT_PREVIEW_COUNT = 5


class FrequencyClass(str, Enum):
    """Recurrence frequency of an activity."""

    WEEKLY = "Weekly"
    FORTNIGHTLY = "Fortnightly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half Yearly"
    ANNUALLY = "Annually"
    AS_NEEDED = "As Needed"  # Exact date supplied by the caller


# Upper bound of due_day (and of grace/reminder windows) per frequency.
MAX_DUE_DAY: dict[FrequencyClass, int] = {
    FrequencyClass.WEEKLY: 7,
    FrequencyClass.FORTNIGHTLY: 15,
    FrequencyClass.MONTHLY: 31,
    FrequencyClass.QUARTERLY: 90,
    FrequencyClass.HALF_YEARLY: 183,
    FrequencyClass.ANNUALLY: 365,
}

DUE_DAY_HINTS: dict[FrequencyClass, str] = {
    FrequencyClass.WEEKLY: "1-7 (1=Monday ... 7=Sunday)",
    FrequencyClass.FORTNIGHTLY: "day 1-15 of the fortnight",
    FrequencyClass.MONTHLY: "day 1-31 of the month",
    FrequencyClass.QUARTERLY: "day 1-90 of the quarter",
    FrequencyClass.HALF_YEARLY: "day 1-183 of the half year",
    FrequencyClass.ANNUALLY: "day 1-365 of the year",
    FrequencyClass.AS_NEEDED: "exact date required",
}


def max_due_day(frequency: FrequencyClass) -> int | None:
    """Largest valid due_day for ``frequency`` (None for AsNeeded)."""
    return MAX_DUE_DAY.get(frequency)


def parse_frequency(value: str | FrequencyClass) -> FrequencyClass:
    """Resolve a frequency from its display value or member name.

    Accepts ``"Half Yearly"``, ``"HALF_YEARLY"``, ``"half-yearly"`` and
    ``"HalfYearly"`` alike.

    Raises:
        ValueError: If the value names no frequency.
    """
    if isinstance(value, FrequencyClass):
        return value
    wanted = value.strip().replace("-", "").replace("_", "").replace(" ", "").lower()
    for member in FrequencyClass:
        if wanted in (
            member.name.replace("_", "").lower(),
            member.value.replace(" ", "").lower(),
        ):
            return member
    raise ValueError(f"Unknown frequency: {value!r}")


# =============================================================================
# Period-based schedules
# =============================================================================

# first boundary strictly after a date, and the last day of the period it opens
_PeriodRule = tuple[Callable[[date], date], Callable[[date], date]]

_PERIOD_RULES: dict[FrequencyClass, _PeriodRule] = {
    FrequencyClass.FORTNIGHTLY: (
        next_half_month_start,
        lambda start: half_month_window(start)[1],
    ),
    FrequencyClass.QUARTERLY: (
        next_quarter_start,
        lambda start: period_end(start, 3),
    ),
    FrequencyClass.HALF_YEARLY: (
        next_half_year_start,
        lambda start: period_end(start, 6),
    ),
    FrequencyClass.ANNUALLY: (
        next_year_start,
        lambda start: period_end(start, 12),
    ),
}


def _iter_periodic(
    rule: _PeriodRule, due_day: int, start: date,
) -> Iterator[date]:
    first_boundary, last_day_of = rule
    period_start = first_boundary(start)
    while True:
        end = last_day_of(period_start)
        yield offset_within(period_start, end, due_day - 1)
        # Next period opens the day after this one closes, which keeps the
        # two half-month / half-year windows strictly alternating.
        period_start = end + timedelta(days=1)


def _iter_weekly(due_day: int, start: date) -> Iterator[date]:
    current = next_weekday_after(start, due_day)
    while True:
        yield current
        current += timedelta(days=7)


def _iter_monthly(due_day: int, start: date) -> Iterator[date]:
    year, month = start.year, start.month
    if clamp_day(year, month, due_day) <= start:
        year, month = add_months(year, month, 1)
    while True:
        yield clamp_day(year, month, due_day)
        year, month = add_months(year, month, 1)


# =============================================================================
# Public API
# =============================================================================


def iter_due_dates(
    frequency: FrequencyClass,
    due_day: int,
    start: date | datetime,
) -> Iterator[date]:
    """Lazily yield every due date after ``start`` (infinite, pure).

    Raises:
        UnsupportedFrequencyError: If ``frequency`` is AsNeeded.
    """
    if frequency == FrequencyClass.AS_NEEDED:
        raise UnsupportedFrequencyError(frequency.value)

    limit = MAX_DUE_DAY[frequency]
    assert 1 <= due_day <= limit, (
        f"due_day {due_day} outside 1..{limit} for {frequency.value}"
    )

    anchor = as_date(start)

    if frequency == FrequencyClass.WEEKLY:
        return _iter_weekly(due_day, anchor)
    if frequency == FrequencyClass.MONTHLY:
        return _iter_monthly(due_day, anchor)
    return _iter_periodic(_PERIOD_RULES[frequency], due_day, anchor)


def compute_next_due_dates(
    frequency: FrequencyClass,
    due_day: int,
    start: date | datetime,
    count: int = DEFAULT_PREVIEW_COUNT,
) -> list[date]:
    """Return the next ``count`` due dates after ``start``.

    Args:
        frequency: The activity's frequency class (not AsNeeded).
        due_day: Pre-validated due-day parameter.
        start: Reference "now"; datetimes are truncated to their date.
        count: Number of dates to return.

    Returns:
        ``count`` strictly increasing dates, all after ``start``.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    return list(islice(iter_due_dates(frequency, due_day, start), count))


def next_due_date(
    frequency: FrequencyClass,
    due_day: int,
    start: date | datetime,
) -> date:
    """The first due date strictly after ``start``."""
    return next(iter_due_dates(frequency, due_day, start))
