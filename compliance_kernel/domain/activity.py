"""
Activity domain types (``compliance_kernel.domain.activity``).

Responsibility
--------------
Pure value objects for recurring compliance obligations: the approval stages,
the per-activity stage assignment, and the ``Activity`` configuration that
tasks are spawned from.  ``validate_activity`` is the single save-time gate
for configuration errors.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/recurrence`` and ``exceptions``.

Invariants enforced
-------------------
* ``1 <= due_day <= MAX_DUE_DAY[frequency]`` (AsNeeded takes an explicit
  date instead).
* ``0 <= grace_period_days, reminder_days <= MAX_DUE_DAY[frequency]``.
* At least one stage has an assigned user.
* Values are never clamped: every violation raises a ``ValidationError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from uuid import UUID, uuid4

from compliance_kernel.domain.recurrence import FrequencyClass, max_due_day
from compliance_kernel.exceptions import (
    DueDayOutOfRangeError,
    MissingExplicitDueDateError,
    NoStagesAssignedError,
    WindowDaysOutOfRangeError,
)


class Stage(str, Enum):
    """Approval stages in their fixed routing order."""

    MAKER = "maker"
    CHECKER = "checker"
    REVIEWER = "reviewer"
    AUDITOR = "auditor"


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.MAKER,
    Stage.CHECKER,
    Stage.REVIEWER,
    Stage.AUDITOR,
)


@dataclass(frozen=True)
class StageAssignment:
    """User assigned to each stage slot; ``None`` means the stage is skipped."""

    maker: str | None = None
    checker: str | None = None
    reviewer: str | None = None
    auditor: str | None = None

    def user_for(self, stage: Stage) -> str | None:
        return getattr(self, stage.value)

    def stages(self) -> tuple[Stage, ...]:
        """The ordered stages this assignment routes through."""
        return tuple(s for s in STAGE_ORDER if self.user_for(s))

    def next_stage(self, stage: Stage) -> Stage | None:
        """The first populated stage after ``stage``, or None if it is last."""
        later = STAGE_ORDER[STAGE_ORDER.index(stage) + 1:]
        for candidate in later:
            if self.user_for(candidate):
                return candidate
        return None

    def stages_for_user(self, user_id: str) -> tuple[Stage, ...]:
        return tuple(s for s in STAGE_ORDER if self.user_for(s) == user_id)


@dataclass(frozen=True)
class Activity:
    """An administrator-defined recurring compliance obligation.

    ``version`` increases on every edit.  Tasks record the version they were
    spawned from, so edits only affect future spawns.
    """

    name: str
    frequency: FrequencyClass
    assignment: StageAssignment
    due_day: int | None = None
    explicit_due_date: date | None = None
    grace_period_days: int = 0
    reminder_days: int = 0
    description: str = ""
    act_name: str = ""
    department_name: str = ""
    activity_id: UUID = field(default_factory=uuid4)
    version: int = 1


def _check_window(
    field_name: str, value: int, frequency: FrequencyClass, limit: int | None,
) -> None:
    if value < 0 or (limit is not None and value > limit):
        raise WindowDaysOutOfRangeError(field_name, value, frequency.value, limit)


def validate_activity(activity: Activity) -> Activity:
    """Validate an activity configuration at save time.

    Returns:
        The same activity, for call chaining.

    Raises:
        DueDayOutOfRangeError: due_day missing or outside the frequency's domain.
        MissingExplicitDueDateError: AsNeeded without an explicit date.
        WindowDaysOutOfRangeError: negative or over-long grace/reminder window.
        NoStagesAssignedError: no stage has a user.
    """
    frequency = activity.frequency
    limit = max_due_day(frequency)

    if frequency == FrequencyClass.AS_NEEDED:
        if activity.explicit_due_date is None:
            raise MissingExplicitDueDateError(activity.name)
    else:
        due_day = activity.due_day
        if due_day is None or not 1 <= due_day <= limit:
            raise DueDayOutOfRangeError(frequency.value, due_day, limit)

    _check_window("Grace period", activity.grace_period_days, frequency, limit)
    _check_window("Reminder days", activity.reminder_days, frequency, limit)

    if not activity.assignment.stages():
        raise NoStagesAssignedError(activity.name)

    return activity
