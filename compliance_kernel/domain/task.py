"""
Task record domain types (``compliance_kernel.domain.task``).

Responsibility
--------------
Frozen value objects for one concrete compliance obligation (``TaskRecord``)
and its append-only movement history (``Movement``), plus ``spawn_task``,
which derives the scheduling fields from an ``Activity`` and "now".

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import from
``domain/activity``, ``domain/recurrence``, ``domain/calendar_math``.

Invariants enforced
-------------------
* Scheduling fields are derived once at spawn time:
  ``grace_period_date = due_date + grace_period_days`` and
  ``reminder_date = today + reminder_days``.
* A freshly spawned task has exactly one movement, Pending, owned by the
  first assigned stage.
* ``movements`` is a tuple; transitions produce a new record that extends it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from uuid import UUID, uuid4

from compliance_kernel.domain.activity import (
    Activity,
    Stage,
    StageAssignment,
    validate_activity,
)
from compliance_kernel.domain.calendar_math import as_date, whole_days_between
from compliance_kernel.domain.recurrence import FrequencyClass, next_due_date


class TaskStatus(str, Enum):
    """Task-level status derived from the lifecycle."""

    PENDING = "Pending"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


TERMINAL_TASK_STATUSES: frozenset[TaskStatus] = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.REJECTED,
})


class MovementDecision(str, Enum):
    """Outcome recorded on a movement."""

    APPROVED = "Approved"
    REJECTED = "Rejected"
    PENDING = "Pending"  # Only on the active, unfinished movement


@dataclass(frozen=True)
class Movement:
    """One stage's handling of a task.

    ``planned_tat`` is the whole-day budget from ``in_date`` to the task's
    due date; ``actual_tat`` the whole days from ``in_date`` to ``out_date``.
    ``out_date`` and ``actual_tat`` stay ``None`` while pending.
    """

    stage: Stage
    user_id: str
    in_date: datetime
    planned_tat: int
    decision: MovementDecision = MovementDecision.PENDING
    out_date: datetime | None = None
    actual_tat: int | None = None
    remarks: str = ""
    rejection_remark: str = ""

    @property
    def is_pending(self) -> bool:
        return self.decision == MovementDecision.PENDING


@dataclass(frozen=True)
class TaskSchedule:
    """Dates derived from an activity at spawn time."""

    due_date: date
    grace_period_date: date
    reminder_date: date


@dataclass(frozen=True)
class TaskRecord:
    """Immutable snapshot of a task and its movement history.

    ``version`` is the optimistic concurrency counter; every transition
    produces a record with ``version + 1``.
    """

    task_id: UUID
    activity_id: UUID
    activity_name: str
    frequency: FrequencyClass
    due_date: date
    grace_period_date: date
    reminder_date: date
    assignment: StageAssignment
    created_at: datetime
    current_stage: Stage | None
    current_status: TaskStatus
    movements: tuple[Movement, ...] = ()
    activity_version: int = 1
    act_name: str = ""
    department_name: str = ""
    version: int = 1

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_TASK_STATUSES

    @property
    def active_movement(self) -> Movement | None:
        """The single pending movement, or None on terminal tasks."""
        pending = [m for m in self.movements if m.is_pending]
        return pending[-1] if pending else None

    @property
    def last_movement(self) -> Movement | None:
        return self.movements[-1] if self.movements else None

    @property
    def current_user_id(self) -> str | None:
        if self.current_stage is None:
            return None
        return self.assignment.user_for(self.current_stage)

    @property
    def completed_at(self) -> datetime | None:
        """When the final stage approved, for completed tasks."""
        if self.current_status != TaskStatus.COMPLETED or not self.movements:
            return None
        return self.movements[-1].out_date


def derive_schedule(activity: Activity, now: datetime | date) -> TaskSchedule:
    """Compute due, grace-period and reminder dates for a spawn at ``now``."""
    today = as_date(now)
    if activity.frequency == FrequencyClass.AS_NEEDED:
        due = activity.explicit_due_date
    else:
        due = next_due_date(activity.frequency, activity.due_day, today)
    return TaskSchedule(
        due_date=due,
        grace_period_date=due + timedelta(days=activity.grace_period_days),
        reminder_date=today + timedelta(days=activity.reminder_days),
    )


def open_movement(
    stage: Stage,
    user_id: str,
    now: datetime,
    due_date: date,
) -> Movement:
    """A new pending movement for ``stage`` received at ``now``."""
    return Movement(
        stage=stage,
        user_id=user_id,
        in_date=now,
        planned_tat=whole_days_between(now, due_date),
    )


def spawn_task(
    activity: Activity,
    now: datetime,
    task_id: UUID | None = None,
) -> TaskRecord:
    """Create the first concrete task of ``activity`` as of ``now``.

    The first populated stage receives the task immediately.

    Raises:
        ValidationError: If the activity configuration is invalid.
    """
    validate_activity(activity)
    schedule = derive_schedule(activity, now)
    first_stage = activity.assignment.stages()[0]

    return TaskRecord(
        task_id=task_id or uuid4(),
        activity_id=activity.activity_id,
        activity_name=activity.name,
        frequency=activity.frequency,
        due_date=schedule.due_date,
        grace_period_date=schedule.grace_period_date,
        reminder_date=schedule.reminder_date,
        assignment=activity.assignment,
        created_at=now,
        current_stage=first_stage,
        current_status=TaskStatus.PENDING,
        movements=(
            open_movement(
                first_stage,
                activity.assignment.user_for(first_stage),
                now,
                schedule.due_date,
            ),
        ),
        activity_version=activity.version,
        act_name=activity.act_name,
        department_name=activity.department_name,
    )
