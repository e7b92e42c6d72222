"""
Pure domain layer.

This module contains pure value objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time is read only through an injected Clock.
"""

from compliance_kernel.domain.activity import (
    STAGE_ORDER,
    Activity,
    Stage,
    StageAssignment,
    validate_activity,
)
from compliance_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from compliance_kernel.domain.compliance import (
    ComplianceBucket,
    ComplianceReport,
    Scorecard,
    ScorecardRow,
    StatusSummary,
    build_scorecard,
    classify_compliance,
    classify_task,
    filter_tasks,
    summarize_statuses,
)
from compliance_kernel.domain.lifecycle import (
    LIFECYCLE_TRANSITIONS,
    TERMINAL_STATES,
    Decision,
    LifecycleState,
    lifecycle_state,
    submit_decision,
)
from compliance_kernel.domain.recurrence import (
    DEFAULT_PREVIEW_COUNT,
    MAX_DUE_DAY,
    FrequencyClass,
    compute_next_due_dates,
    iter_due_dates,
    max_due_day,
    next_due_date,
    parse_frequency,
)
from compliance_kernel.domain.task import (
    Movement,
    MovementDecision,
    TaskRecord,
    TaskSchedule,
    TaskStatus,
    derive_schedule,
    spawn_task,
)

__all__ = [
    # Recurrence
    "FrequencyClass",
    "MAX_DUE_DAY",
    "DEFAULT_PREVIEW_COUNT",
    "max_due_day",
    "parse_frequency",
    "iter_due_dates",
    "compute_next_due_dates",
    "next_due_date",
    # Activity
    "Stage",
    "STAGE_ORDER",
    "StageAssignment",
    "Activity",
    "validate_activity",
    # Task
    "TaskStatus",
    "MovementDecision",
    "Movement",
    "TaskSchedule",
    "TaskRecord",
    "derive_schedule",
    "spawn_task",
    # Lifecycle
    "Decision",
    "LifecycleState",
    "LIFECYCLE_TRANSITIONS",
    "TERMINAL_STATES",
    "lifecycle_state",
    "submit_decision",
    # Compliance
    "ComplianceBucket",
    "ComplianceReport",
    "StatusSummary",
    "Scorecard",
    "ScorecardRow",
    "classify_task",
    "classify_compliance",
    "summarize_statuses",
    "build_scorecard",
    "filter_tasks",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
