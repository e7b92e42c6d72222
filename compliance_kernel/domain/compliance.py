"""
Compliance classifier (``compliance_kernel.domain.compliance``).

Responsibility
--------------
Partitions task records into Compliant / Non-Compliant / In-Progress as of
"now", and derives the reporting views built on top of that partition:
bucket percentages, dashboard status counters, per-group score cards and
the month/status worklist filter.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* Every task lands in exactly one bucket.  Rejected tasks and late
  completions sit in their own groups outside the three reported buckets
  (unless ``late_completion_is_non_compliant`` is set).
* Percentages are half-up rounded whole numbers over the classified total,
  and ``0`` when nothing is classified.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Callable, Iterable

from compliance_kernel.domain.calendar_math import as_date
from compliance_kernel.domain.task import MovementDecision, TaskRecord, TaskStatus


class ComplianceBucket(str, Enum):
    COMPLIANT = "Compliant"
    NON_COMPLIANT = "Non-Compliant"
    IN_PROGRESS = "In-Progress"
    REJECTED = "Rejected"
    COMPLETED_LATE = "Completed-Late"


def percentage(count: int, total: int) -> int:
    """``round(count / total * 100)`` with half-up rounding; 0 if total is 0."""
    if total == 0:
        return 0
    value = Decimal(count) * 100 / Decimal(total)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def classify_task(
    task: TaskRecord,
    now: datetime,
    late_completion_is_non_compliant: bool = False,
) -> ComplianceBucket:
    today = as_date(now)

    if task.current_status == TaskStatus.REJECTED:
        return ComplianceBucket.REJECTED

    if task.current_status == TaskStatus.COMPLETED:
        if as_date(task.completed_at) <= task.due_date:
            return ComplianceBucket.COMPLIANT
        if late_completion_is_non_compliant:
            return ComplianceBucket.NON_COMPLIANT
        return ComplianceBucket.COMPLETED_LATE

    if today > task.due_date:
        return ComplianceBucket.NON_COMPLIANT
    return ComplianceBucket.IN_PROGRESS


@dataclass(frozen=True)
class ComplianceReport:
    """Result of ``classify_compliance``.

    ``rejected`` and ``completed_late`` are reported alongside the three
    buckets but do not count toward ``total_classified``.
    """

    compliant: tuple[TaskRecord, ...] = ()
    non_compliant: tuple[TaskRecord, ...] = ()
    in_progress: tuple[TaskRecord, ...] = ()
    rejected: tuple[TaskRecord, ...] = ()
    completed_late: tuple[TaskRecord, ...] = ()

    @property
    def total_classified(self) -> int:
        return len(self.compliant) + len(self.non_compliant) + len(self.in_progress)

    @property
    def compliant_pct(self) -> int:
        return percentage(len(self.compliant), self.total_classified)

    @property
    def non_compliant_pct(self) -> int:
        return percentage(len(self.non_compliant), self.total_classified)

    @property
    def in_progress_pct(self) -> int:
        return percentage(len(self.in_progress), self.total_classified)

    def counts(self) -> dict[str, int]:
        return {
            ComplianceBucket.COMPLIANT.value: len(self.compliant),
            ComplianceBucket.NON_COMPLIANT.value: len(self.non_compliant),
            ComplianceBucket.IN_PROGRESS.value: len(self.in_progress),
            ComplianceBucket.REJECTED.value: len(self.rejected),
            ComplianceBucket.COMPLETED_LATE.value: len(self.completed_late),
        }


def classify_compliance(
    tasks: Iterable[TaskRecord],
    now: datetime,
    late_completion_is_non_compliant: bool = False,
) -> ComplianceReport:
    """Partition ``tasks`` into compliance buckets as of ``now``.

    Args:
        tasks: Task records in any state.
        now: Reference time; only its calendar date matters.
        late_completion_is_non_compliant: Count tasks completed after their
            due date as Non-Compliant instead of reporting them separately.
    """
    groups: dict[ComplianceBucket, list[TaskRecord]] = defaultdict(list)
    for task in tasks:
        bucket = classify_task(task, now, late_completion_is_non_compliant)
        groups[bucket].append(task)

    return ComplianceReport(
        compliant=tuple(groups[ComplianceBucket.COMPLIANT]),
        non_compliant=tuple(groups[ComplianceBucket.NON_COMPLIANT]),
        in_progress=tuple(groups[ComplianceBucket.IN_PROGRESS]),
        rejected=tuple(groups[ComplianceBucket.REJECTED]),
        completed_late=tuple(groups[ComplianceBucket.COMPLETED_LATE]),
    )


# =========================================================================
# Dashboard views
# =========================================================================


@dataclass(frozen=True)
class StatusSummary:
    """Counters shown on the administrator dashboard."""

    total: int
    pending: int
    completed: int
    rejected: int
    approved_movements: int


def summarize_statuses(tasks: Iterable[TaskRecord]) -> StatusSummary:
    tasks = list(tasks)
    by_status = defaultdict(int)
    approved = 0
    for task in tasks:
        by_status[task.current_status] += 1
        approved += sum(
            1 for m in task.movements if m.decision == MovementDecision.APPROVED
        )
    return StatusSummary(
        total=len(tasks),
        pending=by_status[TaskStatus.PENDING],
        completed=by_status[TaskStatus.COMPLETED],
        rejected=by_status[TaskStatus.REJECTED],
        approved_movements=approved,
    )


@dataclass(frozen=True)
class ScorecardRow:
    group: str
    report: ComplianceReport

    @property
    def compliance_pct(self) -> int:
        return self.report.compliant_pct


@dataclass(frozen=True)
class Scorecard:
    """Per-group compliance with the unweighted average across groups."""

    rows: tuple[ScorecardRow, ...]

    @property
    def overall_pct(self) -> int:
        if not self.rows:
            return 0
        total = sum(row.compliance_pct for row in self.rows)
        return percentage(total, len(self.rows) * 100)

    def row_for(self, group: str) -> ScorecardRow | None:
        for row in self.rows:
            if row.group == group:
                return row
        return None


def build_scorecard(
    tasks: Iterable[TaskRecord],
    now: datetime,
    key: Callable[[TaskRecord], str],
    late_completion_is_non_compliant: bool = False,
) -> Scorecard:
    """Roll compliance up per group, e.g. ``key=lambda t: t.act_name``.

    Rows are sorted by group name.
    """
    grouped: dict[str, list[TaskRecord]] = defaultdict(list)
    for task in tasks:
        grouped[key(task)].append(task)

    rows = tuple(
        ScorecardRow(
            group=group,
            report=classify_compliance(
                grouped[group], now, late_completion_is_non_compliant,
            ),
        )
        for group in sorted(grouped)
    )
    return Scorecard(rows=rows)


def filter_tasks(
    tasks: Iterable[TaskRecord],
    status: TaskStatus | None = None,
    due_month: tuple[int, int] | None = None,
) -> list[TaskRecord]:
    """Worklist filter by status and ``(year, month)`` of the due date."""
    result = []
    for task in tasks:
        if status is not None and task.current_status != status:
            continue
        if due_month is not None and (
            (task.due_date.year, task.due_date.month) != due_month
        ):
            continue
        result.append(task)
    return result
