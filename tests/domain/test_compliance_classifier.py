"""
Tests for the compliance classifier (``compliance_kernel.domain.compliance``).

Every task lands in exactly one group; percentages are half-up rounded
whole numbers over the three reported buckets.
"""

from datetime import date, datetime

import pytest

from compliance_kernel.domain.activity import StageAssignment
from compliance_kernel.domain.compliance import (
    ComplianceBucket,
    build_scorecard,
    classify_compliance,
    classify_task,
    filter_tasks,
    percentage,
    summarize_statuses,
)
from compliance_kernel.domain.lifecycle import Decision, submit_decision
from compliance_kernel.domain.task import TaskStatus
from tests.conftest import MAKER

# Spawned 2024-06-03 for a Monthly/10th activity: due 2024-06-10
SPAWN = datetime(2024, 6, 3, 9, 0)
DUE = date(2024, 6, 10)


@pytest.fixture
def solo_task(make_task):
    """A single-stage task; one approval completes it."""

    def _make(**overrides):
        overrides.setdefault("assignment", StageAssignment(maker=MAKER))
        overrides.setdefault("now", SPAWN)
        return make_task(**overrides)

    return _make


def _complete(task, when):
    return submit_decision(task, MAKER, Decision.APPROVE, "", when)


def _reject(task, when):
    return submit_decision(task, MAKER, Decision.REJECT, "wrong period", when)


# =============================================================================
# Single-task classification
# =============================================================================


class TestClassifyTask:

    def test_completed_before_due_is_compliant(self, solo_task):
        task = _complete(solo_task(), datetime(2024, 6, 9, 17, 0))
        assert task.due_date == DUE
        assert classify_task(task, datetime(2024, 6, 20)) == ComplianceBucket.COMPLIANT

    def test_completed_on_due_date_is_compliant(self, solo_task):
        task = _complete(solo_task(), datetime(2024, 6, 10, 23, 59))
        assert classify_task(task, datetime(2024, 6, 20)) == ComplianceBucket.COMPLIANT

    def test_completed_late_has_its_own_group(self, solo_task):
        task = _complete(solo_task(), datetime(2024, 6, 11, 8, 0))
        assert classify_task(task, datetime(2024, 6, 20)) == ComplianceBucket.COMPLETED_LATE

    def test_completed_late_as_non_compliant_when_switched_on(self, solo_task):
        task = _complete(solo_task(), datetime(2024, 6, 11, 8, 0))
        bucket = classify_task(
            task, datetime(2024, 6, 20), late_completion_is_non_compliant=True,
        )
        assert bucket == ComplianceBucket.NON_COMPLIANT

    def test_pending_past_due_is_non_compliant(self, solo_task):
        assert (
            classify_task(solo_task(), datetime(2024, 6, 11))
            == ComplianceBucket.NON_COMPLIANT
        )

    def test_pending_on_due_date_is_in_progress(self, solo_task):
        assert (
            classify_task(solo_task(), datetime(2024, 6, 10, 23, 0))
            == ComplianceBucket.IN_PROGRESS
        )

    def test_rejected_is_separate(self, solo_task):
        task = _reject(solo_task(), datetime(2024, 6, 4))
        assert classify_task(task, datetime(2024, 6, 20)) == ComplianceBucket.REJECTED


# =============================================================================
# Partition and percentages
# =============================================================================


class TestClassifyCompliance:

    def test_partition_is_exhaustive_and_disjoint(self, solo_task):
        tasks = [
            _complete(solo_task(), datetime(2024, 6, 9)),
            _complete(solo_task(), datetime(2024, 6, 12)),
            _reject(solo_task(), datetime(2024, 6, 5)),
            solo_task(),
            solo_task(now=datetime(2024, 6, 25)),
        ]
        report = classify_compliance(tasks, datetime(2024, 6, 15))

        groups = [
            report.compliant, report.non_compliant, report.in_progress,
            report.rejected, report.completed_late,
        ]
        ids = [t.task_id for group in groups for t in group]
        assert sorted(ids, key=str) == sorted((t.task_id for t in tasks), key=str)
        assert len(set(ids)) == len(tasks)

        assert report.counts() == {
            "Compliant": 1,
            "Non-Compliant": 1,
            "In-Progress": 1,
            "Rejected": 1,
            "Completed-Late": 1,
        }
        assert report.total_classified == 3

    def test_percentages(self, solo_task):
        tasks = [_complete(solo_task(), datetime(2024, 6, 9)) for _ in range(2)]
        tasks.append(solo_task())
        report = classify_compliance(tasks, datetime(2024, 6, 15))

        assert report.compliant_pct == 67
        assert report.non_compliant_pct == 33
        assert report.in_progress_pct == 0

    def test_empty_input(self):
        report = classify_compliance([], datetime(2024, 6, 15))
        assert report.total_classified == 0
        assert report.compliant_pct == 0
        assert report.non_compliant_pct == 0
        assert report.in_progress_pct == 0

    def test_late_switch_moves_late_completions(self, solo_task):
        tasks = [_complete(solo_task(), datetime(2024, 6, 12))]

        default = classify_compliance(tasks, datetime(2024, 6, 15))
        strict = classify_compliance(tasks, datetime(2024, 6, 15), True)

        assert len(default.completed_late) == 1
        assert default.total_classified == 0
        assert len(strict.non_compliant) == 1
        assert strict.non_compliant_pct == 100


class TestPercentage:

    @pytest.mark.parametrize(
        "count,total,expected",
        [
            (1, 8, 13),    # 12.5 rounds up
            (1, 200, 1),   # 0.5 rounds up
            (1, 3, 33),
            (2, 3, 67),
            (0, 5, 0),
            (5, 5, 100),
            (3, 0, 0),
        ],
    )
    def test_half_up(self, count, total, expected):
        assert percentage(count, total) == expected


# =============================================================================
# Dashboard views
# =============================================================================


class TestSummarizeStatuses:

    def test_counts(self, make_task):
        pending = make_task()
        moved = submit_decision(make_task(), MAKER, Decision.APPROVE, "", SPAWN)
        rejected = submit_decision(make_task(), MAKER, Decision.REJECT, "", SPAWN)

        summary = summarize_statuses([pending, moved, rejected])

        assert summary.total == 3
        assert summary.pending == 2
        assert summary.completed == 0
        assert summary.rejected == 1
        assert summary.approved_movements == 1


class TestScorecard:

    def test_rows_per_group(self, solo_task):
        tasks = [
            _complete(solo_task(act_name="GST Act"), datetime(2024, 6, 9)),
            solo_task(act_name="GST Act"),
            _complete(solo_task(act_name="Companies Act"), datetime(2024, 6, 9)),
        ]
        card = build_scorecard(tasks, datetime(2024, 6, 15), key=lambda t: t.act_name)

        assert [row.group for row in card.rows] == ["Companies Act", "GST Act"]
        assert card.row_for("Companies Act").compliance_pct == 100
        assert card.row_for("GST Act").compliance_pct == 50
        assert card.row_for("Income Tax Act") is None
        assert card.overall_pct == 75

    def test_empty_scorecard(self):
        card = build_scorecard([], datetime(2024, 6, 15), key=lambda t: t.act_name)
        assert card.rows == ()
        assert card.overall_pct == 0


class TestFilterTasks:

    def test_by_status_and_month(self, solo_task):
        june = solo_task()
        july = solo_task(now=datetime(2024, 6, 20))
        done = _complete(solo_task(), datetime(2024, 6, 9))

        assert july.due_date == date(2024, 7, 10)
        assert filter_tasks([june, july, done], due_month=(2024, 7)) == [july]
        assert filter_tasks(
            [june, july, done], status=TaskStatus.PENDING, due_month=(2024, 6),
        ) == [june]
        assert filter_tasks([june, july, done], status=TaskStatus.COMPLETED) == [done]
