"""
Tests for the approval lifecycle (``compliance_kernel.domain.lifecycle``).

Covers stage ordering, skipped stages, ownership, terminal states,
duplicate submissions and turnaround-time bookkeeping.
"""

from datetime import date, datetime, timedelta

import pytest

from compliance_kernel.domain.activity import Stage, StageAssignment
from compliance_kernel.domain.lifecycle import (
    LIFECYCLE_TRANSITIONS,
    TERMINAL_STATES,
    Decision,
    LifecycleState,
    is_valid_transition,
    lifecycle_state,
    submit_decision,
)
from compliance_kernel.domain.task import MovementDecision, TaskStatus
from compliance_kernel.exceptions import (
    DuplicateSubmissionError,
    StageOwnershipError,
    TaskAlreadyTerminalError,
    UnauthorizedError,
)
from tests.conftest import AUDITOR, CHECKER, DEFAULT_NOW, MAKER, REVIEWER

LATER = DEFAULT_NOW + timedelta(days=2, hours=3)


def _approve_chain(task, users, start=DEFAULT_NOW):
    now = start
    for user in users:
        now += timedelta(days=1)
        task = submit_decision(task, user, Decision.APPROVE, f"ok by {user}", now)
    return task


# =============================================================================
# Transition table
# =============================================================================


class TestTransitionTable:

    def test_terminal_states_have_no_edges(self):
        for state in TERMINAL_STATES:
            assert LIFECYCLE_TRANSITIONS[state] == frozenset()

    def test_every_state_is_listed(self):
        assert set(LIFECYCLE_TRANSITIONS) == set(LifecycleState)

    def test_no_backward_edges(self):
        assert not is_valid_transition(
            LifecycleState.AWAITING_CHECKER, LifecycleState.AWAITING_MAKER,
        )
        assert not is_valid_transition(
            LifecycleState.COMPLETED, LifecycleState.AWAITING_MAKER,
        )

    def test_forward_skip_allowed(self):
        assert is_valid_transition(
            LifecycleState.AWAITING_MAKER, LifecycleState.AWAITING_AUDITOR,
        )

    def test_state_of_fresh_task(self, make_task):
        assert lifecycle_state(make_task()) == LifecycleState.AWAITING_MAKER


# =============================================================================
# Approvals
# =============================================================================


class TestApprove:

    def test_maker_approval_moves_to_checker(self, make_task):
        task = make_task()
        updated = submit_decision(task, MAKER, Decision.APPROVE, "filed", LATER)

        assert updated.current_stage == Stage.CHECKER
        assert updated.current_status == TaskStatus.PENDING
        assert updated.version == task.version + 1
        assert len(updated.movements) == 2

        closed, opened = updated.movements
        assert closed.decision == MovementDecision.APPROVED
        assert closed.out_date == LATER
        assert closed.actual_tat == 2
        assert closed.remarks == "filed"
        assert opened.stage == Stage.CHECKER
        assert opened.user_id == CHECKER
        assert opened.in_date == LATER
        assert opened.is_pending

    def test_input_record_untouched(self, make_task):
        task = make_task()
        submit_decision(task, MAKER, Decision.APPROVE, "", LATER)

        assert task.current_stage == Stage.MAKER
        assert len(task.movements) == 1
        assert task.movements[0].is_pending

    def test_full_chain_completes(self, make_task):
        task = _approve_chain(make_task(), [MAKER, CHECKER, REVIEWER, AUDITOR])

        assert task.current_status == TaskStatus.COMPLETED
        assert task.current_stage is None
        assert task.active_movement is None
        assert [m.stage for m in task.movements] == [
            Stage.MAKER, Stage.CHECKER, Stage.REVIEWER, Stage.AUDITOR,
        ]
        assert all(m.decision == MovementDecision.APPROVED for m in task.movements)
        assert task.completed_at == DEFAULT_NOW + timedelta(days=4)
        assert task.version == 5

    def test_maker_checker_only_skips_to_completed(self, make_task):
        task = make_task(assignment=StageAssignment(maker=MAKER, checker=CHECKER))
        task = submit_decision(task, MAKER, Decision.APPROVE, "", LATER)
        assert task.current_stage == Stage.CHECKER

        task = submit_decision(task, CHECKER, Decision.APPROVE, "", LATER)

        assert task.current_status == TaskStatus.COMPLETED
        assert [m.stage for m in task.movements] == [Stage.MAKER, Stage.CHECKER]

    def test_middle_stage_skipped(self, make_task):
        task = make_task(assignment=StageAssignment(maker=MAKER, auditor=AUDITOR))
        task = submit_decision(task, MAKER, "approve", "", LATER)

        assert task.current_stage == Stage.AUDITOR
        assert task.current_user_id == AUDITOR

    def test_same_day_decision_has_zero_tat(self, make_task):
        task = make_task()
        updated = submit_decision(
            task, MAKER, Decision.APPROVE, "", DEFAULT_NOW + timedelta(hours=5),
        )
        assert updated.movements[0].actual_tat == 0

    def test_planned_tat_of_next_stage(self, make_task):
        # due 2024-06-10; checker receives it on 2024-06-05
        task = submit_decision(make_task(), MAKER, Decision.APPROVE, "", LATER)
        assert task.due_date == date(2024, 6, 10)
        assert task.movements[1].planned_tat == 5

    def test_single_user_holding_consecutive_stages(self, make_task):
        task = make_task(assignment=StageAssignment(maker="solo", checker="solo"))
        task = submit_decision(task, "solo", Decision.APPROVE, "", LATER)
        task = submit_decision(task, "solo", Decision.APPROVE, "", LATER)

        assert task.current_status == TaskStatus.COMPLETED


# =============================================================================
# Rejections
# =============================================================================


class TestReject:

    def test_reject_is_terminal(self, make_task):
        task = submit_decision(make_task(), MAKER, Decision.APPROVE, "", LATER)
        rejected = submit_decision(
            task, CHECKER, Decision.REJECT, "figures do not tie", LATER,
        )

        assert rejected.current_status == TaskStatus.REJECTED
        assert rejected.current_stage is None
        assert lifecycle_state(rejected) == LifecycleState.REJECTED

        last = rejected.last_movement
        assert last.decision == MovementDecision.REJECTED
        assert last.rejection_remark == "figures do not tie"
        assert last.remarks == ""
        assert last.actual_tat == 0

    def test_no_decisions_after_reject(self, make_task):
        rejected = submit_decision(make_task(), MAKER, Decision.REJECT, "", LATER)

        with pytest.raises(TaskAlreadyTerminalError):
            submit_decision(rejected, CHECKER, Decision.APPROVE, "", LATER)


# =============================================================================
# Guards
# =============================================================================


class TestGuards:

    def test_wrong_user_rejected(self, make_task):
        task = make_task()
        with pytest.raises(StageOwnershipError) as exc_info:
            submit_decision(task, CHECKER, Decision.APPROVE, "", LATER)

        assert exc_info.value.stage == Stage.MAKER.value
        assert exc_info.value.actor_id == CHECKER
        assert isinstance(exc_info.value, UnauthorizedError)

    def test_completed_task_rejects_decisions(self, make_task):
        task = _approve_chain(make_task(), [MAKER, CHECKER, REVIEWER, AUDITOR])

        with pytest.raises(TaskAlreadyTerminalError) as exc_info:
            submit_decision(task, MAKER, Decision.REJECT, "", LATER)
        assert exc_info.value.status == TaskStatus.COMPLETED.value

    def test_duplicate_approval(self, make_task):
        task = submit_decision(make_task(), MAKER, Decision.APPROVE, "", LATER)

        with pytest.raises(DuplicateSubmissionError) as exc_info:
            submit_decision(task, MAKER, Decision.APPROVE, "", LATER)
        assert exc_info.value.actor_id == MAKER

    def test_duplicate_final_approval(self, make_task):
        task = _approve_chain(make_task(), [MAKER, CHECKER, REVIEWER, AUDITOR])

        with pytest.raises(DuplicateSubmissionError):
            submit_decision(task, AUDITOR, Decision.APPROVE, "", LATER)

    def test_duplicate_rejection(self, make_task):
        rejected = submit_decision(make_task(), MAKER, Decision.REJECT, "", LATER)

        with pytest.raises(DuplicateSubmissionError):
            submit_decision(rejected, MAKER, Decision.REJECT, "", LATER)

    def test_unknown_decision(self, make_task):
        with pytest.raises(ValueError):
            submit_decision(make_task(), MAKER, "escalate", "", LATER)

    def test_failed_command_leaves_record_unchanged(self, make_task):
        task = make_task()
        with pytest.raises(StageOwnershipError):
            submit_decision(task, REVIEWER, Decision.REJECT, "", LATER)

        assert task.version == 1
        assert task.movements[0].is_pending
        assert isinstance(task.created_at, datetime)
