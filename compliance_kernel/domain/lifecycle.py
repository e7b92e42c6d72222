"""
Lifecycle state machine (``compliance_kernel.domain.lifecycle``).

Responsibility
--------------
Moves a ``TaskRecord`` through the ordered Maker -> Checker -> Reviewer ->
Auditor stages.  ``submit_decision`` is the single transition function:
it closes the active movement, opens the next stage's movement or finishes
the task, and returns a NEW record.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over value objects.  ZERO I/O.
Persistence and concurrency control live in ``services/``.

Invariants enforced
-------------------
* ``LIFECYCLE_TRANSITIONS`` defines the only valid state changes.
  ``COMPLETED`` and ``REJECTED`` have no outgoing edges.
* Stages with no assigned user are skipped entirely.
* Exactly one pending movement on every non-terminal task; none on
  terminal tasks.
* All-or-nothing: either a fully transitioned record is returned, or an
  exception is raised and the input record is untouched.
* Rejection is terminal.  Rework means a new task.

Failure modes
-------------
* ``DuplicateSubmissionError`` -- the actor re-submits the decision they
  just recorded.
* ``TaskAlreadyTerminalError`` -- task is Completed or Rejected.
* ``StageOwnershipError`` -- actor does not own the current stage.
* ``InvalidLifecycleTransitionError`` -- transition not in the table.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from enum import Enum

from compliance_kernel.domain.activity import Stage
from compliance_kernel.domain.calendar_math import whole_days_between
from compliance_kernel.domain.task import (
    Movement,
    MovementDecision,
    TaskRecord,
    TaskStatus,
    open_movement,
)
from compliance_kernel.exceptions import (
    DuplicateSubmissionError,
    InvalidLifecycleTransitionError,
    StageOwnershipError,
    TaskAlreadyTerminalError,
)


class Decision(str, Enum):
    """Command issued by the stage owner."""

    APPROVE = "approve"
    REJECT = "reject"


_RECORDED_AS: dict[Decision, MovementDecision] = {
    Decision.APPROVE: MovementDecision.APPROVED,
    Decision.REJECT: MovementDecision.REJECTED,
}


# =========================================================================
# Lifecycle states
# =========================================================================


class LifecycleState(str, Enum):
    """Where a task sits in the approval chain."""

    AWAITING_MAKER = "awaiting_maker"
    AWAITING_CHECKER = "awaiting_checker"
    AWAITING_REVIEWER = "awaiting_reviewer"
    AWAITING_AUDITOR = "awaiting_auditor"
    COMPLETED = "completed"
    REJECTED = "rejected"


STAGE_STATES: dict[Stage, LifecycleState] = {
    Stage.MAKER: LifecycleState.AWAITING_MAKER,
    Stage.CHECKER: LifecycleState.AWAITING_CHECKER,
    Stage.REVIEWER: LifecycleState.AWAITING_REVIEWER,
    Stage.AUDITOR: LifecycleState.AWAITING_AUDITOR,
}

# Forward edges may skip unassigned stages.
LIFECYCLE_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.AWAITING_MAKER: frozenset({
        LifecycleState.AWAITING_CHECKER,
        LifecycleState.AWAITING_REVIEWER,
        LifecycleState.AWAITING_AUDITOR,
        LifecycleState.COMPLETED,
        LifecycleState.REJECTED,
    }),
    LifecycleState.AWAITING_CHECKER: frozenset({
        LifecycleState.AWAITING_REVIEWER,
        LifecycleState.AWAITING_AUDITOR,
        LifecycleState.COMPLETED,
        LifecycleState.REJECTED,
    }),
    LifecycleState.AWAITING_REVIEWER: frozenset({
        LifecycleState.AWAITING_AUDITOR,
        LifecycleState.COMPLETED,
        LifecycleState.REJECTED,
    }),
    LifecycleState.AWAITING_AUDITOR: frozenset({
        LifecycleState.COMPLETED,
        LifecycleState.REJECTED,
    }),
    LifecycleState.COMPLETED: frozenset(),
    LifecycleState.REJECTED: frozenset(),
}

TERMINAL_STATES: frozenset[LifecycleState] = frozenset({
    LifecycleState.COMPLETED,
    LifecycleState.REJECTED,
})


def lifecycle_state(task: TaskRecord) -> LifecycleState:
    """Derive the lifecycle state from status and current stage."""
    if task.current_status == TaskStatus.COMPLETED:
        return LifecycleState.COMPLETED
    if task.current_status == TaskStatus.REJECTED:
        return LifecycleState.REJECTED
    return STAGE_STATES[task.current_stage]


def is_valid_transition(
    from_state: LifecycleState, to_state: LifecycleState,
) -> bool:
    return to_state in LIFECYCLE_TRANSITIONS.get(from_state, frozenset())


# =========================================================================
# Transition
# =========================================================================


def _last_closed(task: TaskRecord) -> Movement | None:
    for movement in reversed(task.movements):
        if not movement.is_pending:
            return movement
    return None


def _check_duplicate(
    task: TaskRecord, acting_user_id: str, decision: Decision,
) -> None:
    # Only a replay when the actor no longer owns the task's current stage;
    # a user holding two consecutive stages legitimately acts twice.
    if not task.is_terminal and task.current_user_id == acting_user_id:
        return
    previous = _last_closed(task)
    if (
        previous is not None
        and previous.user_id == acting_user_id
        and previous.decision == _RECORDED_AS[decision]
    ):
        raise DuplicateSubmissionError(
            str(task.task_id), acting_user_id, decision.value,
        )


def submit_decision(
    task: TaskRecord,
    acting_user_id: str,
    decision: Decision | str,
    remark: str,
    now: datetime,
) -> TaskRecord:
    """Apply an approve/reject decision by the current stage owner.

    Args:
        task: Current snapshot of the task.
        acting_user_id: User issuing the command.
        decision: ``Decision`` or its string value.
        remark: Free text; stored as ``remarks`` on approval and as
            ``rejection_remark`` on rejection.
        now: Decision timestamp, from the caller's clock.

    Returns:
        A new ``TaskRecord`` with ``version + 1``.
    """
    decision = Decision(decision)
    task_id = str(task.task_id)

    _check_duplicate(task, acting_user_id, decision)

    if task.is_terminal:
        raise TaskAlreadyTerminalError(task_id, task.current_status.value)

    stage = task.current_stage
    if task.current_user_id != acting_user_id:
        raise StageOwnershipError(task_id, stage.value, acting_user_id)

    index = next(
        i for i, m in enumerate(task.movements) if m.is_pending
    )
    active = task.movements[index]
    actual_tat = whole_days_between(active.in_date, now)

    opened: tuple[Movement, ...] = ()
    if decision == Decision.APPROVE:
        closed = replace(
            active,
            decision=MovementDecision.APPROVED,
            out_date=now,
            actual_tat=actual_tat,
            remarks=remark,
        )
        next_stage = task.assignment.next_stage(stage)
        if next_stage is not None:
            opened = (
                open_movement(
                    next_stage,
                    task.assignment.user_for(next_stage),
                    now,
                    task.due_date,
                ),
            )
            new_status = TaskStatus.PENDING
        else:
            new_status = TaskStatus.COMPLETED
    else:
        closed = replace(
            active,
            decision=MovementDecision.REJECTED,
            out_date=now,
            actual_tat=actual_tat,
            rejection_remark=remark,
        )
        next_stage = None
        new_status = TaskStatus.REJECTED

    updated = replace(
        task,
        movements=(
            task.movements[:index] + (closed,) + task.movements[index + 1:]
            + opened
        ),
        current_stage=next_stage,
        current_status=new_status,
        version=task.version + 1,
    )

    from_state = lifecycle_state(task)
    to_state = lifecycle_state(updated)
    if not is_valid_transition(from_state, to_state):
        raise InvalidLifecycleTransitionError(from_state.value, to_state.value)

    return updated
