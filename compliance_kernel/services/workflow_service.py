"""
compliance_kernel.services.workflow_service -- Task approval workflow.

Responsibility:
    The imperative shell around the pure lifecycle: spawns tasks from
    activities, applies approve/reject commands as one optimistic
    read-modify-write against the Task Store, and serves worklists and
    compliance reports.

Architecture position:
    Kernel > Services.  Talks to persistence only through the ``TaskStore``
    protocol, and to time only through the injected ``Clock``.

Invariants enforced:
    - A command either persists a fully transitioned record or changes
      nothing.
    - ``expected_version`` (when supplied) must equal the stored version;
      the store re-checks it on save, so an interleaved writer is caught.
    - No retries.  ``StaleTaskVersionError`` goes back to the caller.

Failure modes:
    - TaskNotFoundError, StageOwnershipError, TaskAlreadyTerminalError,
      DuplicateSubmissionError, StaleTaskVersionError, DuplicateTaskError.
"""

from __future__ import annotations

from operator import attrgetter
from typing import TYPE_CHECKING, Callable
from uuid import UUID

from compliance_kernel.domain.activity import Activity, Stage
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.compliance import (
    ComplianceReport,
    Scorecard,
    StatusSummary,
    build_scorecard,
    classify_compliance,
    filter_tasks,
    summarize_statuses,
)
from compliance_kernel.domain.lifecycle import Decision, submit_decision
from compliance_kernel.domain.task import TaskRecord, spawn_task
from compliance_kernel.exceptions import (
    ComplianceKernelError,
    StaleTaskVersionError,
)
from compliance_kernel.logging_config import LogContext, get_logger
from compliance_kernel.services.task_store import TaskStore

if TYPE_CHECKING:
    from compliance_config.schema import ComplianceConfig

logger = get_logger("services.workflow")


class TaskWorkflowService:
    """Spawns tasks and routes them through the approval stages."""

    def __init__(
        self,
        store: TaskStore,
        clock: Clock | None = None,
        late_completion_is_non_compliant: bool = False,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._late_is_non_compliant = late_completion_is_non_compliant

    @classmethod
    def from_config(
        cls, store: TaskStore, config: ComplianceConfig, clock: Clock | None = None,
    ) -> TaskWorkflowService:
        """Build a service with the reporting switches from ``config``."""
        return cls(
            store,
            clock=clock,
            late_completion_is_non_compliant=config.late_completion_is_non_compliant,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def spawn_task(self, activity: Activity) -> TaskRecord:
        """Spawn the next task of ``activity`` and hand it to the first stage."""
        with LogContext.bind(activity_id=str(activity.activity_id)):
            record = spawn_task(activity, self._clock.now())
            created = self._store.create(record)
            logger.info(
                "task_spawned",
                extra={
                    "task_id": str(created.task_id),
                    "due_date": created.due_date,
                    "first_stage": created.current_stage,
                    "activity_version": created.activity_version,
                },
            )
            return created

    def submit_decision(
        self,
        task_id: UUID,
        acting_user_id: str,
        decision: Decision | str,
        remark: str = "",
        expected_version: int | None = None,
    ) -> TaskRecord:
        """Apply a decision by the current stage owner.

        Args:
            task_id: Task to act on.
            acting_user_id: User issuing the command.
            decision: Approve or reject.
            remark: Approval remark or rejection reason.
            expected_version: Version the caller last read.  Defaults to the
                version loaded here.

        Returns:
            The persisted record after the transition.
        """
        with LogContext.bind(task_id=str(task_id), actor_id=acting_user_id):
            task = self._store.get(task_id)
            expected = task.version if expected_version is None else expected_version

            if expected != task.version:
                logger.warning(
                    "decision_rejected_stale_version",
                    extra={
                        "expected_version": expected,
                        "actual_version": task.version,
                    },
                )
                raise StaleTaskVersionError(str(task_id), expected, task.version)

            try:
                updated = submit_decision(
                    task, acting_user_id, decision, remark, self._clock.now(),
                )
            except ComplianceKernelError as exc:
                logger.warning(
                    "decision_rejected",
                    extra={"error_code": exc.code, "stage": task.current_stage},
                )
                raise

            saved = self._store.save(updated, expected_version=expected)
            closed = saved.movements[len(task.movements) - 1]
            logger.info(
                "decision_submitted",
                extra={
                    "decision": Decision(decision),
                    "stage": closed.stage,
                    "actual_tat": closed.actual_tat,
                    "planned_tat": closed.planned_tat,
                    "status": saved.current_status,
                    "next_stage": saved.current_stage,
                    "version": saved.version,
                },
            )
            return saved

    def approve(
        self,
        task_id: UUID,
        acting_user_id: str,
        remark: str = "",
        expected_version: int | None = None,
    ) -> TaskRecord:
        return self.submit_decision(
            task_id, acting_user_id, Decision.APPROVE, remark, expected_version,
        )

    def reject(
        self,
        task_id: UUID,
        acting_user_id: str,
        remark: str = "",
        expected_version: int | None = None,
    ) -> TaskRecord:
        return self.submit_decision(
            task_id, acting_user_id, Decision.REJECT, remark, expected_version,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, task_id: UUID) -> TaskRecord:
        return self._store.get(task_id)

    def worklist(
        self,
        user_id: str,
        stage: Stage | None = None,
        due_month: tuple[int, int] | None = None,
    ) -> list[TaskRecord]:
        """Tasks currently waiting on ``user_id``, earliest due first."""
        return filter_tasks(
            self._store.list_by_assignee(user_id, stage), due_month=due_month,
        )

    def compliance_report(self, activity_id: UUID | None = None) -> ComplianceReport:
        return classify_compliance(
            self._store.list_tasks(activity_id),
            self._clock.now(),
            self._late_is_non_compliant,
        )

    def status_summary(self) -> StatusSummary:
        return summarize_statuses(self._store.list_tasks())

    def scorecard(
        self, key: str | Callable[[TaskRecord], str] = "act_name",
    ) -> Scorecard:
        """Compliance per group; ``key`` is a TaskRecord field or a callable."""
        key_fn = attrgetter(key) if isinstance(key, str) else key
        return build_scorecard(
            self._store.list_tasks(),
            self._clock.now(),
            key_fn,
            self._late_is_non_compliant,
        )
