"""
compliance_kernel.services.task_store -- Task Store collaborator.

Responsibility:
    Persists ``TaskRecord`` snapshots keyed by ``task_id`` and guards every
    write with an optimistic ``version`` check.  The workflow service only
    talks to the ``TaskStore`` protocol; two implementations are provided:

    * ``SqlTaskStore`` -- SQLAlchemy session, ``TaskModel.version`` as the
      mapper's version_id_col.  Production implementation.
    * ``InMemoryTaskStore`` -- dict guarded by a ``threading.Lock``.  Used by
      tests and by tools that need no database.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - ``save(record, expected_version)`` succeeds only when the stored
      version equals ``expected_version``; the stored record becomes
      ``record`` (whose version is ``expected_version + 1``).
    - One task per (activity_id, due_date).
    - SqlTaskStore flushes but never commits; the caller owns the
      transaction.

Failure modes:
    - TaskNotFoundError on unknown task_id.
    - StaleTaskVersionError on a version mismatch or a concurrent UPDATE.
    - DuplicateTaskError on a second spawn for the same due date.
"""

from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from compliance_kernel.domain.activity import STAGE_ORDER, Stage
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.task import TaskRecord, TaskStatus
from compliance_kernel.exceptions import (
    DuplicateTaskError,
    StaleTaskVersionError,
    TaskNotFoundError,
)
from compliance_kernel.logging_config import get_logger
from compliance_kernel.models.task import TaskModel

logger = get_logger("services.task_store")


class TaskStore(Protocol):
    """Persistence boundary consumed by the workflow service."""

    def create(self, record: TaskRecord) -> TaskRecord:
        ...

    def get(self, task_id: UUID) -> TaskRecord:
        ...

    def save(self, record: TaskRecord, expected_version: int) -> TaskRecord:
        ...

    def list_by_assignee(
        self, user_id: str, stage: Stage | None = None,
    ) -> list[TaskRecord]:
        ...

    def list_tasks(self, activity_id: UUID | None = None) -> list[TaskRecord]:
        ...


def _awaits(record: TaskRecord, user_id: str, stage: Stage | None) -> bool:
    """True when ``record`` currently waits on ``user_id`` (at ``stage``)."""
    if record.current_status != TaskStatus.PENDING:
        return False
    if stage is not None and record.current_stage != stage:
        return False
    return record.current_stage in record.assignment.stages_for_user(user_id)


def _worklist_order(record: TaskRecord) -> tuple:
    return (record.due_date, STAGE_ORDER.index(record.current_stage), str(record.task_id))


class InMemoryTaskStore:
    """Thread-safe in-process store."""

    def __init__(self) -> None:
        self._tasks: dict[UUID, TaskRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: TaskRecord) -> TaskRecord:
        with self._lock:
            for existing in self._tasks.values():
                if (
                    existing.activity_id == record.activity_id
                    and existing.due_date == record.due_date
                ):
                    raise DuplicateTaskError(
                        str(record.activity_id), record.due_date.isoformat(),
                    )
            self._tasks[record.task_id] = record
        return record

    def get(self, task_id: UUID) -> TaskRecord:
        with self._lock:
            record = self._tasks.get(task_id)
        if record is None:
            raise TaskNotFoundError(str(task_id))
        return record

    def save(self, record: TaskRecord, expected_version: int) -> TaskRecord:
        with self._lock:
            current = self._tasks.get(record.task_id)
            if current is None:
                raise TaskNotFoundError(str(record.task_id))
            if current.version != expected_version:
                raise StaleTaskVersionError(
                    str(record.task_id), expected_version, current.version,
                )
            self._tasks[record.task_id] = record
        return record

    def list_by_assignee(
        self, user_id: str, stage: Stage | None = None,
    ) -> list[TaskRecord]:
        with self._lock:
            records = list(self._tasks.values())
        return sorted(
            (r for r in records if _awaits(r, user_id, stage)),
            key=_worklist_order,
        )

    def list_tasks(self, activity_id: UUID | None = None) -> list[TaskRecord]:
        with self._lock:
            records = list(self._tasks.values())
        if activity_id is not None:
            records = [r for r in records if r.activity_id == activity_id]
        return sorted(records, key=lambda r: (r.due_date, str(r.task_id)))


class SqlTaskStore:
    """SQLAlchemy-backed store.  Flushes within the caller's transaction."""

    def __init__(self, session: Session, clock: Clock | None = None) -> None:
        self._session = session
        self._clock = clock or SystemClock()

    def create(self, record: TaskRecord) -> TaskRecord:
        existing = self._session.execute(
            select(TaskModel.id).where(
                TaskModel.activity_id == record.activity_id,
                TaskModel.due_date == record.due_date,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateTaskError(
                str(record.activity_id), record.due_date.isoformat(),
            )

        model = TaskModel.from_dto(record)
        self._session.add(model)
        try:
            self._session.flush()
        except IntegrityError as exc:
            # A concurrent spawn committed the same due date after our SELECT.
            logger.warning(
                "task_duplicate_on_flush",
                extra={
                    "activity_id": str(record.activity_id),
                    "due_date": record.due_date,
                },
            )
            raise DuplicateTaskError(
                str(record.activity_id), record.due_date.isoformat(),
            ) from exc
        return model.to_dto()

    def get(self, task_id: UUID) -> TaskRecord:
        return self._load(task_id).to_dto()

    def save(self, record: TaskRecord, expected_version: int) -> TaskRecord:
        model = self._load(record.task_id)
        if model.version != expected_version:
            raise StaleTaskVersionError(
                str(record.task_id), expected_version, model.version,
            )

        model.apply_transition(record, updated_at=self._clock.now())
        try:
            self._session.flush()
        except StaleDataError as exc:
            # Another transaction committed between our read and this UPDATE.
            logger.warning(
                "task_version_conflict_on_flush",
                extra={
                    "task_id": str(record.task_id),
                    "expected_version": expected_version,
                },
            )
            raise StaleTaskVersionError(
                str(record.task_id), expected_version, None,
            ) from exc
        return model.to_dto()

    def list_by_assignee(
        self, user_id: str, stage: Stage | None = None,
    ) -> list[TaskRecord]:
        stages = [stage] if stage is not None else list(STAGE_ORDER)
        clauses = [_assignee_column(s) == user_id for s in stages]
        rows = self._session.execute(
            select(TaskModel).where(
                TaskModel.current_status == TaskStatus.PENDING.value,
                TaskModel.current_stage.in_([s.value for s in stages]),
            ).where(or_(*clauses))
        ).scalars().all()
        records = [row.to_dto() for row in rows]
        return sorted(
            (r for r in records if _awaits(r, user_id, stage)),
            key=_worklist_order,
        )

    def list_tasks(self, activity_id: UUID | None = None) -> list[TaskRecord]:
        stmt = select(TaskModel).order_by(TaskModel.due_date, TaskModel.id)
        if activity_id is not None:
            stmt = stmt.where(TaskModel.activity_id == activity_id)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def _load(self, task_id: UUID) -> TaskModel:
        model = self._session.get(TaskModel, task_id)
        if model is None:
            raise TaskNotFoundError(str(task_id))
        return model


def _assignee_column(stage: Stage):
    return getattr(TaskModel, f"{stage.value}_id")
