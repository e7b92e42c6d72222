"""
Module: compliance_kernel.models.task
Responsibility: ORM persistence for task records and their movement history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py (domain types are imported lazily inside DTO converters).

Invariants enforced:
    - Optimistic concurrency: ``version`` is the mapper's version_id_col.
      The value is supplied by the domain transition, and every UPDATE is
      guarded by ``WHERE version = <loaded version>``.
    - Spawn idempotency: UNIQUE(activity_id, due_date).
    - Movements are append-only: a closed (non-Pending) movement can never
      be updated, and no movement can be deleted.
    - Terminal tasks (Completed / Rejected) are frozen.

Failure modes:
    - StaleDataError when a concurrent writer bumped ``version`` first.
    - IntegrityError on a duplicate (activity_id, due_date).
    - ImmutabilityViolationError on a closed-movement UPDATE, any movement
      DELETE, or any change to a terminal task.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Sequence
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import get_history

from compliance_kernel.db.base import Base, TrackedBase, UUIDString
from compliance_kernel.exceptions import ImmutabilityViolationError
from compliance_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from compliance_kernel.domain.task import Movement, TaskRecord

logger = get_logger("models.task")

_PENDING = "Pending"
_TERMINAL_STATUSES = frozenset({"Completed", "Rejected"})


class TaskModel(TrackedBase):
    """Persistent task record.

    Contract:
        ``id`` is the domain ``task_id``.  Assignment and activity fields are
        snapshotted at spawn time and never re-read from the activity.
    """

    __tablename__ = "compliance_tasks"

    __table_args__ = (
        CheckConstraint(
            "current_status IN ('Pending', 'Completed', 'Rejected')",
            name="ck_compliance_tasks_status",
        ),
        UniqueConstraint(
            "activity_id", "due_date",
            name="uq_compliance_tasks_activity_due",
        ),
        Index("ix_compliance_tasks_status_due", "current_status", "due_date"),
    )

    activity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    activity_version: Mapped[int] = mapped_column(nullable=False)
    activity_name: Mapped[str] = mapped_column(String(200), nullable=False)
    act_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    department_name: Mapped[str] = mapped_column(
        String(200), default="", nullable=False,
    )
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)
    grace_period_date: Mapped[date] = mapped_column(nullable=False)
    reminder_date: Mapped[date] = mapped_column(nullable=False)
    maker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    checker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    auditor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_stage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    current_status: Mapped[str] = mapped_column(String(20), nullable=False)
    version: Mapped[int] = mapped_column(nullable=False)

    movements: Mapped[list["MovementModel"]] = relationship(
        "MovementModel",
        back_populates="task",
        order_by="MovementModel.sequence",
        cascade="save-update, merge",
        lazy="selectin",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    def __repr__(self) -> str:
        return (
            f"<Task {self.id} due={self.due_date} "
            f"status={self.current_status} stage={self.current_stage} "
            f"v{self.version}>"
        )

    def to_dto(self) -> TaskRecord:
        """Convert ORM model to frozen domain record."""
        from compliance_kernel.domain.activity import Stage, StageAssignment
        from compliance_kernel.domain.recurrence import FrequencyClass
        from compliance_kernel.domain.task import TaskRecord, TaskStatus

        return TaskRecord(
            task_id=self.id,
            activity_id=self.activity_id,
            activity_version=self.activity_version,
            activity_name=self.activity_name,
            act_name=self.act_name,
            department_name=self.department_name,
            frequency=FrequencyClass(self.frequency),
            due_date=self.due_date,
            grace_period_date=self.grace_period_date,
            reminder_date=self.reminder_date,
            assignment=StageAssignment(
                maker=self.maker_id,
                checker=self.checker_id,
                reviewer=self.reviewer_id,
                auditor=self.auditor_id,
            ),
            created_at=self.created_at,
            current_stage=Stage(self.current_stage) if self.current_stage else None,
            current_status=TaskStatus(self.current_status),
            movements=tuple(m.to_dto() for m in self.movements),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: TaskRecord) -> TaskModel:
        """Create ORM model (with its movements) from a domain record."""
        model = cls(
            id=dto.task_id,
            activity_id=dto.activity_id,
            activity_version=dto.activity_version,
            activity_name=dto.activity_name,
            act_name=dto.act_name,
            department_name=dto.department_name,
            frequency=dto.frequency.value,
            due_date=dto.due_date,
            grace_period_date=dto.grace_period_date,
            reminder_date=dto.reminder_date,
            maker_id=dto.assignment.maker,
            checker_id=dto.assignment.checker,
            reviewer_id=dto.assignment.reviewer,
            auditor_id=dto.assignment.auditor,
            created_at=dto.created_at,
            updated_at=dto.created_at,
            current_stage=dto.current_stage.value if dto.current_stage else None,
            current_status=dto.current_status.value,
            version=dto.version,
        )
        model.movements = [
            MovementModel.from_dto(m, sequence=i)
            for i, m in enumerate(dto.movements)
        ]
        return model

    def apply_transition(self, dto: TaskRecord, updated_at: datetime) -> None:
        """Copy a transitioned record onto this row.

        Only the lifecycle fields change.  Pending movement rows are closed
        in place and new movements appended; closed rows are left alone.
        """
        self.current_stage = dto.current_stage.value if dto.current_stage else None
        self.current_status = dto.current_status.value
        self.version = dto.version
        self.updated_at = updated_at
        self._sync_movements(dto.movements)

    def _sync_movements(self, movements: Sequence[Movement]) -> None:
        existing = len(self.movements)
        for sequence, movement in enumerate(movements):
            if sequence < existing:
                row = self.movements[sequence]
                if row.decision == _PENDING:
                    row.apply_dto(movement)
            else:
                self.movements.append(
                    MovementModel.from_dto(movement, sequence=sequence),
                )


class MovementModel(Base):
    """One stage's handling of a task.  Append-only once closed."""

    __tablename__ = "compliance_task_movements"

    __table_args__ = (
        CheckConstraint(
            "decision IN ('Approved', 'Rejected', 'Pending')",
            name="ck_compliance_task_movements_decision",
        ),
        UniqueConstraint(
            "task_id", "sequence",
            name="uq_compliance_task_movements_sequence",
        ),
        Index("ix_compliance_task_movements_user", "user_id", "decision"),
    )

    task_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("compliance_tasks.id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(nullable=False)
    stage: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    in_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    out_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    remarks: Mapped[str] = mapped_column(Text, default="", nullable=False)
    rejection_remark: Mapped[str] = mapped_column(Text, default="", nullable=False)
    planned_tat: Mapped[int] = mapped_column(nullable=False)
    actual_tat: Mapped[int | None] = mapped_column(nullable=True)

    task: Mapped["TaskModel"] = relationship(
        "TaskModel", back_populates="movements",
    )

    def __repr__(self) -> str:
        return (
            f"<Movement task={self.task_id} #{self.sequence} "
            f"{self.stage}/{self.user_id} {self.decision}>"
        )

    def to_dto(self) -> Movement:
        from compliance_kernel.domain.activity import Stage
        from compliance_kernel.domain.task import Movement, MovementDecision

        return Movement(
            stage=Stage(self.stage),
            user_id=self.user_id,
            in_date=self.in_date,
            out_date=self.out_date,
            decision=MovementDecision(self.decision),
            remarks=self.remarks,
            rejection_remark=self.rejection_remark,
            planned_tat=self.planned_tat,
            actual_tat=self.actual_tat,
        )

    @classmethod
    def from_dto(cls, dto: Movement, sequence: int) -> MovementModel:
        model = cls(sequence=sequence)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: Movement) -> None:
        self.stage = dto.stage.value
        self.user_id = dto.user_id
        self.in_date = dto.in_date
        self.out_date = dto.out_date
        self.decision = dto.decision.value
        self.remarks = dto.remarks
        self.rejection_remark = dto.rejection_remark
        self.planned_tat = dto.planned_tat
        self.actual_tat = dto.actual_tat


# =============================================================================
# ORM-Level Immutability
# =============================================================================


def _value_before_flush(target, key: str):
    """The committed value of ``key``, before any pending change."""
    history = get_history(target, key)
    if history.deleted:
        return history.deleted[0]
    return getattr(target, key)


def _changed_fields(target, allowed: frozenset[str] = frozenset()) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in allowed and attr.history.has_changes()
    ]


def _block(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


@event.listens_for(MovementModel, "before_update")
def prevent_closed_movement_update(mapper, connection, target):
    """Closed movements are frozen; only a Pending row may be closed."""
    if _value_before_flush(target, "decision") == _PENDING:
        return
    changed = _changed_fields(target)
    if changed:
        _block(
            "Movement",
            str(target.id),
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a closed movement",
        )


@event.listens_for(MovementModel, "before_delete")
def prevent_movement_delete(mapper, connection, target):
    """Movement history is append-only."""
    _block(
        "Movement",
        str(target.id),
        "DELETE",
        "Movements are append-only -- cannot delete",
    )


@event.listens_for(TaskModel, "before_update")
def prevent_terminal_task_update(mapper, connection, target):
    """Completed and Rejected tasks are frozen."""
    if _value_before_flush(target, "current_status") not in _TERMINAL_STATUSES:
        return
    changed = _changed_fields(target, allowed=frozenset({"updated_at"}))
    if changed:
        _block(
            "Task",
            str(target.id),
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a terminal task",
        )


@event.listens_for(TaskModel, "before_delete")
def prevent_task_delete(mapper, connection, target):
    """Tasks are never deleted; rework spawns a new task."""
    _block(
        "Task",
        str(target.id),
        "DELETE",
        "Tasks cannot be deleted",
    )
