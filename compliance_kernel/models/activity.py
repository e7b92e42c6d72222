"""
Module: compliance_kernel.models.activity
Responsibility: ORM persistence for activity configurations.

Architecture position: Kernel > Models.  May import from db/base.py only
    (domain types are imported lazily inside the DTO converters).

Invariants enforced:
    - Frequency values limited to the closed enumeration (DB check constraint).
    - ``version`` starts at 1 and is bumped by ActivityService on every edit.

Failure modes:
    - IntegrityError on an unknown frequency value.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from compliance_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from compliance_kernel.domain.activity import Activity


class ActivityModel(TrackedBase):
    """Persistent recurring compliance obligation."""

    __tablename__ = "compliance_activities"

    __table_args__ = (
        CheckConstraint(
            "frequency IN ('Weekly', 'Fortnightly', 'Monthly', 'Quarterly', "
            "'Half Yearly', 'Annually', 'As Needed')",
            name="ck_compliance_activities_frequency",
        ),
        CheckConstraint(
            "grace_period_days >= 0 AND reminder_days >= 0",
            name="ck_compliance_activities_windows",
        ),
        Index("ix_compliance_activities_act", "act_name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    act_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    department_name: Mapped[str] = mapped_column(
        String(200), default="", nullable=False,
    )
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    due_day: Mapped[int | None] = mapped_column(nullable=True)
    explicit_due_date: Mapped[date | None] = mapped_column(nullable=True)
    grace_period_days: Mapped[int] = mapped_column(default=0, nullable=False)
    reminder_days: Mapped[int] = mapped_column(default=0, nullable=False)
    maker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    checker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    auditor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[int] = mapped_column(default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Activity {self.id} {self.name!r} {self.frequency} v{self.version}>"

    def to_dto(self) -> Activity:
        """Convert ORM model to frozen domain object."""
        from compliance_kernel.domain.activity import Activity, StageAssignment
        from compliance_kernel.domain.recurrence import FrequencyClass

        return Activity(
            activity_id=self.id,
            name=self.name,
            description=self.description,
            act_name=self.act_name,
            department_name=self.department_name,
            frequency=FrequencyClass(self.frequency),
            due_day=self.due_day,
            explicit_due_date=self.explicit_due_date,
            grace_period_days=self.grace_period_days,
            reminder_days=self.reminder_days,
            assignment=StageAssignment(
                maker=self.maker_id,
                checker=self.checker_id,
                reviewer=self.reviewer_id,
                auditor=self.auditor_id,
            ),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: Activity) -> ActivityModel:
        """Create ORM model from domain object."""
        model = cls(id=dto.activity_id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto: Activity) -> None:
        """Copy every configurable field from ``dto`` onto this row."""
        self.name = dto.name
        self.description = dto.description
        self.act_name = dto.act_name
        self.department_name = dto.department_name
        self.frequency = dto.frequency.value
        self.due_day = dto.due_day
        self.explicit_due_date = dto.explicit_due_date
        self.grace_period_days = dto.grace_period_days
        self.reminder_days = dto.reminder_days
        self.maker_id = dto.assignment.maker
        self.checker_id = dto.assignment.checker
        self.reviewer_id = dto.assignment.reviewer
        self.auditor_id = dto.assignment.auditor
        self.version = dto.version
