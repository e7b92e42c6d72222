"""
compliance_kernel.services.activity_service -- Activity configuration.

Responsibility:
    Creates and edits recurring activities and previews their upcoming due
    dates.  ``validate_activity`` runs on every save, so configuration errors
    surface here and never reach the recurrence engine.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Every persisted activity passed ``validate_activity``.
    - ``version`` increases by exactly one per edit; already-spawned tasks
      keep the version they were spawned from.
    - Flush only; the caller owns commit/rollback.

Failure modes:
    - ValidationError subclasses on bad configuration.
    - ActivityNotFoundError on unknown activity_id.
    - ValueError on an unknown frequency name.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from compliance_kernel.domain.activity import Activity, StageAssignment, validate_activity
from compliance_kernel.domain.clock import Clock, SystemClock
from compliance_kernel.domain.recurrence import (
    DEFAULT_PREVIEW_COUNT,
    FrequencyClass,
    compute_next_due_dates,
    max_due_day,
    parse_frequency,
)
from compliance_kernel.exceptions import ActivityNotFoundError, DueDayOutOfRangeError
from compliance_kernel.logging_config import get_logger
from compliance_kernel.models.activity import ActivityModel

logger = get_logger("services.activity")

_EDITABLE_FIELDS = frozenset({
    "name",
    "description",
    "act_name",
    "department_name",
    "frequency",
    "due_day",
    "explicit_due_date",
    "grace_period_days",
    "reminder_days",
    "assignment",
})


def preview_due_dates(
    frequency: FrequencyClass | str,
    due_day: int,
    start: date | datetime,
    count: int = DEFAULT_PREVIEW_COUNT,
) -> list[date]:
    """The next ``count`` due dates for an unsaved ``(frequency, due_day)``.

    Unlike the engine, this validates ``due_day`` because it runs on user
    input.  AsNeeded has no schedule and previews as an empty list.

    Raises:
        DueDayOutOfRangeError: If ``due_day`` is outside the frequency's domain.
        ValueError: If ``frequency`` is unknown or ``count`` is negative.
    """
    frequency = parse_frequency(frequency)
    if frequency == FrequencyClass.AS_NEEDED:
        return []
    limit = max_due_day(frequency)
    if not 1 <= due_day <= limit:
        raise DueDayOutOfRangeError(frequency.value, due_day, limit)
    return compute_next_due_dates(frequency, due_day, start, count)


class ActivityService:
    """Manages activity configuration."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        preview_count: int = DEFAULT_PREVIEW_COUNT,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._preview_count = preview_count

    def create_activity(
        self,
        name: str,
        frequency: FrequencyClass | str,
        assignment: StageAssignment,
        due_day: int | None = None,
        explicit_due_date: date | None = None,
        grace_period_days: int = 0,
        reminder_days: int = 0,
        description: str = "",
        act_name: str = "",
        department_name: str = "",
    ) -> Activity:
        """Validate and persist a new activity at version 1."""
        activity = validate_activity(Activity(
            name=name,
            frequency=parse_frequency(frequency),
            assignment=assignment,
            due_day=due_day,
            explicit_due_date=explicit_due_date,
            grace_period_days=grace_period_days,
            reminder_days=reminder_days,
            description=description,
            act_name=act_name,
            department_name=department_name,
        ))

        model = ActivityModel.from_dto(activity)
        model.created_at = self._clock.now()
        model.updated_at = model.created_at
        self._session.add(model)
        self._session.flush()

        logger.info(
            "activity_created",
            extra={
                "activity_id": str(activity.activity_id),
                "activity_name": activity.name,
                "frequency": activity.frequency.value,
                "due_day": activity.due_day,
            },
        )
        return model.to_dto()

    def update_activity(self, activity_id: UUID, **changes: Any) -> Activity:
        """Apply ``changes`` and bump the version.

        Raises:
            TypeError: If a change names a field that is not editable.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Not editable: {', '.join(sorted(unknown))}")
        if "frequency" in changes:
            changes["frequency"] = parse_frequency(changes["frequency"])

        model = self._load(activity_id)
        current = model.to_dto()
        updated = validate_activity(
            replace(current, version=current.version + 1, **changes),
        )

        model.apply_dto(updated)
        model.updated_at = self._clock.now()
        self._session.flush()

        logger.info(
            "activity_updated",
            extra={
                "activity_id": str(activity_id),
                "version": updated.version,
                "fields": sorted(changes),
            },
        )
        return model.to_dto()

    def get_activity(self, activity_id: UUID) -> Activity:
        return self._load(activity_id).to_dto()

    def list_activities(self) -> list[Activity]:
        rows = self._session.execute(
            select(ActivityModel).order_by(ActivityModel.name, ActivityModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def preview_due_dates(
        self,
        frequency: FrequencyClass | str,
        due_day: int,
        count: int | None = None,
    ) -> list[date]:
        """Upcoming due dates as of the service clock's today."""
        return preview_due_dates(
            frequency,
            due_day,
            self._clock.today(),
            self._preview_count if count is None else count,
        )

    def _load(self, activity_id: UUID) -> ActivityModel:
        model = self._session.get(ActivityModel, activity_id)
        if model is None:
            raise ActivityNotFoundError(str(activity_id))
        return model
