"""
Tests for ActivityService and the due-date preview.
"""

from datetime import date
from uuid import uuid4

import pytest

from compliance_kernel.domain.activity import StageAssignment
from compliance_kernel.domain.recurrence import FrequencyClass
from compliance_kernel.domain.task import spawn_task
from compliance_kernel.exceptions import (
    ActivityNotFoundError,
    DueDayOutOfRangeError,
    NoStagesAssignedError,
)
from compliance_kernel.services.activity_service import (
    ActivityService,
    preview_due_dates,
)
from tests.conftest import MAKER


@pytest.fixture
def activities(session, clock):
    return ActivityService(session, clock=clock)


class TestCreateActivity:

    def test_create_and_get(self, activities, full_assignment):
        created = activities.create_activity(
            name="PF contribution",
            frequency="Monthly",
            assignment=full_assignment,
            due_day=15,
            grace_period_days=5,
            act_name="EPF Act",
        )

        assert created.version == 1
        assert created.frequency == FrequencyClass.MONTHLY
        assert activities.get_activity(created.activity_id) == created

    def test_invalid_configuration_not_persisted(self, activities, full_assignment):
        with pytest.raises(DueDayOutOfRangeError):
            activities.create_activity(
                name="Broken", frequency="Weekly", assignment=full_assignment, due_day=8,
            )
        assert activities.list_activities() == []

    def test_unknown_frequency(self, activities, full_assignment):
        with pytest.raises(ValueError):
            activities.create_activity(
                name="Odd", frequency="Daily", assignment=full_assignment, due_day=1,
            )

    def test_as_needed(self, activities, full_assignment):
        created = activities.create_activity(
            name="Board resolution",
            frequency=FrequencyClass.AS_NEEDED,
            assignment=full_assignment,
            explicit_due_date=date(2024, 9, 30),
        )
        assert created.due_day is None
        assert created.explicit_due_date == date(2024, 9, 30)

    def test_list_sorted_by_name(self, activities, full_assignment):
        for name in ("TDS deposit", "Advance tax"):
            activities.create_activity(
                name=name, frequency="Monthly", assignment=full_assignment, due_day=7,
            )
        assert [a.name for a in activities.list_activities()] == [
            "Advance tax", "TDS deposit",
        ]

    def test_create_logs(self, activities, full_assignment, captured_logs):
        activities.create_activity(
            name="PF", frequency="Monthly", assignment=full_assignment, due_day=15,
        )
        assert "activity_created" in [r["message"] for r in captured_logs()]


class TestUpdateActivity:

    def test_edit_bumps_version(self, activities, full_assignment):
        created = activities.create_activity(
            name="GST", frequency="Monthly", assignment=full_assignment, due_day=20,
        )
        updated = activities.update_activity(created.activity_id, due_day=11)

        assert updated.version == 2
        assert updated.due_day == 11
        assert activities.get_activity(created.activity_id).version == 2

    def test_spawned_task_keeps_old_version(self, activities, full_assignment, clock):
        created = activities.create_activity(
            name="GST", frequency="Monthly", assignment=full_assignment, due_day=20,
        )
        task = spawn_task(created, clock.now())
        activities.update_activity(created.activity_id, due_day=11)

        assert task.activity_version == 1
        assert task.due_date == date(2024, 6, 20)

    def test_edit_is_validated(self, activities, full_assignment):
        created = activities.create_activity(
            name="GST", frequency="Monthly", assignment=full_assignment, due_day=20,
        )
        with pytest.raises(NoStagesAssignedError):
            activities.update_activity(created.activity_id, assignment=StageAssignment())

    def test_frequency_change_revalidates_due_day(self, activities, full_assignment):
        created = activities.create_activity(
            name="GST", frequency="Monthly", assignment=full_assignment, due_day=20,
        )
        with pytest.raises(DueDayOutOfRangeError):
            activities.update_activity(created.activity_id, frequency="Weekly")

        updated = activities.update_activity(
            created.activity_id, frequency="Weekly", due_day=5,
        )
        assert updated.frequency == FrequencyClass.WEEKLY

    def test_non_editable_field(self, activities, full_assignment):
        created = activities.create_activity(
            name="GST", frequency="Monthly", assignment=full_assignment, due_day=20,
        )
        with pytest.raises(TypeError):
            activities.update_activity(created.activity_id, version=9)

    def test_unknown_activity(self, activities):
        with pytest.raises(ActivityNotFoundError):
            activities.update_activity(uuid4(), due_day=3)
        with pytest.raises(ActivityNotFoundError):
            activities.get_activity(uuid4())

    def test_assignment_round_trip(self, activities):
        assignment = StageAssignment(maker=MAKER, auditor="auditor-9")
        created = activities.create_activity(
            name="Audit", frequency="Annually", assignment=assignment, due_day=120,
        )
        assert activities.get_activity(created.activity_id).assignment == assignment


# =============================================================================
# Preview
# =============================================================================


class TestPreview:

    def test_module_function(self):
        assert preview_due_dates("Monthly", 31, date(2024, 2, 10), count=3) == [
            date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30),
        ]

    def test_out_of_range_due_day(self):
        with pytest.raises(DueDayOutOfRangeError) as exc_info:
            preview_due_dates("Fortnightly", 16, date(2024, 2, 10))
        assert exc_info.value.max_due_day == 15

    def test_as_needed_previews_nothing(self):
        assert preview_due_dates("As Needed", 1, date(2024, 2, 10)) == []

    def test_service_uses_clock_and_default_count(self, session, clock):
        service = ActivityService(session, clock=clock, preview_count=2)
        # clock is Monday 2024-06-03; Wednesday of the same week comes first
        assert service.preview_due_dates("Weekly", 3) == [
            date(2024, 6, 5), date(2024, 6, 12),
        ]
        assert len(service.preview_due_dates("Weekly", 3, count=4)) == 4
