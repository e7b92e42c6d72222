"""SQLAlchemy ORM models for the compliance kernel."""

from compliance_kernel.models.activity import ActivityModel
from compliance_kernel.models.task import MovementModel, TaskModel

__all__ = [
    "ActivityModel",
    "TaskModel",
    "MovementModel",
]
