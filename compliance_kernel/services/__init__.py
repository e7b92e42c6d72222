"""Kernel services - the imperative shell around the pure domain."""

from compliance_kernel.services.activity_service import (
    ActivityService,
    preview_due_dates,
)
from compliance_kernel.services.task_store import (
    InMemoryTaskStore,
    SqlTaskStore,
    TaskStore,
)
from compliance_kernel.services.workflow_service import TaskWorkflowService

__all__ = [
    "ActivityService",
    "preview_due_dates",
    "TaskStore",
    "InMemoryTaskStore",
    "SqlTaskStore",
    "TaskWorkflowService",
]
