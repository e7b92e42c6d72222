"""
Typed Exception Hierarchy for the Compliance Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Workflow commands are issued by dashboards and API clients that must react
to failures precisely.  Callers catch by TYPE and read a machine-readable
CODE plus structured attributes -- they never parse message strings.

Example - WRONG way to handle errors:
    try:
        service.submit_decision(task_id, user_id, Decision.APPROVE)
    except Exception as e:
        if "not assigned" in str(e):  # FRAGILE - message might change
            show_forbidden()

Example - RIGHT way (what this module enables):
    try:
        service.submit_decision(task_id, user_id, Decision.APPROVE)
    except StaleTaskVersionError as e:
        task = store.get(e.task_id)          # re-read, then retry
    except UnauthorizedError as e:
        api_response(code=e.code, stage=e.stage)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ComplianceKernelError:

    ComplianceKernelError (base)
    |
    +-- ValidationError
    |   +-- DueDayOutOfRangeError
    |   +-- WindowDaysOutOfRangeError
    |   +-- MissingExplicitDueDateError
    |   +-- NoStagesAssignedError
    |
    +-- UnauthorizedError
    |   +-- StageOwnershipError
    |
    +-- InvalidStateError
    |   +-- TaskAlreadyTerminalError
    |   +-- DuplicateSubmissionError
    |   +-- StaleTaskVersionError
    |   +-- InvalidLifecycleTransitionError
    |   +-- DuplicateTaskError
    |
    +-- NotFoundError
    |   +-- TaskNotFoundError
    |   +-- ActivityNotFoundError
    |
    +-- RecurrenceError
    |   +-- UnsupportedFrequencyError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|-----------------------------------
Validation    | DUE_DAY_OUT_OF_RANGE          | due_day outside 1..max for frequency
              | WINDOW_DAYS_OUT_OF_RANGE      | grace/reminder days negative or > max
              | MISSING_EXPLICIT_DUE_DATE     | AsNeeded activity without a date
              | NO_STAGES_ASSIGNED            | no maker/checker/reviewer/auditor
--------------|-------------------------------|-----------------------------------
Unauthorized  | STAGE_OWNERSHIP               | actor does not own the current stage
--------------|-------------------------------|-----------------------------------
InvalidState  | TASK_ALREADY_TERMINAL         | task is Completed or Rejected
              | DUPLICATE_SUBMISSION          | actor re-submits a closed movement
              | STALE_TASK_VERSION            | optimistic version check failed
              | INVALID_LIFECYCLE_TRANSITION  | transition not in the table
              | DUPLICATE_TASK                | task already spawned for due date
--------------|-------------------------------|-----------------------------------
NotFound      | TASK_NOT_FOUND                | unknown task_id
              | ACTIVITY_NOT_FOUND            | unknown activity_id
--------------|-------------------------------|-----------------------------------
Recurrence    | UNSUPPORTED_FREQUENCY         | engine invoked for AsNeeded
--------------|-------------------------------|-----------------------------------
Immutability  | IMMUTABILITY_VIOLATION        | closed movement modified/deleted

===============================================================================
HANDLING PATTERNS
===============================================================================

1. STALE VERSIONS ARE THE ONLY RETRYABLE ERROR.  The caller re-reads the
   task and decides whether the command still makes sense.

2. VALIDATION ERRORS ARE RAISED AT CONFIGURATION TIME.  Values are never
   silently clamped.

3. A FAILED COMMAND LEAVES THE TASK UNCHANGED.  Transitions are computed as
   a new record and persisted in one save.
"""


class ComplianceKernelError(Exception):
    """
    Base exception for all compliance kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COMPLIANCE_KERNEL_ERROR"


# Validation-related exceptions


class ValidationError(ComplianceKernelError):
    """Base exception for invalid activity configuration."""

    code: str = "VALIDATION_ERROR"


class DueDayOutOfRangeError(ValidationError):
    """due_day is outside the domain allowed for the frequency class."""

    code: str = "DUE_DAY_OUT_OF_RANGE"

    def __init__(self, frequency: str, due_day: int | None, max_due_day: int):
        self.frequency = frequency
        self.due_day = due_day
        self.max_due_day = max_due_day
        super().__init__(
            f"Due day must be between 1 and {max_due_day} for {frequency}, "
            f"got {due_day}"
        )


class WindowDaysOutOfRangeError(ValidationError):
    """Grace period or reminder window is negative or exceeds one period."""

    code: str = "WINDOW_DAYS_OUT_OF_RANGE"

    def __init__(
        self,
        field_name: str,
        value: int,
        frequency: str,
        max_days: int | None,
    ):
        self.field_name = field_name
        self.value = value
        self.frequency = frequency
        self.max_days = max_days
        if value < 0:
            detail = "cannot be negative"
        else:
            detail = f"cannot exceed {max_days} days"
        super().__init__(f"{field_name} {detail} for {frequency}, got {value}")


class MissingExplicitDueDateError(ValidationError):
    """AsNeeded activities require an explicit due date."""

    code: str = "MISSING_EXPLICIT_DUE_DATE"

    def __init__(self, activity_name: str):
        self.activity_name = activity_name
        super().__init__(
            f"Activity '{activity_name}' is As Needed and requires an exact due date"
        )


class NoStagesAssignedError(ValidationError):
    """Activity has no user assigned to any approval stage."""

    code: str = "NO_STAGES_ASSIGNED"

    def __init__(self, activity_name: str):
        self.activity_name = activity_name
        super().__init__(
            f"Activity '{activity_name}' must assign at least one of "
            "maker, checker, reviewer or auditor"
        )


# Authorization-related exceptions


class UnauthorizedError(ComplianceKernelError):
    """Base exception for commands issued by the wrong user."""

    code: str = "UNAUTHORIZED"


class StageOwnershipError(UnauthorizedError):
    """Acting user is not assigned to the task's current stage."""

    code: str = "STAGE_OWNERSHIP"

    def __init__(self, task_id: str, stage: str, actor_id: str):
        self.task_id = task_id
        self.stage = stage
        self.actor_id = actor_id
        super().__init__(
            f"User {actor_id} is not assigned to stage {stage} of task {task_id}"
        )


# State-related exceptions


class InvalidStateError(ComplianceKernelError):
    """Base exception for commands that do not fit the task's state."""

    code: str = "INVALID_STATE"


class TaskAlreadyTerminalError(InvalidStateError):
    """Task is Completed or Rejected and accepts no further decisions."""

    code: str = "TASK_ALREADY_TERMINAL"

    def __init__(self, task_id: str, status: str):
        self.task_id = task_id
        self.status = status
        super().__init__(f"Task {task_id} is already {status}")


class DuplicateSubmissionError(InvalidStateError):
    """Actor re-submitted the decision of a movement that is already closed."""

    code: str = "DUPLICATE_SUBMISSION"

    def __init__(self, task_id: str, actor_id: str, decision: str):
        self.task_id = task_id
        self.actor_id = actor_id
        self.decision = decision
        super().__init__(
            f"User {actor_id} already submitted '{decision}' on task {task_id}"
        )


class StaleTaskVersionError(InvalidStateError):
    """
    Optimistic concurrency conflict.

    The caller is expected to re-read the task and retry.
    """

    code: str = "STALE_TASK_VERSION"

    def __init__(
        self, task_id: str, expected_version: int, actual_version: int | None,
    ):
        self.task_id = task_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Task {task_id} was modified concurrently: expected version "
            f"{expected_version}, found {actual_version}"
        )


class InvalidLifecycleTransitionError(InvalidStateError):
    """Transition is not listed in the lifecycle transition table."""

    code: str = "INVALID_LIFECYCLE_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid lifecycle transition from {from_state} to {to_state}"
        )


class DuplicateTaskError(InvalidStateError):
    """A task was already spawned for this activity and due date."""

    code: str = "DUPLICATE_TASK"

    def __init__(self, activity_id: str, due_date: str):
        self.activity_id = activity_id
        self.due_date = due_date
        super().__init__(
            f"Task for activity {activity_id} due {due_date} already exists"
        )


# Lookup-related exceptions


class NotFoundError(ComplianceKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class TaskNotFoundError(NotFoundError):
    """Task with given ID was not found."""

    code: str = "TASK_NOT_FOUND"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class ActivityNotFoundError(NotFoundError):
    """Activity with given ID was not found."""

    code: str = "ACTIVITY_NOT_FOUND"

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity not found: {activity_id}")


# Recurrence-related exceptions


class RecurrenceError(ComplianceKernelError):
    """Base exception for recurrence engine misuse."""

    code: str = "RECURRENCE_ERROR"


class UnsupportedFrequencyError(RecurrenceError):
    """
    Recurrence engine invoked for a frequency it does not schedule.

    AsNeeded activities carry an explicit date; reaching the engine with one
    is a programming error in the caller.
    """

    code: str = "UNSUPPORTED_FREQUENCY"

    def __init__(self, frequency: str):
        self.frequency = frequency
        super().__init__(f"Recurrence is not defined for frequency {frequency}")


# Immutability-related exceptions


class ImmutabilityViolationError(ComplianceKernelError):
    """
    Attempted to modify or delete an immutable record.

    Closed movements are append-only history.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
