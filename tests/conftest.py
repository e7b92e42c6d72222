"""
Pytest fixtures for the compliance kernel test suite.

Provides:
- In-memory SQLite sessions (tables created per test)
- Deterministic clock
- Activity / task builders
- Captured structured logs
"""

import json
import logging
from datetime import datetime
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import compliance_kernel.models  # noqa: F401  registers tables
from compliance_kernel.db.base import Base
from compliance_kernel.domain.activity import Activity, StageAssignment
from compliance_kernel.domain.clock import DeterministicClock
from compliance_kernel.domain.recurrence import FrequencyClass
from compliance_kernel.domain.task import spawn_task
from compliance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from compliance_kernel.services.task_store import InMemoryTaskStore
from compliance_kernel.services.workflow_service import TaskWorkflowService

MAKER = "maker-1"
CHECKER = "checker-1"
REVIEWER = "reviewer-1"
AUDITOR = "auditor-1"

# Monday 2024-06-03, mid-morning
DEFAULT_NOW = datetime(2024, 6, 3, 10, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _json_logging_for_suite():
    """Kernel loggers emit JSON at DEBUG for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _isolated_log_context():
    """No task or actor ids leak from one test into the next."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Kernel log lines emitted during the test, parsed from JSON.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "decision_submitted" for r in logs)
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    kernel_logger = logging.getLogger("compliance_kernel")
    previous_level = kernel_logger.level
    kernel_logger.setLevel(logging.DEBUG)
    kernel_logger.addHandler(capture)

    def _parsed() -> list[dict]:
        return [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    yield _parsed

    kernel_logger.removeHandler(capture)
    kernel_logger.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.rollback()
        s.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(fixed_time=DEFAULT_NOW)


@pytest.fixture
def full_assignment():
    return StageAssignment(
        maker=MAKER, checker=CHECKER, reviewer=REVIEWER, auditor=AUDITOR,
    )


@pytest.fixture
def make_activity(full_assignment):
    """Factory for activities; defaults to Monthly on the 10th, all stages."""

    def _make(**overrides) -> Activity:
        fields = dict(
            name="GST return filing",
            frequency=FrequencyClass.MONTHLY,
            due_day=10,
            assignment=full_assignment,
            grace_period_days=3,
            reminder_days=2,
            act_name="GST Act",
            department_name="Finance",
        )
        fields.update(overrides)
        return Activity(**fields)

    return _make


@pytest.fixture
def make_task(make_activity):
    """Factory for freshly spawned task records."""

    def _make(now: datetime = DEFAULT_NOW, **activity_overrides):
        return spawn_task(make_activity(**activity_overrides), now)

    return _make


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def workflow(store, clock):
    return TaskWorkflowService(store, clock=clock)
