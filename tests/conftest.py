"""
Pytest fixtures for the timesheet kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (SAVEPOINT-capable engine)
- Deterministic clock
- Employee / manager / admin rows
- Service and selector fixtures wired to the test session
- Structured log capture
- Store-failure injection via SQLite triggers
"""

import json
import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import text

from timesheet_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from timesheet_kernel.domain.clock import DeterministicClock
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from timesheet_kernel.models.employee import EmployeeModel, TeamMembershipModel
from timesheet_kernel.selectors.employee_selector import EmployeeSelector
from timesheet_kernel.selectors.notification_selector import NotificationSelector
from timesheet_kernel.selectors.submission_selector import SubmissionSelector
from timesheet_kernel.services.manager_sync import ManagerAssignmentSynchronizer
from timesheet_kernel.services.notification_emitter import NotificationEmitter
from timesheet_kernel.services.submission_factory import SubmissionFactory
from timesheet_kernel.services.transition_executor import TransitionExecutor

BASE_TIME = datetime(2025, 6, 10, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture timesheet_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, submission_factory):
            submission_factory.create_submission(...)
            logs = captured_logs()
            assert any(r["message"] == "submission_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("timesheet_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session():
    """Session on a fresh in-memory database; rolled back and discarded after the test."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()
    reset_engine()


@pytest.fixture
def fail_writes(session):
    """
    Make the store refuse writes to a table.

    Usage::

        with fail_writes("submissions", "UPDATE"):
            result = executor.apply_transition(...)
    """

    @contextmanager
    def _fail(table: str, operation: str = "INSERT"):
        name = f"fail_{operation.lower()}_{table}"
        session.execute(text(
            f"CREATE TRIGGER {name} BEFORE {operation} ON {table} "
            "BEGIN SELECT RAISE(ABORT, 'store unavailable'); END;"
        ))
        try:
            yield
        finally:
            session.execute(text(f"DROP TRIGGER IF EXISTS {name}"))

    return _fail


# =============================================================================
# Clock and policy
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2025-06-10 09:00 UTC."""
    return DeterministicClock(BASE_TIME)


@pytest.fixture
def workflow_policy():
    return WorkflowPolicy()


# =============================================================================
# People
# =============================================================================


@pytest.fixture
def make_employee(session, deterministic_clock):
    """Factory fixture: insert an employee row and return the model."""

    def _make(name, role="EMPLOYEE", reporting_manager_id=None, created_at=None):
        model = EmployeeModel(
            name=name,
            email=f"{name.lower().replace(' ', '.')}.{uuid4().hex[:6]}@example.com",
            role=role,
            reporting_manager_id=reporting_manager_id,
            created_at=created_at or deterministic_clock.now(),
        )
        session.add(model)
        session.flush()
        return model

    return _make


@pytest.fixture
def admin(make_employee):
    return make_employee("Ada Admin", role="ADMIN", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def manager(make_employee):
    return make_employee("Mia Manager", role="MANAGER")


@pytest.fixture
def employee(session, make_employee, manager):
    """Employee reporting to ``manager`` with an active team membership."""
    model = make_employee("Eli Employee", reporting_manager_id=manager.id)
    session.add(TeamMembershipModel(
        employee_id=model.id,
        manager_id=manager.id,
        contract_start=date(2025, 1, 1),
        contract_end=date(2025, 12, 31),
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    ))
    session.flush()
    return model


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def notification_emitter(session, deterministic_clock):
    return NotificationEmitter(session, deterministic_clock)


@pytest.fixture
def submission_factory(session, deterministic_clock, workflow_policy, notification_emitter):
    return SubmissionFactory(
        session, deterministic_clock, workflow_policy, notification_emitter,
    )


@pytest.fixture
def transition_executor(session, deterministic_clock, workflow_policy, notification_emitter):
    return TransitionExecutor(
        session, deterministic_clock, workflow_policy, notification_emitter,
    )


@pytest.fixture
def manager_sync(session, deterministic_clock, workflow_policy, notification_emitter):
    return ManagerAssignmentSynchronizer(
        session, deterministic_clock, workflow_policy, notification_emitter,
    )


@pytest.fixture
def submission_selector(session):
    return SubmissionSelector(session)


@pytest.fixture
def notification_selector(session):
    return NotificationSelector(session)


@pytest.fixture
def employee_selector(session):
    return EmployeeSelector(session)


@pytest.fixture
def create_submission(submission_factory, employee):
    """
    Factory fixture: create a submission for ``employee`` with sensible defaults.

    Returns the SubmissionResult.
    """

    def _create(
        *,
        employee_id=None,
        submission_date=date(2025, 6, 30),
        hours_submitted="160",
        description="Platform work",
        idempotency_key=None,
        overtime_hours=None,
        overtime_description=None,
    ):
        return submission_factory.create_submission(
            employee_id=employee_id or employee.id,
            submission_date=submission_date,
            hours_submitted=hours_submitted,
            description=description,
            idempotency_key=idempotency_key or str(uuid4()),
            overtime_hours=overtime_hours,
            overtime_description=overtime_description,
        )

    return _create
