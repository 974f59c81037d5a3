"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the service boundary:
    entity snapshots (Submission, Employee, TeamMembership, Notification),
    the transition payload, and the structured results every write path
    returns (SubmissionResult, TransitionResult, SyncResult, BackfillResult,
    NotificationReadResult).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Models convert themselves with ``to_dto()``; selectors and services
    hand these objects, never ORM instances, to their callers.

Invariants enforced:
    - Every result states whether the write happened: ``is_success`` is
      True only when ``error_code`` is None.
    - Notification metadata is frozen (read-only mapping).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol
from uuid import UUID

from timesheet_kernel.domain.periods import period_label_from_key
from timesheet_kernel.domain.submission_status import (
    ActorRole,
    SubmissionStatus,
)


class ErrorCode(str, Enum):
    """Machine-readable failure codes returned to callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    DUPLICATE_MONTH_YEAR = "DUPLICATE_MONTH_YEAR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    IMMUTABILITY_VIOLATION = "IMMUTABILITY_VIOLATION"


class NotificationType(str, Enum):
    """Closed set of notification tags."""

    HOURS_SUBMITTED = "HOURS_SUBMITTED"
    HOURS_APPROVED = "HOURS_APPROVED"
    HOURS_REJECTED_MANAGER = "HOURS_REJECTED_MANAGER"
    HOURS_REJECTED_ADMIN = "HOURS_REJECTED_ADMIN"
    HOURS_CLARIFICATION_ADMIN = "HOURS_CLARIFICATION_ADMIN"
    PAYMENT_PROCESSED = "PAYMENT_PROCESSED"
    TEAM_ADDED = "TEAM_ADDED"
    TEAM_REMOVED = "TEAM_REMOVED"


class MembershipAction(str, Enum):
    """What the synchronizer did to the team-membership record."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    UNCHANGED = "UNCHANGED"


def _freeze(d: Mapping[str, Any] | None) -> Mapping[str, Any]:
    frozen: dict[str, Any] = {}
    for k, v in (d or {}).items():
        if isinstance(v, Mapping):
            frozen[k] = _freeze(v)
        elif isinstance(v, list):
            frozen[k] = tuple(v)
        else:
            frozen[k] = v
    return MappingProxyType(frozen)


# ---------------------------------------------------------------------------
# Entity snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Employee:
    """Snapshot of a person known to the workflow."""

    id: UUID
    name: str
    email: str
    role: ActorRole
    reporting_manager_id: UUID | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TeamMembership:
    """Active assignment of an employee to a manager's team."""

    id: UUID
    employee_id: UUID
    manager_id: UUID
    contract_start: date
    contract_end: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Submission:
    """
    Snapshot of one employee's hours for one calendar month.

    Guarantees:
        - ``status`` is always one of the six SubmissionStatus values.
        - ``period_key`` is the ``YYYY-MM`` of ``submission_date``.
    """

    id: UUID
    employee_id: UUID
    manager_id: UUID | None
    submission_date: date
    period_key: str
    hours_submitted: Decimal
    overtime_hours: Decimal | None
    description: str
    overtime_description: str | None
    status: SubmissionStatus
    manager_comment: str | None = None
    admin_comment: str | None = None
    invoice_id: str | None = None
    idempotency_key: str | None = None
    request_hash: str | None = None
    acted_by_id: UUID | None = None
    acted_by_role: ActorRole | None = None
    acted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def period_label(self) -> str:
        return period_label_from_key(self.period_key)


@dataclass(frozen=True)
class Notification:
    """A durable message addressed to one recipient."""

    id: UUID
    recipient_id: UUID
    recipient_role: ActorRole | None
    type: NotificationType
    title: str
    message: str
    read: bool
    entity_type: str | None
    entity_id: UUID | None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransitionPayload:
    """
    Kind-specific data for a transition.

    ``rejection_reason`` is required for REJECT, ``message`` for
    REQUEST_CLARIFICATION.  ``comment`` is an optional manager note on
    APPROVE; ``payment_reference`` an optional admin note on PROCESS_PAYMENT.
    """

    rejection_reason: str | None = None
    message: str | None = None
    comment: str | None = None
    payment_reference: str | None = None


class InvoiceGenerator(Protocol):
    """External collaborator that renders an invoice for a submission."""

    def generate(self, submission: Submission) -> str:
        """Render the invoice and return its identifier."""
        ...


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of a submission write (create, update, delete, invoice attach).

    ``created`` is False for an idempotent replay of an earlier create.
    On delete, ``submission`` is the snapshot taken before removal.
    """

    submission: Submission | None = None
    created: bool = False
    error_code: ErrorCode | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a single status transition."""

    success: bool
    submission: Submission | None = None
    previous_status: SubmissionStatus | None = None
    new_status: SubmissionStatus | None = None
    error_code: ErrorCode | None = None
    message: str | None = None
    is_admin_action: bool = False
    notifications_emitted: int = 0

    @property
    def is_success(self) -> bool:
        return self.success


@dataclass(frozen=True)
class SyncResult:
    """
    Outcome of a manager reassignment.

    ``submissions_synced`` is False when the membership change was stored
    but the bulk update of the employee's submissions failed.
    """

    employee_id: UUID
    previous_manager_id: UUID | None = None
    new_manager_id: UUID | None = None
    manager_changed: bool = False
    membership_action: MembershipAction | None = None
    submissions_updated: int = 0
    submissions_synced: bool = False
    error_code: ErrorCode | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class BackfillResult:
    """Totals from re-pointing every employee's submissions."""

    employees_processed: int
    submissions_updated: int
    errors: int = 0


@dataclass(frozen=True)
class NotificationReadResult:
    """Outcome of marking one notification read."""

    notification: Notification | None = None
    error_code: ErrorCode | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error_code is None
