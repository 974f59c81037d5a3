"""
Submission Status Model -- states, guards, and display mapping.

Responsibility:
    Defines the closed set of submission states and the pure predicates that
    decide which role may perform which transition from which state.  The
    same predicates gate buttons in the portals and authorize writes in the
    TransitionExecutor, so the two can never drift apart.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by services/, selectors/ and any presentation layer.

Invariants enforced:
    - Exactly six states exist; ``normalize_status`` refuses anything else.
    - Employees may delete only while SUBMITTED.
    - Managers act only on SUBMITTED.
    - Admins act only on MANAGER_APPROVED (a total gate, not advisory).

Failure modes:
    - UnknownStatusError from ``normalize_status`` for a value that is
      neither a current nor a legacy status.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from timesheet_kernel.exceptions import UnknownStatusError


class SubmissionStatus(str, Enum):
    """
    Workflow state of a submission.

    Lifecycle:
        SUBMITTED -> MANAGER_APPROVED -> ADMIN_PAID
        SUBMITTED -> MANAGER_REJECTED -> (employee edit) -> SUBMITTED
        MANAGER_APPROVED -> ADMIN_REJECTED -> (employee edit) -> SUBMITTED
        MANAGER_APPROVED -> NEEDS_CLARIFICATION
    """

    SUBMITTED = "SUBMITTED"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    MANAGER_REJECTED = "MANAGER_REJECTED"
    NEEDS_CLARIFICATION = "NEEDS_CLARIFICATION"
    ADMIN_PAID = "ADMIN_PAID"
    ADMIN_REJECTED = "ADMIN_REJECTED"


class ActorRole(str, Enum):
    """Role an actor holds when calling into the workflow."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class TransitionKind(str, Enum):
    """Kind of status change a reviewer can request."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REQUEST_CLARIFICATION = "REQUEST_CLARIFICATION"
    PROCESS_PAYMENT = "PROCESS_PAYMENT"


class Audience(str, Enum):
    """Portal a status label is rendered for."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


# Values written by earlier releases of the portals.
_LEGACY_STATUSES: dict[str, SubmissionStatus] = {
    "APPROVED": SubmissionStatus.MANAGER_APPROVED,
    "REJECTED": SubmissionStatus.MANAGER_REJECTED,
    "PAYMENT_DONE": SubmissionStatus.ADMIN_PAID,
}


def normalize_status(value: "SubmissionStatus | str") -> SubmissionStatus:
    """
    Coerce a stored or caller-supplied value to a SubmissionStatus.

    Matching is case-insensitive and tolerates surrounding whitespace.
    Legacy values are mapped onto their current equivalents.

    Raises:
        UnknownStatusError: If the value is not a known status.
    """
    if isinstance(value, SubmissionStatus):
        return value
    if not isinstance(value, str):
        raise UnknownStatusError(repr(value))

    key = value.strip().upper()
    if key in SubmissionStatus.__members__:
        return SubmissionStatus[key]
    if key in _LEGACY_STATUSES:
        return _LEGACY_STATUSES[key]
    raise UnknownStatusError(value)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

_EMPLOYEE_EDITABLE = frozenset({
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.MANAGER_REJECTED,
    SubmissionStatus.ADMIN_REJECTED,
})


def employee_can_edit(status: SubmissionStatus | str) -> bool:
    """True while the employee may still change (or resubmit) the hours."""
    return normalize_status(status) in _EMPLOYEE_EDITABLE


def employee_can_delete(status: SubmissionStatus | str) -> bool:
    """True only before any reviewer has acted."""
    return normalize_status(status) == SubmissionStatus.SUBMITTED


def manager_can_approve(status: SubmissionStatus | str) -> bool:
    return normalize_status(status) == SubmissionStatus.SUBMITTED


def manager_can_reject(status: SubmissionStatus | str) -> bool:
    return normalize_status(status) == SubmissionStatus.SUBMITTED


def admin_can_process_payment(status: SubmissionStatus | str) -> bool:
    return normalize_status(status) == SubmissionStatus.MANAGER_APPROVED


def admin_can_reject(status: SubmissionStatus | str) -> bool:
    return normalize_status(status) == SubmissionStatus.MANAGER_APPROVED


def admin_can_request_clarification(status: SubmissionStatus | str) -> bool:
    return normalize_status(status) == SubmissionStatus.MANAGER_APPROVED


Guard = Callable[[SubmissionStatus | str], bool]

_GUARDS: dict[tuple[ActorRole, TransitionKind], Guard] = {
    (ActorRole.MANAGER, TransitionKind.APPROVE): manager_can_approve,
    (ActorRole.MANAGER, TransitionKind.REJECT): manager_can_reject,
    (ActorRole.ADMIN, TransitionKind.PROCESS_PAYMENT): admin_can_process_payment,
    (ActorRole.ADMIN, TransitionKind.REJECT): admin_can_reject,
    (ActorRole.ADMIN, TransitionKind.REQUEST_CLARIFICATION): admin_can_request_clarification,
}

_TARGETS: dict[tuple[ActorRole, TransitionKind], SubmissionStatus] = {
    (ActorRole.MANAGER, TransitionKind.APPROVE): SubmissionStatus.MANAGER_APPROVED,
    (ActorRole.MANAGER, TransitionKind.REJECT): SubmissionStatus.MANAGER_REJECTED,
    (ActorRole.ADMIN, TransitionKind.PROCESS_PAYMENT): SubmissionStatus.ADMIN_PAID,
    (ActorRole.ADMIN, TransitionKind.REJECT): SubmissionStatus.ADMIN_REJECTED,
    (ActorRole.ADMIN, TransitionKind.REQUEST_CLARIFICATION): SubmissionStatus.NEEDS_CLARIFICATION,
}

_DENIAL_REASONS: dict[tuple[ActorRole, TransitionKind], str] = {
    (ActorRole.MANAGER, TransitionKind.APPROVE):
        "Only submitted hours can be approved",
    (ActorRole.MANAGER, TransitionKind.REJECT):
        "Only submitted hours can be rejected",
    (ActorRole.ADMIN, TransitionKind.PROCESS_PAYMENT):
        "Payment can only be processed for manager-approved submissions",
    (ActorRole.ADMIN, TransitionKind.REJECT):
        "Only manager-approved submissions can be rejected by Admin",
    (ActorRole.ADMIN, TransitionKind.REQUEST_CLARIFICATION):
        "Clarification can only be requested for manager-approved submissions",
}


def guard_for(role: ActorRole, kind: TransitionKind) -> Guard | None:
    """
    Return the predicate governing ``(role, kind)``.

    ``None`` means the role can never perform that kind of transition
    (employees perform none, managers cannot pay or request clarification,
    admins cannot approve).
    """
    return _GUARDS.get((ActorRole(role), TransitionKind(kind)))


def target_status(role: ActorRole, kind: TransitionKind) -> SubmissionStatus:
    """
    Status a permitted transition moves the submission into.

    Raises:
        ValueError: If the role can never perform the kind.
    """
    key = (ActorRole(role), TransitionKind(kind))
    if key not in _TARGETS:
        raise ValueError(f"{key[0].value} cannot perform {key[1].value}")
    return _TARGETS[key]


def denial_reason(
    role: ActorRole,
    kind: TransitionKind,
    status: SubmissionStatus | str,
) -> str:
    """Human-readable explanation for a refused transition."""
    key = (ActorRole(role), TransitionKind(kind))
    reason = _DENIAL_REASONS.get(key)
    if reason is None:
        return (
            f"{key[0].value.title()} users cannot "
            f"{key[1].value.lower().replace('_', ' ')} submissions"
        )
    current = normalize_status(status)
    return f"{reason} (current status: {current.value})"


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusDisplay:
    """Badge styling and label for one status in one portal."""

    bg_class: str
    text_class: str
    label: str
    color: str


_COLORS: dict[SubmissionStatus, str] = {
    SubmissionStatus.SUBMITTED: "yellow",
    SubmissionStatus.MANAGER_APPROVED: "blue",
    SubmissionStatus.MANAGER_REJECTED: "red",
    SubmissionStatus.NEEDS_CLARIFICATION: "amber",
    SubmissionStatus.ADMIN_PAID: "green",
    SubmissionStatus.ADMIN_REJECTED: "red",
}

_LABELS: dict[SubmissionStatus, dict[Audience, str]] = {
    SubmissionStatus.SUBMITTED: {
        Audience.EMPLOYEE: "Submitted",
        Audience.MANAGER: "Pending Your Review",
        Audience.ADMIN: "Pending Manager Review",
    },
    SubmissionStatus.MANAGER_APPROVED: {
        Audience.EMPLOYEE: "Approved (Pending Payment)",
        Audience.MANAGER: "Approved",
        Audience.ADMIN: "Ready for Payment",
    },
    SubmissionStatus.MANAGER_REJECTED: {
        Audience.EMPLOYEE: "Rejected - Please Revise",
        Audience.MANAGER: "Rejected - Awaiting Employee Update",
        Audience.ADMIN: "Manager Rejected",
    },
    SubmissionStatus.NEEDS_CLARIFICATION: {
        Audience.EMPLOYEE: "Under Review",
        Audience.MANAGER: "Clarification Requested",
        Audience.ADMIN: "Awaiting Clarification",
    },
    SubmissionStatus.ADMIN_PAID: {
        Audience.EMPLOYEE: "Paid",
        Audience.MANAGER: "Paid",
        Audience.ADMIN: "Paid",
    },
    SubmissionStatus.ADMIN_REJECTED: {
        Audience.EMPLOYEE: "Rejected - Please Revise",
        Audience.MANAGER: "Admin Rejected - Awaiting Employee Update",
        Audience.ADMIN: "Rejected",
    },
}


def status_display(
    status: SubmissionStatus | str,
    audience: Audience = Audience.EMPLOYEE,
) -> StatusDisplay:
    """Badge classes and audience-specific label for a status."""
    current = normalize_status(status)
    color = _COLORS[current]
    return StatusDisplay(
        bg_class=f"bg-{color}-50",
        text_class=f"text-{color}-800",
        label=_LABELS[current][Audience(audience)],
        color=color,
    )
