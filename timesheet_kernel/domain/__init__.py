"""
Pure domain layer: status model, periods, DTOs, clock and policy.

Nothing in this package performs I/O or imports SQLAlchemy.
"""

from timesheet_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timesheet_kernel.domain.dtos import (
    BackfillResult,
    Employee,
    ErrorCode,
    InvoiceGenerator,
    MembershipAction,
    Notification,
    NotificationReadResult,
    NotificationType,
    Submission,
    SubmissionResult,
    SyncResult,
    TeamMembership,
    TransitionPayload,
    TransitionResult,
)
from timesheet_kernel.domain.periods import (
    date_label,
    parse_submission_date,
    period_key,
    period_label,
)
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.domain.submission_status import (
    ActorRole,
    Audience,
    StatusDisplay,
    SubmissionStatus,
    TransitionKind,
    admin_can_process_payment,
    admin_can_reject,
    admin_can_request_clarification,
    denial_reason,
    employee_can_delete,
    employee_can_edit,
    guard_for,
    manager_can_approve,
    manager_can_reject,
    normalize_status,
    status_display,
    target_status,
)

__all__ = [
    "ActorRole",
    "Audience",
    "BackfillResult",
    "Clock",
    "DeterministicClock",
    "Employee",
    "ErrorCode",
    "InvoiceGenerator",
    "MembershipAction",
    "Notification",
    "NotificationReadResult",
    "NotificationType",
    "StatusDisplay",
    "Submission",
    "SubmissionResult",
    "SubmissionStatus",
    "SyncResult",
    "SystemClock",
    "TeamMembership",
    "TransitionKind",
    "TransitionPayload",
    "TransitionResult",
    "WorkflowPolicy",
    "admin_can_process_payment",
    "admin_can_reject",
    "admin_can_request_clarification",
    "date_label",
    "denial_reason",
    "employee_can_delete",
    "employee_can_edit",
    "guard_for",
    "manager_can_approve",
    "manager_can_reject",
    "normalize_status",
    "parse_submission_date",
    "period_key",
    "period_label",
    "status_display",
    "target_status",
]
