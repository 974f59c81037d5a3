"""
Notification templates -- titles and messages for workflow notifications.

Pure functions, one per message the workflow sends.  Dates are rendered
with ``date_label`` ("Mar 01, 2025"); quoted reasons are stripped.
"""

from dataclasses import dataclass
from datetime import date

from timesheet_kernel.domain.dtos import NotificationType
from timesheet_kernel.domain.periods import date_label


@dataclass(frozen=True)
class NotificationDraft:
    """Type, title and message of a notification not yet written."""

    type: NotificationType
    title: str
    message: str


def hours_submitted(employee_name: str, submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_SUBMITTED,
        "New hours submitted",
        f"{employee_name} submitted hours for {date_label(submission_date)}.",
    )


def hours_approved(submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_APPROVED,
        "Hours approved",
        f"Your hours for {date_label(submission_date)} were approved.",
    )


def ready_for_processing(employee_name: str, submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_APPROVED,
        "Submission ready for processing",
        f"{employee_name}'s submission for {date_label(submission_date)} "
        "was approved by manager.",
    )


def rejected_by_manager(submission_date: date, reason: str) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_REJECTED_MANAGER,
        "Hours rejected",
        f"Your hours for {date_label(submission_date)} were rejected. "
        f'Reason: "{reason.strip()}".',
    )


def rejected_by_admin_to_employee(submission_date: date, reason: str) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_REJECTED_ADMIN,
        "Hours rejected by Admin",
        f"Your hours for {date_label(submission_date)} were rejected by Admin. "
        f'Reason: "{reason.strip()}".',
    )


def rejected_by_admin_to_manager(submission_date: date, reason: str) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_REJECTED_ADMIN,
        "Submission rejected by Admin",
        f"The submission for {date_label(submission_date)} was rejected by Admin. "
        f'Reason: "{reason.strip()}".',
    )


def clarification_to_manager(
    employee_name: str,
    submission_date: date,
    message: str,
) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_CLARIFICATION_ADMIN,
        "Clarification requested",
        f"Admin requested clarification for {employee_name}'s submission on "
        f'{date_label(submission_date)}. Message: "{message.strip()}".',
    )


def clarification_to_employee(submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.HOURS_CLARIFICATION_ADMIN,
        "Submission under review",
        f"Your submission for {date_label(submission_date)} is under review. "
        "Additional clarification has been requested.",
    )


def payment_to_employee(submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.PAYMENT_PROCESSED,
        "Payment processed",
        f"Payment for your hours submitted on {date_label(submission_date)} "
        "has been processed.",
    )


def payment_to_manager(employee_name: str, submission_date: date) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.PAYMENT_PROCESSED,
        "Payment processed",
        f"Payment for {employee_name}'s submission on "
        f"{date_label(submission_date)} has been processed.",
    )


def team_added(manager_name: str) -> NotificationDraft:
    return NotificationDraft(
        NotificationType.TEAM_ADDED,
        "Manager Assigned",
        f"You have been assigned to {manager_name}'s team.",
    )


def team_removed() -> NotificationDraft:
    return NotificationDraft(
        NotificationType.TEAM_REMOVED,
        "Manager Removed",
        "You have been removed from your team assignment.",
    )
