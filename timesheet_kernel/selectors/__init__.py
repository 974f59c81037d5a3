"""Read-only selectors returning frozen DTOs."""

from timesheet_kernel.selectors.base import BaseSelector
from timesheet_kernel.selectors.employee_selector import EmployeeSelector
from timesheet_kernel.selectors.notification_selector import NotificationSelector
from timesheet_kernel.selectors.submission_selector import SubmissionSelector

__all__ = [
    "BaseSelector",
    "EmployeeSelector",
    "NotificationSelector",
    "SubmissionSelector",
]
