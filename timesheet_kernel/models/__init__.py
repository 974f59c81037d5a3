"""ORM models.  Importing this package registers every table on Base.metadata."""

from timesheet_kernel.models.employee import EmployeeModel, TeamMembershipModel
from timesheet_kernel.models.notification import NotificationModel
from timesheet_kernel.models.submission import SUBMISSION_STATUS_VALUES, SubmissionModel

__all__ = [
    "EmployeeModel",
    "NotificationModel",
    "SUBMISSION_STATUS_VALUES",
    "SubmissionModel",
    "TeamMembershipModel",
]
