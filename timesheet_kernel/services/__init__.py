"""Write-path services.  None of them commit; the caller owns the transaction."""

from timesheet_kernel.services.manager_sync import ManagerAssignmentSynchronizer
from timesheet_kernel.services.notification_emitter import NotificationEmitter
from timesheet_kernel.services.submission_factory import SubmissionFactory
from timesheet_kernel.services.transition_executor import TransitionExecutor

__all__ = [
    "ManagerAssignmentSynchronizer",
    "NotificationEmitter",
    "SubmissionFactory",
    "TransitionExecutor",
]
