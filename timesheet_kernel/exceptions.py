"""
Typed Exception Hierarchy for the Timesheet Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure the workflow can report to a portal has a stable, machine-
readable code.  Callers branch on the class or on ``code``, never on the
message text:

    try:
        factory.create_submission(...)
    except DuplicateMonthYearError as e:
        show(f"You already submitted for {e.period_label}")

Service entry points convert these exceptions into structured results
(``SubmissionResult``, ``TransitionResult``, ``SyncResult``) carrying
``ErrorCode(e.code)``, so the UI layer is always told whether the write
happened.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TimesheetKernelError (base)
    |
    +-- NotFoundError
    |   +-- SubmissionNotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- NotificationNotFoundError
    |
    +-- SubmissionValidationError
    |
    +-- DuplicateMonthYearError
    |
    +-- ActionNotAllowedError
    |   +-- StaleSubmissionError
    |
    +-- PersistenceError
    |
    +-- UnknownStatusError
    |
    +-- ImmutabilityError
        +-- NotificationImmutableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                  | When Raised
----------------------|------------------------------------------------------
NOT_FOUND             | Submission, employee or notification does not exist
VALIDATION_ERROR      | Malformed or missing input (never reaches a write)
DUPLICATE_MONTH_YEAR  | Employee already has a submission for that month
ACTION_NOT_ALLOWED    | Guard rejected the action for the current status/role
PERSISTENCE_ERROR     | The store failed while writing
UNKNOWN_STATUS        | A stored status value outside the closed enumeration
IMMUTABILITY_VIOLATION| Mutating a notification beyond its read flag
"""


class TimesheetKernelError(Exception):
    """
    Base exception for all timesheet kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TIMESHEET_KERNEL_ERROR"


# Lookup failures


class NotFoundError(TimesheetKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class SubmissionNotFoundError(NotFoundError):
    """Submission with given ID was not found."""

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission not found: {submission_id}")


class EmployeeNotFoundError(NotFoundError):
    """Employee (or manager) with given ID was not found."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class NotificationNotFoundError(NotFoundError):
    """Notification not found for the given recipient."""

    def __init__(self, notification_id: str, recipient_id: str):
        self.notification_id = notification_id
        self.recipient_id = recipient_id
        super().__init__(
            f"Notification {notification_id} not found for recipient {recipient_id}"
        )


# Input and business-rule failures


class SubmissionValidationError(TimesheetKernelError):
    """Caller input is missing or malformed."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(reason)


class DuplicateMonthYearError(TimesheetKernelError):
    """
    Employee already has a submission dated in the same calendar month.

    The check is status-agnostic: a rejected or paid submission still
    occupies its month.
    """

    code: str = "DUPLICATE_MONTH_YEAR"

    def __init__(
        self,
        employee_id: str,
        period_label: str,
        existing_submission_id: str | None = None,
    ):
        self.employee_id = employee_id
        self.period_label = period_label
        self.existing_submission_id = existing_submission_id
        super().__init__(
            f"You already have a submission for {period_label}. "
            "Please edit that submission instead of creating a new one."
        )


class ActionNotAllowedError(TimesheetKernelError):
    """The current status does not permit this action for this role."""

    code: str = "ACTION_NOT_ALLOWED"

    def __init__(
        self,
        submission_id: str,
        action: str,
        actor_role: str,
        current_status: str | None,
        reason: str,
    ):
        self.submission_id = submission_id
        self.action = action
        self.actor_role = actor_role
        self.current_status = current_status
        self.reason = reason
        super().__init__(reason)


class StaleSubmissionError(ActionNotAllowedError):
    """
    The submission changed between the guard check and the write.

    Raised when the conditional UPDATE matched no row because another actor
    already moved the submission out of the status we observed.
    """

    def __init__(
        self,
        submission_id: str,
        action: str,
        actor_role: str,
        observed_status: str,
    ):
        super().__init__(
            submission_id=submission_id,
            action=action,
            actor_role=actor_role,
            current_status=observed_status,
            reason=(
                "Submission was modified concurrently; "
                "refresh and try again"
            ),
        )
        self.observed_status = observed_status


# Store failures


class PersistenceError(TimesheetKernelError):
    """The relational store failed while writing."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"The {operation} could not be saved. Please try again."
        )


# Status model


class UnknownStatusError(TimesheetKernelError):
    """A status value outside the closed enumeration was encountered."""

    code: str = "UNKNOWN_STATUS"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown submission status: {value!r}")


# Immutability


class ImmutabilityError(TimesheetKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class NotificationImmutableError(ImmutabilityError):
    """Attempt to change a notification beyond its read flag, or delete it."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, notification_id: str, reason: str):
        self.notification_id = notification_id
        self.reason = reason
        super().__init__(
            f"Cannot modify notification {notification_id}: {reason}"
        )
