"""
SubmissionFactory -- creation, employee edits and invoice linkage.

Responsibility:
    Creates a submission for an employee and calendar month, enforcing one
    submission per employee per month and collapsing retried requests via a
    caller-supplied idempotency key.  Also owns the employee-side edits
    (update/resubmit, delete) and attaching the external invoice reference.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Idempotency: the ``(employee_id, idempotency_key)`` lookup runs before
      any validation; a replay returns the stored row with ``created=False``
      even if its other fields differ (the mismatch is logged).
    - One submission per (employee, YYYY-MM), regardless of status.  Checked
      before insert and backed by UNIQUE(employee_id, period_key); a
      constraint clash from a concurrent insert is re-resolved into either an
      idempotent replay or DUPLICATE_MONTH_YEAR.
    - New submissions start SUBMITTED with ``manager_id`` copied from the
      employee's reporting manager at creation time.
    - Employees edit only while ``employee_can_edit`` holds and delete only
      while ``employee_can_delete`` holds.  Editing a rejected submission
      resubmits it.

Failure modes (returned as SubmissionResult.error_code):
    - VALIDATION_ERROR: bad input, before any write.
    - NOT_FOUND: unknown employee or submission.
    - DUPLICATE_MONTH_YEAR: the month is already taken.
    - ACTION_NOT_ALLOWED: not the owner, or status forbids the edit/delete,
      or a different invoice is already attached.
    - PERSISTENCE_ERROR: the store refused the write.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.dtos import (
    ErrorCode,
    InvoiceGenerator,
    SubmissionResult,
)
from timesheet_kernel.domain import notification_templates as templates
from timesheet_kernel.domain.periods import (
    parse_submission_date,
    period_key,
    period_label,
)
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.domain.submission_status import (
    ActorRole,
    SubmissionStatus,
    employee_can_delete,
    employee_can_edit,
    normalize_status,
)
from timesheet_kernel.exceptions import (
    ActionNotAllowedError,
    DuplicateMonthYearError,
    EmployeeNotFoundError,
    PersistenceError,
    SubmissionNotFoundError,
    SubmissionValidationError,
    TimesheetKernelError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.employee import EmployeeModel
from timesheet_kernel.models.submission import SubmissionModel
from timesheet_kernel.selectors.submission_selector import SubmissionSelector
from timesheet_kernel.services.base import BaseService
from timesheet_kernel.services.notification_emitter import NotificationEmitter
from timesheet_kernel.utils.hashing import hash_payload

logger = get_logger("services.submission_factory")

_HOURS_QUANTUM = Decimal("0.01")


def _require_text(value: Any, field: str, reason: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise SubmissionValidationError(field, reason)
    return value.strip()


def _to_hours(value: Any, field: str, label: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise SubmissionValidationError(field, f"{label} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise SubmissionValidationError(field, f"{label} must be a finite number")
    try:
        hours = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise SubmissionValidationError(field, f"{label} must be a number") from exc
    if not hours.is_finite():
        raise SubmissionValidationError(field, f"{label} must be a finite number")
    return hours.quantize(_HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def _fingerprint_value(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    if isinstance(value, str):
        return value.strip()
    return value


def request_fingerprint(
    submission_date: Any,
    hours_submitted: Any,
    description: Any,
    overtime_hours: Any,
    overtime_description: Any,
) -> str:
    """SHA-256 of the create payload, used to flag mismatched replays."""
    return hash_payload({
        "submission_date": _fingerprint_value(submission_date),
        "hours_submitted": _fingerprint_value(hours_submitted),
        "description": _fingerprint_value(description),
        "overtime_hours": _fingerprint_value(overtime_hours),
        "overtime_description": _fingerprint_value(overtime_description),
    })


@dataclass(frozen=True)
class _SubmissionFields:
    """Normalized create/update input."""

    submission_date: date
    hours_submitted: Decimal
    overtime_hours: Decimal | None
    description: str
    overtime_description: str | None


def _validate_fields(
    submission_date: date | datetime | str | None,
    hours_submitted: Any,
    description: Any,
    overtime_hours: Any,
    overtime_description: Any,
) -> _SubmissionFields:
    """
    Validate and normalize caller input.

    Raises:
        SubmissionValidationError: On the first invalid field.
    """
    day = parse_submission_date(submission_date)

    hours = _to_hours(hours_submitted, "hours_submitted", "Hours submitted")
    if hours <= 0:
        raise SubmissionValidationError(
            "hours_submitted", "Hours submitted must be greater than 0"
        )

    overtime = None
    if overtime_hours is not None and overtime_hours != "":
        overtime = _to_hours(overtime_hours, "overtime_hours", "Overtime hours")
        if overtime < 0:
            raise SubmissionValidationError(
                "overtime_hours", "Overtime hours cannot be negative"
            )

    text = _require_text(description, "description", "Work description is required")

    if overtime is None or overtime == 0:
        # Zero overtime is stored as no overtime
        return _SubmissionFields(day, hours, None, text, None)

    return _SubmissionFields(
        day,
        hours,
        overtime,
        text,
        _require_text(
            overtime_description,
            "overtime_description",
            "Overtime description is required when overtime hours are entered",
        ),
    )


class SubmissionFactory(BaseService[SubmissionModel]):
    """
    Creates submissions and applies employee-side edits.

    Contract:
        Every public method returns a SubmissionResult; kernel errors and
        store failures never escape as exceptions.

    Non-goals:
        - Does NOT apply reviewer transitions (TransitionExecutor).
        - Does NOT render invoices; ``issue_invoice`` delegates to an
          InvoiceGenerator and only stores the returned id.
        - Does NOT call ``session.commit()``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        notifier: NotificationEmitter | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or WorkflowPolicy()
        self._notifier = notifier or NotificationEmitter(session, self._clock)
        self._submissions = SubmissionSelector(session)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_submission(
        self,
        employee_id: UUID,
        submission_date: date | datetime | str | None,
        hours_submitted: Any,
        description: str | None,
        idempotency_key: str | None,
        overtime_hours: Any = None,
        overtime_description: str | None = None,
    ) -> SubmissionResult:
        """
        Create a submission, or return the one already created for this key.

        Preconditions:
            - ``idempotency_key`` is generated by the client once per
              submission attempt and reused on retries.

        Postconditions:
            - On success a SUBMITTED row exists and the assigned manager has
              been notified (when enabled by policy).
            - On replay (``created=False``) nothing is written.
            - On failure nothing is written.

        Args:
            employee_id: Submitting employee.
            submission_date: Any date inside the covered month.
            hours_submitted: Regular hours, > 0.
            description: What the hours were spent on.
            idempotency_key: Client token for this creation attempt.
            overtime_hours: Optional overtime, >= 0.
            overtime_description: Required when overtime_hours > 0.

        Returns:
            SubmissionResult with the created or reused submission.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=employee_id,
            actor_role=ActorRole.EMPLOYEE,
            employee_id=employee_id,
        ):
            try:
                return self._create(
                    employee_id=employee_id,
                    submission_date=submission_date,
                    hours_submitted=hours_submitted,
                    description=description,
                    idempotency_key=idempotency_key,
                    overtime_hours=overtime_hours,
                    overtime_description=overtime_description,
                )
            except TimesheetKernelError as exc:
                return self._failure("submission_create_failed", exc)

    def _create(
        self,
        employee_id: UUID,
        submission_date: Any,
        hours_submitted: Any,
        description: Any,
        idempotency_key: Any,
        overtime_hours: Any,
        overtime_description: Any,
    ) -> SubmissionResult:
        key = _require_text(
            idempotency_key, "idempotency_key", "Idempotency key is required"
        )
        try:
            request_hash = request_fingerprint(
                submission_date, hours_submitted, description,
                overtime_hours, overtime_description,
            )
        except TypeError as exc:
            # Values JSON cannot encode never validate; name the field if we can
            _validate_fields(
                submission_date, hours_submitted, description,
                overtime_hours, overtime_description,
            )
            raise SubmissionValidationError(
                "request", "Submission fields could not be read"
            ) from exc

        existing = self._find_by_idempotency_key(employee_id, key)
        if existing is not None:
            return self._replay(existing, request_hash)

        fields = _validate_fields(
            submission_date, hours_submitted, description,
            overtime_hours, overtime_description,
        )

        employee = self._session.get(EmployeeModel, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))

        period = period_key(fields.submission_date)
        duplicate = self._submissions.find_in_period(employee_id, period)
        if duplicate is not None:
            raise DuplicateMonthYearError(
                str(employee_id),
                period_label(fields.submission_date),
                str(duplicate.id),
            )

        now = self._clock.now()
        model = SubmissionModel(
            employee_id=employee_id,
            manager_id=employee.reporting_manager_id,
            submission_date=fields.submission_date,
            period_key=period,
            hours_submitted=fields.hours_submitted,
            overtime_hours=fields.overtime_hours,
            description=fields.description,
            overtime_description=fields.overtime_description,
            status=SubmissionStatus.SUBMITTED.value,
            idempotency_key=key,
            request_hash=request_hash,
            created_at=now,
            updated_at=now,
        )

        savepoint = self._session.begin_nested()
        try:
            self._session.add(model)
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            # Concurrent insert -- another request took the key or the month
            savepoint.rollback()
            logger.warning(
                "concurrent_submission_insert_conflict",
                extra={"period_key": period, "idempotency_key": key},
            )
            existing = self._find_by_idempotency_key(employee_id, key)
            if existing is not None:
                return self._replay(existing, request_hash)
            duplicate = self._submissions.find_in_period(employee_id, period)
            if duplicate is not None:
                raise DuplicateMonthYearError(
                    str(employee_id),
                    period_label(fields.submission_date),
                    str(duplicate.id),
                ) from exc
            raise PersistenceError("submission", str(exc)) from exc
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise PersistenceError("submission", str(exc)) from exc

        submission = model.to_dto()
        logger.info(
            "submission_created",
            extra={
                "submission_id": str(submission.id),
                "period_key": period,
                "hours_submitted": submission.hours_submitted,
                "manager_id": str(submission.manager_id) if submission.manager_id else None,
            },
        )

        if self._policy.notify_manager_on_submission and employee.reporting_manager_id:
            self._notifier.emit_draft(
                employee.reporting_manager_id,
                templates.hours_submitted(employee.name, fields.submission_date),
                {
                    "submission_id": submission.id,
                    "employee_id": employee_id,
                    "period_key": period,
                },
                recipient_role=ActorRole.MANAGER,
                entity_type="SUBMISSION",
                entity_id=submission.id,
            )

        return SubmissionResult(
            submission=submission,
            created=True,
            message="Submission created",
        )

    def _replay(self, existing: SubmissionModel, request_hash: str) -> SubmissionResult:
        if existing.request_hash != request_hash:
            logger.warning(
                "submission_idempotency_payload_mismatch",
                extra={
                    "submission_id": str(existing.id),
                    "stored_hash": existing.request_hash,
                    "request_hash": request_hash,
                },
            )
        logger.info(
            "submission_duplicate",
            extra={"submission_id": str(existing.id)},
        )
        return SubmissionResult(
            submission=existing.to_dto(),
            created=False,
            message="Submission already created for this request",
        )

    def _find_by_idempotency_key(
        self, employee_id: UUID, key: str,
    ) -> SubmissionModel | None:
        return self._session.execute(
            select(SubmissionModel).where(
                SubmissionModel.employee_id == employee_id,
                SubmissionModel.idempotency_key == key,
            )
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Employee edits
    # ------------------------------------------------------------------

    def update_submission(
        self,
        submission_id: UUID,
        employee_id: UUID,
        submission_date: date | datetime | str | None,
        hours_submitted: Any,
        description: str | None,
        overtime_hours: Any = None,
        overtime_description: str | None = None,
    ) -> SubmissionResult:
        """
        Edit a submission; a rejected one is resubmitted for review.

        The duplicate-month check ignores the submission being edited.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=employee_id,
            actor_role=ActorRole.EMPLOYEE,
            employee_id=employee_id,
            submission_id=submission_id,
        ):
            try:
                return self._update(
                    submission_id, employee_id, submission_date, hours_submitted,
                    description, overtime_hours, overtime_description,
                )
            except TimesheetKernelError as exc:
                return self._failure("submission_update_failed", exc)

    def _update(
        self,
        submission_id: UUID,
        employee_id: UUID,
        submission_date: Any,
        hours_submitted: Any,
        description: Any,
        overtime_hours: Any,
        overtime_description: Any,
    ) -> SubmissionResult:
        model = self._load_owned(submission_id, employee_id, action="edit")
        current = normalize_status(model.status)
        if not employee_can_edit(current):
            raise ActionNotAllowedError(
                str(submission_id), "edit", ActorRole.EMPLOYEE.value, current.value,
                "This submission cannot be edited in its current status",
            )

        fields = _validate_fields(
            submission_date, hours_submitted, description,
            overtime_hours, overtime_description,
        )
        period = period_key(fields.submission_date)
        duplicate = self._submissions.find_in_period(
            employee_id, period, exclude_id=submission_id,
        )
        if duplicate is not None:
            raise DuplicateMonthYearError(
                str(employee_id),
                period_label(fields.submission_date),
                str(duplicate.id),
            )

        resubmitted = current in (
            SubmissionStatus.MANAGER_REJECTED,
            SubmissionStatus.ADMIN_REJECTED,
        )

        savepoint = self._session.begin_nested()
        try:
            model.submission_date = fields.submission_date
            model.period_key = period
            model.hours_submitted = fields.hours_submitted
            model.overtime_hours = fields.overtime_hours
            model.description = fields.description
            model.overtime_description = fields.overtime_description
            if resubmitted:
                model.status = SubmissionStatus.SUBMITTED.value
            model.updated_at = self._clock.now()
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            self._session.expire(model)
            duplicate = self._submissions.find_in_period(
                employee_id, period, exclude_id=submission_id,
            )
            if duplicate is not None:
                raise DuplicateMonthYearError(
                    str(employee_id),
                    period_label(fields.submission_date),
                    str(duplicate.id),
                ) from exc
            raise PersistenceError("submission", str(exc)) from exc
        except SQLAlchemyError as exc:
            savepoint.rollback()
            self._session.expire(model)
            raise PersistenceError("submission", str(exc)) from exc

        logger.info(
            "submission_updated",
            extra={
                "period_key": period,
                "resubmitted": resubmitted,
                "previous_status": current.value,
            },
        )
        return SubmissionResult(
            submission=model.to_dto(),
            message=(
                "Submission updated and resubmitted for review"
                if resubmitted
                else "Submission updated successfully"
            ),
        )

    def delete_submission(
        self,
        submission_id: UUID,
        employee_id: UUID,
    ) -> SubmissionResult:
        """
        Hard-delete a submission that no reviewer has acted on yet.

        Returns:
            SubmissionResult whose ``submission`` is the deleted snapshot.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=employee_id,
            actor_role=ActorRole.EMPLOYEE,
            employee_id=employee_id,
            submission_id=submission_id,
        ):
            try:
                model = self._load_owned(submission_id, employee_id, action="delete")
                current = normalize_status(model.status)
                if not employee_can_delete(current):
                    raise ActionNotAllowedError(
                        str(submission_id), "delete", ActorRole.EMPLOYEE.value,
                        current.value,
                        "Only submissions that have not been reviewed can be deleted",
                    )

                snapshot = model.to_dto()
                savepoint = self._session.begin_nested()
                try:
                    self._session.delete(model)
                    self._session.flush()
                    savepoint.commit()
                except SQLAlchemyError as exc:
                    savepoint.rollback()
                    raise PersistenceError("deletion", str(exc)) from exc

                logger.info(
                    "submission_deleted",
                    extra={"period_key": snapshot.period_key},
                )
                return SubmissionResult(
                    submission=snapshot,
                    message="Submission deleted successfully",
                )
            except TimesheetKernelError as exc:
                return self._failure("submission_delete_failed", exc)

    def _load_owned(
        self, submission_id: UUID, employee_id: UUID, action: str,
    ) -> SubmissionModel:
        model = self._session.get(SubmissionModel, submission_id, populate_existing=True)
        if model is None:
            raise SubmissionNotFoundError(str(submission_id))
        if model.employee_id != employee_id:
            raise ActionNotAllowedError(
                str(submission_id), action, ActorRole.EMPLOYEE.value, model.status,
                f"Only the submitting employee can {action} this submission",
            )
        return model

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def attach_invoice(self, submission_id: UUID, invoice_id: str) -> SubmissionResult:
        """
        Store the external invoice reference on a submission.

        Re-attaching the same id is a no-op success; a different id when one
        is already attached is refused.
        """
        with LogContext.bind(submission_id=submission_id):
            try:
                invoice_ref = _require_text(
                    invoice_id, "invoice_id", "Invoice id is required"
                )
                model = self._session.get(SubmissionModel, submission_id)
                if model is None:
                    raise SubmissionNotFoundError(str(submission_id))

                if model.invoice_id == invoice_ref:
                    return SubmissionResult(
                        submission=model.to_dto(),
                        message="Invoice already attached",
                    )
                if model.invoice_id is not None:
                    raise ActionNotAllowedError(
                        str(submission_id), "attach_invoice", ActorRole.ADMIN.value,
                        model.status,
                        "A different invoice is already attached to this submission",
                    )

                savepoint = self._session.begin_nested()
                try:
                    model.invoice_id = invoice_ref
                    model.updated_at = self._clock.now()
                    self._session.flush()
                    savepoint.commit()
                except SQLAlchemyError as exc:
                    savepoint.rollback()
                    self._session.expire(model)
                    raise PersistenceError("invoice link", str(exc)) from exc

                logger.info("invoice_attached", extra={"invoice_id": invoice_ref})
                return SubmissionResult(
                    submission=model.to_dto(),
                    message="Invoice attached",
                )
            except TimesheetKernelError as exc:
                return self._failure("invoice_attach_failed", exc)

    def issue_invoice(
        self,
        submission_id: UUID,
        generator: InvoiceGenerator,
    ) -> SubmissionResult:
        """
        Have ``generator`` render an invoice and attach its id.

        A submission that already carries an invoice is returned unchanged
        without calling the generator.  Exceptions raised by the generator
        propagate to the caller.
        """
        model = self._session.get(SubmissionModel, submission_id)
        if model is None:
            return self._failure(
                "invoice_attach_failed",
                SubmissionNotFoundError(str(submission_id)),
            )
        if model.invoice_id is not None:
            return SubmissionResult(
                submission=model.to_dto(),
                message="Invoice already attached",
            )
        invoice_id = generator.generate(model.to_dto())
        return self.attach_invoice(submission_id, invoice_id)

    # ------------------------------------------------------------------

    def _failure(self, event: str, exc: TimesheetKernelError) -> SubmissionResult:
        log = logger.error if exc.code == ErrorCode.PERSISTENCE_ERROR.value else logger.warning
        log(
            event,
            extra={"error_code": exc.code, "reason": str(exc)},
            exc_info=exc if exc.code == ErrorCode.PERSISTENCE_ERROR.value else None,
        )
        return SubmissionResult(
            error_code=ErrorCode(exc.code),
            message=str(exc),
        )
