"""
TransitionExecutor -- reviewer status changes with guard re-validation.

Responsibility:
    Applies one transition (approve, reject, request clarification, process
    payment) to one submission on behalf of a manager or admin, then tells
    the affected people.

Architecture position:
    Kernel > Services -- imperative shell.
    Authorizes with the same Status Model predicates the portals use to show
    or hide the action buttons.

Invariants enforced:
    - The guard is evaluated against the freshly re-read persisted status,
      never against a status supplied by the caller.
    - The write is a conditional UPDATE (``WHERE status = <observed>``).  If
      another actor moved the submission in between, no row matches and the
      call is refused as ACTION_NOT_ALLOWED.  Repeating an applied transition
      is therefore rejected by the guard, never duplicated.
    - Notifications are emitted only after the write succeeded.

Failure modes (returned as TransitionResult.error_code):
    - NOT_FOUND: no such submission.
    - ACTION_NOT_ALLOWED: guard refused, or concurrent modification.
    - VALIDATION_ERROR: missing rejection reason / clarification message,
      or an unknown role or kind.  Checked before any write.
    - PERSISTENCE_ERROR: the store refused the UPDATE; nothing is notified.
    - UNKNOWN_STATUS: the stored status is outside the workflow.
"""

from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_kernel.domain import notification_templates as templates
from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.dtos import (
    ErrorCode,
    TransitionPayload,
    TransitionResult,
)
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.domain.submission_status import (
    ActorRole,
    SubmissionStatus,
    TransitionKind,
    denial_reason,
    guard_for,
    normalize_status,
    target_status,
)
from timesheet_kernel.exceptions import (
    ActionNotAllowedError,
    PersistenceError,
    StaleSubmissionError,
    SubmissionNotFoundError,
    SubmissionValidationError,
    TimesheetKernelError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.employee import EmployeeModel
from timesheet_kernel.models.submission import SubmissionModel
from timesheet_kernel.services.base import BaseService
from timesheet_kernel.services.notification_emitter import NotificationEmitter

logger = get_logger("services.transition_executor")

_ENTITY_TYPE = "SUBMISSION"


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    stripped = text.strip()
    return stripped or None


class TransitionExecutor(BaseService[SubmissionModel]):
    """
    Applies reviewer transitions to submissions.

    Contract:
        ``apply_transition`` always returns a TransitionResult.  Kernel
        errors and store failures are reported through ``error_code``;
        programming errors propagate.

    Non-goals:
        - Does NOT authenticate the actor; ``actor_role`` is trusted.
        - Does NOT retry.  A retry is a fresh call and is re-guarded.
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

    def apply_transition(
        self,
        submission_id: UUID,
        actor_id: UUID,
        actor_role: ActorRole | str,
        kind: TransitionKind | str,
        payload: TransitionPayload | None = None,
    ) -> TransitionResult:
        """
        Apply one transition.

        Algorithm:
            1. Re-read the persisted submission.
            2. Evaluate the Status Model guard for (role, kind).
            3. Validate the kind-specific payload.
            4. Conditional UPDATE of status, comment and attribution.
            5. Notify the counterparties.

        Args:
            submission_id: Target submission.
            actor_id: Reviewer performing the action.
            actor_role: MANAGER or ADMIN.
            kind: APPROVE, REJECT, REQUEST_CLARIFICATION or PROCESS_PAYMENT.
            payload: Kind-specific data.

        Returns:
            TransitionResult carrying the updated submission on success.
        """
        payload = payload or TransitionPayload()

        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            actor_role=actor_role,
            submission_id=submission_id,
        ):
            try:
                role = self._coerce(ActorRole, actor_role, "actor_role")
                transition = self._coerce(TransitionKind, kind, "kind")
            except SubmissionValidationError as exc:
                return self._failure(exc, is_admin_action=False)

            is_admin = role == ActorRole.ADMIN
            try:
                return self._apply(submission_id, actor_id, role, transition, payload)
            except ActionNotAllowedError as exc:
                logger.warning(
                    "transition_denied",
                    extra={
                        "kind": transition.value,
                        "current_status": exc.current_status,
                        "reason": exc.reason,
                    },
                )
                previous = (
                    normalize_status(exc.current_status)
                    if exc.current_status else None
                )
                return self._failure(exc, is_admin, previous_status=previous)
            except TimesheetKernelError as exc:
                if isinstance(exc, PersistenceError):
                    logger.error(
                        "transition_failed",
                        extra={"kind": transition.value, "error_code": exc.code},
                        exc_info=exc,
                    )
                else:
                    logger.warning(
                        "transition_failed",
                        extra={"kind": transition.value, "error_code": exc.code},
                    )
                return self._failure(exc, is_admin)

    @staticmethod
    def _coerce(enum_cls, value, field: str):
        try:
            return enum_cls(value)
        except ValueError as exc:
            raise SubmissionValidationError(
                field, f"Unknown {field.replace('_', ' ')}: {value!r}"
            ) from exc

    def _apply(
        self,
        submission_id: UUID,
        actor_id: UUID,
        role: ActorRole,
        kind: TransitionKind,
        payload: TransitionPayload,
    ) -> TransitionResult:
        # 1. Fresh read -- never trust a caller-supplied status
        model = self._session.get(SubmissionModel, submission_id, populate_existing=True)
        if model is None:
            raise SubmissionNotFoundError(str(submission_id))
        observed = model.status
        current = normalize_status(observed)

        # 2. Guard
        guard = guard_for(role, kind)
        if guard is None or not guard(current):
            raise ActionNotAllowedError(
                str(submission_id), kind.value, role.value, current.value,
                denial_reason(role, kind, current),
            )

        # 3. Payload
        values = self._transition_values(role, kind, payload)
        new_status = target_status(role, kind)
        now = self._clock.now()
        values.update(
            status=new_status.value,
            updated_at=now,
            acted_by_id=actor_id,
            acted_by_role=role.value,
            acted_at=now,
        )

        # 4. Conditional write
        savepoint = self._session.begin_nested()
        try:
            result = self._session.execute(
                update(SubmissionModel)
                .where(
                    SubmissionModel.id == submission_id,
                    SubmissionModel.status == observed,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise PersistenceError("status change", str(exc)) from exc

        if result.rowcount != 1:
            raise StaleSubmissionError(
                str(submission_id), kind.value, role.value, current.value,
            )

        self._session.refresh(model)
        submission = model.to_dto()
        logger.info(
            "transition_applied",
            extra={
                "transition": transition_label(role, kind),
                "previous_status": current.value,
                "new_status": new_status.value,
            },
        )

        # 5. Notify
        emitted = self._notify(model, actor_id, role, kind, payload)

        return TransitionResult(
            success=True,
            submission=submission,
            previous_status=current,
            new_status=new_status,
            message=f"Submission {new_status.value.replace('_', ' ').lower()}",
            is_admin_action=role == ActorRole.ADMIN,
            notifications_emitted=emitted,
        )

    @staticmethod
    def _transition_values(
        role: ActorRole,
        kind: TransitionKind,
        payload: TransitionPayload,
    ) -> dict:
        """Column values specific to the transition; validates the payload."""
        if kind == TransitionKind.REJECT:
            reason = _clean(payload.rejection_reason)
            if reason is None:
                raise SubmissionValidationError(
                    "rejection_reason", "A rejection reason is required"
                )
            if role == ActorRole.MANAGER:
                return {"manager_comment": reason}
            return {"admin_comment": reason}

        if kind == TransitionKind.REQUEST_CLARIFICATION:
            message = _clean(payload.message)
            if message is None:
                raise SubmissionValidationError(
                    "message", "A clarification message is required"
                )
            return {"admin_comment": message}

        if kind == TransitionKind.APPROVE:
            return {"manager_comment": _clean(payload.comment)}

        return {"admin_comment": _clean(payload.payment_reference)}

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(
        self,
        model: SubmissionModel,
        actor_id: UUID,
        role: ActorRole,
        kind: TransitionKind,
        payload: TransitionPayload,
    ) -> int:
        """Emit the notifications for an applied transition; returns how many stuck."""
        day = model.submission_date
        is_admin = role == ActorRole.ADMIN
        metadata = {
            "submission_id": model.id,
            "actor_id": actor_id,
            "actor_role": role.value,
            "kind": kind.value,
            "is_admin_action": is_admin,
            "status": model.status,
        }
        employee = self._session.get(EmployeeModel, model.employee_id)
        employee_name = employee.name if employee is not None else "Employee"

        outgoing: list[tuple[UUID, ActorRole, templates.NotificationDraft]] = []

        if role == ActorRole.MANAGER and kind == TransitionKind.APPROVE:
            outgoing.append((model.employee_id, ActorRole.EMPLOYEE, templates.hours_approved(day)))
            if self._policy.notify_admin_on_manager_approval:
                admin_id = self._first_admin_id()
                if admin_id is not None:
                    outgoing.append((
                        admin_id, ActorRole.ADMIN,
                        templates.ready_for_processing(employee_name, day),
                    ))

        elif role == ActorRole.MANAGER and kind == TransitionKind.REJECT:
            outgoing.append((
                model.employee_id, ActorRole.EMPLOYEE,
                templates.rejected_by_manager(day, payload.rejection_reason or ""),
            ))

        elif kind == TransitionKind.REJECT:
            reason = payload.rejection_reason or ""
            outgoing.append((
                model.employee_id, ActorRole.EMPLOYEE,
                templates.rejected_by_admin_to_employee(day, reason),
            ))
            if model.manager_id is not None:
                outgoing.append((
                    model.manager_id, ActorRole.MANAGER,
                    templates.rejected_by_admin_to_manager(day, reason),
                ))

        elif kind == TransitionKind.REQUEST_CLARIFICATION:
            if model.manager_id is not None:
                outgoing.append((
                    model.manager_id, ActorRole.MANAGER,
                    templates.clarification_to_manager(
                        employee_name, day, payload.message or "",
                    ),
                ))
            outgoing.append((
                model.employee_id, ActorRole.EMPLOYEE,
                templates.clarification_to_employee(day),
            ))

        elif kind == TransitionKind.PROCESS_PAYMENT:
            outgoing.append((
                model.employee_id, ActorRole.EMPLOYEE,
                templates.payment_to_employee(day),
            ))
            if model.manager_id is not None:
                outgoing.append((
                    model.manager_id, ActorRole.MANAGER,
                    templates.payment_to_manager(employee_name, day),
                ))

        emitted = 0
        for recipient_id, recipient_role, draft in outgoing:
            notification = self._notifier.emit_draft(
                recipient_id,
                draft,
                metadata,
                recipient_role=recipient_role,
                entity_type=_ENTITY_TYPE,
                entity_id=model.id,
            )
            if notification is not None:
                emitted += 1
        return emitted

    def _first_admin_id(self) -> UUID | None:
        return self._session.execute(
            select(EmployeeModel.id)
            .where(EmployeeModel.role == ActorRole.ADMIN.value)
            .order_by(EmployeeModel.created_at, EmployeeModel.id)
            .limit(1)
        ).scalar_one_or_none()

    @staticmethod
    def _failure(
        exc: TimesheetKernelError,
        is_admin_action: bool,
        previous_status: SubmissionStatus | None = None,
    ) -> TransitionResult:
        return TransitionResult(
            success=False,
            previous_status=previous_status,
            error_code=ErrorCode(exc.code),
            message=str(exc),
            is_admin_action=is_admin_action,
        )


def transition_label(role: ActorRole, kind: TransitionKind) -> str:
    """``(MANAGER, APPROVE)`` -> ``"manager_approve"`` for log fields."""
    return f"{role.value.lower()}_{kind.value.lower()}"
