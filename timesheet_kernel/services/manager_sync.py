"""
ManagerAssignmentSynchronizer -- propagate reporting-manager changes.

Responsibility:
    When an admin changes an employee's reporting manager (or clears it),
    updates the source of truth (``employees.reporting_manager_id`` and the
    team membership), re-points every submission of that employee at the new
    manager, and tells the employee.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Membership existence encodes "has an assigned manager": clearing the
      manager deletes the membership rather than nulling it.
    - The re-point is retroactive: past submissions follow the employee to
      the new manager's dashboard.
    - Consistency priority: the membership write is authoritative and is
      kept even if the bulk submissions update fails.  Submissions'
      ``manager_id`` is a denormalized copy that may lag; the failure is
      logged and reported through ``submissions_synced=False``.
    - An unchanged manager produces no membership write and no
      notification, but the submissions are still re-pointed so a lagging
      copy heals.

Failure modes (returned as SyncResult.error_code):
    - NOT_FOUND: unknown employee or new manager.
    - VALIDATION_ERROR: an employee cannot manage themselves.
    - PERSISTENCE_ERROR: the membership/employee write failed (nothing else
      is attempted).
"""

from datetime import timedelta
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_kernel.domain import notification_templates as templates
from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.dtos import (
    BackfillResult,
    ErrorCode,
    MembershipAction,
    SyncResult,
)
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.domain.submission_status import ActorRole
from timesheet_kernel.exceptions import (
    EmployeeNotFoundError,
    PersistenceError,
    SubmissionValidationError,
    TimesheetKernelError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.employee import EmployeeModel, TeamMembershipModel
from timesheet_kernel.models.submission import SubmissionModel
from timesheet_kernel.services.base import BaseService
from timesheet_kernel.services.notification_emitter import NotificationEmitter

logger = get_logger("services.manager_sync")

_ENTITY_TYPE = "TEAM"


class ManagerAssignmentSynchronizer(BaseService[TeamMembershipModel]):
    """
    Applies reporting-manager changes and their fan-out.

    Contract:
        ``sync_manager_assignment`` always returns a SyncResult.
        ``sync_all_manager_assignments`` never raises for a per-employee
        store failure; it counts it.

    Non-goals:
        - Not a two-phase commit across membership and submissions.
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

    def sync_manager_assignment(
        self,
        employee_id: UUID,
        new_manager_id: UUID | None,
    ) -> SyncResult:
        """
        Assign ``employee_id`` to ``new_manager_id`` (None to unassign).

        Steps:
            1. Resolve the employee and the new manager's name.
            2. Write ``reporting_manager_id`` and create/update/delete the
               membership (one savepoint).
            3. Re-point every submission of the employee (own savepoint;
               failure logged, not rolled back into step 2).
            4. Notify the employee (TEAM_ADDED / TEAM_REMOVED) if the
               manager changed.
        """
        with LogContext.bind(correlation_id=str(uuid4()), employee_id=employee_id):
            try:
                return self._sync(employee_id, new_manager_id)
            except TimesheetKernelError as exc:
                log = logger.error if isinstance(exc, PersistenceError) else logger.warning
                log(
                    "manager_sync_failed",
                    extra={"error_code": exc.code, "reason": str(exc)},
                    exc_info=exc if isinstance(exc, PersistenceError) else None,
                )
                return SyncResult(
                    employee_id=employee_id,
                    new_manager_id=new_manager_id,
                    error_code=ErrorCode(exc.code),
                    message=str(exc),
                )

    def _sync(self, employee_id: UUID, new_manager_id: UUID | None) -> SyncResult:
        # 1. Resolve
        employee = self._session.get(EmployeeModel, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))

        manager_name = None
        if new_manager_id is not None:
            if new_manager_id == employee_id:
                raise SubmissionValidationError(
                    "new_manager_id", "An employee cannot be their own manager"
                )
            manager = self._session.get(EmployeeModel, new_manager_id)
            if manager is None:
                raise EmployeeNotFoundError(str(new_manager_id))
            manager_name = manager.name

        previous_manager_id = employee.reporting_manager_id
        manager_changed = previous_manager_id != new_manager_id

        # 2. Source of truth
        membership_action = self._write_assignment(employee, new_manager_id)

        # 3. Denormalized copy
        submissions_updated = 0
        submissions_synced = True
        savepoint = self._session.begin_nested()
        try:
            result = self._session.execute(
                update(SubmissionModel)
                .where(SubmissionModel.employee_id == employee_id)
                .values(manager_id=new_manager_id, updated_at=self._clock.now())
                .execution_options(synchronize_session="fetch")
            )
            savepoint.commit()
            submissions_updated = result.rowcount
        except SQLAlchemyError:
            savepoint.rollback()
            submissions_synced = False
            logger.error(
                "manager_sync_submissions_failed",
                extra={"new_manager_id": str(new_manager_id) if new_manager_id else None},
                exc_info=True,
            )

        # 4. Notify
        if manager_changed:
            draft = (
                templates.team_added(manager_name)
                if new_manager_id is not None
                else templates.team_removed()
            )
            self._notifier.emit_draft(
                employee_id,
                draft,
                {
                    "employee_id": employee_id,
                    "previous_manager_id": previous_manager_id,
                    "new_manager_id": new_manager_id,
                    "membership_action": membership_action.value,
                },
                recipient_role=ActorRole.EMPLOYEE,
                entity_type=_ENTITY_TYPE,
                entity_id=new_manager_id or previous_manager_id,
            )

        logger.info(
            "manager_assignment_synced",
            extra={
                "previous_manager_id": str(previous_manager_id) if previous_manager_id else None,
                "new_manager_id": str(new_manager_id) if new_manager_id else None,
                "membership_action": membership_action.value,
                "submissions_updated": submissions_updated,
                "submissions_synced": submissions_synced,
            },
        )

        if not submissions_synced:
            message = "Manager updated; submissions will be re-synced later"
        elif manager_changed:
            message = "Manager updated"
        else:
            message = "Manager unchanged"

        return SyncResult(
            employee_id=employee_id,
            previous_manager_id=previous_manager_id,
            new_manager_id=new_manager_id,
            manager_changed=manager_changed,
            membership_action=membership_action,
            submissions_updated=submissions_updated,
            submissions_synced=submissions_synced,
            message=message,
        )

    def _write_assignment(
        self,
        employee: EmployeeModel,
        new_manager_id: UUID | None,
    ) -> MembershipAction:
        """Write reporting_manager_id and the membership in one savepoint."""
        membership = self._session.execute(
            select(TeamMembershipModel).where(
                TeamMembershipModel.employee_id == employee.id
            )
        ).scalar_one_or_none()
        now = self._clock.now()

        savepoint = self._session.begin_nested()
        try:
            if new_manager_id is None:
                if membership is None:
                    action = MembershipAction.UNCHANGED
                else:
                    self._session.delete(membership)
                    action = MembershipAction.DELETED
            elif membership is None:
                today = self._clock.today()
                self._session.add(TeamMembershipModel(
                    employee_id=employee.id,
                    manager_id=new_manager_id,
                    contract_start=today,
                    contract_end=today + timedelta(days=self._policy.default_contract_days),
                    created_at=now,
                    updated_at=now,
                ))
                action = MembershipAction.CREATED
            elif membership.manager_id != new_manager_id:
                membership.manager_id = new_manager_id
                membership.updated_at = now
                action = MembershipAction.UPDATED
            else:
                action = MembershipAction.UNCHANGED

            if employee.reporting_manager_id != new_manager_id:
                employee.reporting_manager_id = new_manager_id
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise PersistenceError("manager assignment", str(exc)) from exc
        return action

    def sync_all_manager_assignments(self) -> BackfillResult:
        """
        Re-point submissions whose ``manager_id`` differs from the employee's
        team membership.  Admin backfill for migrated or lagging data.
        """
        memberships = self._session.execute(
            select(TeamMembershipModel.employee_id, TeamMembershipModel.manager_id)
            .order_by(TeamMembershipModel.employee_id)
        ).all()

        updated = 0
        errors = 0
        for employee_id, manager_id in memberships:
            savepoint = self._session.begin_nested()
            try:
                result = self._session.execute(
                    update(SubmissionModel)
                    .where(
                        SubmissionModel.employee_id == employee_id,
                        SubmissionModel.manager_id.is_distinct_from(manager_id),
                    )
                    .values(manager_id=manager_id, updated_at=self._clock.now())
                    .execution_options(synchronize_session="fetch")
                )
                savepoint.commit()
                updated += result.rowcount
            except SQLAlchemyError:
                savepoint.rollback()
                errors += 1
                logger.error(
                    "manager_backfill_employee_failed",
                    extra={"employee_id": str(employee_id)},
                    exc_info=True,
                )

        logger.info(
            "manager_backfill_completed",
            extra={
                "employees_processed": len(memberships),
                "submissions_updated": updated,
                "errors": errors,
            },
        )
        return BackfillResult(
            employees_processed=len(memberships),
            submissions_updated=updated,
            errors=errors,
        )
