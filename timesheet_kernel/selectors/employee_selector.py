"""
Module: timesheet_kernel.selectors.employee_selector
Responsibility: Read-only access to people and team memberships (manager
    team views, admin employee list).
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from timesheet_kernel.domain.dtos import Employee, TeamMembership
from timesheet_kernel.domain.submission_status import ActorRole
from timesheet_kernel.models.employee import EmployeeModel, TeamMembershipModel
from timesheet_kernel.selectors.base import BaseSelector


class EmployeeSelector(BaseSelector[EmployeeModel]):
    """People and team queries."""

    def get(self, employee_id: UUID) -> Employee | None:
        model = self.session.get(EmployeeModel, employee_id)
        return model.to_dto() if model is not None else None

    def list_by_role(self, role: ActorRole) -> list[Employee]:
        """People holding a role, oldest account first."""
        rows = self.session.execute(
            select(EmployeeModel)
            .where(EmployeeModel.role == ActorRole(role).value)
            .order_by(EmployeeModel.created_at, EmployeeModel.id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def list_team(self, manager_id: UUID) -> list[Employee]:
        """Employees whose reporting manager is ``manager_id``, by name."""
        rows = self.session.execute(
            select(EmployeeModel)
            .where(EmployeeModel.reporting_manager_id == manager_id)
            .order_by(EmployeeModel.name, EmployeeModel.id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def get_membership(self, employee_id: UUID) -> TeamMembership | None:
        """The employee's active team membership, if assigned."""
        model = self.session.execute(
            select(TeamMembershipModel).where(
                TeamMembershipModel.employee_id == employee_id
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None
