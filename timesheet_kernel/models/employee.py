"""
Module: timesheet_kernel.models.employee
Responsibility: ORM persistence for people (employees, managers, admins) and
    for the team-membership record that ties an employee to a manager.
Architecture position: Kernel > Models.  May import from db/base.py only
    (domain DTOs are imported lazily inside ``to_dto``).

Invariants enforced:
    - ``employees.reporting_manager_id`` is the source of truth for who
      manages an employee.  Submissions carry a denormalized copy.
    - At most one team membership per employee (UNIQUE employee_id).
      Membership existence encodes "has an assigned manager".

Failure modes:
    - IntegrityError on a second membership row for the same employee.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import Base, TimestampedBase, UUIDString

if TYPE_CHECKING:
    from timesheet_kernel.domain.dtos import Employee, TeamMembership


class EmployeeModel(Base):
    """
    A person who submits, reviews or pays for hours.

    Contract:
        ``role`` is one of EMPLOYEE, MANAGER, ADMIN.  Only the
        ManagerAssignmentSynchronizer writes ``reporting_manager_id``.
    """

    __tablename__ = "employees"

    __table_args__ = (
        CheckConstraint(
            "role IN ('EMPLOYEE', 'MANAGER', 'ADMIN')",
            name="ck_employees_valid_role",
        ),
        UniqueConstraint("email", name="uq_employees_email"),
        Index("idx_employees_reporting_manager", "reporting_manager_id"),
        Index("idx_employees_role", "role", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="EMPLOYEE")

    reporting_manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Employee {self.name} ({self.role})>"

    def to_dto(self) -> Employee:
        """Convert ORM model to frozen domain DTO."""
        from timesheet_kernel.domain.dtos import Employee as EmployeeDTO
        from timesheet_kernel.domain.submission_status import ActorRole

        return EmployeeDTO(
            id=self.id,
            name=self.name,
            email=self.email,
            role=ActorRole(self.role),
            reporting_manager_id=self.reporting_manager_id,
            created_at=self.created_at,
        )


class TeamMembershipModel(TimestampedBase):
    """
    Active assignment of an employee to a manager's team.

    Contract:
        Updated in place when the manager changes; deleted (never nulled)
        when the employee is unassigned.
    """

    __tablename__ = "team_memberships"

    __table_args__ = (
        UniqueConstraint("employee_id", name="uq_team_memberships_employee"),
        Index("idx_team_memberships_manager", "manager_id"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    manager_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    contract_start: Mapped[date] = mapped_column(Date, nullable=False)
    contract_end: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<TeamMembership employee={self.employee_id} manager={self.manager_id}>"

    def to_dto(self) -> TeamMembership:
        """Convert ORM model to frozen domain DTO."""
        from timesheet_kernel.domain.dtos import TeamMembership as TeamMembershipDTO

        return TeamMembershipDTO(
            id=self.id,
            employee_id=self.employee_id,
            manager_id=self.manager_id,
            contract_start=self.contract_start,
            contract_end=self.contract_end,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
