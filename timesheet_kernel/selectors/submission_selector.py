"""
Module: timesheet_kernel.selectors.submission_selector
Responsibility: Read-only access to submissions for the three dashboards and
    for the duplicate-month lookup.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Newest ``submission_date`` first (ties broken by ``created_at`` then id
      so ordering is deterministic).
    - Returns Submission DTOs, never ORM models.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from timesheet_kernel.domain.dtos import Submission
from timesheet_kernel.domain.submission_status import SubmissionStatus, normalize_status
from timesheet_kernel.models.submission import SubmissionModel
from timesheet_kernel.selectors.base import BaseSelector

_NEWEST_FIRST = (
    SubmissionModel.submission_date.desc(),
    SubmissionModel.created_at.desc(),
    SubmissionModel.id,
)


def _status_values(statuses: Iterable[SubmissionStatus | str]) -> list[str]:
    return [normalize_status(s).value for s in statuses]


class SubmissionSelector(BaseSelector[SubmissionModel]):
    """Dashboard queries over the submissions table."""

    def get(self, submission_id: UUID) -> Submission | None:
        """Get a submission by id, or None."""
        model = self.session.get(SubmissionModel, submission_id)
        return model.to_dto() if model is not None else None

    def list_for_employee(self, employee_id: UUID) -> list[Submission]:
        """Everything the employee has submitted, any status."""
        rows = self.session.execute(
            select(SubmissionModel)
            .where(SubmissionModel.employee_id == employee_id)
            .order_by(*_NEWEST_FIRST)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def list_for_manager(
        self,
        manager_id: UUID,
        statuses: Iterable[SubmissionStatus | str] | None = None,
    ) -> list[Submission]:
        """
        Submissions currently assigned to a manager.

        Args:
            manager_id: Reviewing manager.
            statuses: Optional status filter (legacy values are normalized).
        """
        query = (
            select(SubmissionModel)
            .where(SubmissionModel.manager_id == manager_id)
            .order_by(*_NEWEST_FIRST)
        )
        if statuses is not None:
            query = query.where(SubmissionModel.status.in_(_status_values(statuses)))
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def list_for_admin(
        self,
        statuses: Iterable[SubmissionStatus | str] | None = None,
    ) -> list[Submission]:
        """All submissions, optionally filtered by status."""
        query = select(SubmissionModel).order_by(*_NEWEST_FIRST)
        if statuses is not None:
            query = query.where(SubmissionModel.status.in_(_status_values(statuses)))
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def find_in_period(
        self,
        employee_id: UUID,
        period_key: str,
        exclude_id: UUID | None = None,
    ) -> Submission | None:
        """
        The employee's submission for a ``YYYY-MM`` period, if any.

        Status-agnostic: rejected and paid submissions still occupy their
        month.  ``exclude_id`` lets an edit ignore the row being edited.
        """
        query = select(SubmissionModel).where(
            SubmissionModel.employee_id == employee_id,
            SubmissionModel.period_key == period_key,
        )
        if exclude_id is not None:
            query = query.where(SubmissionModel.id != exclude_id)
        model = self.session.execute(query.limit(1)).scalars().first()
        return model.to_dto() if model is not None else None
