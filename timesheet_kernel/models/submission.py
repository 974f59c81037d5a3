"""
Module: timesheet_kernel.models.submission
Responsibility: ORM persistence for time submissions -- one employee's hours
    for one calendar month, plus its workflow status and review trail.
Architecture position: Kernel > Models.  May import from db/base.py only
    (domain DTOs are imported lazily inside ``to_dto``).

Invariants enforced:
    - Status is one of the six workflow states (CHECK constraint).
    - hours_submitted > 0; overtime_hours NULL or >= 0 (CHECK constraints).
    - One submission per employee per calendar month: UNIQUE(employee_id,
      period_key).  Holds regardless of status.
    - Idempotent creation: UNIQUE(employee_id, idempotency_key).

Failure modes:
    - IntegrityError on a second row for the same (employee, period) or the
      same (employee, idempotency_key).  SubmissionFactory re-resolves it.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from timesheet_kernel.domain.dtos import Submission

SUBMISSION_STATUS_VALUES = (
    "SUBMITTED",
    "MANAGER_APPROVED",
    "MANAGER_REJECTED",
    "NEEDS_CLARIFICATION",
    "ADMIN_PAID",
    "ADMIN_REJECTED",
)


class SubmissionModel(TimestampedBase):
    """
    Persistent time submission.

    Contract:
        Created by SubmissionFactory with status SUBMITTED.  Status changes
        only through TransitionExecutor (or an employee resubmission via
        SubmissionFactory.update_submission).  ``manager_id`` is rewritten
        only by ManagerAssignmentSynchronizer.
    """

    __tablename__ = "submissions"

    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in SUBMISSION_STATUS_VALUES) + ")",
            name="ck_submissions_valid_status",
        ),
        CheckConstraint(
            "hours_submitted > 0",
            name="ck_submissions_positive_hours",
        ),
        CheckConstraint(
            "overtime_hours IS NULL OR overtime_hours >= 0",
            name="ck_submissions_nonnegative_overtime",
        ),
        UniqueConstraint(
            "employee_id", "period_key",
            name="uq_submissions_employee_period",
        ),
        UniqueConstraint(
            "employee_id", "idempotency_key",
            name="uq_submissions_employee_idempotency_key",
        ),
        Index("idx_submissions_manager", "manager_id"),
        Index("idx_submissions_status_date", "status", "submission_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    submission_date: Mapped[date] = mapped_column(Date, nullable=False)
    # YYYY-MM of submission_date
    period_key: Mapped[str] = mapped_column(String(7), nullable=False)

    hours_submitted: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal | None] = mapped_column(nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False)
    overtime_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="SUBMITTED",
    )
    manager_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False)
    request_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Last reviewer to act
    acted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    acted_by_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    acted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Submission {self.id} employee={self.employee_id} "
            f"period={self.period_key} status={self.status}>"
        )

    def to_dto(self) -> Submission:
        """Convert ORM model to frozen domain DTO."""
        from timesheet_kernel.domain.dtos import Submission as SubmissionDTO
        from timesheet_kernel.domain.submission_status import (
            ActorRole,
            normalize_status,
        )

        return SubmissionDTO(
            id=self.id,
            employee_id=self.employee_id,
            manager_id=self.manager_id,
            submission_date=self.submission_date,
            period_key=self.period_key,
            hours_submitted=self.hours_submitted,
            overtime_hours=self.overtime_hours,
            description=self.description,
            overtime_description=self.overtime_description,
            status=normalize_status(self.status),
            manager_comment=self.manager_comment,
            admin_comment=self.admin_comment,
            invoice_id=self.invoice_id,
            idempotency_key=self.idempotency_key,
            request_hash=self.request_hash,
            acted_by_id=self.acted_by_id,
            acted_by_role=ActorRole(self.acted_by_role) if self.acted_by_role else None,
            acted_at=self.acted_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
