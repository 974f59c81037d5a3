"""
Module: timesheet_kernel.selectors.notification_selector
Responsibility: Read-only access to a recipient's notification inbox.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, select

from timesheet_kernel.domain.dtos import Notification
from timesheet_kernel.domain.submission_status import ActorRole
from timesheet_kernel.models.notification import NotificationModel
from timesheet_kernel.selectors.base import BaseSelector


class NotificationSelector(BaseSelector[NotificationModel]):
    """Inbox queries over the notifications table."""

    def list_for_recipient(
        self,
        recipient_id: UUID,
        role: ActorRole | None = None,
        limit: int = 50,
    ) -> list[Notification]:
        """
        Newest-first notifications for one recipient.

        Args:
            recipient_id: Whose inbox.
            role: Restrict to notifications addressed to this role (a manager
                also receives notifications as an employee).
            limit: Maximum number of rows.
        """
        query = select(NotificationModel).where(
            NotificationModel.recipient_id == recipient_id
        )
        if role is not None:
            query = query.where(NotificationModel.recipient_role == ActorRole(role).value)
        query = query.order_by(
            NotificationModel.created_at.desc(),
            NotificationModel.id,
        ).limit(limit)
        return [row.to_dto() for row in self.session.execute(query).scalars().all()]

    def unread_count(self, recipient_id: UUID) -> int:
        """Number of unread notifications for a recipient."""
        return self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
        ).scalar_one()
