"""
Module: timesheet_kernel.models.notification
Responsibility: ORM persistence for notifications addressed to employees,
    managers and admins.
Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    - Append-only: the ``read`` flag is the only column that may change
      after insert (before_update listener).
    - Never deleted by the system (before_delete listener).

Failure modes:
    - NotificationImmutableError on an UPDATE touching any other column,
      or on DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import Base, UUIDString
from timesheet_kernel.exceptions import NotificationImmutableError

if TYPE_CHECKING:
    from timesheet_kernel.domain.dtos import Notification


class NotificationModel(Base):
    """
    Persistent notification.

    Contract:
        Written only by NotificationEmitter.  Recipients flip ``read``;
        nothing else changes.
    """

    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_id", "read", "created_at"),
        Index("idx_notifications_entity", "entity_type", "entity_id"),
    )

    recipient_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    recipient_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Notification {self.id} {self.type} "
            f"recipient={self.recipient_id} read={self.read}>"
        )

    def to_dto(self) -> Notification:
        """Convert ORM model to frozen domain DTO."""
        from timesheet_kernel.domain.dtos import (
            Notification as NotificationDTO,
            NotificationType,
        )
        from timesheet_kernel.domain.submission_status import ActorRole

        return NotificationDTO(
            id=self.id,
            recipient_id=self.recipient_id,
            recipient_role=ActorRole(self.recipient_role) if self.recipient_role else None,
            type=NotificationType(self.type),
            title=self.title,
            message=self.message,
            read=self.read,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            metadata=dict(self.metadata_ or {}),
            created_at=self.created_at,
        )


# =============================================================================
# ORM-Level Immutability (only ``read`` may change)
# =============================================================================

_MUTABLE_ATTRIBUTES = frozenset({"read"})


@event.listens_for(NotificationModel, "before_update")
def prevent_notification_update(mapper, connection, target):
    """Reject updates to any column other than ``read``."""
    state = inspect(target)
    for attr in mapper.column_attrs:
        if attr.key in _MUTABLE_ATTRIBUTES:
            continue
        if state.attrs[attr.key].history.has_changes():
            raise NotificationImmutableError(
                notification_id=str(target.id),
                reason=f"field '{attr.key}' cannot change after creation",
            )


@event.listens_for(NotificationModel, "before_delete")
def prevent_notification_delete(mapper, connection, target):
    """Prevent deletion of notification records."""
    raise NotificationImmutableError(
        notification_id=str(target.id),
        reason="notifications are never deleted",
    )
