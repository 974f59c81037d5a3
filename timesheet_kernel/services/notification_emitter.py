"""
NotificationEmitter -- durable notification records for workflow events.

Responsibility:
    Appends notifications for completed transitions and team changes, and
    lets recipients flip the ``read`` flag.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by SubmissionFactory, TransitionExecutor and
    ManagerAssignmentSynchronizer after their own write has succeeded.

Invariants enforced:
    - ``emit`` never raises, whether the record cannot be built or cannot be
      stored: a missed notification must not block or undo a status
      change that already happened.  The failure is logged at ERROR and
      ``None`` is returned.
    - Each emit runs in its own SAVEPOINT, so a failed insert leaves the
      caller's transaction usable.
    - Only the recipient can mark a notification read.

Failure modes:
    - ``mark_read`` returns NOT_FOUND for a missing or foreign notification
      and PERSISTENCE_ERROR when the flag could not be stored.
    - ``mark_all_read`` raises PersistenceError when the bulk update fails.
"""

import json
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from timesheet_kernel.domain.dtos import (
    ErrorCode,
    Notification,
    NotificationReadResult,
    NotificationType,
)
from timesheet_kernel.domain.notification_templates import NotificationDraft
from timesheet_kernel.domain.submission_status import ActorRole
from timesheet_kernel.exceptions import (
    NotificationNotFoundError,
    PersistenceError,
    TimesheetKernelError,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.models.notification import NotificationModel
from timesheet_kernel.services.base import BaseService
from timesheet_kernel.utils.hashing import canonicalize_json

logger = get_logger("services.notifications")


class NotificationEmitter(BaseService[NotificationModel]):
    """
    Append-only writer for notifications.

    Guarantees:
        - ``emit`` returns the stored Notification, or None if it could not
          be built or the store refused the write.  It does not raise.
        - Metadata is stored as plain JSON (UUIDs, dates and Decimals are
          stringified).
    """

    def emit(
        self,
        recipient_id: UUID,
        type: NotificationType | str,
        title: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        recipient_role: ActorRole | None = None,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> Notification | None:
        """
        Append one notification.

        Args:
            recipient_id: Who receives it.
            type: One of the NotificationType tags.
            title: Short headline.
            message: Full text.
            metadata: Opaque reference back to the originating event.
            recipient_role: Portal the notification is addressed to.
            entity_type: "SUBMISSION" or "TEAM".
            entity_id: Id of the originating submission or manager.

        Returns:
            The stored Notification DTO, or None if the record could not be
            built (unknown type, metadata that is not JSON-safe) or stored.
        """
        try:
            model = NotificationModel(
                recipient_id=recipient_id,
                recipient_role=ActorRole(recipient_role).value if recipient_role else None,
                type=NotificationType(type).value,
                title=title,
                message=message,
                read=False,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata_=json.loads(canonicalize_json(dict(metadata or {}))),
                created_at=self._clock.now(),
            )
        except (ValueError, TypeError):
            self._log_emit_failure(recipient_id, type, entity_type, entity_id)
            return None

        savepoint = self._session.begin_nested()
        try:
            self._session.add(model)
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError:
            savepoint.rollback()
            self._log_emit_failure(recipient_id, type, entity_type, entity_id)
            return None

        logger.info(
            "notification_emitted",
            extra={
                "notification_id": str(model.id),
                "recipient_id": str(recipient_id),
                "notification_type": model.type,
            },
        )
        return model.to_dto()

    @staticmethod
    def _log_emit_failure(
        recipient_id: UUID,
        type: NotificationType | str,
        entity_type: str | None,
        entity_id: UUID | None,
    ) -> None:
        # Called from inside an except block
        logger.error(
            "notification_emit_failed",
            extra={
                "recipient_id": str(recipient_id),
                "notification_type": getattr(type, "value", str(type)),
                "entity_type": entity_type,
                "entity_id": str(entity_id) if entity_id else None,
            },
            exc_info=True,
        )

    def emit_draft(
        self,
        recipient_id: UUID,
        draft: NotificationDraft,
        metadata: Mapping[str, Any] | None = None,
        *,
        recipient_role: ActorRole | None = None,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> Notification | None:
        """Emit a notification built by ``notification_templates``."""
        return self.emit(
            recipient_id,
            draft.type,
            draft.title,
            draft.message,
            metadata,
            recipient_role=recipient_role,
            entity_type=entity_type,
            entity_id=entity_id,
        )

    def mark_read(
        self,
        notification_id: UUID,
        recipient_id: UUID,
    ) -> NotificationReadResult:
        """
        Mark one notification read on behalf of its recipient.

        Already-read notifications are returned unchanged.
        """
        try:
            model = self._session.execute(
                select(NotificationModel).where(
                    NotificationModel.id == notification_id,
                    NotificationModel.recipient_id == recipient_id,
                )
            ).scalar_one_or_none()
            if model is None:
                raise NotificationNotFoundError(str(notification_id), str(recipient_id))

            if not model.read:
                savepoint = self._session.begin_nested()
                try:
                    model.read = True
                    self._session.flush()
                    savepoint.commit()
                except SQLAlchemyError as exc:
                    savepoint.rollback()
                    raise PersistenceError("notification", str(exc)) from exc
                logger.info(
                    "notification_marked_read",
                    extra={"notification_id": str(notification_id)},
                )
            return NotificationReadResult(notification=model.to_dto())
        except TimesheetKernelError as exc:
            logger.warning(
                "notification_mark_read_failed",
                extra={"notification_id": str(notification_id), "error_code": exc.code},
            )
            return NotificationReadResult(
                error_code=ErrorCode(exc.code),
                message=str(exc),
            )

    def mark_all_read(
        self,
        recipient_id: UUID,
        role: ActorRole | None = None,
    ) -> int:
        """
        Mark every unread notification of a recipient read.

        Args:
            recipient_id: Whose inbox.
            role: Restrict to notifications addressed to this role.

        Returns:
            Number of notifications updated.

        Raises:
            PersistenceError: If the bulk update fails.
        """
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
        if role is not None:
            stmt = stmt.where(NotificationModel.recipient_role == ActorRole(role).value)

        savepoint = self._session.begin_nested()
        try:
            result = self._session.execute(stmt)
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.error(
                "notification_mark_all_read_failed",
                extra={"recipient_id": str(recipient_id)},
                exc_info=True,
            )
            raise PersistenceError("notification", str(exc)) from exc

        logger.info(
            "notifications_marked_read",
            extra={"recipient_id": str(recipient_id), "count": result.rowcount},
        )
        return result.rowcount
