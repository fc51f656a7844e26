from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leadops.core.results import ActionResult, access_denied, internal_error, not_found, ok
from leadops.metrics import observe_notification_failed, observe_notification_sent
from leadops.notifications.models import Notification
from leadops.notifications.schemas import NotificationInbox, NotificationRead, NotificationType
from leadops.platform.security.context import Caller


logger = logging.getLogger("leadops.notifications")

INBOX_SIZE = 20


class Notifier(Protocol):
    def notify(
        self,
        session: Session,
        user_id: uuid.UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        link: str | None = None,
    ) -> None: ...


def notify_safely(
    notifier: Notifier,
    session: Session,
    user_id: uuid.UUID,
    title: str,
    message: str,
    notification_type: NotificationType,
    link: str | None = None,
) -> None:
    """Post-commit delivery. A notifier that raises is logged and never fails the caller."""
    try:
        notifier.notify(session, user_id, title, message, notification_type, link)
    except Exception:
        observe_notification_failed(notification_type.value)
        logger.warning("notification.dispatch_failed", exc_info=True, extra={"worker_id": str(user_id)})


@dataclass(slots=True)
class NotificationService:
    def notify(
        self,
        session: Session,
        user_id: uuid.UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        link: str | None = None,
    ) -> None:
        """Persist an inbox row in its own transaction. Never raises."""
        try:
            session.add(
                Notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=notification_type.value,
                    link=link,
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            observe_notification_failed(notification_type.value)
            logger.exception("notification.failed", extra={"worker_id": str(user_id)})
            return

        observe_notification_sent(notification_type.value)
        logger.info("notification.sent", extra={"worker_id": str(user_id)})

    def list_notifications(self, session: Session, caller: Caller) -> ActionResult[NotificationInbox]:
        rows = session.scalars(
            select(Notification)
            .where(Notification.user_id == caller.user_id)
            .order_by(Notification.created_at.desc(), Notification.id.asc())
            .limit(INBOX_SIZE)
        ).all()
        unread = session.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == caller.user_id,
                Notification.is_read.is_(False),
            )
        )
        inbox = NotificationInbox(
            notifications=[NotificationRead.model_validate(row) for row in rows],
            unread_count=int(unread or 0),
        )
        return ok("Notifications fetched successfully", data=inbox)

    def mark_read(self, session: Session, caller: Caller, notification_id: uuid.UUID) -> ActionResult[NotificationRead]:
        notification = session.get(Notification, notification_id)
        if notification is None:
            return not_found("Notification not found")
        if notification.user_id != caller.user_id:
            return access_denied()

        notification.is_read = True
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("notification.mark_read_failed", extra={"notification_id": str(notification_id)})
            return internal_error("Failed to mark notification as read")

        session.refresh(notification)
        return ok("Notification marked as read", data=NotificationRead.model_validate(notification))

    def mark_all_read(self, session: Session, caller: Caller) -> ActionResult[dict[str, int]]:
        try:
            result = session.execute(
                update(Notification)
                .where(Notification.user_id == caller.user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("notification.mark_all_read_failed")
            return internal_error("Failed to mark notifications as read")

        return ok("All notifications marked as read", data={"count": int(result.rowcount or 0)})


notification_service = NotificationService()
