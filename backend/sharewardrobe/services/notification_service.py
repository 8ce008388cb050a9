# Overview: Notification sink contract, the in-app implementation, and inbox queries.

from __future__ import annotations

import abc

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError
from ..models import Notification
from ..models.communications import NOTIFICATION_TYPES


class NotificationSink(abc.ABC):
    """Fire-and-forget user notifications."""

    @abc.abstractmethod
    def send_notification(self, user_id: int, type: str, message: str) -> None:
        ...


class InAppNotificationSink(NotificationSink):
    """Persists notifications as rows the user reads from their inbox."""

    def send_notification(self, user_id: int, type: str, message: str) -> None:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"unknown notification type {type!r}")
        db.session.add(Notification(user_id=user_id, type=type, message=message, is_read=False))
        db.session.commit()


def notify_safely(sink: NotificationSink, user_id: int, type: str, message: str) -> None:
    """Send a notification; a failure is logged and never reaches the caller."""
    try:
        sink.send_notification(user_id, type, message)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to notify user %s (%s)", user_id, type)


# =============================================================================
# INBOX
# =============================================================================

def list_notifications(user_id: int, *, unread_only: bool = False, page: int = 1, limit: int = 20) -> list[Notification]:
    q = Notification.active().filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def mark_read(user_id: int, notification_id: int) -> Notification:
    notification = Notification.active().filter_by(id=notification_id, user_id=user_id).first()
    if notification is None:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    updated = (
        Notification.active()
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated

