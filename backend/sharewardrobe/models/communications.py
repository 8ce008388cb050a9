from __future__ import annotations

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

NOTIFICATION_ORDER_CONFIRMATION = "order_confirmation"
NOTIFICATION_RENTAL_REMINDER = "rental_reminder"
NOTIFICATION_NEGOTIATION = "negotiation"
NOTIFICATION_SYSTEM = "system"
NOTIFICATION_TYPES = (
    NOTIFICATION_ORDER_CONFIRMATION,
    NOTIFICATION_RENTAL_REMINDER,
    NOTIFICATION_NEGOTIATION,
    NOTIFICATION_SYSTEM,
)


class Notification(SoftDeleteMixin, db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
