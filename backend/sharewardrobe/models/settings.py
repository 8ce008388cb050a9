from __future__ import annotations

from ..extensions import db
from sharewardrobe.time_utils import to_utc_z


class AdminConfig(db.Model):
    """
    Flat key -> string business setting.

    Values are parsed by the reader (services.config_service), which falls
    back to a built-in default when a key is absent or malformed.
    """
    __tablename__ = "admin_configs"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "description": self.description,
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": to_utc_z(self.updated_at),
        }
