from __future__ import annotations

from ..extensions import db
from sharewardrobe.time_utils import utcnow


class SoftDeleteMixin:
    """
    Rows hidden by timestamp rather than removed.

    Every read of a soft-deletable model goes through active() (or
    services.lookups.get_active) so the deleted_at filter is never forgotten.
    """

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def active(cls):
        return db.session.query(cls).filter(cls.deleted_at.is_(None))

    def soft_delete(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = utcnow()
