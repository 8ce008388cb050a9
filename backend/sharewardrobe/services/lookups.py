"""
Existence checks applied uniformly to soft-deletable rows.

get_active() is the only way services fetch a single soft-deletable row by
id; a row with deleted_at set is indistinguishable from a missing one.
"""

from __future__ import annotations

from ..errors import NotFoundError
from .concurrency import lock_for_update


def get_active(model, entity_id: int, *, session=None, lock: bool = False, label: str | None = None):
    query = model.active() if session is None else session.query(model).filter(model.deleted_at.is_(None))
    query = query.filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFoundError(f"{label or model.__name__} {entity_id} not found")
    return row
