# Overview: Item stock reservation; the only place item quantity changes.

"""
Inventory invariants:
- Item.quantity is the reservable stock and is never negative.
- A reservation reads the item under an exclusive row lock inside the
  caller's unit of work, so a second concurrent checkout sees the already
  decremented quantity.
- Restores (order cancellation, unpaid expiry) take the same lock.
"""

from ..errors import ValidationError
from ..models import Item
from .concurrency import lock_for_update
from .lookups import get_active


def lock_item(session, item_id: int) -> Item:
    """Fetch a live item with an exclusive row lock. Raises NotFoundError."""
    return get_active(Item, item_id, session=session, lock=True, label="Item")


def ensure_available(item: Item, requested: int) -> None:
    if item.quantity < requested:
        raise ValidationError(
            f"Insufficient quantity for item {item.id}. "
            f"Available: {item.quantity}, Requested: {requested}",
            details={"item_id": item.id, "available": item.quantity, "requested": requested},
        )


def reserve(item: Item, quantity: int) -> None:
    """Decrement a locked item's stock."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    ensure_available(item, quantity)
    item.quantity -= quantity


def restore(session, item_id: int, quantity: int) -> Item | None:
    """
    Put stock back for a cancelled line.

    A soft-deleted item is left alone; the units are gone with the listing.
    """
    item = lock_for_update(
        session.query(Item).filter(Item.id == item_id, Item.deleted_at.is_(None))
    ).first()
    if item is None:
        return None
    item.quantity += quantity
    return item
