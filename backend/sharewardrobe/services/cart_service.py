# Overview: Service-layer operations for the buyer's cart.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import CartLine, Item
from ..models.catalog import AVAILABILITY_RENT_ONLY, AVAILABILITY_SELL_ONLY, ITEM_STATUS_AVAILABLE
from ..models.commerce import LINE_TYPES, LINE_TYPE_BUY, LINE_TYPE_RENT
from .lookups import get_active

# Cart lines are not locked against a concurrent checkout; an add that races
# a checkout is simply not part of that order.


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def ensure_line_type_allowed(item: Item, type: str) -> None:
    if type not in LINE_TYPES:
        raise ValidationError(f"type must be one of {list(LINE_TYPES)}")
    if type == LINE_TYPE_BUY and item.availability == AVAILABILITY_RENT_ONLY:
        raise ValidationError("This item is only available for rent")
    if type == LINE_TYPE_RENT and item.availability == AVAILABILITY_SELL_ONLY:
        raise ValidationError("This item is only available for sale")


def add_item(user_id: int, item_id: int, quantity: int = 1, type: str = LINE_TYPE_BUY) -> tuple[CartLine, bool]:
    """
    Add an item to the cart. Returns (line, created).

    An existing (user, item, type) line has its quantity increased instead.
    """
    quantity = _validate_quantity(quantity)
    item = get_active(Item, item_id, label="Item")
    if item.status != ITEM_STATUS_AVAILABLE:
        raise ValidationError("Item is not available")
    if item.seller_id == user_id:
        raise ValidationError("Cannot add your own item to the cart")
    ensure_line_type_allowed(item, type)

    line = db.session.query(CartLine).filter_by(user_id=user_id, item_id=item_id, type=type).first()
    if line:
        line.quantity += quantity
        db.session.commit()
        return line, False

    line = CartLine(user_id=user_id, item_id=item_id, quantity=quantity, type=type)
    db.session.add(line)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Item is already in the cart")
    return line, True


def list_cart(user_id: int) -> list[CartLine]:
    return (
        db.session.query(CartLine)
        .filter(CartLine.user_id == user_id)
        .order_by(CartLine.id)
        .all()
    )


def _get_own_line(user_id: int, line_id: int) -> CartLine:
    line = db.session.query(CartLine).filter_by(id=line_id, user_id=user_id).first()
    if not line:
        raise NotFoundError("Cart item not found")
    return line


def update_quantity(user_id: int, line_id: int, quantity: int) -> CartLine:
    quantity = _validate_quantity(quantity)
    line = _get_own_line(user_id, line_id)
    line.quantity = quantity
    db.session.commit()
    return line


def remove_item(user_id: int, line_id: int) -> None:
    line = _get_own_line(user_id, line_id)
    db.session.delete(line)
    db.session.commit()


def clear_cart(user_id: int) -> int:
    removed = db.session.query(CartLine).filter(CartLine.user_id == user_id).delete(synchronize_session=False)
    db.session.commit()
    return removed
