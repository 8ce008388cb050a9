# Overview: Service-layer operations for categories and listed items.

from __future__ import annotations

import re

from sqlalchemy import or_

from ..extensions import db
from ..errors import ConflictError, ForbiddenError, ValidationError
from ..models import Category, Item, User
from ..models.catalog import (
    AVAILABILITIES,
    AVAILABILITY_BOTH,
    AVAILABILITY_RENT_ONLY,
    AVAILABILITY_SELL_ONLY,
    ITEM_STATUSES,
    ITEM_STATUS_AVAILABLE,
    ITEM_STATUS_PENDING_APPROVAL,
)
from sharewardrobe.money import to_money
from .lookups import get_active

ITEM_EDITABLE_FIELDS = ("category_id", "type", "color", "size", "description", "purchase_price", "sell_price", "rent_price", "availability", "quantity")
MONEY_FIELDS = ("purchase_price", "sell_price", "rent_price")


# =============================================================================
# CATEGORIES
# =============================================================================

def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def create_category(name: str, description: str | None = None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    if db.session.query(Category).filter(Category.name == name).first():
        raise ConflictError("Category with this name already exists")

    category = Category(name=name, slug=_slugify(name), description=description)
    db.session.add(category)
    db.session.commit()
    return category


def list_categories() -> list[Category]:
    return Category.active().order_by(Category.name).all()


def delete_category(category_id: int) -> None:
    category = get_active(Category, category_id, label="Category")
    category.soft_delete()
    db.session.commit()


# =============================================================================
# ITEMS
# =============================================================================

def _money_or_none(value, field: str):
    if value is None or value == "":
        return None
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be zero or more")
    return amount


def _validate_pricing(availability: str, sell_price, rent_price) -> None:
    if availability not in AVAILABILITIES:
        raise ValidationError(f"availability must be one of {list(AVAILABILITIES)}")
    if availability == AVAILABILITY_SELL_ONLY and sell_price is None:
        raise ValidationError("Sell price is required for sell_only items")
    if availability == AVAILABILITY_RENT_ONLY and rent_price is None:
        raise ValidationError("Rent price is required for rent_only items")
    if availability == AVAILABILITY_BOTH and (sell_price is None or rent_price is None):
        raise ValidationError("Both sell and rent prices are required for both availability")


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def create_item(seller_id: int, data: dict) -> Item:
    """New listings wait in pending_approval until an admin approves them."""
    if not data.get("type"):
        raise ValidationError("type is required")
    if not data.get("description"):
        raise ValidationError("description is required")

    prices = {field: _money_or_none(data.get(field), field) for field in MONEY_FIELDS}
    availability = data.get("availability")
    _validate_pricing(availability, prices["sell_price"], prices["rent_price"])

    category_id = data.get("category_id")
    if category_id is not None:
        get_active(Category, category_id, label="Category")

    item = Item(
        seller_id=seller_id,
        category_id=category_id,
        type=data["type"],
        color=data.get("color"),
        size=data.get("size"),
        description=data["description"],
        availability=availability,
        quantity=_validate_quantity(data.get("quantity", 1)),
        status=ITEM_STATUS_PENDING_APPROVAL,
        **prices,
    )
    db.session.add(item)
    db.session.commit()
    return item


def list_items(
    *,
    category_id: int | None = None,
    type: str | None = None,
    availability: str | None = None,
    status: str | None = ITEM_STATUS_AVAILABLE,
    min_price=None,
    max_price=None,
    page: int = 1,
    limit: int = 20,
) -> list[Item]:
    query = Item.active()
    if status:
        query = query.filter(Item.status == status)
    if category_id is not None:
        query = query.filter(Item.category_id == category_id)
    if type:
        query = query.filter(Item.type == type)
    if availability:
        query = query.filter(Item.availability == availability)
    if min_price is not None:
        floor = _money_or_none(min_price, "min_price")
        query = query.filter(or_(Item.sell_price >= floor, Item.rent_price >= floor))
    if max_price is not None:
        ceiling = _money_or_none(max_price, "max_price")
        query = query.filter(or_(Item.sell_price <= ceiling, Item.rent_price <= ceiling))
    return (
        query.order_by(Item.created_at.desc(), Item.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_item(item_id: int) -> Item:
    return get_active(Item, item_id, label="Item")


def _get_owned_item(item_id: int, user: User) -> Item:
    item = get_item(item_id)
    if item.seller_id != user.id and not user.is_admin:
        raise ForbiddenError("You can only change your own items")
    return item


def update_item(item_id: int, user: User, data: dict) -> Item:
    item = _get_owned_item(item_id, user)

    for field in ITEM_EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field in MONEY_FIELDS:
            value = _money_or_none(value, field)
        elif field == "quantity":
            value = _validate_quantity(value)
        elif field == "category_id" and value is not None:
            get_active(Category, value, label="Category")
        setattr(item, field, value)

    _validate_pricing(item.availability, item.sell_price, item.rent_price)
    db.session.commit()
    return item


def delete_item(item_id: int, user: User) -> None:
    item = _get_owned_item(item_id, user)
    item.soft_delete()
    db.session.commit()


def set_item_status(item_id: int, status: str) -> Item:
    """Admin moderation; approve -> available, reject -> rejected."""
    if status not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of {list(ITEM_STATUSES)}")
    item = get_item(item_id)
    item.status = status
    db.session.commit()
    return item
