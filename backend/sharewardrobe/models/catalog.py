from __future__ import annotations

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

AVAILABILITY_SELL_ONLY = "sell_only"
AVAILABILITY_RENT_ONLY = "rent_only"
AVAILABILITY_BOTH = "both"
AVAILABILITIES = (AVAILABILITY_SELL_ONLY, AVAILABILITY_RENT_ONLY, AVAILABILITY_BOTH)

ITEM_STATUS_PENDING_APPROVAL = "pending_approval"
ITEM_STATUS_AVAILABLE = "available"
ITEM_STATUS_IN_WAREHOUSE = "in_warehouse"
ITEM_STATUS_RENTED = "rented"
ITEM_STATUS_SOLD = "sold"
ITEM_STATUS_RETURNED_PENDING = "returned_pending"
ITEM_STATUS_DAMAGED = "damaged"
ITEM_STATUS_REJECTED = "rejected"
ITEM_STATUSES = (
    ITEM_STATUS_PENDING_APPROVAL,
    ITEM_STATUS_AVAILABLE,
    ITEM_STATUS_IN_WAREHOUSE,
    ITEM_STATUS_RENTED,
    ITEM_STATUS_SOLD,
    ITEM_STATUS_RETURNED_PENDING,
    ITEM_STATUS_DAMAGED,
    ITEM_STATUS_REJECTED,
)


def _money_str(value):
    return str(value) if value is not None else None


class Category(SoftDeleteMixin, db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    slug = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
        }


class Item(SoftDeleteMixin, db.Model):
    """
    A listed garment.

    quantity is the reservable stock. Checkout decrements it under a row
    lock; the check constraint is the last line of defence against overselling.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        db.CheckConstraint("sell_price IS NULL OR sell_price >= 0", name="ck_items_sell_price"),
        db.CheckConstraint("rent_price IS NULL OR rent_price >= 0", name="ck_items_rent_price"),
        db.Index("ix_items_status_availability", "status", "availability"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    type = db.Column(db.String(64), nullable=False)
    color = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(32), nullable=True)
    description = db.Column(db.Text, nullable=False)

    purchase_price = db.Column(db.Numeric(14, 2), nullable=True)
    sell_price = db.Column(db.Numeric(14, 2), nullable=True)
    rent_price = db.Column(db.Numeric(14, 2), nullable=True)

    availability = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(24), nullable=False, default=ITEM_STATUS_PENDING_APPROVAL)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    seller = db.relationship("User", backref=db.backref("items", lazy=True))
    category = db.relationship("Category", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "category_id": self.category_id,
            "type": self.type,
            "color": self.color,
            "size": self.size,
            "description": self.description,
            "sell_price": _money_str(self.sell_price),
            "rent_price": _money_str(self.rent_price),
            "availability": self.availability,
            "quantity": self.quantity,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class WarehouseStock(SoftDeleteMixin, db.Model):
    """
    Units of an item physically held at the warehouse.

    One live row per item; intake of the same item adds to its quantity.
    status reuses the item status vocabulary (in_warehouse, damaged, ...).
    """
    __tablename__ = "warehouse_inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_warehouse_inventory_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(24), nullable=False, default=ITEM_STATUS_IN_WAREHOUSE, index=True)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "status": self.status,
            "last_updated": to_utc_z(self.last_updated),
            "item": self.item.to_dict() if self.item else None,
        }
