from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

LINE_TYPE_BUY = "buy"
LINE_TYPE_RENT = "rent"
LINE_TYPES = (LINE_TYPE_BUY, LINE_TYPE_RENT)

NEGOTIATION_PENDING = "pending"
NEGOTIATION_ACCEPTED = "accepted"
NEGOTIATION_REJECTED = "rejected"
NEGOTIATION_STATUSES = (NEGOTIATION_PENDING, NEGOTIATION_ACCEPTED, NEGOTIATION_REJECTED)

PAYMENT_METHOD_COD = "cod"
PAYMENT_METHOD_ONLINE = "online"
PAYMENT_METHODS = (PAYMENT_METHOD_COD, PAYMENT_METHOD_ONLINE)

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PAID = "paid"
ORDER_STATUS_SHIPPED = "shipped"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_RETURNED = "returned"
ORDER_STATUS_PARTIALLY_RETURNED = "partially_returned"
ORDER_STATUS_CANCELLED = "cancelled"
ORDER_STATUS_REFUNDED = "refunded"
ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PAID,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_RETURNED,
    ORDER_STATUS_PARTIALLY_RETURNED,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_REFUNDED,
)


def _money_str(value):
    return str(value) if value is not None else None


class CartLine(db.Model):
    """
    One (user, item, type) entry in a buyer's cart.

    negotiated_price overrides the catalog price while the hold lasts.
    Lines are ephemeral: checkout deletes them, and an expired negotiated
    hold is re-validated at checkout rather than trusted.
    """
    __tablename__ = "cart_lines"
    __table_args__ = (
        db.UniqueConstraint("user_id", "item_id", "type", name="uq_cart_lines_user_item_type"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_lines_quantity"),
        db.Index("ix_cart_lines_negotiated_expires_at", "negotiated_expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    type = db.Column(db.String(8), nullable=False)

    negotiated_price = db.Column(db.Numeric(14, 2), nullable=True)
    negotiated_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    negotiation_id = db.Column(db.Integer, db.ForeignKey("negotiations.id", ondelete="SET NULL"), nullable=True)

    added_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")
    negotiation = db.relationship("Negotiation")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "type": self.type,
            "negotiated_price": _money_str(self.negotiated_price),
            "negotiated_expires_at": to_utc_z(self.negotiated_expires_at),
            "negotiation_id": self.negotiation_id,
            "added_at": to_utc_z(self.added_at),
        }


class Negotiation(SoftDeleteMixin, db.Model):
    """A buyer's price offer on an item; the item's owner accepts or rejects it."""
    __tablename__ = "negotiations"
    __table_args__ = (
        db.CheckConstraint("offer_price >= 0", name="ck_negotiations_offer_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    offer_price = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=NEGOTIATION_PENDING)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    item = db.relationship("Item", backref=db.backref("negotiations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "buyer_id": self.buyer_id,
            "offer_price": _money_str(self.offer_price),
            "status": self.status,
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
        }


class Order(SoftDeleteMixin, db.Model):
    """
    Checkout result.

    total_amount, delivery_charge and safety_deposit are computed once at
    creation and never recomputed; only status and delivery_charge_paid move.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_orders_total"),
        db.CheckConstraint("delivery_charge >= 0", name="ck_orders_delivery_charge"),
        db.CheckConstraint("safety_deposit >= 0", name="ck_orders_safety_deposit"),
        db.Index("ix_orders_status_payment_due", "status", "payment_due_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    delivery_charge = db.Column(db.Numeric(14, 2), nullable=False)
    safety_deposit = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    payment_method = db.Column(db.String(8), nullable=False)
    delivery_address = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(24), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    payment_due_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivery_charge_paid = db.Column(db.Boolean, nullable=False, default=False)
    payment_reference = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    buyer = db.relationship("User", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "buyer_id": self.buyer_id,
            "total_amount": _money_str(self.total_amount),
            "delivery_charge": _money_str(self.delivery_charge),
            "safety_deposit": _money_str(self.safety_deposit),
            "payment_method": self.payment_method,
            "delivery_address": self.delivery_address,
            "status": self.status,
            "payment_due_at": to_utc_z(self.payment_due_at),
            "delivery_charge_paid": self.delivery_charge_paid,
            "payment_reference": self.payment_reference,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Frozen (item, quantity, price, type) snapshot; price is never re-derived from the item."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity"),
        db.CheckConstraint("price >= 0", name="ck_order_lines_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    type = db.Column(db.String(8), nullable=False)

    item = db.relationship("Item")
    rental = db.relationship("Rental", back_populates="order_line", uselist=False, cascade="all, delete-orphan")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "price": _money_str(self.price),
            "type": self.type,
            "rental_id": self.rental.id if self.rental else None,
        }
