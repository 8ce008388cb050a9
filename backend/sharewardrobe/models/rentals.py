from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

# pending -> return_initiated -> inspected -> (refunded | completed | rejected)
RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_RETURN_INITIATED = "return_initiated"
RETURN_STATUS_INSPECTED = "inspected"
RETURN_STATUS_REFUNDED = "refunded"
RETURN_STATUS_COMPLETED = "completed"
RETURN_STATUS_REJECTED = "rejected"
RETURN_STATUSES = (
    RETURN_STATUS_PENDING,
    RETURN_STATUS_RETURN_INITIATED,
    RETURN_STATUS_INSPECTED,
    RETURN_STATUS_REFUNDED,
    RETURN_STATUS_COMPLETED,
    RETURN_STATUS_REJECTED,
)

# States in which an admin may still inspect the garment
AWAITING_INSPECTION = (RETURN_STATUS_PENDING, RETURN_STATUS_RETURN_INITIATED)

DELIVERY_STATUS_PENDING = "pending"
DELIVERY_STATUS_PICKED_UP = "picked_up"
DELIVERY_STATUS_IN_TRANSIT = "in_transit"
DELIVERY_STATUS_DELIVERED = "delivered"
DELIVERY_STATUS_FAILED = "failed"
DELIVERY_STATUS_CANCELLED = "cancelled"
DELIVERY_STATUSES = (
    DELIVERY_STATUS_PENDING,
    DELIVERY_STATUS_PICKED_UP,
    DELIVERY_STATUS_IN_TRANSIT,
    DELIVERY_STATUS_DELIVERED,
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_CANCELLED,
)
# Courier requests that can still be called off
OPEN_DELIVERY_STATUSES = (DELIVERY_STATUS_PENDING, DELIVERY_STATUS_PICKED_UP, DELIVERY_STATUS_IN_TRANSIT)


class Rental(SoftDeleteMixin, db.Model):
    """Rental period attached 1:1 to a rent-type order line."""
    __tablename__ = "rentals"
    __table_args__ = (
        db.CheckConstraint("late_fee >= 0", name="ck_rentals_late_fee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_line_id = db.Column(
        db.Integer,
        db.ForeignKey("order_lines.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    rental_start = db.Column(db.DateTime(timezone=True), nullable=False)
    rental_end = db.Column(db.DateTime(timezone=True), nullable=False)

    return_status = db.Column(db.String(24), nullable=False, default=RETURN_STATUS_PENDING, index=True)
    return_initiated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    inspection_result = db.Column(db.Text, nullable=True)
    refund_amount = db.Column(db.Numeric(14, 2), nullable=True)
    late_fee = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    inspected_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    inspected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    order_line = db.relationship("OrderLine", back_populates="rental")

    @property
    def order(self):
        return self.order_line.order

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_line_id": self.order_line_id,
            "order_id": self.order_line.order_id if self.order_line else None,
            "rental_start": to_utc_z(self.rental_start),
            "rental_end": to_utc_z(self.rental_end),
            "return_status": self.return_status,
            "return_initiated_at": to_utc_z(self.return_initiated_at),
            "inspection_result": self.inspection_result,
            "refund_amount": str(self.refund_amount) if self.refund_amount is not None else None,
            "late_fee": str(self.late_fee) if self.late_fee is not None else "0.00",
            "inspected_at": to_utc_z(self.inspected_at),
        }


class Delivery(SoftDeleteMixin, db.Model):
    """Record of a courier request (outbound order or return pickup)."""
    __tablename__ = "deliveries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    rental_id = db.Column(db.Integer, db.ForeignKey("rentals.id"), nullable=True, index=True)
    from_address = db.Column(db.Text, nullable=False)
    to_address = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=DELIVERY_STATUS_PENDING)
    tracking_id = db.Column(db.String(128), nullable=True, index=True)
    is_return = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    order = db.relationship("Order", backref=db.backref("deliveries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "rental_id": self.rental_id,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "status": self.status,
            "tracking_id": self.tracking_id,
            "is_return": self.is_return,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
