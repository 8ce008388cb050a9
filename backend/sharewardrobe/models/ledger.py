from __future__ import annotations

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

TXN_TYPE_PAYMENT = "payment"
TXN_TYPE_REFUND = "refund"
TXN_TYPE_WITHDRAWAL = "withdrawal"
TXN_TYPE_FEE = "fee"
TXN_TYPES = (TXN_TYPE_PAYMENT, TXN_TYPE_REFUND, TXN_TYPE_WITHDRAWAL, TXN_TYPE_FEE)

TXN_STATUS_PENDING = "pending"
TXN_STATUS_COMPLETED = "completed"
TXN_STATUS_FAILED = "failed"
TXN_STATUS_CANCELLED = "cancelled"
TXN_STATUSES = (TXN_STATUS_PENDING, TXN_STATUS_COMPLETED, TXN_STATUS_FAILED, TXN_STATUS_CANCELLED)

WITHDRAWAL_PENDING = "pending"
WITHDRAWAL_PROCESSED = "processed"
WITHDRAWAL_REJECTED = "rejected"


class Transaction(SoftDeleteMixin, db.Model):
    """
    Append-only money movement.

    Rows are never deleted or edited; the only permitted update is a
    withdrawal's status leaving pending. deleted_at hides a row from
    admin listings without removing it.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    withdrawal_request_id = db.Column(db.Integer, db.ForeignKey("withdrawal_requests.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=TXN_STATUS_PENDING)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "withdrawal_request_id": self.withdrawal_request_id,
            "amount": str(self.amount),
            "type": self.type,
            "status": self.status,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class WithdrawalRequest(SoftDeleteMixin, db.Model):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=WITHDRAWAL_PENDING, index=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "status": self.status,
            "processed_at": to_utc_z(self.processed_at),
            "processed_by_user_id": self.processed_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
