from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from .mixins import SoftDeleteMixin
from sharewardrobe.time_utils import to_utc_z

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

USER_STATUS_ACTIVE = "active"
USER_STATUS_INACTIVE = "inactive"
USER_STATUS_SUSPENDED = "suspended"
USER_STATUS_DELETED = "deleted"
USER_STATUSES = (USER_STATUS_ACTIVE, USER_STATUS_INACTIVE, USER_STATUS_SUSPENDED, USER_STATUS_DELETED)

VERIFICATION_PENDING = "pending"
VERIFICATION_APPROVED = "approved"
VERIFICATION_REJECTED = "rejected"
VERIFICATION_STATUSES = (VERIFICATION_PENDING, VERIFICATION_APPROVED, VERIFICATION_REJECTED)


class User(SoftDeleteMixin, db.Model):
    """
    Marketplace account. Buyers, sellers and admins share this table.

    balance is the withdrawable wallet; it only moves inside the rental
    refund and withdrawal flows and never goes below zero.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    # Phone is the login identifier
    phone = db.Column(db.String(32), nullable=False, unique=True, index=True)
    phone_verified = db.Column(db.Boolean, nullable=False, default=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    status = db.Column(db.String(16), nullable=False, default=USER_STATUS_ACTIVE, index=True)
    address = db.Column(db.Text, nullable=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    # National ID document references, reviewed by an admin
    nid_front_url = db.Column(db.String(512), nullable=True)
    nid_back_url = db.Column(db.String(512), nullable=True)
    verification_status = db.Column(db.String(16), nullable=False, default=VERIFICATION_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "phone_verified": self.phone_verified,
            "role": self.role,
            "status": self.status,
            "address": self.address,
            "balance": str(self.balance) if self.balance is not None else "0.00",
            "verification_status": self.verification_status,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session token.

    Tokens are stored as SHA-256 hashes; the plaintext only ever exists in
    the login response. 24-hour absolute timeout, 2-hour idle timeout.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
        }
