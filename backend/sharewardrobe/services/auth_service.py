# Overview: Service-layer operations for auth; registration, credential checks, account admin.

"""
Authentication Service

Accounts are identified by phone number. Passwords are hashed with bcrypt
(cost factor 12). Session tokens live in session_service.

SECURITY NOTES:
- Minimum 8 characters, at least one letter and one digit
- Deleted, suspended and inactive accounts cannot log in
- Phone verification (OTP) happens outside this backend; phone_verified is
  set by that collaborator
"""

import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import User
from ..models.users import (
    ROLE_ADMIN,
    ROLES,
    USER_STATUS_ACTIVE,
    USER_STATUS_DELETED,
    USER_STATUSES,
    VERIFICATION_APPROVED,
    VERIFICATION_REJECTED,
)
from sharewardrobe.time_utils import utcnow

PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt cost factor 12."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # malformed hash
        return False


def normalize_phone(phone: str | None) -> str:
    phone = (phone or "").strip().replace(" ", "").replace("-", "")
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("phone must be 10-15 digits, optionally prefixed with +")
    return phone


def create_user(
    phone: str,
    password: str,
    name: str | None = None,
    email: str | None = None,
    address: str | None = None,
    role: str = "user",
) -> User:
    """
    Create a new account.

    Raises:
        ValidationError: bad phone, weak password, unknown role
        ConflictError: phone already registered
    """
    phone = normalize_phone(phone)
    if role not in ROLES:
        raise ValidationError(f"role must be one of {list(ROLES)}")

    existing = db.session.query(User).filter_by(phone=phone).first()
    if existing:
        raise ConflictError("Phone number is already registered")

    user = User(
        phone=phone,
        name=name,
        email=email,
        address=address,
        role=role,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # concurrent registration of the same phone
        db.session.rollback()
        raise ConflictError("Phone number is already registered")
    return user


def authenticate(phone: str, password: str) -> User | None:
    """
    Check credentials. Returns the User on success, None otherwise.

    Only active, non-deleted accounts authenticate. Updates last_login_at.
    """
    try:
        phone = normalize_phone(phone)
    except ValidationError:
        return None

    user = User.active().filter(User.phone == phone).first()
    if user is None or user.status != USER_STATUS_ACTIVE:
        return None

    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = User.active().filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def set_user_status(user_id: int, status: str) -> User:
    if status not in USER_STATUSES:
        raise ValidationError(f"status must be one of {list(USER_STATUSES)}")
    user = get_user(user_id)
    user.status = status
    if status == USER_STATUS_DELETED:
        user.soft_delete()
    db.session.commit()
    return user


def set_user_role(user_id: int, role: str, *, acting_user_id: int | None = None) -> User:
    """Admin promotes or demotes an account. An admin cannot change their own role."""
    if role not in ROLES:
        raise ValidationError(f"role must be one of {list(ROLES)}")
    if acting_user_id is not None and acting_user_id == user_id:
        raise ValidationError("You cannot change your own role")
    user = get_user(user_id)
    user.role = role
    db.session.commit()
    return user


def set_verification_status(user_id: int, status: str) -> User:
    """Admin decision on a user's identity documents."""
    if status not in (VERIFICATION_APPROVED, VERIFICATION_REJECTED):
        raise ValidationError("status must be 'approved' or 'rejected'")
    user = get_user(user_id)
    if status == VERIFICATION_APPROVED and not (user.nid_front_url and user.nid_back_url):
        raise ValidationError("User has not submitted both identity documents")
    user.verification_status = status
    db.session.commit()
    return user


def submit_identity_documents(user_id: int, front_url: str, back_url: str) -> User:
    if not front_url or not back_url:
        raise ValidationError("Both front and back document URLs are required")
    user = get_user(user_id)
    user.nid_front_url = front_url
    user.nid_back_url = back_url
    user.verification_status = "pending"
    db.session.commit()
    return user


def ensure_admin(phone: str, password: str, name: str | None = "Administrator") -> tuple[User, bool]:
    """Idempotent admin bootstrap used by the CLI. Returns (user, created)."""
    phone = normalize_phone(phone)
    user = db.session.query(User).filter_by(phone=phone).first()
    if user:
        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.session.commit()
        return user, False
    return create_user(phone=phone, password=password, name=name, role=ROLE_ADMIN), True
