"""
Business configuration resolver.

AdminConfig holds string values; callers read them as numbers with a
built-in default. A missing key never raises. A value that does not parse,
is not finite, is negative or exceeds the key's ceiling is treated as absent.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import AdminConfig


# =============================================================================
# KNOWN KEYS AND DEFAULTS
# =============================================================================

DELIVERY_CHARGE_PER_ORDER = "delivery_charge_per_order"
SAFETY_DEPOSIT_PERCENTAGE = "safety_deposit_percentage"
NEGOTIATION_HOLD_MINUTES = "negotiation_hold_minutes"
PAYMENT_TIMEOUT_MINUTES = "payment_timeout_minutes"
LATE_FEE_RATE_PER_DAY = "late_fee_rate_per_day"
RENTAL_DURATION_DAYS = "rental_duration_days"

DEFAULT_DELIVERY_CHARGE = Decimal("100.00")
DEFAULT_SAFETY_DEPOSIT_PERCENT = Decimal("30")
DEFAULT_NEGOTIATION_HOLD_MINUTES = 1440
DEFAULT_PAYMENT_TIMEOUT_MINUTES = 1440
DEFAULT_LATE_FEE_RATE = Decimal("0.10")
DEFAULT_RENTAL_DURATION_DAYS = 7

# Ceilings keep derived timedeltas and money inside representable range
MINUTES_PER_YEAR = 525600
MAX_DELIVERY_CHARGE = Decimal("1000000")
MAX_SAFETY_DEPOSIT_PERCENT = Decimal("100")
MAX_LATE_FEE_RATE = Decimal("10")
MAX_RENTAL_DURATION_DAYS = 365

DEFAULT_CONFIGS = {
    DELIVERY_CHARGE_PER_ORDER: (str(DEFAULT_DELIVERY_CHARGE), "Flat delivery charge added once per order"),
    SAFETY_DEPOSIT_PERCENTAGE: (str(DEFAULT_SAFETY_DEPOSIT_PERCENT), "Refundable deposit, percent of rental line total"),
    NEGOTIATION_HOLD_MINUTES: (str(DEFAULT_NEGOTIATION_HOLD_MINUTES), "How long an accepted offer stays valid in the cart"),
    PAYMENT_TIMEOUT_MINUTES: (str(DEFAULT_PAYMENT_TIMEOUT_MINUTES), "Minutes before an unpaid online order expires"),
    LATE_FEE_RATE_PER_DAY: (str(DEFAULT_LATE_FEE_RATE), "Late fee per day, fraction of the rental line price"),
    RENTAL_DURATION_DAYS: (str(DEFAULT_RENTAL_DURATION_DAYS), "Length of a rental started at checkout"),
}


# =============================================================================
# READERS
# =============================================================================

def get_config(key: str, default: str | None = None, *, session=None) -> str | None:
    """Raw stored value, or `default` when the key is absent."""
    session = session or db.session
    row = session.query(AdminConfig).filter_by(key=key).first()
    if row is None:
        return default
    return row.value


def get_decimal(key: str, default: Decimal, *, maximum: Decimal | None = None, session=None) -> Decimal:
    raw = get_config(key, session=session)
    if raw is None:
        return default
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        current_app.logger.warning("Config %s has non-numeric value %r; using default %s", key, raw, default)
        return default
    if not value.is_finite() or value < 0 or (maximum is not None and value > maximum):
        current_app.logger.warning("Config %s has out-of-range value %r; using default %s", key, raw, default)
        return default
    return value


def get_int(key: str, default: int, *, maximum: int | None = None, session=None) -> int:
    raw = get_config(key, session=session)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (ValueError, AttributeError):
        current_app.logger.warning("Config %s has non-integer value %r; using default %s", key, raw, default)
        return default
    if value < 0 or (maximum is not None and value > maximum):
        current_app.logger.warning("Config %s has out-of-range value %r; using default %s", key, raw, default)
        return default
    return value


def delivery_charge(*, session=None) -> Decimal:
    return get_decimal(
        DELIVERY_CHARGE_PER_ORDER, DEFAULT_DELIVERY_CHARGE, maximum=MAX_DELIVERY_CHARGE, session=session
    )


def safety_deposit_percent(*, session=None) -> Decimal:
    return get_decimal(
        SAFETY_DEPOSIT_PERCENTAGE, DEFAULT_SAFETY_DEPOSIT_PERCENT, maximum=MAX_SAFETY_DEPOSIT_PERCENT, session=session
    )


def negotiation_hold_minutes(*, session=None) -> int:
    return get_int(
        NEGOTIATION_HOLD_MINUTES, DEFAULT_NEGOTIATION_HOLD_MINUTES, maximum=MINUTES_PER_YEAR, session=session
    )


def payment_timeout_minutes(*, session=None) -> int:
    return get_int(
        PAYMENT_TIMEOUT_MINUTES, DEFAULT_PAYMENT_TIMEOUT_MINUTES, maximum=MINUTES_PER_YEAR, session=session
    )


def late_fee_rate(*, session=None) -> Decimal:
    return get_decimal(LATE_FEE_RATE_PER_DAY, DEFAULT_LATE_FEE_RATE, maximum=MAX_LATE_FEE_RATE, session=session)


def rental_duration_days(*, session=None) -> int:
    return get_int(
        RENTAL_DURATION_DAYS, DEFAULT_RENTAL_DURATION_DAYS, maximum=MAX_RENTAL_DURATION_DAYS, session=session
    )


# =============================================================================
# ADMIN WRITES
# =============================================================================

def list_configs() -> list[AdminConfig]:
    return db.session.query(AdminConfig).order_by(AdminConfig.key).all()


def get_config_row(key: str) -> AdminConfig | None:
    return db.session.query(AdminConfig).filter_by(key=key).first()


def set_config(
    key: str,
    value,
    description: str | None = None,
    *,
    user_id: int | None = None,
) -> tuple[AdminConfig, bool]:
    """Upsert a config value. Returns (row, created)."""
    if not key or not key.strip():
        raise ValidationError("Config key is required")
    if value is None:
        raise ValidationError("Config value is required")

    row = db.session.query(AdminConfig).filter_by(key=key).first()
    created = row is None
    if created:
        row = AdminConfig(key=key, value=str(value), description=description)
        db.session.add(row)
    else:
        row.value = str(value)
        if description is not None:
            row.description = description
    row.updated_by_user_id = user_id

    db.session.commit()
    return row, created


def seed_defaults() -> int:
    """Insert any missing known keys with their defaults. Returns how many were added."""
    added = 0
    for key, (value, description) in DEFAULT_CONFIGS.items():
        if db.session.query(AdminConfig).filter_by(key=key).first() is None:
            db.session.add(AdminConfig(key=key, value=value, description=description))
            added += 1
    db.session.commit()
    return added
