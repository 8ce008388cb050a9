from decimal import Decimal

import pytest

from sharewardrobe.errors import ValidationError
from sharewardrobe.models import AdminConfig
from sharewardrobe.services import config_service


def _store(db_session, key, value):
    db_session.add(AdminConfig(key=key, value=value))
    db_session.commit()


def test_missing_keys_fall_back_to_builtin_defaults():
    assert config_service.delivery_charge() == Decimal("100.00")
    assert config_service.safety_deposit_percent() == Decimal("30")
    assert config_service.negotiation_hold_minutes() == 1440
    assert config_service.payment_timeout_minutes() == 1440
    assert config_service.late_fee_rate() == Decimal("0.10")
    assert config_service.rental_duration_days() == 7


def test_stored_values_are_parsed(db_session):
    _store(db_session, config_service.DELIVERY_CHARGE_PER_ORDER, " 150.50 ")
    _store(db_session, config_service.PAYMENT_TIMEOUT_MINUTES, "30")

    assert config_service.delivery_charge() == Decimal("150.50")
    assert config_service.payment_timeout_minutes() == 30


@pytest.mark.parametrize("raw", ["abc", "", "-5", "NaN", "Infinity"])
def test_malformed_decimal_uses_default(db_session, raw):
    _store(db_session, config_service.SAFETY_DEPOSIT_PERCENTAGE, raw)
    assert config_service.safety_deposit_percent() == Decimal("30")


@pytest.mark.parametrize("raw", ["12.5", "soon", "-1"])
def test_malformed_int_uses_default(db_session, raw):
    _store(db_session, config_service.NEGOTIATION_HOLD_MINUTES, raw)
    assert config_service.negotiation_hold_minutes() == 1440


def test_zero_is_a_valid_value(db_session):
    _store(db_session, config_service.DELIVERY_CHARGE_PER_ORDER, "0")
    assert config_service.delivery_charge() == Decimal("0")


def test_set_config_upserts():
    row, created = config_service.set_config("delivery_charge_per_order", "80", "Flat fee")
    assert created is True
    assert row.value == "80"

    row, created = config_service.set_config("delivery_charge_per_order", 90)
    assert created is False
    assert row.value == "90"
    assert row.description == "Flat fee"
    assert config_service.delivery_charge() == Decimal("90")


def test_set_config_requires_key():
    with pytest.raises(ValidationError):
        config_service.set_config("  ", "1")


def test_seed_defaults_is_idempotent():
    assert config_service.seed_defaults() == len(config_service.DEFAULT_CONFIGS)
    assert config_service.seed_defaults() == 0
    keys = {row.key for row in config_service.list_configs()}
    assert keys == set(config_service.DEFAULT_CONFIGS)


@pytest.mark.parametrize(
    "key,raw,reader,default",
    [
        (config_service.PAYMENT_TIMEOUT_MINUTES, "99999999999", config_service.payment_timeout_minutes, 1440),
        (config_service.NEGOTIATION_HOLD_MINUTES, "525601", config_service.negotiation_hold_minutes, 1440),
        (config_service.RENTAL_DURATION_DAYS, "100000000", config_service.rental_duration_days, 7),
        (config_service.SAFETY_DEPOSIT_PERCENTAGE, "101", config_service.safety_deposit_percent, Decimal("30")),
        (config_service.DELIVERY_CHARGE_PER_ORDER, "1e30", config_service.delivery_charge, Decimal("100.00")),
        (config_service.LATE_FEE_RATE_PER_DAY, "11", config_service.late_fee_rate, Decimal("0.10")),
    ],
)
def test_values_above_ceiling_use_default(db_session, key, raw, reader, default):
    _store(db_session, key, raw)
    assert reader() == default


def test_ceiling_itself_is_accepted(db_session):
    _store(db_session, config_service.PAYMENT_TIMEOUT_MINUTES, "525600")
    _store(db_session, config_service.SAFETY_DEPOSIT_PERCENTAGE, "100")
    assert config_service.payment_timeout_minutes() == 525600
    assert config_service.safety_deposit_percent() == Decimal("100")
