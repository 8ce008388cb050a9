from datetime import timedelta
from decimal import Decimal

import pytest

from sharewardrobe.errors import ForbiddenError, ValidationError
from sharewardrobe.models import Delivery, Rental, Transaction, User
from sharewardrobe.models.catalog import AVAILABILITY_RENT_ONLY
from sharewardrobe.models.commerce import LINE_TYPE_RENT
from sharewardrobe.services import config_service, order_service, rental_service
from sharewardrobe.services.rental_service import compute_late_fee

from conftest import T0, FakeDeliveryGateway

RENTAL_END = T0 + timedelta(days=7)


@pytest.fixture
def rental(db_session, fakes, buyer, make_item, add_line):
    item = make_item(sell_price=None, rent_price="1000.00", availability=AVAILABILITY_RENT_ONLY)
    add_line(buyer, item, type=LINE_TYPE_RENT)
    order_service.checkout(
        buyer.id, "cod", "House 9, Road 4",
        payment_gateway=fakes.payment,
        delivery_gateway=fakes.delivery,
        notifications=fakes.notifications,
        now=T0,
    )
    return db_session.query(Rental).one()


def _initiate(rental, user, fakes, now, **kwargs):
    return rental_service.initiate_return(
        rental.id,
        user.id,
        delivery_gateway=kwargs.pop("delivery_gateway", fakes.delivery),
        notifications=fakes.notifications,
        now=now,
    )


def _inspect(rental, admin, fakes, refund, late_fee=None):
    return rental_service.inspect_return(
        rental.id, admin, "Good condition", refund, late_fee, notifications=fakes.notifications
    )


# =============================================================================
# LATE FEES
# =============================================================================

def test_late_fee_is_ten_percent_per_day():
    fee = compute_late_fee(RENTAL_END, Decimal("1000.00"), RENTAL_END + timedelta(days=2), Decimal("0.10"))
    assert fee == Decimal("200.00")


def test_partial_day_rounds_up():
    fee = compute_late_fee(RENTAL_END, Decimal("1000.00"), RENTAL_END + timedelta(days=1, hours=1), Decimal("0.10"))
    assert fee == Decimal("200.00")


def test_on_time_return_has_no_fee():
    assert compute_late_fee(RENTAL_END, Decimal("1000.00"), RENTAL_END, Decimal("0.10")) == Decimal("0.00")


def test_initiate_return_records_late_fee(db_session, fakes, buyer, rental):
    result = _initiate(rental, buyer, fakes, RENTAL_END + timedelta(days=2))

    assert result.return_status == "return_initiated"
    assert result.late_fee == Decimal("200.00")
    pickup = fakes.delivery.requests[-1]
    assert pickup.is_return is True
    assert pickup.from_address == "House 9, Road 4"
    assert pickup.to_address == "Test Warehouse"
    assert fakes.notifications.sent[-1] == (
        buyer.id, "system", f"Return initiated for rental #{rental.id}. Late fee: 200.00 TK",
    )


def test_late_fee_rate_follows_config(db_session, fakes, buyer, rental):
    config_service.set_config("late_fee_rate_per_day", "0.05")
    result = _initiate(rental, buyer, fakes, RENTAL_END + timedelta(days=2))
    assert result.late_fee == Decimal("100.00")


def test_return_cannot_be_initiated_twice(fakes, buyer, rental):
    _initiate(rental, buyer, fakes, RENTAL_END)
    with pytest.raises(ValidationError, match="already initiated"):
        _initiate(rental, buyer, fakes, RENTAL_END)


def test_only_buyer_can_initiate_return(fakes, make_user, rental):
    with pytest.raises(ForbiddenError):
        _initiate(rental, make_user(), fakes, RENTAL_END)


def test_pickup_failure_is_not_fatal(db_session, fakes, buyer, rental):
    result = _initiate(rental, buyer, fakes, RENTAL_END, delivery_gateway=FakeDeliveryGateway(raises=True))

    assert result.return_status == "return_initiated"
    pickup = db_session.query(Delivery).filter_by(rental_id=rental.id).one()
    assert pickup.status == "failed"


# =============================================================================
# INSPECTION
# =============================================================================

def test_inspection_nets_late_fee_out_of_refund(db_session, fakes, buyer, admin, rental):
    _initiate(rental, buyer, fakes, RENTAL_END)

    result = _inspect(rental, admin, fakes, "500.00", "150.00")

    assert result.return_status == "inspected"
    assert result.refund_amount == Decimal("500.00")
    assert result.late_fee == Decimal("150.00")
    assert db_session.get(User, buyer.id).balance == Decimal("350.00")

    rows = db_session.query(Transaction).order_by(Transaction.id).all()
    assert [(row.type, row.amount, row.status) for row in rows] == [
        ("refund", Decimal("350.00"), "completed"),
        ("fee", Decimal("150.00"), "completed"),
    ]
    assert rows[0].description == f"Refund for rental #{rental.id} after inspection"
    assert rows[1].description == f"Late fee for rental #{rental.id}"
    assert fakes.notifications.sent[-1][2] == "Rental inspection completed. Refund: 350.00 TK."


def test_fee_larger_than_refund_credits_nothing(db_session, fakes, buyer, admin, rental):
    _inspect(rental, admin, fakes, "100.00", "150.00")

    assert db_session.get(User, buyer.id).balance == Decimal("0.00")
    rows = db_session.query(Transaction).all()
    assert [(row.type, row.amount) for row in rows] == [("fee", Decimal("150.00"))]
    assert fakes.notifications.sent[-1][2] == "Rental inspection completed. No refund issued."


def test_inspection_defaults_to_fee_computed_on_return(db_session, fakes, buyer, admin, rental):
    _initiate(rental, buyer, fakes, RENTAL_END + timedelta(days=2))

    result = _inspect(rental, admin, fakes, "300.00")

    assert result.late_fee == Decimal("200.00")
    assert db_session.get(User, buyer.id).balance == Decimal("100.00")


def test_inspection_happens_once(fakes, admin, rental):
    _inspect(rental, admin, fakes, "300.00", "0")
    with pytest.raises(ValidationError, match="not pending inspection"):
        _inspect(rental, admin, fakes, "300.00", "0")


def test_only_admin_can_inspect(db_session, fakes, buyer, rental):
    with pytest.raises(ForbiddenError):
        _inspect(rental, buyer, fakes, "300.00")
    assert db_session.get(Rental, rental.id).return_status == "pending"


@pytest.mark.parametrize("refund", ["-10", "1e30"])
def test_out_of_range_refund_is_rejected(db_session, fakes, admin, rental, refund):
    with pytest.raises(ValidationError):
        _inspect(rental, admin, fakes, refund)
    assert db_session.get(Rental, rental.id).return_status == "pending"
    assert db_session.query(Transaction).count() == 0


def test_rental_visibility(fakes, buyer, admin, make_user, rental):
    assert [r.id for r in rental_service.list_rentals(buyer.id)] == [rental.id]
    assert rental_service.get_rental(rental.id, admin).id == rental.id
    with pytest.raises(ForbiddenError):
        rental_service.get_rental(rental.id, make_user())


# =============================================================================
# CANCELLED ORDERS
# =============================================================================

def test_cancelled_order_rental_cannot_be_returned_or_inspected(db_session, fakes, buyer, admin, rental):
    order_service.cancel_order(rental.order.id, buyer)
    assert db_session.get(Rental, rental.id).return_status == "rejected"

    with pytest.raises(ValidationError, match="cancelled"):
        _initiate(rental, buyer, fakes, RENTAL_END)
    with pytest.raises(ValidationError, match="cancelled"):
        _inspect(rental, admin, fakes, "300.00")

    assert db_session.get(User, buyer.id).balance == Decimal("0.00")
    assert db_session.query(Transaction).count() == 0


def test_cancel_after_return_initiated_closes_rental(db_session, fakes, buyer, admin, rental):
    _initiate(rental, buyer, fakes, T0 + timedelta(days=1))
    order_service.cancel_order(rental.order.id, buyer)

    assert db_session.get(Rental, rental.id).return_status == "rejected"
    with pytest.raises(ValidationError):
        _inspect(rental, admin, fakes, "300.00")
    assert db_session.query(Transaction).count() == 0
