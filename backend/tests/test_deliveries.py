import pytest

from sharewardrobe.errors import ForbiddenError, NotFoundError, ValidationError
from sharewardrobe.models import Delivery
from sharewardrobe.services import delivery_service, order_service

from conftest import T0, FakeDeliveryGateway, auth_headers


@pytest.fixture
def delivery(db_session, fakes, buyer, make_item, add_line):
    add_line(buyer, make_item())
    order_service.checkout(
        buyer.id, "cod", "House 9, Road 4",
        payment_gateway=fakes.payment,
        delivery_gateway=fakes.delivery,
        notifications=fakes.notifications,
        now=T0,
    )
    return db_session.query(Delivery).one()


# =============================================================================
# VISIBILITY
# =============================================================================

def test_buyer_lists_own_deliveries(buyer, make_user, admin, delivery):
    assert [d.id for d in delivery_service.list_deliveries(buyer)] == [delivery.id]
    assert delivery_service.list_deliveries(make_user()) == []
    assert [d.id for d in delivery_service.list_deliveries(admin)] == [delivery.id]


def test_order_filter(admin, delivery):
    assert delivery_service.list_deliveries(admin, order_id=delivery.order_id) == [delivery]
    assert delivery_service.list_deliveries(admin, order_id=delivery.order_id + 1) == []


def test_other_users_cannot_view_delivery(buyer, make_user, delivery):
    assert delivery_service.get_delivery(delivery.id, buyer).tracking_id == "TRK_1"
    with pytest.raises(ForbiddenError):
        delivery_service.get_delivery(delivery.id, make_user())


def test_deleted_delivery_is_not_found(db_session, buyer, delivery):
    delivery.soft_delete()
    db_session.commit()
    with pytest.raises(NotFoundError):
        delivery_service.get_delivery(delivery.id, buyer)


# =============================================================================
# STATUS
# =============================================================================

def test_admin_moves_status_and_records_tracking(db_session, delivery):
    delivery_service.update_delivery_status(delivery.id, "in_transit", "PATHAO-42")

    stored = db_session.get(Delivery, delivery.id)
    assert stored.status == "in_transit"
    assert stored.tracking_id == "PATHAO-42"


def test_unknown_status_is_rejected(delivery):
    with pytest.raises(ValidationError):
        delivery_service.update_delivery_status(delivery.id, "teleported")


def test_delivered_is_final(db_session, delivery):
    delivery_service.update_delivery_status(delivery.id, "delivered")
    with pytest.raises(ValidationError) as excinfo:
        delivery_service.update_delivery_status(delivery.id, "failed")
    assert excinfo.value.details == {"from": "delivered", "to": "failed"}
    assert db_session.get(Delivery, delivery.id).status == "delivered"


def test_refresh_takes_courier_status(db_session, delivery):
    delivery_service.refresh_delivery_status(delivery.id, delivery_gateway=FakeDeliveryGateway(status="picked_up"))
    assert db_session.get(Delivery, delivery.id).status == "picked_up"


def test_refresh_ignores_status_outside_vocabulary(db_session, delivery):
    delivery_service.refresh_delivery_status(delivery.id, delivery_gateway=FakeDeliveryGateway(status="lost"))
    assert db_session.get(Delivery, delivery.id).status == "pending"


def test_refresh_needs_tracking_id(db_session, delivery):
    delivery.tracking_id = None
    db_session.commit()
    with pytest.raises(ValidationError):
        delivery_service.refresh_delivery_status(delivery.id, delivery_gateway=FakeDeliveryGateway())


# =============================================================================
# CANCELLATION
# =============================================================================

def test_courier_error_leaves_delivery_open(db_session, delivery):
    cancelled = delivery_service.cancel_order_deliveries(
        delivery.order_id, delivery_gateway=FakeDeliveryGateway(raises=True)
    )
    assert cancelled == []
    assert db_session.get(Delivery, delivery.id).status == "pending"


def test_finished_deliveries_are_not_cancelled(db_session, fakes, delivery):
    delivery_service.update_delivery_status(delivery.id, "delivered")

    assert delivery_service.cancel_order_deliveries(delivery.order_id, delivery_gateway=fakes.delivery) == []
    assert fakes.delivery.cancelled == []


def test_failed_booking_without_tracking_is_cancelled_locally(db_session, fakes, delivery):
    delivery_service.update_delivery_status(delivery.id, "in_transit")
    delivery.tracking_id = None
    db_session.commit()

    assert delivery_service.cancel_order_deliveries(delivery.order_id, delivery_gateway=fakes.delivery) == [delivery.id]
    assert fakes.delivery.cancelled == []


# =============================================================================
# HTTP
# =============================================================================

class TestDeliveryRoutes:

    def test_buyer_lists_and_admin_updates(self, client, buyer, admin, token_for, delivery):
        buyer_headers = auth_headers(token_for(buyer))
        resp = client.get(f"/api/deliveries/?order_id={delivery.order_id}", headers=buyer_headers)
        assert resp.status_code == 200
        assert [d["id"] for d in resp.get_json()["deliveries"]] == [delivery.id]

        resp = client.put(f"/api/deliveries/{delivery.id}/status", json={"status": "delivered"}, headers=buyer_headers)
        assert resp.status_code == 403

        resp = client.put(
            f"/api/deliveries/{delivery.id}/status",
            json={"status": "delivered"},
            headers=auth_headers(token_for(admin)),
        )
        assert resp.status_code == 200
        assert resp.get_json()["delivery"]["status"] == "delivered"

        resp = client.get(f"/api/deliveries/{delivery.id}", headers=buyer_headers)
        assert resp.get_json()["delivery"]["status"] == "delivered"

    def test_admin_refresh_uses_installed_gateway(self, client, admin, token_for, fakes, delivery):
        fakes.delivery.status = "in_transit"
        resp = client.post(f"/api/deliveries/{delivery.id}/refresh", headers=auth_headers(token_for(admin)))
        assert resp.status_code == 200
        assert resp.get_json()["delivery"]["status"] == "in_transit"
