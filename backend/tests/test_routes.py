"""
HTTP surface tests.

Verifies:
- Unauthenticated requests return 401 with the error envelope
- Non-admins are denied admin routes (403)
- Suspended accounts are refused even with a valid token
- Request ids are generated or echoed
- Register/login/checkout work end to end over JSON
"""

import pytest

from sharewardrobe.models import Order, User

from conftest import auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/cart/"),
            ("POST", "/api/orders/"),
            ("GET", "/api/rentals/"),
            ("GET", "/api/negotiations/"),
            ("GET", "/api/transactions/"),
            ("GET", "/api/notifications/"),
            ("GET", "/api/admin/configs"),
            ("GET", "/api/admin/reports/revenue"),
            ("GET", "/api/deliveries/"),
            ("GET", "/api/warehouse/"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        body = resp.get_json()
        assert body["error"] == "Authentication required"
        assert body["details"] == {}
        assert body["request_id"]

    def test_unknown_token_is_rejected(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# ROLE AND ACCOUNT STATUS (403)
# =============================================================================


class TestForbidden:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/configs"),
            ("PUT", "/api/admin/configs/delivery_charge_per_order"),
            ("GET", "/api/admin/withdrawals"),
            ("GET", "/api/admin/reports/ledger"),
            ("GET", "/api/admin/users"),
            ("PUT", "/api/admin/users/1/role"),
            ("GET", "/api/admin/reports/inventory-turnover"),
            ("POST", "/api/warehouse/"),
        ],
    )
    def test_user_cannot_reach_admin_routes(self, client, buyer, token_for, method, path):
        resp = getattr(client, method.lower())(path, json={"value": "0"}, headers=auth_headers(token_for(buyer)))
        assert resp.status_code == 403
        assert resp.get_json()["details"] == {"required_roles": ["admin"]}

    def test_suspended_account_is_refused(self, client, make_user, token_for):
        user = make_user(status="suspended")
        resp = client.get("/api/auth/me", headers=auth_headers(token_for(user)))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Account is suspended"

    def test_admin_can_change_config(self, client, admin, token_for):
        resp = client.put(
            "/api/admin/configs/delivery_charge_per_order",
            json={"value": "150", "description": "Courier price rise"},
            headers=auth_headers(token_for(admin)),
        )
        assert resp.status_code in (200, 201)
        assert resp.get_json()["config"]["value"] == "150"


# =============================================================================
# ENVELOPE AND REQUEST IDS
# =============================================================================


class TestErrorEnvelope:

    def test_request_id_is_echoed(self, client):
        resp = client.get("/api/auth/me", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"
        assert resp.get_json()["request_id"] == "abc-123"

    def test_request_id_is_generated(self, client):
        resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 32

    def test_missing_entity_is_404(self, client, buyer, token_for):
        resp = client.get("/api/orders/9999", headers=auth_headers(token_for(buyer)))
        assert resp.status_code == 404
        body = resp.get_json()
        assert body["error"] == "Order 9999 not found"
        assert set(body) == {"error", "details", "request_id"}

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert "request_id" in resp.get_json()

    def test_missing_fields_are_listed(self, client):
        resp = client.post("/api/auth/register", json={"phone": "+8801711111111"})
        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"missing": ["password"]}


# =============================================================================
# HEALTH
# =============================================================================


def test_health_reports_database(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "healthy"


# =============================================================================
# AUTH FLOW
# =============================================================================


class TestAuthFlow:

    def test_register_login_me_logout(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"phone": "+8801711111111", "password": "saree2024", "name": "Rina"},
        )
        assert resp.status_code == 201
        assert "password_hash" not in resp.get_json()["user"]

        resp = client.post("/api/auth/login", json={"phone": "+8801711111111", "password": "saree2024"})
        assert resp.status_code == 200
        token = resp.get_json()["token"]

        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["user"]["name"] == "Rina"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_duplicate_phone_is_409(self, client, make_user):
        make_user(phone="+8801722222222")
        resp = client.post("/api/auth/register", json={"phone": "+8801722222222", "password": "saree2024"})
        assert resp.status_code == 409

    def test_weak_password_is_400(self, client):
        resp = client.post("/api/auth/register", json={"phone": "+8801733333333", "password": "short"})
        assert resp.status_code == 400

    def test_wrong_password_is_401(self, client):
        client.post("/api/auth/register", json={"phone": "+8801744444444", "password": "saree2024"})
        resp = client.post("/api/auth/login", json={"phone": "+8801744444444", "password": "wrong2024"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"


# =============================================================================
# SHOPPING FLOW
# =============================================================================


class TestShoppingFlow:

    def test_cart_to_order(self, client, db_session, fakes, buyer, make_item, token_for):
        item = make_item(sell_price="500.00", quantity=2)
        headers = auth_headers(token_for(buyer))

        resp = client.post("/api/cart/", json={"item_id": item.id, "quantity": 2}, headers=headers)
        assert resp.status_code == 201

        resp = client.post("/api/orders/", json={"payment_method": "cod"}, headers=headers)
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["total_amount"] == "1100.00"
        assert order["delivery_address"] == buyer.address
        assert order["status"] == "pending"
        assert len(order["lines"]) == 1

        assert client.get("/api/cart/", headers=headers).get_json()["lines"] == []
        assert fakes.delivery.requests
        assert db_session.query(Order).count() == 1

    def test_insufficient_quantity_is_400_with_details(self, client, fakes, buyer, make_item, add_line, token_for):
        item = make_item(quantity=1)
        add_line(buyer, item, quantity=3)

        resp = client.post("/api/orders/", json={"payment_method": "cod"}, headers=auth_headers(token_for(buyer)))

        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"item_id": item.id, "available": 1, "requested": 3}

    def test_cannot_view_another_buyers_order(self, client, fakes, buyer, make_user, make_item, add_line, token_for):
        add_line(buyer, make_item())
        order_id = client.post(
            "/api/orders/", json={"payment_method": "cod"}, headers=auth_headers(token_for(buyer))
        ).get_json()["order"]["id"]

        other = make_user()
        resp = client.get(f"/api/orders/{order_id}", headers=auth_headers(token_for(other)))
        assert resp.status_code == 403


# =============================================================================
# WALLET
# =============================================================================


def test_withdrawal_round_trip(client, db_session, make_user, admin, token_for):
    user = make_user(balance="400.00")
    resp = client.post("/api/transactions/withdraw", json={"amount": "150"}, headers=auth_headers(token_for(user)))
    assert resp.status_code == 201
    withdrawal_id = resp.get_json()["withdrawal"]["id"]

    resp = client.put(
        f"/api/admin/withdrawals/{withdrawal_id}",
        json={"status": "rejected"},
        headers=auth_headers(token_for(admin)),
    )
    assert resp.status_code == 200
    assert resp.get_json()["withdrawal"]["status"] == "rejected"
    assert str(db_session.get(User, user.id).balance) == "400.00"


def test_oversized_withdrawal_amount_is_400(client, db_session, make_user, token_for):
    user = make_user(balance="400.00")
    resp = client.post("/api/transactions/withdraw", json={"amount": "1e30"}, headers=auth_headers(token_for(user)))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "amount must be a number"
    assert str(db_session.get(User, user.id).balance) == "400.00"


def test_admin_changes_user_role(client, buyer, admin, token_for):
    headers = auth_headers(token_for(admin))
    resp = client.put(f"/api/admin/users/{buyer.id}/role", json={"role": "admin"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "admin"

    resp = client.put(f"/api/admin/users/{admin.id}/role", json={"role": "user"}, headers=headers)
    assert resp.status_code == 400


# =============================================================================
# MARKETPLACE FLOW
# =============================================================================


class TestMarketplaceFlow:
    """Listing, approval, negotiation, rental and inbox over HTTP with the mock gateways."""

    def _approved_item(self, client, seller_headers, admin_headers, **fields):
        body = {"type": "saree", "description": "Red silk saree", "availability": "both",
                "sell_price": "1500.00", "rent_price": "300.00", "quantity": 2}
        body.update(fields)
        resp = client.post("/api/items", json=body, headers=seller_headers)
        assert resp.status_code == 201
        item = resp.get_json()["item"]
        assert item["status"] == "pending_approval"

        resp = client.put(f"/api/items/{item['id']}/status", json={"status": "available"}, headers=admin_headers)
        assert resp.status_code == 200
        return item["id"]

    def test_listing_is_public_only_after_approval(self, client, seller, admin, token_for):
        seller_headers = auth_headers(token_for(seller))
        client.post("/api/items", json={"type": "kurta", "description": "Cotton kurta",
                                         "availability": "sell_only", "sell_price": "800"},
                    headers=seller_headers)
        assert client.get("/api/items").get_json()["items"] == []

        item_id = self._approved_item(client, seller_headers, auth_headers(token_for(admin)))
        listed = client.get("/api/items").get_json()["items"]
        assert [i["id"] for i in listed] == [item_id]

    def test_accepted_offer_reaches_cart_and_inbox(self, client, buyer, seller, admin, token_for):
        seller_headers = auth_headers(token_for(seller))
        buyer_headers = auth_headers(token_for(buyer))
        item_id = self._approved_item(client, seller_headers, auth_headers(token_for(admin)))

        resp = client.post("/api/negotiations/", json={"item_id": item_id, "offer_price": "1200"}, headers=buyer_headers)
        assert resp.status_code == 201
        negotiation_id = resp.get_json()["negotiation"]["id"]

        resp = client.put(f"/api/negotiations/{negotiation_id}/respond", json={"status": "accepted"}, headers=buyer_headers)
        assert resp.status_code == 403

        resp = client.put(f"/api/negotiations/{negotiation_id}/respond", json={"status": "accepted"}, headers=seller_headers)
        assert resp.status_code == 200

        lines = client.get("/api/cart/", headers=buyer_headers).get_json()["lines"]
        assert len(lines) == 1
        assert lines[0]["negotiated_price"] == "1200.00"

        inbox = client.get("/api/notifications/", headers=buyer_headers).get_json()["notifications"]
        assert inbox[0]["type"] == "negotiation"
        assert client.put("/api/notifications/read-all", headers=buyer_headers).get_json()["updated"] == 1

    def test_rental_return_over_http(self, client, buyer, seller, admin, token_for):
        admin_headers = auth_headers(token_for(admin))
        buyer_headers = auth_headers(token_for(buyer))
        item_id = self._approved_item(client, auth_headers(token_for(seller)), admin_headers)

        client.post("/api/cart/", json={"item_id": item_id, "type": "rent"}, headers=buyer_headers)
        order = client.post("/api/orders/", json={"payment_method": "cod"}, headers=buyer_headers).get_json()["order"]
        assert order["safety_deposit"] == "90.00"

        rentals = client.get("/api/rentals/", headers=buyer_headers).get_json()["rentals"]
        assert len(rentals) == 1
        rental_id = rentals[0]["id"]

        resp = client.post(f"/api/rentals/{rental_id}/return", headers=buyer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["rental"]["return_status"] == "return_initiated"

        resp = client.post(
            f"/api/admin/rentals/{rental_id}/inspect",
            json={"inspection_result": "Clean", "refund_amount": "90.00"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["rental"]["refund_amount"] == "90.00"
        assert client.get("/api/auth/me", headers=buyer_headers).get_json()["user"]["balance"] == "90.00"
