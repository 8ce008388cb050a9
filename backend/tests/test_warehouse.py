import pytest
from sqlalchemy.exc import IntegrityError

from sharewardrobe.errors import NotFoundError, ValidationError
from sharewardrobe.models import WarehouseStock
from sharewardrobe.services import warehouse_service

from conftest import auth_headers


def test_intake_creates_entry_with_default_status(make_item):
    item = make_item()

    row, created = warehouse_service.add_stock(item.id, 2)

    assert created is True
    assert row.quantity == 2
    assert row.status == "in_warehouse"


def test_second_intake_of_same_item_adds_quantity(db_session, make_item):
    item = make_item()
    first, _ = warehouse_service.add_stock(item.id, 2)

    second, created = warehouse_service.add_stock(item.id, 3, "damaged")

    assert created is False
    assert second.id == first.id
    assert second.quantity == 5
    assert second.status == "damaged"
    assert db_session.query(WarehouseStock).count() == 1


def test_deleted_entry_does_not_absorb_new_intake(db_session, make_item):
    item = make_item()
    first, _ = warehouse_service.add_stock(item.id, 2)
    warehouse_service.delete_stock(first.id)

    second, created = warehouse_service.add_stock(item.id, 1)

    assert created is True
    assert second.id != first.id
    with pytest.raises(NotFoundError):
        warehouse_service.get_stock(first.id)


@pytest.mark.parametrize("quantity", [0, -1, True, "2"])
def test_intake_quantity_must_be_positive_integer(make_item, quantity):
    with pytest.raises(ValidationError):
        warehouse_service.add_stock(make_item().id, quantity)


def test_intake_of_unknown_item(db_session):
    with pytest.raises(NotFoundError):
        warehouse_service.add_stock(9999, 1)
    assert db_session.query(WarehouseStock).count() == 0


def test_update_and_status_filter(make_item):
    kept, _ = warehouse_service.add_stock(make_item().id, 1)
    worn, _ = warehouse_service.add_stock(make_item().id, 1)

    warehouse_service.update_stock(worn.id, status="damaged", quantity=4)

    assert [r.id for r in warehouse_service.list_stock(status="damaged")] == [worn.id]
    assert [r.id for r in warehouse_service.list_stock(status="in_warehouse")] == [kept.id]
    with pytest.raises(ValidationError):
        warehouse_service.list_stock(status="misplaced")
    with pytest.raises(ValidationError):
        warehouse_service.update_stock(kept.id)


def test_quantity_check_constraint(db_session, make_item):
    db_session.add(WarehouseStock(item_id=make_item().id, quantity=0))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_turnover_report_sums_units_by_status(make_item):
    warehouse_service.add_stock(make_item().id, 3)
    warehouse_service.add_stock(make_item().id, 2)
    damaged, _ = warehouse_service.add_stock(make_item().id, 1, "damaged")
    gone, _ = warehouse_service.add_stock(make_item().id, 7)
    warehouse_service.delete_stock(gone.id)

    report = warehouse_service.inventory_turnover_report()

    assert report["summary"] == {
        "total_items": 6,
        "status_counts": {"damaged": 1, "in_warehouse": 5},
    }
    assert len(report["inventory"]) == 3
    assert damaged.id in {row["id"] for row in report["inventory"]}


class TestWarehouseRoutes:

    def test_admin_only(self, client, buyer, token_for):
        resp = client.get("/api/warehouse/", headers=auth_headers(token_for(buyer)))
        assert resp.status_code == 403

    def test_intake_update_delete(self, client, admin, token_for, make_item):
        headers = auth_headers(token_for(admin))
        item = make_item()

        resp = client.post("/api/warehouse/", json={"item_id": item.id, "quantity": 2}, headers=headers)
        assert resp.status_code == 201
        entry_id = resp.get_json()["entry"]["id"]

        resp = client.post("/api/warehouse/", json={"item_id": item.id}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["entry"]["quantity"] == 3

        resp = client.put(f"/api/warehouse/{entry_id}", json={"status": "damaged"}, headers=headers)
        assert resp.get_json()["entry"]["status"] == "damaged"

        report = client.get("/api/admin/reports/inventory-turnover", headers=headers).get_json()
        assert report["summary"] == {"total_items": 3, "status_counts": {"damaged": 3}}

        assert client.delete(f"/api/warehouse/{entry_id}", headers=headers).status_code == 200
        assert client.get(f"/api/warehouse/{entry_id}", headers=headers).status_code == 404
