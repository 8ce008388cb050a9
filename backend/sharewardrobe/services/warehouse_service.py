# Overview: Warehouse stock held on the platform's premises and the turnover report over it.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Item, WarehouseStock
from ..models.catalog import ITEM_STATUSES, ITEM_STATUS_IN_WAREHOUSE
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .lookups import get_active


def _quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("quantity must be a whole number of at least 1")
    return value


def _status(value) -> str:
    if value not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of {list(ITEM_STATUSES)}")
    return value


def list_stock(*, status: str | None = None, page: int = 1, limit: int = 50) -> list[WarehouseStock]:
    query = WarehouseStock.active()
    if status:
        query = query.filter(WarehouseStock.status == _status(status))
    return (
        query.order_by(WarehouseStock.last_updated.desc(), WarehouseStock.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_stock(stock_id: int) -> WarehouseStock:
    return get_active(WarehouseStock, stock_id, label="Warehouse entry")


def add_stock(item_id: int, quantity: int = 1, status: str | None = None) -> tuple[WarehouseStock, bool]:
    """
    Take units of an item into the warehouse.

    A live row for the item absorbs the quantity and takes the new status.
    Returns (row, created).
    """
    quantity = _quantity(quantity)
    status = _status(status or ITEM_STATUS_IN_WAREHOUSE)

    def _op():
        with unit_of_work(immediate=True) as session:
            get_active(Item, item_id, session=session, label="Item")
            row = lock_for_update(
                session.query(WarehouseStock).filter(
                    WarehouseStock.item_id == item_id,
                    WarehouseStock.deleted_at.is_(None),
                )
            ).first()
            if row is not None:
                row.quantity += quantity
                row.status = status
                return row, False

            row = WarehouseStock(item_id=item_id, quantity=quantity, status=status)
            session.add(row)
            session.flush()
            return row, True

    return run_with_retry(_op)


def update_stock(stock_id: int, *, quantity: int | None = None, status: str | None = None) -> WarehouseStock:
    if quantity is None and status is None:
        raise ValidationError("quantity or status is required")
    row = get_stock(stock_id)
    if quantity is not None:
        row.quantity = _quantity(quantity)
    if status is not None:
        row.status = _status(status)
    db.session.commit()
    return row


def delete_stock(stock_id: int) -> None:
    row = get_stock(stock_id)
    row.soft_delete()
    db.session.commit()


def inventory_turnover_report() -> dict:
    """Live warehouse rows plus unit totals overall and per status."""
    rows = WarehouseStock.active().order_by(WarehouseStock.last_updated.desc(), WarehouseStock.id.desc()).all()

    counts = (
        db.session.query(WarehouseStock.status, func.coalesce(func.sum(WarehouseStock.quantity), 0))
        .filter(WarehouseStock.deleted_at.is_(None))
        .group_by(WarehouseStock.status)
        .order_by(WarehouseStock.status)
        .all()
    )
    status_counts = {status: int(total) for status, total in counts}

    return {
        "inventory": [row.to_dict() for row in rows],
        "summary": {
            "total_items": sum(status_counts.values()),
            "status_counts": status_counts,
        },
    }
