# Overview: Courier delivery records; visibility, admin status moves and courier sync.

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, ValidationError
from ..models import Delivery, Order, User
from ..models.rentals import (
    DELIVERY_STATUS_CANCELLED,
    DELIVERY_STATUS_DELIVERED,
    DELIVERY_STATUSES,
    OPEN_DELIVERY_STATUSES,
)
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .delivery_gateway import DeliveryGateway
from .gateways import get_gateways
from .lookups import get_active
"""
Delivery rows are written by checkout (outbound) and initiate_return (pickup).
After that an admin drives the status, or asks the courier for it.

- delivered and cancelled are final.
- Cancelling an order calls off its open courier requests after the order
  commit; a courier that refuses or errors leaves the row as it was.
"""

FINAL_STATUSES = (DELIVERY_STATUS_DELIVERED, DELIVERY_STATUS_CANCELLED)


def list_deliveries(
    user: User,
    *,
    order_id: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> list[Delivery]:
    """Buyers see deliveries for their own orders; admins see all."""
    query = Delivery.active().join(Order, Order.id == Delivery.order_id)
    if not user.is_admin:
        query = query.filter(Order.buyer_id == user.id)
    if order_id is not None:
        query = query.filter(Delivery.order_id == order_id)
    return (
        query.order_by(Delivery.created_at.desc(), Delivery.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_delivery(delivery_id: int, user: User) -> Delivery:
    delivery = get_active(Delivery, delivery_id, label="Delivery")
    if not user.is_admin and delivery.order.buyer_id != user.id:
        raise ForbiddenError("You can only view deliveries for your own orders")
    return delivery


def _set_status(delivery_id: int, status: str, tracking_id: str | None = None) -> Delivery:
    if status not in DELIVERY_STATUSES:
        raise ValidationError(f"status must be one of {list(DELIVERY_STATUSES)}")

    def _op():
        with unit_of_work(immediate=True) as session:
            delivery = get_active(Delivery, delivery_id, session=session, lock=True, label="Delivery")
            if delivery.status in FINAL_STATUSES and delivery.status != status:
                raise ValidationError(
                    f"Delivery is already {delivery.status}",
                    details={"from": delivery.status, "to": status},
                )
            delivery.status = status
            if tracking_id:
                delivery.tracking_id = tracking_id
            return delivery

    return run_with_retry(_op)


def update_delivery_status(delivery_id: int, status: str, tracking_id: str | None = None) -> Delivery:
    """Admin sets the courier status, optionally recording a tracking id."""
    delivery = _set_status(delivery_id, status, tracking_id)
    current_app.logger.info("Delivery %s moved to %s", delivery.id, delivery.status)
    return delivery


def refresh_delivery_status(delivery_id: int, *, delivery_gateway: DeliveryGateway | None = None) -> Delivery:
    """
    Ask the courier for the current status and store it.

    A status the courier reports outside our vocabulary is logged and ignored.
    """
    gateway = delivery_gateway or get_gateways().delivery
    delivery = get_active(Delivery, delivery_id, label="Delivery")
    if not delivery.tracking_id:
        raise ValidationError("Delivery has no tracking id")

    reported = gateway.get_status(delivery.tracking_id)
    if reported not in DELIVERY_STATUSES:
        current_app.logger.warning(
            "Courier reported unknown status %r for delivery %s", reported, delivery.id
        )
        return delivery
    if reported == delivery.status:
        return delivery
    return update_delivery_status(delivery.id, reported)


def cancel_order_deliveries(order_id: int, *, delivery_gateway: DeliveryGateway | None = None) -> list[int]:
    """
    Call off open courier requests for an order. Best effort.

    Returns the ids of deliveries marked cancelled.
    """
    gateway = delivery_gateway or get_gateways().delivery
    open_rows = (
        Delivery.active()
        .filter(Delivery.order_id == order_id, Delivery.status.in_(OPEN_DELIVERY_STATUSES))
        .order_by(Delivery.id)
        .all()
    )

    cancelled = []
    for delivery in open_rows:
        if delivery.tracking_id:
            try:
                accepted = gateway.cancel_delivery(delivery.tracking_id)
            except Exception:
                current_app.logger.exception("Courier cancel failed for delivery %s", delivery.id)
                continue
            if not accepted:
                current_app.logger.warning("Courier refused to cancel delivery %s", delivery.id)
                continue

        try:
            with unit_of_work() as session:
                row = lock_for_update(session.query(Delivery).filter(Delivery.id == delivery.id)).one()
                row.status = DELIVERY_STATUS_CANCELLED
        except Exception:
            current_app.logger.exception("Could not mark delivery %s cancelled", delivery.id)
            continue
        cancelled.append(delivery.id)

    if cancelled:
        current_app.logger.info("Cancelled deliveries %s for order %s", cancelled, order_id)
    return cancelled
