# Overview: Cart-to-order checkout and the order lifecycle after it.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import ForbiddenError, ValidationError
from ..models import CartLine, Delivery, Item, Order, OrderLine, Rental, User
from ..models.commerce import (
    LINE_TYPE_BUY,
    LINE_TYPE_RENT,
    ORDER_STATUSES,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_PARTIALLY_RETURNED,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_REFUNDED,
    ORDER_STATUS_RETURNED,
    ORDER_STATUS_SHIPPED,
    PAYMENT_METHODS,
    PAYMENT_METHOD_ONLINE,
)
from ..models.communications import NOTIFICATION_ORDER_CONFIRMATION, NOTIFICATION_SYSTEM
from ..models.ledger import TXN_TYPE_PAYMENT, TXN_TYPE_REFUND
from ..models.rentals import (
    AWAITING_INSPECTION,
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_PENDING,
    RETURN_STATUS_REJECTED,
)
from sharewardrobe.money import ZERO, format_money, percent_of, to_money
from sharewardrobe.time_utils import as_utc_naive, minutes_from_now, utcnow
from . import config_service, delivery_service, inventory_service
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .delivery_gateway import DeliveryGateway, DeliveryRequest
from .gateways import get_gateways
from .ledger_service import credit_balance, paid_amount, record_transaction
from .lookups import get_active
from .notification_service import NotificationSink, notify_safely
from .payment_gateway import PaymentGateway, PaymentRequest
"""
Checkout invariants (authoritative)

Atomic part (one unit of work, SQLite BEGIN IMMEDIATE / row locks elsewhere):
- Cart must be non-empty.
- Each item is re-read under an exclusive lock; a soft-deleted item is NotFound.
- item.quantity >= line.quantity, else Validation naming available/requested.
- Unit price = live negotiated price, else sell_price (buy) / rent_price (rent).
  A negotiated price whose hold has expired is ignored. No price -> Validation.
- total = delivery charge (once per order) + sum(unit price * quantity).
- safety deposit = sum over rent lines of line total * deposit percent / 100.
- Order (pending, delivery_charge_paid=False), frozen OrderLines, a Rental per
  rent line, quantity decrements and cart deletion commit together or not at all.

Best-effort part (after commit, never rolls the order back):
- online: payment gateway; success -> paid + delivery_charge_paid + payment row.
  Failure or exception leaves the order pending and is only logged.
- cod: delivery_charge_paid=True without a gateway call.
- outbound delivery request and order confirmation notification.
"""

# Allowed admin status moves. Cancelling or refunding before shipment restores
# stock; cancelled and refunded are final.
ORDER_TRANSITIONS = {
    ORDER_STATUS_PENDING: {ORDER_STATUS_PAID, ORDER_STATUS_CANCELLED},
    ORDER_STATUS_PAID: {ORDER_STATUS_SHIPPED, ORDER_STATUS_CANCELLED, ORDER_STATUS_REFUNDED},
    ORDER_STATUS_SHIPPED: {ORDER_STATUS_DELIVERED},
    ORDER_STATUS_DELIVERED: {ORDER_STATUS_RETURNED, ORDER_STATUS_PARTIALLY_RETURNED, ORDER_STATUS_REFUNDED},
    ORDER_STATUS_PARTIALLY_RETURNED: {ORDER_STATUS_RETURNED, ORDER_STATUS_REFUNDED},
    ORDER_STATUS_RETURNED: {ORDER_STATUS_REFUNDED},
    ORDER_STATUS_CANCELLED: set(),
    ORDER_STATUS_REFUNDED: set(),
}


def resolve_unit_price(line: CartLine, item: Item, now: datetime) -> Decimal:
    """Price a cart line against the locked item."""
    if line.negotiated_price is not None:
        expires_at = as_utc_naive(line.negotiated_expires_at)
        if expires_at is None or expires_at > now:
            return to_money(line.negotiated_price)

    catalog_price = item.sell_price if line.type == LINE_TYPE_BUY else item.rent_price
    if catalog_price is None:
        raise ValidationError(
            f"Price not available for item {item.id}",
            details={"item_id": item.id, "type": line.type},
        )
    return to_money(catalog_price)


# =============================================================================
# CHECKOUT
# =============================================================================

def _create_order_locked(
    session,
    buyer_id: int,
    payment_method: str,
    delivery_address: str | None,
    now: datetime,
) -> Order:
    cart = (
        session.query(CartLine)
        .filter(CartLine.user_id == buyer_id)
        .order_by(CartLine.id)
        .all()
    )
    if not cart:
        raise ValidationError("Cart is empty")

    delivery_charge = to_money(config_service.delivery_charge(session=session))
    total = delivery_charge
    deposit = ZERO
    deposit_percent = None

    priced = []
    for line in cart:
        item = inventory_service.lock_item(session, line.item_id)
        inventory_service.ensure_available(item, line.quantity)

        unit_price = resolve_unit_price(line, item, now)
        line_total = unit_price * line.quantity
        total += line_total

        if line.type == LINE_TYPE_RENT:
            if deposit_percent is None:
                deposit_percent = config_service.safety_deposit_percent(session=session)
            deposit += percent_of(line_total, deposit_percent)

        priced.append((line, item, unit_price))

    timeout = config_service.payment_timeout_minutes(session=session)
    rental_days = config_service.rental_duration_days(session=session)

    order = Order(
        buyer_id=buyer_id,
        total_amount=to_money(total),
        delivery_charge=delivery_charge,
        safety_deposit=to_money(deposit),
        payment_method=payment_method,
        delivery_address=delivery_address,
        status=ORDER_STATUS_PENDING,
        payment_due_at=minutes_from_now(timeout, now=now),
        delivery_charge_paid=False,
    )
    session.add(order)
    session.flush()

    for line, item, unit_price in priced:
        order_line = OrderLine(
            order_id=order.id,
            item_id=item.id,
            quantity=line.quantity,
            price=unit_price,
            type=line.type,
        )
        session.add(order_line)
        session.flush()

        if line.type == LINE_TYPE_RENT:
            session.add(Rental(
                order_line_id=order_line.id,
                rental_start=now,
                rental_end=now + timedelta(days=rental_days),
            ))

        inventory_service.reserve(item, line.quantity)

    session.query(CartLine).filter(CartLine.user_id == buyer_id).delete(synchronize_session=False)
    return order


def _capture_payment(order: Order, gateway: PaymentGateway) -> None:
    try:
        result = gateway.create_payment(PaymentRequest(
            order_id=order.id,
            amount=to_money(order.total_amount),
            description=f"Order #{order.id}",
        ))
    except Exception:
        current_app.logger.exception("Payment gateway error for order %s; left pending", order.id)
        return

    if not result.success:
        current_app.logger.warning(
            "Payment not captured for order %s: %s; left pending", order.id, result.error
        )
        return

    try:
        with unit_of_work() as session:
            order.status = ORDER_STATUS_PAID
            order.delivery_charge_paid = True
            order.payment_reference = result.transaction_id
            record_transaction(
                session,
                user_id=order.buyer_id,
                order_id=order.id,
                amount=order.total_amount,
                type=TXN_TYPE_PAYMENT,
                description=f"Payment for order #{order.id}",
            )
    except Exception:
        # captured but not recorded; reconcile from the gateway reference
        current_app.logger.exception(
            "Payment %s captured for order %s but could not be recorded", result.transaction_id, order.id
        )


def _request_outbound_delivery(order: Order, gateway: DeliveryGateway) -> None:
    from_address = current_app.config.get("WAREHOUSE_ADDRESS", "warehouse")
    to_address = order.delivery_address or (order.buyer.address if order.buyer else None)
    if not to_address:
        current_app.logger.warning("Order %s has no delivery address; delivery not requested", order.id)
        return

    try:
        result = gateway.request_delivery(DeliveryRequest(
            order_id=order.id,
            from_address=from_address,
            to_address=to_address,
            is_return=False,
            contact_phone=order.buyer.phone if order.buyer else None,
        ))
    except Exception:
        current_app.logger.exception("Delivery gateway error for order %s", order.id)
        result = None

    try:
        with unit_of_work():
            db.session.add(Delivery(
                order_id=order.id,
                from_address=from_address,
                to_address=to_address,
                status=DELIVERY_STATUS_PENDING if result and result.success else DELIVERY_STATUS_FAILED,
                tracking_id=result.tracking_id if result else None,
                is_return=False,
            ))
    except Exception:
        current_app.logger.exception("Could not record delivery for order %s", order.id)


def checkout(
    buyer_id: int,
    payment_method: str,
    delivery_address: str | None = None,
    *,
    payment_gateway: PaymentGateway | None = None,
    delivery_gateway: DeliveryGateway | None = None,
    notifications: NotificationSink | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Convert the buyer's cart into an order.

    Raises ValidationError / NotFoundError before anything is committed.
    Gateway trouble after the commit is logged and reflected only in the
    returned order's status.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {list(PAYMENT_METHODS)}")

    now = as_utc_naive(now) or utcnow()

    def _op():
        with unit_of_work(immediate=True) as session:
            return _create_order_locked(session, buyer_id, payment_method, delivery_address, now)

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s created for buyer %s: total %s deposit %s",
        order.id, buyer_id, order.total_amount, order.safety_deposit,
    )

    if payment_gateway is None or delivery_gateway is None or notifications is None:
        gateways = get_gateways()
        payment_gateway = payment_gateway or gateways.payment
        delivery_gateway = delivery_gateway or gateways.delivery
        notifications = notifications or gateways.notifications

    if payment_method == PAYMENT_METHOD_ONLINE:
        _capture_payment(order, payment_gateway)
    else:
        try:
            with unit_of_work():
                order.delivery_charge_paid = True
        except Exception:
            current_app.logger.exception("Could not mark delivery charge paid for COD order %s", order.id)

    _request_outbound_delivery(order, delivery_gateway)
    notify_safely(
        notifications,
        buyer_id,
        NOTIFICATION_ORDER_CONFIRMATION,
        f"Order #{order.id} placed. Total: {format_money(order.total_amount)}",
    )
    return order


# =============================================================================
# QUERIES
# =============================================================================

def list_orders(buyer_id: int, *, page: int = 1, limit: int = 20) -> list[Order]:
    return (
        Order.active()
        .filter(Order.buyer_id == buyer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_order(order_id: int, user: User) -> Order:
    order = get_active(Order, order_id, label="Order")
    if order.buyer_id != user.id and not user.is_admin:
        raise ForbiddenError("Not allowed to view this order")
    return order


# =============================================================================
# STATUS
# =============================================================================

def _restore_stock(session, order: Order) -> None:
    for line in order.lines:
        inventory_service.restore(session, line.item_id, line.quantity)


def _close_open_rentals(order: Order) -> list[int]:
    """Rentals of an order that never went out can no longer be returned."""
    closed = []
    for line in order.lines:
        rental = line.rental
        if rental is not None and rental.deleted_at is None and rental.return_status in AWAITING_INSPECTION:
            rental.return_status = RETURN_STATUS_REJECTED
            closed.append(rental.id)
    return closed


def _refund_to_balance(session, order: Order) -> Decimal:
    """
    Give back what the buyer paid through the platform.

    Refunds go to the wallet balance, not back through the gateway. Only
    recorded payment rows count, so a COD order marked paid refunds nothing.
    Cancelled and refunded are final states, so this runs at most once.
    """
    amount = paid_amount(session, order.id)
    if amount <= 0:
        return ZERO
    record_transaction(
        session,
        user_id=order.buyer_id,
        order_id=order.id,
        amount=amount,
        type=TXN_TYPE_REFUND,
        description=f"Refund for order #{order.id}",
    )
    credit_balance(session, order.buyer_id, amount)
    return amount


def update_order_status(
    order_id: int,
    new_status: str,
    *,
    delivery_gateway: DeliveryGateway | None = None,
    notifications: NotificationSink | None = None,
) -> Order:
    """
    Admin status move along ORDER_TRANSITIONS.

    Cancelling, or refunding before shipment, puts stock back and closes
    rentals that never left. Cancelling or refunding a paid order credits
    the buyer's balance in the same unit of work.
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {list(ORDER_STATUSES)}")

    def _op():
        with unit_of_work(immediate=True) as session:
            order = get_active(Order, order_id, session=session, lock=True, label="Order")
            previous = order.status
            allowed = ORDER_TRANSITIONS.get(previous, set())
            if new_status not in allowed:
                raise ValidationError(
                    f"Cannot move order from {previous} to {new_status}",
                    details={"from": previous, "to": new_status, "allowed": sorted(allowed)},
                )

            unshipped = previous in (ORDER_STATUS_PENDING, ORDER_STATUS_PAID)
            refunded = ZERO
            if new_status in (ORDER_STATUS_CANCELLED, ORDER_STATUS_REFUNDED):
                if unshipped:
                    _restore_stock(session, order)
                    _close_open_rentals(order)
                refunded = _refund_to_balance(session, order)
            order.status = new_status
            return order, previous, refunded

    order, previous, refunded = run_with_retry(_op)
    current_app.logger.info(
        "Order %s moved from %s to %s, refunded %s", order.id, previous, order.status, refunded
    )

    if new_status in (ORDER_STATUS_CANCELLED, ORDER_STATUS_REFUNDED):
        if delivery_gateway is None or notifications is None:
            gateways = get_gateways()
            delivery_gateway = delivery_gateway or gateways.delivery
            notifications = notifications or gateways.notifications

        if new_status == ORDER_STATUS_CANCELLED:
            delivery_service.cancel_order_deliveries(order.id, delivery_gateway=delivery_gateway)

        message = f"Order #{order.id} {new_status}."
        if refunded > 0:
            message += f" {format_money(refunded)} credited to your balance."
        notify_safely(notifications, order.buyer_id, NOTIFICATION_SYSTEM, message)
    return order


def cancel_order(
    order_id: int,
    user: User,
    *,
    delivery_gateway: DeliveryGateway | None = None,
    notifications: NotificationSink | None = None,
) -> Order:
    """Buyer (or admin) cancellation of an order that has not shipped."""
    order = get_order(order_id, user)
    if order.status not in (ORDER_STATUS_PENDING, ORDER_STATUS_PAID):
        raise ValidationError(f"Order in status {order.status} cannot be cancelled")
    return update_order_status(
        order_id, ORDER_STATUS_CANCELLED, delivery_gateway=delivery_gateway, notifications=notifications
    )


def expire_unpaid_orders(now: datetime | None = None) -> list[int]:
    """
    Cancel pending online orders whose payment window has closed.

    Returns the ids of the orders that were cancelled.
    """
    now = as_utc_naive(now) or utcnow()

    def _op():
        with unit_of_work(immediate=True) as session:
            overdue = lock_for_update(
                session.query(Order).filter(
                    Order.deleted_at.is_(None),
                    Order.status == ORDER_STATUS_PENDING,
                    Order.payment_method == PAYMENT_METHOD_ONLINE,
                    Order.payment_due_at.isnot(None),
                    Order.payment_due_at < now,
                )
            ).all()
            expired = []
            for order in overdue:
                _restore_stock(session, order)
                _close_open_rentals(order)
                order.status = ORDER_STATUS_CANCELLED
                expired.append(order.id)
            return expired

    expired = run_with_retry(_op)
    if expired:
        current_app.logger.info("Expired %d unpaid orders: %s", len(expired), expired)
        for order_id in expired:
            delivery_service.cancel_order_deliveries(order_id)
    return expired
