# Overview: Rental return and inspection pipeline; late fees, refunds and balance credit.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import ForbiddenError, ValidationError
from ..models import Delivery, Order, OrderLine, Rental, User
from ..models.commerce import ORDER_STATUS_CANCELLED
from ..models.communications import NOTIFICATION_SYSTEM
from ..models.ledger import TXN_TYPE_FEE, TXN_TYPE_REFUND
from ..models.rentals import (
    AWAITING_INSPECTION,
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_PENDING,
    RETURN_STATUS_INSPECTED,
    RETURN_STATUS_PENDING,
    RETURN_STATUS_RETURN_INITIATED,
)
from sharewardrobe.money import ZERO, format_money, to_money
from sharewardrobe.time_utils import as_utc_naive, days_elapsed_ceil, utcnow
from . import config_service
from .concurrency import run_with_retry, unit_of_work
from .delivery_gateway import DeliveryGateway, DeliveryRequest
from .gateways import get_gateways
from .ledger_service import credit_balance, record_transaction
from .lookups import get_active
from .notification_service import NotificationSink, notify_safely
"""
Rental state machine

  pending --initiate_return--> return_initiated --inspect_return--> inspected

inspect_return also accepts a rental still in pending (returned over the
counter without a pickup). Cancelling an order before it ships moves its
open rentals to rejected; refunded/completed exist for later back-office
steps and are not driven here.

Money on inspection (one unit of work):
- net = refund_amount - late_fee
- net > 0: refund row for net, buyer balance += net
- late_fee > 0: fee row for late_fee; the fee is already withheld from the
  refund so it does not debit the balance
"""


def compute_late_fee(rental_end: datetime, line_price, now: datetime, rate: Decimal) -> Decimal:
    """days late (partial days round up) * line price * daily rate."""
    days_late = days_elapsed_ceil(rental_end, now)
    if days_late <= 0:
        return ZERO
    return to_money(Decimal(days_late) * to_money(line_price) * rate)


def _return_pickup_address(order: Order) -> str | None:
    if order.delivery_address:
        return order.delivery_address
    return order.buyer.address if order.buyer else None


def _request_pickup(rental: Rental, order: Order, gateway: DeliveryGateway) -> None:
    from_address = _return_pickup_address(order)
    to_address = current_app.config.get("WAREHOUSE_ADDRESS", "warehouse")
    if not from_address:
        current_app.logger.warning("Rental %s has no pickup address; pickup not requested", rental.id)
        return

    try:
        result = gateway.request_delivery(DeliveryRequest(
            order_id=order.id,
            from_address=from_address,
            to_address=to_address,
            is_return=True,
            contact_phone=order.buyer.phone if order.buyer else None,
        ))
    except Exception:
        current_app.logger.exception("Return pickup request failed for rental %s", rental.id)
        result = None

    try:
        with unit_of_work():
            db.session.add(Delivery(
                order_id=order.id,
                rental_id=rental.id,
                from_address=from_address,
                to_address=to_address,
                status=DELIVERY_STATUS_PENDING if result and result.success else DELIVERY_STATUS_FAILED,
                tracking_id=result.tracking_id if result else None,
                is_return=True,
            ))
    except Exception:
        current_app.logger.exception("Could not record return pickup for rental %s", rental.id)


def initiate_return(
    rental_id: int,
    requester_id: int,
    *,
    delivery_gateway: DeliveryGateway | None = None,
    notifications: NotificationSink | None = None,
    now: datetime | None = None,
) -> Rental:
    """Buyer starts a return. Computes the late fee; pickup and notice are best effort."""
    now = as_utc_naive(now) or utcnow()

    def _op():
        with unit_of_work(immediate=True) as session:
            rental = get_active(Rental, rental_id, session=session, lock=True, label="Rental")
            order = rental.order
            if order.buyer_id != requester_id:
                raise ForbiddenError("You can only return your own rentals")
            _ensure_order_open(order)
            if rental.return_status != RETURN_STATUS_PENDING:
                raise ValidationError(
                    "Rental return already initiated",
                    details={"return_status": rental.return_status},
                )

            rate = config_service.late_fee_rate(session=session)
            rental.late_fee = compute_late_fee(rental.rental_end, rental.order_line.price, now, rate)
            rental.return_status = RETURN_STATUS_RETURN_INITIATED
            rental.return_initiated_at = now
            return rental

    rental = run_with_retry(_op)
    current_app.logger.info("Return initiated for rental %s, late fee %s", rental.id, rental.late_fee)

    if delivery_gateway is None or notifications is None:
        gateways = get_gateways()
        delivery_gateway = delivery_gateway or gateways.delivery
        notifications = notifications or gateways.notifications

    order = rental.order
    _request_pickup(rental, order, delivery_gateway)

    message = f"Return initiated for rental #{rental.id}."
    if rental.late_fee > 0:
        message += f" Late fee: {format_money(rental.late_fee)}"
    notify_safely(notifications, order.buyer_id, NOTIFICATION_SYSTEM, message)
    return rental


def _ensure_order_open(order: Order) -> None:
    if order.status == ORDER_STATUS_CANCELLED:
        raise ValidationError(
            f"Order #{order.id} was cancelled; its rentals cannot be returned",
            details={"order_status": order.status},
        )


def _non_negative_money(value, field: str) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be zero or more")
    return amount


def inspect_return(
    rental_id: int,
    inspector: User,
    inspection_result: str,
    refund_amount,
    late_fee=None,
    *,
    notifications: NotificationSink | None = None,
    now: datetime | None = None,
) -> Rental:
    """
    Admin records the inspection outcome and settles the deposit.

    late_fee defaults to the fee computed at initiate_return.
    """
    if not inspector.is_admin:
        raise ForbiddenError("Only admins can inspect returns")
    refund = _non_negative_money(refund_amount, "refund_amount")
    now = as_utc_naive(now) or utcnow()

    def _op():
        with unit_of_work(immediate=True) as session:
            rental = get_active(Rental, rental_id, session=session, lock=True, label="Rental")
            _ensure_order_open(rental.order)
            if rental.return_status not in AWAITING_INSPECTION:
                raise ValidationError(
                    "Rental is not pending inspection",
                    details={"return_status": rental.return_status},
                )
            fee = rental.late_fee if late_fee is None else _non_negative_money(late_fee, "late_fee")
            fee = to_money(fee or ZERO)
            order = rental.order

            rental.return_status = RETURN_STATUS_INSPECTED
            rental.inspection_result = inspection_result
            rental.refund_amount = refund
            rental.late_fee = fee
            rental.inspected_by_user_id = inspector.id
            rental.inspected_at = now

            net = refund - fee
            if net > 0:
                record_transaction(
                    session,
                    user_id=order.buyer_id,
                    order_id=order.id,
                    amount=net,
                    type=TXN_TYPE_REFUND,
                    description=f"Refund for rental #{rental.id} after inspection",
                )
                credit_balance(session, order.buyer_id, net)

            if fee > 0:
                record_transaction(
                    session,
                    user_id=order.buyer_id,
                    order_id=order.id,
                    amount=fee,
                    type=TXN_TYPE_FEE,
                    description=f"Late fee for rental #{rental.id}",
                )
            return rental, order.buyer_id, net

    rental, buyer_id, net = run_with_retry(_op)
    current_app.logger.info(
        "Rental %s inspected by %s: refund %s late fee %s net %s",
        rental.id, inspector.id, rental.refund_amount, rental.late_fee, net,
    )

    sink = notifications or get_gateways().notifications
    outcome = f"Refund: {format_money(net)}" if net > 0 else "No refund issued"
    notify_safely(sink, buyer_id, NOTIFICATION_SYSTEM, f"Rental inspection completed. {outcome}.")
    return rental


# =============================================================================
# QUERIES
# =============================================================================

def list_rentals(buyer_id: int, *, page: int = 1, limit: int = 20) -> list[Rental]:
    return (
        Rental.active()
        .join(OrderLine, OrderLine.id == Rental.order_line_id)
        .join(Order, Order.id == OrderLine.order_id)
        .filter(Order.buyer_id == buyer_id)
        .order_by(Rental.created_at.desc(), Rental.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_rental(rental_id: int, user: User) -> Rental:
    rental = get_active(Rental, rental_id, label="Rental")
    if not user.is_admin and rental.order.buyer_id != user.id:
        raise ForbiddenError("You can only view your own rentals")
    return rental
