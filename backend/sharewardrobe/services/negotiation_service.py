# Overview: Price offers and the bridge that turns an accepted offer into a held cart price.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import ForbiddenError, ValidationError
from ..models import CartLine, Item, Negotiation, User
from ..models.commerce import (
    LINE_TYPE_BUY,
    NEGOTIATION_ACCEPTED,
    NEGOTIATION_PENDING,
    NEGOTIATION_REJECTED,
)
from ..models.communications import NOTIFICATION_NEGOTIATION
from sharewardrobe.money import format_money, to_money
from sharewardrobe.time_utils import as_utc_naive, minutes_from_now, utcnow
from . import config_service
from .concurrency import run_with_retry, unit_of_work
from .gateways import get_gateways
from .lookups import get_active
from .notification_service import NotificationSink, notify_safely

DECISIONS = (NEGOTIATION_ACCEPTED, NEGOTIATION_REJECTED)


def create_negotiation(
    buyer_id: int,
    item_id: int,
    offer_price,
    expires_at: datetime | None = None,
) -> Negotiation:
    try:
        offer = to_money(offer_price)
    except ValueError:
        raise ValidationError("offer_price must be a number")
    if offer < 0:
        raise ValidationError("offer_price must be zero or more")

    item = get_active(Item, item_id, label="Item")
    if item.seller_id == buyer_id:
        raise ValidationError("You cannot negotiate on your own items")

    negotiation = Negotiation(
        item_id=item.id,
        buyer_id=buyer_id,
        offer_price=offer,
        status=NEGOTIATION_PENDING,
        expires_at=as_utc_naive(expires_at),
    )
    db.session.add(negotiation)
    db.session.commit()
    return negotiation


def _upsert_held_cart_line(session, negotiation: Negotiation, now: datetime) -> CartLine:
    """Last accepted offer wins for the (buyer, item, buy) line."""
    hold_minutes = config_service.negotiation_hold_minutes(session=session)
    hold_until = minutes_from_now(hold_minutes, now=now)

    line = (
        session.query(CartLine)
        .filter_by(user_id=negotiation.buyer_id, item_id=negotiation.item_id, type=LINE_TYPE_BUY)
        .first()
    )
    if line is None:
        line = CartLine(
            user_id=negotiation.buyer_id,
            item_id=negotiation.item_id,
            quantity=1,
            type=LINE_TYPE_BUY,
        )
        session.add(line)

    line.negotiated_price = negotiation.offer_price
    line.negotiated_expires_at = hold_until
    line.negotiation_id = negotiation.id
    session.flush()
    return line


def respond(
    negotiation_id: int,
    responder_id: int,
    decision: str,
    *,
    notifications: NotificationSink | None = None,
    now: datetime | None = None,
) -> Negotiation:
    """
    Item owner accepts or rejects an offer.

    Accepting writes the offer into the buyer's cart as a held price. Accepting
    an accepted offer again re-applies the cart write and refreshes the hold.
    """
    if decision not in DECISIONS:
        raise ValidationError(f"status must be one of {list(DECISIONS)}")
    now = as_utc_naive(now) or utcnow()

    def _op():
        with unit_of_work(immediate=True) as session:
            negotiation = get_active(Negotiation, negotiation_id, session=session, lock=True, label="Negotiation")
            item = session.get(Item, negotiation.item_id)
            if item is None or item.seller_id != responder_id:
                raise ForbiddenError("You can only respond to negotiations on your own items")

            reaccept = negotiation.status == NEGOTIATION_ACCEPTED and decision == NEGOTIATION_ACCEPTED
            if negotiation.status != NEGOTIATION_PENDING and not reaccept:
                raise ValidationError(f"Negotiation is already {negotiation.status}")

            expires_at = as_utc_naive(negotiation.expires_at)
            if not reaccept and expires_at is not None and expires_at <= now:
                raise ValidationError("Negotiation has expired")

            negotiation.status = decision
            if decision == NEGOTIATION_ACCEPTED:
                _upsert_held_cart_line(session, negotiation, now)
            return negotiation

    negotiation = run_with_retry(_op)
    current_app.logger.info("Negotiation %s %s by user %s", negotiation.id, decision, responder_id)

    sink = notifications or get_gateways().notifications
    notify_safely(
        sink,
        negotiation.buyer_id,
        NOTIFICATION_NEGOTIATION,
        f"Your offer of {format_money(negotiation.offer_price)} on item #{negotiation.item_id} was {decision}",
    )
    return negotiation


def list_as_buyer(buyer_id: int, *, page: int = 1, limit: int = 20) -> list[Negotiation]:
    return (
        Negotiation.active()
        .filter(Negotiation.buyer_id == buyer_id)
        .order_by(Negotiation.created_at.desc(), Negotiation.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def list_as_seller(seller_id: int, *, status: str | None = None, page: int = 1, limit: int = 20) -> list[Negotiation]:
    query = (
        Negotiation.active()
        .join(Item, Item.id == Negotiation.item_id)
        .filter(Item.seller_id == seller_id)
    )
    if status:
        query = query.filter(Negotiation.status == status)
    return (
        query.order_by(Negotiation.created_at.desc(), Negotiation.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_negotiation(negotiation_id: int, user: User) -> Negotiation:
    negotiation = get_active(Negotiation, negotiation_id, label="Negotiation")
    if user.is_admin or negotiation.buyer_id == user.id:
        return negotiation
    if negotiation.item and negotiation.item.seller_id == user.id:
        return negotiation
    raise ForbiddenError("Not allowed to view this negotiation")
