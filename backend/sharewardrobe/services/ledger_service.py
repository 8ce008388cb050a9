# Overview: Service-layer operations for the money ledger and user balances.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Transaction, User
from ..models.ledger import TXN_STATUSES, TXN_STATUS_COMPLETED, TXN_TYPES, TXN_TYPE_FEE, TXN_TYPE_PAYMENT
from sharewardrobe.money import ZERO, to_money
from sharewardrobe.time_utils import parse_iso_datetime, to_utc_z
from .lookups import get_active
"""
Ledger invariants (authoritative)

- Every money movement appends exactly one Transaction row inside the same
  unit of work as the state change it records.
- Rows are never deleted or edited. The single permitted update is a
  withdrawal row leaving pending (completed or failed).
- User.balance only moves through credit_balance()/debit_balance(), which
  read the user under a row lock so concurrent refunds and withdrawals for
  the same user cannot lose an update. Balance never goes below zero.
"""


def record_transaction(
    session,
    *,
    user_id: int | None,
    amount,
    type: str,
    status: str = TXN_STATUS_COMPLETED,
    order_id: int | None = None,
    withdrawal_request_id: int | None = None,
    description: str | None = None,
) -> Transaction:
    if type not in TXN_TYPES:
        raise ValueError(f"unknown transaction type {type!r}")
    if status not in TXN_STATUSES:
        raise ValueError(f"unknown transaction status {status!r}")

    txn = Transaction(
        user_id=user_id,
        order_id=order_id,
        withdrawal_request_id=withdrawal_request_id,
        amount=to_money(amount),
        type=type,
        status=status,
        description=description,
    )
    session.add(txn)
    session.flush()
    return txn


def lock_user(session, user_id: int) -> User:
    return get_active(User, user_id, session=session, lock=True, label="User")


def credit_balance(session, user_id: int, amount: Decimal) -> User:
    user = lock_user(session, user_id)
    user.balance = to_money((user.balance or ZERO) + amount)
    return user


def debit_balance(session, user_id: int, amount: Decimal) -> User:
    user = lock_user(session, user_id)
    current = to_money(user.balance or ZERO)
    if current < amount:
        raise ValidationError(
            "Insufficient balance",
            details={"balance": str(current), "requested": str(amount)},
        )
    user.balance = to_money(current - amount)
    return user


def paid_amount(session, order_id: int) -> Decimal:
    """Sum of completed payment rows recorded against an order."""
    total = (
        session.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(
            Transaction.order_id == order_id,
            Transaction.type == TXN_TYPE_PAYMENT,
            Transaction.status == TXN_STATUS_COMPLETED,
            Transaction.deleted_at.is_(None),
        )
        .scalar()
    )
    return to_money(total or 0)


# =============================================================================
# QUERIES
# =============================================================================

def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 datetimes")
    return start_dt, end_dt


def list_user_transactions(user_id: int, *, page: int = 1, limit: int = 20) -> list[Transaction]:
    return (
        Transaction.active()
        .filter(Transaction.user_id == user_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def list_transactions(
    *,
    type: str | None = None,
    status: str | None = None,
    start: str | None = None,
    end: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    """Admin ledger listing. Date bounds are inclusive."""
    if type and type not in TXN_TYPES:
        raise ValidationError(f"type must be one of {list(TXN_TYPES)}")
    if status and status not in TXN_STATUSES:
        raise ValidationError(f"status must be one of {list(TXN_STATUSES)}")
    start_dt, end_dt = _parse_range(start, end)

    query = Transaction.active()
    if type:
        query = query.filter(Transaction.type == type)
    if status:
        query = query.filter(Transaction.status == status)
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at <= end_dt)

    total = query.count()
    rows = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "transactions": [row.to_dict() for row in rows],
    }


def revenue_report(*, start: str | None = None, end: str | None = None) -> dict:
    """
    Completed ledger totals by type, plus platform fee revenue.

    Late fees are withheld from rental refunds before the refund row is
    written, so fee rows are revenue already kept rather than money still
    to be collected. Adding refund and fee rows together double counts.
    """
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(
        Transaction.type.label("type"),
        func.count(Transaction.id).label("count"),
        func.coalesce(func.sum(Transaction.amount), 0).label("total"),
    ).filter(
        Transaction.deleted_at.is_(None),
        Transaction.status == TXN_STATUS_COMPLETED,
    )
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at <= end_dt)

    rows = query.group_by(Transaction.type).order_by(Transaction.type).all()
    by_type = {row.type: {"count": int(row.count or 0), "total": str(to_money(row.total or 0))} for row in rows}
    fee_total = by_type.get(TXN_TYPE_FEE, {}).get("total", str(ZERO))

    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "fee_revenue": fee_total,
        "by_type": by_type,
    }
