# Overview: Service-layer operations for balance withdrawals.

from __future__ import annotations

from flask import current_app

from ..errors import ValidationError
from ..models import Transaction, WithdrawalRequest
from ..models.ledger import (
    TXN_STATUS_COMPLETED,
    TXN_STATUS_FAILED,
    TXN_STATUS_PENDING,
    TXN_TYPE_WITHDRAWAL,
    WITHDRAWAL_PENDING,
    WITHDRAWAL_PROCESSED,
    WITHDRAWAL_REJECTED,
)
from sharewardrobe.money import to_money
from sharewardrobe.time_utils import utcnow
from .concurrency import run_with_retry, unit_of_work
from .ledger_service import credit_balance, debit_balance, record_transaction
from .lookups import get_active

# The balance is debited when the request is made, so a user cannot
# request more than they hold across several pending requests.


def request_withdrawal(user_id: int, amount) -> WithdrawalRequest:
    try:
        amount = to_money(amount)
    except ValueError:
        raise ValidationError("amount must be a number")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")

    def _op():
        with unit_of_work(immediate=True) as session:
            debit_balance(session, user_id, amount)
            request = WithdrawalRequest(user_id=user_id, amount=amount, status=WITHDRAWAL_PENDING)
            session.add(request)
            session.flush()
            record_transaction(
                session,
                user_id=user_id,
                amount=-amount,
                type=TXN_TYPE_WITHDRAWAL,
                status=TXN_STATUS_PENDING,
                withdrawal_request_id=request.id,
                description=f"Withdrawal request #{request.id}",
            )
            return request

    request = run_with_retry(_op)
    current_app.logger.info("Withdrawal %s requested by user %s for %s", request.id, user_id, amount)
    return request


def process_withdrawal(withdrawal_id: int, admin_id: int, approve: bool) -> WithdrawalRequest:
    """Approve (pay out) or reject (credit back) a pending withdrawal."""
    def _op():
        with unit_of_work(immediate=True) as session:
            request = get_active(WithdrawalRequest, withdrawal_id, session=session, lock=True, label="Withdrawal")
            if request.status != WITHDRAWAL_PENDING:
                raise ValidationError(f"Withdrawal is already {request.status}")

            txn = (
                session.query(Transaction)
                .filter_by(withdrawal_request_id=request.id, type=TXN_TYPE_WITHDRAWAL)
                .first()
            )

            if approve:
                request.status = WITHDRAWAL_PROCESSED
                if txn:
                    txn.status = TXN_STATUS_COMPLETED
            else:
                request.status = WITHDRAWAL_REJECTED
                credit_balance(session, request.user_id, to_money(request.amount))
                if txn:
                    txn.status = TXN_STATUS_FAILED

            request.processed_at = utcnow()
            request.processed_by_user_id = admin_id
            return request

    request = run_with_retry(_op)
    current_app.logger.info("Withdrawal %s %s by admin %s", request.id, request.status, admin_id)
    return request


def list_user_withdrawals(user_id: int) -> list[WithdrawalRequest]:
    return (
        WithdrawalRequest.active()
        .filter(WithdrawalRequest.user_id == user_id)
        .order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc())
        .all()
    )


def list_withdrawals(status: str | None = WITHDRAWAL_PENDING) -> list[WithdrawalRequest]:
    query = WithdrawalRequest.active()
    if status:
        query = query.filter(WithdrawalRequest.status == status)
    return query.order_by(WithdrawalRequest.created_at, WithdrawalRequest.id).all()
