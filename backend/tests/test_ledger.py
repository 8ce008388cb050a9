from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from sharewardrobe.errors import ValidationError
from sharewardrobe.models import Transaction, User, WithdrawalRequest
from sharewardrobe.services import ledger_service, withdrawal_service


def _balance(db_session, user):
    return db_session.get(User, user.id).balance


# =============================================================================
# WITHDRAWALS
# =============================================================================

def test_withdrawal_debits_balance_and_records_pending_row(db_session, make_user):
    user = make_user(balance="500.00")

    request = withdrawal_service.request_withdrawal(user.id, "200")

    assert request.status == "pending"
    assert _balance(db_session, user) == Decimal("300.00")
    txn = db_session.query(Transaction).one()
    assert txn.type == "withdrawal"
    assert txn.status == "pending"
    assert txn.amount == Decimal("-200.00")
    assert txn.withdrawal_request_id == request.id


def test_withdrawal_cannot_exceed_balance(db_session, make_user):
    user = make_user(balance="100.00")

    with pytest.raises(ValidationError, match="Insufficient balance"):
        withdrawal_service.request_withdrawal(user.id, "100.01")

    assert _balance(db_session, user) == Decimal("100.00")
    assert db_session.query(WithdrawalRequest).count() == 0
    assert db_session.query(Transaction).count() == 0


@pytest.mark.parametrize("amount", ["0", "-5", "lots", "1e30"])
def test_withdrawal_amount_must_be_positive(make_user, amount):
    user = make_user(balance="100.00")
    with pytest.raises(ValidationError):
        withdrawal_service.request_withdrawal(user.id, amount)


def test_approved_withdrawal_completes_ledger_row(db_session, make_user, admin):
    user = make_user(balance="500.00")
    request = withdrawal_service.request_withdrawal(user.id, "200")

    processed = withdrawal_service.process_withdrawal(request.id, admin.id, approve=True)

    assert processed.status == "processed"
    assert processed.processed_by_user_id == admin.id
    assert db_session.query(Transaction).one().status == "completed"
    assert _balance(db_session, user) == Decimal("300.00")


def test_rejected_withdrawal_credits_back(db_session, make_user, admin):
    user = make_user(balance="500.00")
    request = withdrawal_service.request_withdrawal(user.id, "200")

    processed = withdrawal_service.process_withdrawal(request.id, admin.id, approve=False)

    assert processed.status == "rejected"
    assert db_session.query(Transaction).one().status == "failed"
    assert _balance(db_session, user) == Decimal("500.00")


def test_withdrawal_is_processed_once(make_user, admin):
    user = make_user(balance="500.00")
    request = withdrawal_service.request_withdrawal(user.id, "200")
    withdrawal_service.process_withdrawal(request.id, admin.id, approve=True)

    with pytest.raises(ValidationError, match="already processed"):
        withdrawal_service.process_withdrawal(request.id, admin.id, approve=False)


def test_pending_withdrawals_listing(make_user, admin):
    user = make_user(balance="500.00")
    first = withdrawal_service.request_withdrawal(user.id, "100")
    second = withdrawal_service.request_withdrawal(user.id, "50")
    withdrawal_service.process_withdrawal(first.id, admin.id, approve=True)

    assert [w.id for w in withdrawal_service.list_withdrawals()] == [second.id]
    assert {w.id for w in withdrawal_service.list_user_withdrawals(user.id)} == {first.id, second.id}


# =============================================================================
# BALANCE INVARIANT
# =============================================================================

def test_balance_check_constraint(db_session, make_user):
    user = make_user(balance="10.00")
    user.balance = Decimal("-0.01")
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


# =============================================================================
# REPORTS
# =============================================================================

def test_revenue_report_sums_completed_rows_by_type(db_session, make_user):
    user = make_user()
    for amount, type, status in [
        ("150.00", "fee", "completed"),
        ("50.00", "fee", "completed"),
        ("350.00", "refund", "completed"),
        ("-20.00", "withdrawal", "pending"),
    ]:
        ledger_service.record_transaction(db_session, user_id=user.id, amount=amount, type=type, status=status)
    db_session.commit()

    report = ledger_service.revenue_report()

    assert report["fee_revenue"] == "200.00"
    assert report["by_type"]["fee"] == {"count": 2, "total": "200.00"}
    assert report["by_type"]["refund"] == {"count": 1, "total": "350.00"}
    assert "withdrawal" not in report["by_type"]


def test_ledger_listing_filters(db_session, make_user):
    user = make_user()
    ledger_service.record_transaction(db_session, user_id=user.id, amount="10", type="fee")
    ledger_service.record_transaction(db_session, user_id=user.id, amount="20", type="refund")
    db_session.commit()

    report = ledger_service.list_transactions(type="fee")
    assert report["total"] == 1
    assert report["transactions"][0]["amount"] == "10.00"

    with pytest.raises(ValidationError):
        ledger_service.list_transactions(type="bribe")
    with pytest.raises(ValidationError):
        ledger_service.list_transactions(start="yesterday")


def test_record_transaction_rejects_unknown_type(db_session, make_user):
    with pytest.raises(ValueError):
        ledger_service.record_transaction(db_session, user_id=make_user().id, amount="1", type="gift")
