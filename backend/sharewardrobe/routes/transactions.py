# Overview: Flask API routes for a user's ledger rows and withdrawals.

from flask import Blueprint, jsonify, g

from ..services import ledger_service, withdrawal_service
from ..decorators import require_auth
from ..validation import get_json_body, pagination_args, require_fields


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("/")
@require_auth
def list_transactions_route():
    page, limit = pagination_args()
    rows = ledger_service.list_user_transactions(g.current_user.id, page=page, limit=limit)
    return jsonify({
        "transactions": [t.to_dict() for t in rows],
        "balance": str(g.current_user.balance),
        "pagination": {"page": page, "limit": limit},
    }), 200


@transactions_bp.post("/withdraw")
@require_auth
def request_withdrawal_route():
    """Request body: {"amount": "250.00"}"""
    data = get_json_body()
    require_fields(data, "amount")
    request_row = withdrawal_service.request_withdrawal(g.current_user.id, data["amount"])
    return jsonify({"withdrawal": request_row.to_dict()}), 201


@transactions_bp.get("/withdrawals")
@require_auth
def list_withdrawals_route():
    rows = withdrawal_service.list_user_withdrawals(g.current_user.id)
    return jsonify({"withdrawals": [w.to_dict() for w in rows]}), 200
