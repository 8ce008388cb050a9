# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/sharewardrobe/routes/admin.py
"""
Admin API routes

- Business configuration (AdminConfig key/value)
- Order status moves and rental inspection
- Withdrawal processing
- Ledger listing, revenue and inventory turnover reports
- User status, role and identity verification

Every route requires an authenticated admin.
"""

from flask import Blueprint, request, jsonify, g

from ..errors import NotFoundError, ValidationError
from ..models import User
from ..models.users import ROLE_ADMIN
from ..services import (
    auth_service,
    config_service,
    ledger_service,
    order_service,
    rental_service,
    warehouse_service,
    withdrawal_service,
)
from ..decorators import require_auth, require_role
from ..validation import get_json_body, pagination_args, require_fields


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# CONFIGURATION
# =============================================================================

@admin_bp.get("/configs")
@require_auth
@require_role(ROLE_ADMIN)
def list_configs_route():
    return jsonify({"configs": [row.to_dict() for row in config_service.list_configs()]}), 200


@admin_bp.get("/configs/<string:key>")
@require_auth
@require_role(ROLE_ADMIN)
def get_config_route(key: str):
    row = config_service.get_config_row(key)
    if row is None:
        raise NotFoundError(f"Config key '{key}' not found")
    return jsonify({"config": row.to_dict()}), 200


@admin_bp.put("/configs/<string:key>")
@require_auth
@require_role(ROLE_ADMIN)
def set_config_route(key: str):
    """Request body: {"value": "120", "description": "optional"}"""
    data = get_json_body()
    require_fields(data, "value")
    row, created = config_service.set_config(
        key, data["value"], data.get("description"), user_id=g.current_user.id
    )
    return jsonify({"config": row.to_dict()}), 201 if created else 200


# =============================================================================
# ORDERS & RENTALS
# =============================================================================

@admin_bp.put("/orders/<int:order_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def update_order_status_route(order_id: int):
    data = get_json_body()
    require_fields(data, "status")
    order = order_service.update_order_status(order_id, data["status"])
    return jsonify({"order": order.to_dict()}), 200


@admin_bp.post("/rentals/<int:rental_id>/inspect")
@require_auth
@require_role(ROLE_ADMIN)
def inspect_return_route(rental_id: int):
    """
    Request body:
    {
        "inspection_result": "Minor stain, cleaned",
        "refund_amount": "500.00",
        "late_fee": "150.00"   (optional, defaults to the fee computed on return)
    }
    """
    data = get_json_body()
    require_fields(data, "inspection_result", "refund_amount")
    rental = rental_service.inspect_return(
        rental_id,
        g.current_user,
        data["inspection_result"],
        data["refund_amount"],
        data.get("late_fee"),
    )
    return jsonify({"rental": rental.to_dict()}), 200


# =============================================================================
# WITHDRAWALS
# =============================================================================

@admin_bp.get("/withdrawals")
@require_auth
@require_role(ROLE_ADMIN)
def list_withdrawals_route():
    rows = withdrawal_service.list_withdrawals(request.args.get("status", "pending") or None)
    return jsonify({"withdrawals": [w.to_dict() for w in rows]}), 200


@admin_bp.put("/withdrawals/<int:withdrawal_id>")
@require_auth
@require_role(ROLE_ADMIN)
def process_withdrawal_route(withdrawal_id: int):
    """Request body: {"status": "processed" | "rejected"}"""
    data = get_json_body()
    require_fields(data, "status")
    if data["status"] not in ("processed", "rejected"):
        raise ValidationError("status must be 'processed' or 'rejected'")
    row = withdrawal_service.process_withdrawal(
        withdrawal_id, g.current_user.id, approve=data["status"] == "processed"
    )
    return jsonify({"withdrawal": row.to_dict()}), 200


# =============================================================================
# REPORTS
# =============================================================================

@admin_bp.get("/reports/ledger")
@require_auth
@require_role(ROLE_ADMIN)
def ledger_report_route():
    page, limit = pagination_args(default_limit=50)
    report = ledger_service.list_transactions(
        type=request.args.get("type"),
        status=request.args.get("status"),
        start=request.args.get("start"),
        end=request.args.get("end"),
        page=page,
        limit=limit,
    )
    return jsonify(report), 200


@admin_bp.get("/reports/revenue")
@require_auth
@require_role(ROLE_ADMIN)
def revenue_report_route():
    report = ledger_service.revenue_report(
        start=request.args.get("start"),
        end=request.args.get("end"),
    )
    return jsonify(report), 200


@admin_bp.get("/reports/inventory-turnover")
@require_auth
@require_role(ROLE_ADMIN)
def inventory_turnover_route():
    return jsonify(warehouse_service.inventory_turnover_report()), 200


# =============================================================================
# USERS
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    page, limit = pagination_args()
    query = User.active()
    if request.args.get("verification_status"):
        query = query.filter(User.verification_status == request.args["verification_status"])
    users = query.order_by(User.id).offset((page - 1) * limit).limit(limit).all()
    return jsonify({
        "users": [u.to_dict() for u in users],
        "pagination": {"page": page, "limit": limit},
    }), 200


@admin_bp.put("/users/<int:user_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def set_user_status_route(user_id: int):
    data = get_json_body()
    require_fields(data, "status")
    user = auth_service.set_user_status(user_id, data["status"])
    return jsonify({"user": user.to_dict()}), 200


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_role(ROLE_ADMIN)
def set_user_role_route(user_id: int):
    """Request body: {"role": "user" | "admin"}"""
    data = get_json_body()
    require_fields(data, "role")
    user = auth_service.set_user_role(user_id, data["role"], acting_user_id=g.current_user.id)
    return jsonify({"user": user.to_dict()}), 200


@admin_bp.put("/users/<int:user_id>/verification")
@require_auth
@require_role(ROLE_ADMIN)
def set_verification_route(user_id: int):
    """Request body: {"status": "approved" | "rejected"}"""
    data = get_json_body()
    require_fields(data, "status")
    user = auth_service.set_verification_status(user_id, data["status"])
    return jsonify({"user": user.to_dict()}), 200
