# Overview: Flask API routes for warehouse stock; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..models.users import ROLE_ADMIN
from ..services import warehouse_service
from ..decorators import require_auth, require_role
from ..validation import get_json_body, optional_int, pagination_args, parse_int, require_fields


warehouse_bp = Blueprint("warehouse", __name__, url_prefix="/api/warehouse")


@warehouse_bp.get("/")
@require_auth
@require_role(ROLE_ADMIN)
def list_stock_route():
    page, limit = pagination_args(default_limit=50)
    rows = warehouse_service.list_stock(status=request.args.get("status"), page=page, limit=limit)
    return jsonify({
        "inventory": [row.to_dict() for row in rows],
        "pagination": {"page": page, "limit": limit},
    }), 200


@warehouse_bp.get("/<int:stock_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_stock_route(stock_id: int):
    return jsonify({"entry": warehouse_service.get_stock(stock_id).to_dict()}), 200


@warehouse_bp.post("/")
@require_auth
@require_role(ROLE_ADMIN)
def add_stock_route():
    """
    Request body: {"item_id": 12, "quantity": 2, "status": "in_warehouse"}

    Returns 201 for a new entry, 200 when an existing entry absorbed the units.
    """
    data = get_json_body()
    require_fields(data, "item_id")
    row, created = warehouse_service.add_stock(
        parse_int(data["item_id"], "item_id"),
        parse_int(data.get("quantity", 1), "quantity", minimum=1),
        data.get("status"),
    )
    return jsonify({"entry": row.to_dict()}), 201 if created else 200


@warehouse_bp.put("/<int:stock_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_stock_route(stock_id: int):
    data = get_json_body()
    row = warehouse_service.update_stock(
        stock_id,
        quantity=optional_int(data.get("quantity"), "quantity"),
        status=data.get("status"),
    )
    return jsonify({"entry": row.to_dict()}), 200


@warehouse_bp.delete("/<int:stock_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_stock_route(stock_id: int):
    warehouse_service.delete_stock(stock_id)
    return jsonify({"message": "Warehouse entry deleted"}), 200
