# Overview: Flask API routes for checkout and orders; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..services import order_service
from ..decorators import require_auth
from ..validation import get_json_body, pagination_args, require_fields


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/")
@require_auth
def checkout_route():
    """
    Convert the caller's cart into an order.

    Request body:
    {"payment_method": "cod" | "online", "delivery_address": "House 1, Road 2"}

    Returns:
        201: order created (status pending or paid)
        400: empty cart, insufficient quantity, missing price
        404: an item in the cart no longer exists
    """
    data = get_json_body()
    require_fields(data, "payment_method")
    order = order_service.checkout(
        g.current_user.id,
        data["payment_method"],
        data.get("delivery_address") or g.current_user.address,
    )
    return jsonify({"order": order.to_dict(include_lines=True)}), 201


@orders_bp.get("/")
@require_auth
def list_orders_route():
    page, limit = pagination_args()
    orders = order_service.list_orders(g.current_user.id, page=page, limit=limit)
    return jsonify({
        "orders": [o.to_dict() for o in orders],
        "pagination": {"page": page, "limit": limit},
    }), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service.get_order(order_id, g.current_user)
    return jsonify({"order": order.to_dict(include_lines=True)}), 200


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    order = order_service.cancel_order(order_id, g.current_user)
    return jsonify({"order": order.to_dict()}), 200
