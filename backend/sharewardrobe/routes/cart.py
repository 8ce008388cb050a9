# Overview: Flask API routes for the cart; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..services import cart_service
from ..decorators import require_auth
from ..models.commerce import LINE_TYPE_BUY
from ..validation import get_json_body, parse_int, require_fields


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("/")
@require_auth
def get_cart_route():
    lines = cart_service.list_cart(g.current_user.id)
    return jsonify({"lines": [line.to_dict() for line in lines]}), 200


@cart_bp.post("/")
@require_auth
def add_to_cart_route():
    """
    Request body:
    {"item_id": 12, "quantity": 1, "type": "buy" | "rent"}
    """
    data = get_json_body()
    require_fields(data, "item_id")
    line, created = cart_service.add_item(
        g.current_user.id,
        parse_int(data["item_id"], "item_id"),
        parse_int(data.get("quantity", 1), "quantity", minimum=1),
        data.get("type", LINE_TYPE_BUY),
    )
    return jsonify({"line": line.to_dict()}), 201 if created else 200


@cart_bp.put("/<int:line_id>")
@require_auth
def update_cart_line_route(line_id: int):
    data = get_json_body()
    require_fields(data, "quantity")
    line = cart_service.update_quantity(
        g.current_user.id, line_id, parse_int(data["quantity"], "quantity", minimum=1)
    )
    return jsonify({"line": line.to_dict()}), 200


@cart_bp.delete("/<int:line_id>")
@require_auth
def remove_cart_line_route(line_id: int):
    cart_service.remove_item(g.current_user.id, line_id)
    return jsonify({"message": "Item removed from cart"}), 200


@cart_bp.delete("/")
@require_auth
def clear_cart_route():
    removed = cart_service.clear_cart(g.current_user.id)
    return jsonify({"message": "Cart cleared", "removed": removed}), 200
