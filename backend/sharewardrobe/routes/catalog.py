# Overview: Flask API routes for categories and items; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import catalog_service
from ..decorators import require_auth, require_role
from ..models.users import ROLE_ADMIN
from ..validation import get_json_body, optional_int, pagination_args, require_fields


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# =============================================================================
# CATEGORIES
# =============================================================================

@catalog_bp.get("/categories")
def list_categories_route():
    categories = catalog_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@catalog_bp.post("/categories")
@require_auth
@require_role(ROLE_ADMIN)
def create_category_route():
    data = get_json_body()
    require_fields(data, "name")
    category = catalog_service.create_category(data["name"], data.get("description"))
    return jsonify({"category": category.to_dict()}), 201


@catalog_bp.delete("/categories/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_category_route(category_id: int):
    catalog_service.delete_category(category_id)
    return jsonify({"message": "Category deleted"}), 200


# =============================================================================
# ITEMS
# =============================================================================

@catalog_bp.get("/items")
def list_items_route():
    """Public browse; only approved (available) items unless a status filter is given."""
    page, limit = pagination_args()
    items = catalog_service.list_items(
        category_id=optional_int(request.args.get("category_id"), "category_id"),
        type=request.args.get("type"),
        availability=request.args.get("availability"),
        status=request.args.get("status") or "available",
        min_price=request.args.get("min_price"),
        max_price=request.args.get("max_price"),
        page=page,
        limit=limit,
    )
    return jsonify({
        "items": [item.to_dict() for item in items],
        "pagination": {"page": page, "limit": limit},
    }), 200


@catalog_bp.get("/items/<int:item_id>")
def get_item_route(item_id: int):
    return jsonify({"item": catalog_service.get_item(item_id).to_dict()}), 200


@catalog_bp.post("/items")
@require_auth
def create_item_route():
    """
    Request body:
    {
        "type": "saree",
        "description": "Red silk saree",
        "availability": "both",
        "sell_price": "1500.00",
        "rent_price": "300.00",
        "quantity": 1,
        "category_id": 2,
        "color": "red",
        "size": "M"
    }
    """
    item = catalog_service.create_item(g.current_user.id, get_json_body())
    return jsonify({"item": item.to_dict()}), 201


@catalog_bp.put("/items/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    item = catalog_service.update_item(item_id, g.current_user, get_json_body())
    return jsonify({"item": item.to_dict()}), 200


@catalog_bp.delete("/items/<int:item_id>")
@require_auth
def delete_item_route(item_id: int):
    catalog_service.delete_item(item_id, g.current_user)
    return jsonify({"message": "Item deleted"}), 200


@catalog_bp.put("/items/<int:item_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def set_item_status_route(item_id: int):
    data = get_json_body()
    require_fields(data, "status")
    item = catalog_service.set_item_status(item_id, data["status"])
    return jsonify({"item": item.to_dict()}), 200
