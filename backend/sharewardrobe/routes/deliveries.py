# Overview: Flask API routes for courier deliveries; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, request

from ..models.users import ROLE_ADMIN
from ..services import delivery_service
from ..decorators import require_auth, require_role
from ..validation import get_json_body, optional_int, pagination_args, require_fields


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")


@deliveries_bp.get("/")
@require_auth
def list_deliveries_route():
    """Buyers see their own deliveries, admins see all. Optional ?order_id= filter."""
    page, limit = pagination_args()
    order_id = optional_int(request.args.get("order_id"), "order_id")
    deliveries = delivery_service.list_deliveries(g.current_user, order_id=order_id, page=page, limit=limit)
    return jsonify({
        "deliveries": [d.to_dict() for d in deliveries],
        "pagination": {"page": page, "limit": limit},
    }), 200


@deliveries_bp.get("/<int:delivery_id>")
@require_auth
def get_delivery_route(delivery_id: int):
    delivery = delivery_service.get_delivery(delivery_id, g.current_user)
    return jsonify({"delivery": delivery.to_dict()}), 200


@deliveries_bp.put("/<int:delivery_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def update_delivery_status_route(delivery_id: int):
    """Request body: {"status": "in_transit", "tracking_id": "optional"}"""
    data = get_json_body()
    require_fields(data, "status")
    delivery = delivery_service.update_delivery_status(delivery_id, data["status"], data.get("tracking_id"))
    return jsonify({"delivery": delivery.to_dict()}), 200


@deliveries_bp.post("/<int:delivery_id>/refresh")
@require_auth
@require_role(ROLE_ADMIN)
def refresh_delivery_status_route(delivery_id: int):
    """Pull the latest status from the courier."""
    delivery = delivery_service.refresh_delivery_status(delivery_id)
    return jsonify({"delivery": delivery.to_dict()}), 200
