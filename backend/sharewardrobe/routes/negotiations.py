# Overview: Flask API routes for negotiations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import negotiation_service
from ..decorators import require_auth
from ..validation import get_json_body, pagination_args, parse_datetime, parse_int, require_fields


negotiations_bp = Blueprint("negotiations", __name__, url_prefix="/api/negotiations")


@negotiations_bp.get("/")
@require_auth
def list_negotiations_route():
    """?role=seller lists offers on the caller's items; default lists the caller's own offers."""
    page, limit = pagination_args()
    if request.args.get("role") == "seller":
        rows = negotiation_service.list_as_seller(
            g.current_user.id, status=request.args.get("status"), page=page, limit=limit
        )
    else:
        rows = negotiation_service.list_as_buyer(g.current_user.id, page=page, limit=limit)
    return jsonify({
        "negotiations": [n.to_dict() for n in rows],
        "pagination": {"page": page, "limit": limit},
    }), 200


@negotiations_bp.get("/<int:negotiation_id>")
@require_auth
def get_negotiation_route(negotiation_id: int):
    negotiation = negotiation_service.get_negotiation(negotiation_id, g.current_user)
    return jsonify({"negotiation": negotiation.to_dict()}), 200


@negotiations_bp.post("/")
@require_auth
def create_negotiation_route():
    """
    Request body:
    {"item_id": 12, "offer_price": "900.00", "expires_at": "2026-01-01T00:00:00Z"}
    """
    data = get_json_body()
    require_fields(data, "item_id", "offer_price")
    negotiation = negotiation_service.create_negotiation(
        g.current_user.id,
        parse_int(data["item_id"], "item_id"),
        data["offer_price"],
        parse_datetime(data.get("expires_at"), "expires_at"),
    )
    return jsonify({"negotiation": negotiation.to_dict()}), 201


@negotiations_bp.put("/<int:negotiation_id>/respond")
@require_auth
def respond_route(negotiation_id: int):
    """Request body: {"status": "accepted" | "rejected"}"""
    data = get_json_body()
    require_fields(data, "status")
    negotiation = negotiation_service.respond(negotiation_id, g.current_user.id, data["status"])
    return jsonify({"negotiation": negotiation.to_dict()}), 200
