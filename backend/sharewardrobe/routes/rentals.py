# Overview: Flask API routes for rentals; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..services import rental_service
from ..decorators import require_auth
from ..validation import pagination_args


rentals_bp = Blueprint("rentals", __name__, url_prefix="/api/rentals")


@rentals_bp.get("/")
@require_auth
def list_rentals_route():
    page, limit = pagination_args()
    rentals = rental_service.list_rentals(g.current_user.id, page=page, limit=limit)
    return jsonify({
        "rentals": [r.to_dict() for r in rentals],
        "pagination": {"page": page, "limit": limit},
    }), 200


@rentals_bp.get("/<int:rental_id>")
@require_auth
def get_rental_route(rental_id: int):
    rental = rental_service.get_rental(rental_id, g.current_user)
    return jsonify({"rental": rental.to_dict()}), 200


@rentals_bp.post("/<int:rental_id>/return")
@require_auth
def initiate_return_route(rental_id: int):
    rental = rental_service.initiate_return(rental_id, g.current_user.id)
    return jsonify({"rental": rental.to_dict()}), 200
