# Overview: Flask API routes for the notification inbox.

from flask import Blueprint, request, jsonify, g

from ..services import notification_service
from ..decorators import require_auth
from ..validation import pagination_args, parse_bool


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/")
@require_auth
def list_notifications_route():
    page, limit = pagination_args()
    rows = notification_service.list_notifications(
        g.current_user.id,
        unread_only=parse_bool(request.args.get("unread", False)),
        page=page,
        limit=limit,
    )
    return jsonify({
        "notifications": [n.to_dict() for n in rows],
        "pagination": {"page": page, "limit": limit},
    }), 200


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    notification = notification_service.mark_read(g.current_user.id, notification_id)
    return jsonify({"notification": notification.to_dict()}), 200


@notifications_bp.put("/read-all")
@require_auth
def mark_all_read_route():
    updated = notification_service.mark_all_read(g.current_user.id)
    return jsonify({"updated": updated}), 200
