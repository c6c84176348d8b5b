# Overview: Flask API routes for the caller's notifications.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import notification_service


communications_bp = Blueprint("communications", __name__, url_prefix="/api/notifications")


@communications_bp.get("/")
@require_auth
def list_notifications_route():
    try:
        unread_only = request.args.get("unread_only", "false").lower() == "true"
        limit = request.args.get("limit", default=50, type=int)
        limit = max(1, min(limit, 200))
        notes = notification_service.list_for_user(g.current_user.id, unread_only=unread_only, limit=limit)
        return jsonify({"notifications": [n.to_dict() for n in notes]}), 200

    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@communications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_notification_read_route(notification_id: int):
    try:
        if not notification_service.mark_read(notification_id, g.current_user.id):
            return jsonify({"error": "Notification not found"}), 404
        return jsonify({"message": "Notification marked as read"}), 200

    except Exception:
        current_app.logger.exception("Failed to mark notification read")
        return jsonify({"error": "Internal server error"}), 500
