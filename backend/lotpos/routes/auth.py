# Overview: Flask API routes for bearer token validation and logout.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>

    WHY: Explicit logout prevents token reuse.
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]
        if not session_service.revoke_token(token):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with branch context and permission codes (for UI filtering)."""
    caller = g.caller
    return jsonify({
        "user": g.current_user.to_dict(),
        "branch_id": caller.branch_id,
        "is_super_admin": caller.is_super_admin,
        "permissions": sorted(p.value for p in caller.permissions),
    }), 200
