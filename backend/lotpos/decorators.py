# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import Permission
from .services import session_service
from .services.authorization import CallerContext, default_policy


def require_auth(f):
    """
    Require a bearer token and establish the caller context.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.caller: CallerContext passed into every service call

    Returns 401 if the header is missing, the token is invalid, expired or
    revoked, or the user is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        user = session_service.validate_token(token)

        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.caller = CallerContext.for_user(user)

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission: Permission):
    """Require a specific permission (after @require_auth)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            caller = getattr(g, "caller", None)
            if caller is None:
                return jsonify({"error": "Authentication required"}), 401

            if not default_policy.has_permission(caller, permission):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission.value,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
