# Overview: Flask API routes for the discount approval queue.

"""
Discount approval routes.

Every route requires SALE_DISCOUNT_APPROVE; the service additionally
enforces branch isolation against the order's branch.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import DomainError
from ..permissions import Permission
from ..services import discount_service
from ..services.sales_service import sales_order_to_dict


discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discount-approvals")


@discounts_bp.get("/")
@require_auth
@require_permission(Permission.SALE_DISCOUNT_APPROVE)
def list_discount_sales_route():
    """Query: status (pending | approved | declined), default pending."""
    try:
        status = request.args.get("status", "pending")
        orders = discount_service.list_discount_sales(g.caller, status=status)
        return jsonify({"orders": [sales_order_to_dict(o) for o in orders]}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list discount approvals")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.put("/<int:order_id>/approve")
@require_auth
@require_permission(Permission.SALE_DISCOUNT_APPROVE)
def approve_discount_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = discount_service.approve_discount(
            order_id, g.caller, item_assignments=data.get("item_assignments")
        )
        return jsonify({"message": "Discount approved", "order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.put("/<int:order_id>/decline")
@require_auth
@require_permission(Permission.SALE_DISCOUNT_APPROVE)
def decline_discount_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = discount_service.decline_discount(order_id, g.caller, reason=data.get("reason"))
        return jsonify({"message": "Discount declined", "order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to decline discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.put("/<int:order_id>/restore")
@require_auth
@require_permission(Permission.SALE_DISCOUNT_APPROVE)
def restore_declined_sale_route(order_id: int):
    """Replace a declined sale's items; the order re-enters the discount gate."""
    try:
        data = request.get_json() or {}
        order = discount_service.restore_declined_sale(order_id, g.caller, items=data.get("items"))
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restore declined sale")
        return jsonify({"error": "Internal server error"}), 500
