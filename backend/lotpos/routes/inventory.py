# Overview: Flask API routes for inventory batches (stock lots).

from flask import Blueprint, request, jsonify, g, current_app

from lotpos.money import format_amount
from ..decorators import require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..permissions import Permission
from ..services import batch_ledger
from ..services.authorization import default_policy, resolve_branch


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/batches")
@require_auth
@require_permission(Permission.POS_ACCESS)
def list_batches_route():
    """
    In-stock batches of a product in FIFO order.

    Used by the POS to offer lots for manual allocation.
    Query: product_id (required), branch_id (defaults to the caller's branch),
    include_depleted.
    """
    try:
        product_id = request.args.get("product_id", type=int)
        if product_id is None:
            raise ValidationError("product_id is required")
        branch_id = resolve_branch(default_policy, g.caller, request.args.get("branch_id", type=int))
        include_depleted = request.args.get("include_depleted", "false").lower() == "true"

        batches = batch_ledger.list_batches(product_id, branch_id, include_depleted=include_depleted)
        return jsonify({
            "batches": [b.to_dict() for b in batches],
            "available_quantity": format_amount(batch_ledger.available_quantity(product_id, branch_id)),
        }), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list batches")
        return jsonify({"error": "Internal server error"}), 500
