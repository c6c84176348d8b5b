# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

# backend/lotpos/routes/sales.py
"""Sales API routes: invoices, drafts, quotations, cancellation and production."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import DomainError
from ..permissions import Permission
from ..services import production_service, sales_service
from ..services.sales_service import sales_order_to_dict


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _orders_response(orders):
    return jsonify({"orders": [sales_order_to_dict(o) for o in orders]}), 200


@sales_bp.post("/")
@require_auth
@require_permission(Permission.POS_ACCESS)
def create_sale_route():
    """
    Create an invoice, draft or quotation.

    Body: items[], order_type, branch_id, customer_id, agent_id,
    valid_until, quotation_notes. Each item may carry item_assignments
    for manual batch allocation.

    Requires: POS_ACCESS
    """
    try:
        data = request.get_json() or {}
        order = sales_service.create_sale(
            g.caller,
            items=data.get("items"),
            order_type=data.get("order_type") or "invoice",
            branch_id=data.get("branch_id"),
            customer_id=data.get("customer_id"),
            agent_id=data.get("agent_id"),
            valid_until=data.get("valid_until"),
            quotation_notes=data.get("quotation_notes"),
        )
        return jsonify({"order": sales_order_to_dict(order)}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_auth
@require_permission(Permission.POS_ACCESS)
def list_sales_route():
    """
    List orders, newest first.

    Query: branch_id, customer_id, order_type, payment_status,
    production_status, discount_status, start_date, end_date, limit, offset.
    """
    try:
        result = sales_service.list_orders(g.caller, request.args.to_dict())
        result["orders"] = [sales_order_to_dict(o) for o in result["orders"]]
        return jsonify(result), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/drafts")
@require_auth
@require_permission(Permission.DRAFT_MANAGE)
def list_drafts_route():
    try:
        filters = request.args.to_dict()
        filters["order_type"] = "draft"
        result = sales_service.list_orders(g.caller, filters)
        return _orders_response(result["orders"])

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list drafts")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/quotations")
@require_auth
@require_permission(Permission.QUOTE_MANAGE)
def list_quotations_route():
    try:
        filters = request.args.to_dict()
        filters["order_type"] = "quotation"
        result = sales_service.list_orders(g.caller, filters)
        return _orders_response(result["orders"])

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list quotations")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:order_id>")
@require_auth
@require_permission(Permission.POS_ACCESS)
def get_sale_route(order_id: int):
    """Order with items, products and batch assignments."""
    try:
        order = sales_service.get_order(order_id, g.caller)
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:order_id>")
@require_auth
@require_permission(Permission.SALE_CANCEL)
def cancel_sale_route(order_id: int):
    """
    Cancel an unpaid order.

    Restores every allocated batch, credits the customer when the invoice
    had been posted, and deletes the order.

    Requires: SALE_CANCEL
    """
    try:
        result = sales_service.cancel_sale(order_id, g.caller)
        return jsonify({"message": "Sale cancelled", "cancellation": result}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Drafts and quotations
# =============================================================================

@sales_bp.put("/drafts/<int:order_id>")
@require_auth
@require_permission(Permission.DRAFT_MANAGE)
def update_draft_route(order_id: int):
    try:
        data = request.get_json() or {}
        kwargs = {}
        if "customer_id" in data:
            kwargs["customer_id"] = data["customer_id"]
        order = sales_service.update_draft(order_id, g.caller, items=data.get("items"), **kwargs)
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update draft")
        return jsonify({"error": "Internal server error"}), 500


def _convert(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = sales_service.convert_to_invoice(
            order_id,
            g.caller,
            item_assignments=data.get("item_assignments"),
        )
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to convert order to invoice")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/drafts/<int:order_id>/convert")
@require_auth
@require_permission(Permission.DRAFT_MANAGE)
def convert_draft_route(order_id: int):
    """
    Convert a draft to an invoice.

    Optional body: item_assignments {sales_item_id: [{inventory_batch_id,
    quantity_deducted}]}; items without an entry use FIFO.
    """
    return _convert(order_id)


@sales_bp.post("/quotations/<int:order_id>/convert")
@require_auth
@require_permission(Permission.QUOTE_MANAGE)
def convert_quotation_route(order_id: int):
    return _convert(order_id)


def _delete(order_id: int, order_type: str):
    try:
        result = sales_service.delete_order(order_id, g.caller, order_type=order_type)
        return jsonify({"message": f"{order_type.capitalize()} deleted", "order": result}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete %s", order_type)
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/drafts/<int:order_id>")
@require_auth
@require_permission(Permission.DRAFT_MANAGE)
def delete_draft_route(order_id: int):
    return _delete(order_id, "draft")


@sales_bp.delete("/quotations/<int:order_id>")
@require_auth
@require_permission(Permission.QUOTE_MANAGE)
def delete_quotation_route(order_id: int):
    return _delete(order_id, "quotation")


# =============================================================================
# Production
# =============================================================================

@sales_bp.get("/production-queue")
@require_auth
@require_permission(Permission.PRODUCTION_VIEW_QUEUE)
def production_queue_route():
    try:
        return _orders_response(production_service.production_queue(g.caller))

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load production queue")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/shipments")
@require_auth
@require_permission(Permission.PRODUCTION_VIEW_QUEUE)
def shipments_route():
    try:
        return _orders_response(production_service.shipments(g.caller))

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load shipments")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/manufacturing-approvals")
@require_auth
@require_permission(Permission.PRODUCTION_VIEW_QUEUE)
def manufacturing_approvals_route():
    try:
        return _orders_response(production_service.manufacturing_approvals(g.caller))

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load manufacturing approvals")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:order_id>/production-status")
@require_auth
@require_permission(Permission.PRODUCTION_UPDATE_STATUS)
def update_production_status_route(order_id: int):
    """
    Move an invoice along the production graph.

    Body: production_status, plus worker_name for "produced" and
    dispatcher_name/vehicle_plate/delivery_signature for "delivered".
    """
    try:
        data = request.get_json() or {}
        order = production_service.update_production_status(
            order_id,
            g.caller,
            data.get("production_status"),
            worker_name=data.get("worker_name"),
            dispatcher_name=data.get("dispatcher_name"),
            vehicle_plate=data.get("vehicle_plate"),
            delivery_signature=data.get("delivery_signature"),
            reason=data.get("reason"),
        )
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update production status")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:order_id>/deliver")
@require_auth
@require_permission(Permission.PRODUCTION_UPDATE_STATUS)
def deliver_route(order_id: int):
    try:
        data = request.get_json() or {}
        order = production_service.mark_delivered(
            order_id,
            g.caller,
            dispatcher_name=data.get("dispatcher_name"),
            vehicle_plate=data.get("vehicle_plate"),
            delivery_signature=data.get("delivery_signature"),
        )
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark delivery")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:order_id>/approve-manufacturing")
@require_auth
@require_permission(Permission.PRODUCTION_UPDATE_STATUS)
def approve_manufacturing_route(order_id: int):
    try:
        order = production_service.approve_manufacturing(order_id, g.caller)
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve manufacturing")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:order_id>/reject-manufacturing")
@require_auth
@require_permission(Permission.PRODUCTION_UPDATE_STATUS)
def reject_manufacturing_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = production_service.reject_manufacturing(order_id, g.caller, reason=data.get("reason"))
        return jsonify({"order": sales_order_to_dict(order)}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject manufacturing")
        return jsonify({"error": "Internal server error"}), 500
