# Overview: Discount approval workflow for below-list-price invoices.

"""
Discount approval.

A below-list invoice is created with discount_status "pending" and no
stock, commission or ledger effects. An approver either:

- approves: status "approved", then the deferred effects run once, in the
  same transaction (allocation may use explicit assignments per item id)
- declines: status "declined", reason stored; nothing to undo because
  nothing was applied

A declined sale can be restored with corrected items, which re-enters
the gate. Approval notifications are closed on every decision.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..models import SalesOrder
from ..permissions import Permission
from lotpos.money import multiply, total
from lotpos.time_utils import utcnow
from . import notification_service
from .authorization import CallerContext, get_policy, require_branch_access, require_permission
from .concurrency import run_in_transaction
from .sales_service import (
    SaleError,
    check_branch_availability,
    check_price_overrides,
    finish_invoice,
    apply_order_effects,
    load_catalog,
    lock_order,
    parse_items,
    replace_items,
)


DISCOUNT_STATUS_FILTERS = ("pending", "approved", "declined")


def _close_notifications(order: SalesOrder) -> None:
    notification_service.mark_reference_read(
        notification_service.SALES_ORDER_REFERENCE,
        order.id,
        notification_service.DISCOUNT_APPROVAL_REQUEST,
    )


def _lock_pending(order_id: int, caller: CallerContext, policy) -> SalesOrder:
    order = lock_order(order_id)
    require_branch_access(policy, caller, order.branch_id)
    if order.discount_status != "pending":
        raise SaleError(
            f"Sale is not pending approval. Current status: {order.discount_status}",
            {"discount_status": order.discount_status},
        )
    return order


def approve_discount(
    order_id: int,
    caller: CallerContext,
    *,
    item_assignments: dict | None = None,
    policy=None,
) -> SalesOrder:
    """pending -> approved, then apply the deferred stock/commission/ledger effects."""
    policy = get_policy(policy)
    require_permission(policy, caller, Permission.SALE_DISCOUNT_APPROVE)
    if item_assignments is not None and not isinstance(item_assignments, dict):
        raise ValidationError("item_assignments must map sales item ids to assignment lists")

    def _op():
        order = _lock_pending(order_id, caller, policy)
        order.discount_status = "approved"
        order.discount_decided_by = caller.user_id
        order.discount_decided_at = utcnow()
        order.discount_declined_reason = None

        apply_order_effects(order, caller, assignments_by_item_id=item_assignments or {})
        _close_notifications(order)

        db.session.flush()
        current_app.logger.info(
            "Discount approved for %s by user %s (discount %s)",
            order.invoice_number, caller.user_id, order.total_discount,
        )
        return order

    return run_in_transaction(_op)


def decline_discount(order_id: int, caller: CallerContext, *, reason: str | None = None, policy=None) -> SalesOrder:
    """pending -> declined. The order stays inert."""
    policy = get_policy(policy)
    require_permission(policy, caller, Permission.SALE_DISCOUNT_APPROVE)

    def _op():
        order = _lock_pending(order_id, caller, policy)
        order.discount_status = "declined"
        order.discount_decided_by = caller.user_id
        order.discount_decided_at = utcnow()
        order.discount_declined_reason = (reason or "").strip() or None
        _close_notifications(order)

        db.session.flush()
        current_app.logger.info("Discount declined for %s by user %s", order.invoice_number, caller.user_id)
        return order

    return run_in_transaction(_op)


def restore_declined_sale(order_id: int, caller: CallerContext, *, items, policy=None, sink=None) -> SalesOrder:
    """
    Replace a declined sale's items and send it through the gate again.

    Still below list -> pending (approvers notified again); at list price
    -> approved and effects applied now.
    """
    policy = get_policy(policy)
    lines = parse_items(items)
    require_permission(policy, caller, Permission.SALE_DISCOUNT_APPROVE)

    def _op():
        order = lock_order(order_id)
        require_branch_access(policy, caller, order.branch_id)
        if order.discount_status != "declined":
            raise SaleError("Can only restore declined sales", {"discount_status": order.discount_status})

        catalog = load_catalog(line.product_id for line in lines)
        check_branch_availability(catalog.products, order.branch_id)
        check_price_overrides(caller, policy, lines, catalog.products)

        assignments_by_item_id = replace_items(order, lines, catalog.products)
        order.total_amount = total(multiply(line.quantity, line.unit_price) for line in lines)
        order.discount_decided_by = None
        order.discount_decided_at = None
        order.discount_declined_reason = None
        finish_invoice(order, caller, catalog, assignments_by_item_id, sink)

        db.session.flush()
        current_app.logger.info(
            "Restored declined sale %s: discount_status=%s", order.invoice_number, order.discount_status
        )
        return order

    return run_in_transaction(_op)


def list_discount_sales(caller: CallerContext, *, status: str = "pending", policy=None) -> list[SalesOrder]:
    """Invoices by discount status, branch-scoped, newest first."""
    policy = get_policy(policy)
    require_permission(policy, caller, Permission.SALE_DISCOUNT_APPROVE)
    if status not in DISCOUNT_STATUS_FILTERS:
        raise ValidationError(f"status must be one of: {', '.join(DISCOUNT_STATUS_FILTERS)}")

    q = db.session.query(SalesOrder).filter(
        SalesOrder.order_type == "invoice",
        SalesOrder.discount_status == status,
        SalesOrder.total_discount > 0,
    )
    if not policy.has_unrestricted_branch_access(caller):
        require_branch_access(policy, caller, caller.branch_id)
        q = q.filter(SalesOrder.branch_id == caller.branch_id)
    return q.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc()).all()
