# Overview: Production status state machine for invoices with manufactured items.

"""
Production state machine.

STATES:
- na: nothing to manufacture (or not yet submitted)
- pending_approval: awaiting a manufacturing go-ahead
- rejected: manufacturing refused; can be resubmitted
- queue -> processing -> produced -> delivered (terminal)

TRANSITIONS:
na -> queue | pending_approval
pending_approval -> queue | rejected
rejected -> pending_approval
queue -> processing
processing -> produced
produced -> delivered

Setting the current status again is an accepted no-op. Leaving
pending_approval/na for the floor (queue onwards) also requires the order's
discount to be approved: a gated sale cannot be manufactured.

Every transition locks the order row first.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import BusinessRuleError, ValidationError
from ..models import SalesOrder
from ..permissions import Permission
from lotpos.time_utils import utcnow
from .authorization import CallerContext, get_policy, require_branch_access, require_permission
from .concurrency import run_in_transaction
from .sales_service import SaleError, lock_order


PRODUCTION_STATUSES = (
    "na",
    "pending_approval",
    "rejected",
    "queue",
    "processing",
    "produced",
    "delivered",
)

ALLOWED_TRANSITIONS = {
    "na": ("queue", "pending_approval"),
    "pending_approval": ("queue", "rejected"),
    "rejected": ("pending_approval",),
    "queue": ("processing",),
    "processing": ("produced",),
    "produced": ("delivered",),
    "delivered": (),
}

# Statuses that put the order on the production floor
FLOOR_STATUSES = ("queue", "processing", "produced", "delivered")


class ProductionStatusError(BusinessRuleError):
    """Disallowed production transition; lists where the order may go."""

    def __init__(self, message: str, current: str, requested: str):
        self.allowed_transitions = list(ALLOWED_TRANSITIONS.get(current, ()))
        super().__init__(message, {
            "current_status": current,
            "requested_status": requested,
            "allowed_transitions": self.allowed_transitions,
        })


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, ())


def validate_status(status: str) -> str:
    if not status:
        raise ValidationError("production_status is required")
    if status not in PRODUCTION_STATUSES:
        raise ValidationError(
            f"Invalid production_status '{status}'. Must be one of: {', '.join(PRODUCTION_STATUSES)}"
        )
    return status


def validate_transition(current: str, target: str) -> None:
    validate_status(target)
    if not can_transition(current, target):
        allowed = ALLOWED_TRANSITIONS.get(current, ())
        if allowed:
            hint = f"Allowed transitions: {', '.join(allowed)}"
        else:
            hint = f"'{current}' is a final state"
        raise ProductionStatusError(
            f"Invalid production status transition from '{current}' to '{target}'. {hint}",
            current,
            target,
        )


def _clean(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _apply_transition(
    order: SalesOrder,
    target: str,
    *,
    worker_name=None,
    dispatcher_name=None,
    vehicle_plate=None,
    delivery_signature=None,
    reason=None,
) -> bool:
    """Mutate a locked order; returns False for a same-status no-op."""
    current = order.production_status
    if target == current:
        return False
    if order.order_type != "invoice":
        raise SaleError("Production status applies to invoices only")

    validate_transition(current, target)

    if target in FLOOR_STATUSES and order.discount_status != "approved":
        raise SaleError(
            "Discount approval is required before production",
            {"discount_status": order.discount_status},
        )

    if target == "produced":
        worker = _clean(worker_name)
        if not worker:
            raise ValidationError('worker_name is required when setting status to "produced"')
        order.worker_name = worker
        order.produced_at = utcnow()
    elif target == "delivered":
        dispatcher = _clean(dispatcher_name)
        if not dispatcher:
            raise ValidationError("dispatcher_name is required")
        order.dispatcher_name = dispatcher
        order.vehicle_plate = _clean(vehicle_plate)
        order.delivery_signature = delivery_signature or None
        order.delivered_at = utcnow()
    elif target == "rejected":
        order.manufacturing_rejection_reason = _clean(reason)
    elif target == "pending_approval":
        order.manufacturing_rejection_reason = None

    order.production_status = target
    return True


def _transition(order_id: int, caller: CallerContext, target: str, policy=None, expected_from: str | None = None, **fields) -> SalesOrder:
    policy = get_policy(policy)
    require_permission(policy, caller, Permission.PRODUCTION_UPDATE_STATUS)
    validate_status(target)

    def _op():
        order = lock_order(order_id)
        require_branch_access(policy, caller, order.branch_id)
        if expected_from is not None and order.production_status not in (expected_from, target):
            raise ProductionStatusError(
                f"Order must be in '{expected_from}' status (currently '{order.production_status}')",
                order.production_status,
                target,
            )
        previous = order.production_status
        if _apply_transition(order, target, **fields):
            db.session.flush()
            current_app.logger.info(
                "Production status of %s changed %s -> %s by user %s",
                order.invoice_number, previous, target, caller.user_id,
            )
        return order

    return run_in_transaction(_op)


def update_production_status(
    order_id: int,
    caller: CallerContext,
    production_status: str,
    *,
    worker_name=None,
    dispatcher_name=None,
    vehicle_plate=None,
    delivery_signature=None,
    reason=None,
    policy=None,
) -> SalesOrder:
    """Generic transition along the documented graph."""
    return _transition(
        order_id,
        caller,
        production_status,
        policy=policy,
        worker_name=worker_name,
        dispatcher_name=dispatcher_name,
        vehicle_plate=vehicle_plate,
        delivery_signature=delivery_signature,
        reason=reason,
    )


def mark_delivered(
    order_id: int,
    caller: CallerContext,
    *,
    dispatcher_name,
    vehicle_plate=None,
    delivery_signature=None,
    policy=None,
) -> SalesOrder:
    """produced -> delivered with dispatcher details."""
    if not _clean(dispatcher_name):
        raise ValidationError("dispatcher_name is required")
    return _transition(
        order_id,
        caller,
        "delivered",
        policy=policy,
        expected_from="produced",
        dispatcher_name=dispatcher_name,
        vehicle_plate=vehicle_plate,
        delivery_signature=delivery_signature,
    )


def approve_manufacturing(order_id: int, caller: CallerContext, *, policy=None) -> SalesOrder:
    """pending_approval -> queue."""
    return _transition(order_id, caller, "queue", policy=policy, expected_from="pending_approval")


def reject_manufacturing(order_id: int, caller: CallerContext, *, reason=None, policy=None) -> SalesOrder:
    """pending_approval -> rejected; the reason is kept until resubmission."""
    return _transition(order_id, caller, "rejected", policy=policy, expected_from="pending_approval", reason=reason)


# =============================================================================
# Read models
# =============================================================================

def _orders_in_status(caller: CallerContext, status: str, policy=None) -> list[SalesOrder]:
    policy = get_policy(policy)
    require_permission(policy, caller, Permission.PRODUCTION_VIEW_QUEUE)
    q = db.session.query(SalesOrder).filter(
        SalesOrder.order_type == "invoice",
        SalesOrder.production_status == status,
    )
    if not policy.has_unrestricted_branch_access(caller):
        require_branch_access(policy, caller, caller.branch_id)
        q = q.filter(SalesOrder.branch_id == caller.branch_id)
    return q.order_by(SalesOrder.created_at.asc(), SalesOrder.id.asc()).all()


def production_queue(caller: CallerContext, *, policy=None) -> list[SalesOrder]:
    """Orders waiting on the floor, oldest first."""
    return _orders_in_status(caller, "queue", policy)


def shipments(caller: CallerContext, *, policy=None) -> list[SalesOrder]:
    """Produced orders awaiting delivery."""
    return _orders_in_status(caller, "produced", policy)


def manufacturing_approvals(caller: CallerContext, *, policy=None) -> list[SalesOrder]:
    return _orders_in_status(caller, "pending_approval", policy)
