# Overview: Sale orchestration; creates, converts, edits and cancels sales orders.

"""
Sales service.

WHY: A sale is one transaction. Pricing, discount gating, stock allocation,
commission, customer ledger posting and invoice numbering either all
commit or all roll back (run_in_transaction).

EFFECT GATING:
Stock, commission and ledger effects fire only for invoices whose
discount_status is "approved". Drafts, quotations and invoices with a
pending discount are stored inert; apply_order_effects() runs the
deferred effects later (conversion or discount approval).

LOCK ORDER (inside one transaction):
invoice day lock -> sales order -> customer -> batches (id order)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import AuthorizationError, BusinessRuleError, NotFoundError, ValidationError
from ..models import (
    Agent,
    AgentCommission,
    Branch,
    ItemAssignment,
    Product,
    ProductBranch,
    Recipe,
    SalesItem,
    SalesOrder,
)
from ..models.sales import ORDER_TYPES, PAYMENT_STATUSES, DISCOUNT_STATUSES
from ..permissions import Permission
from lotpos.money import (
    ZERO,
    is_positive,
    less_than,
    money,
    multiply,
    percentage,
    quantity,
    total,
)
from lotpos.time_utils import parse_iso_date, parse_iso_datetime, parse_iso_end, today
from . import allocation_service, batch_ledger, ledger_service, notification_service, recipe_service
from .authorization import CallerContext, get_policy, require_branch_access, require_permission, resolve_branch
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_invoice_number


class SaleError(BusinessRuleError):
    """Raised for sale rule violations (400)."""
    pass


@dataclass
class LineRequest:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    item_assignments: list | None = None


@dataclass
class Catalog:
    """Products, recipes and recipe raw products for one order, fetched once."""
    products: dict[int, Product]
    recipes: dict[int, Recipe] = field(default_factory=dict)
    raw_products: dict[int, Product] = field(default_factory=dict)


_UNSET = object()


# =============================================================================
# Input parsing
# =============================================================================

def parse_items(raw_items) -> list[LineRequest]:
    """Validate the request's items before any side effect."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Items array is required and cannot be empty")

    lines = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index} must be an object")
        if raw.get("product_id") is None or raw.get("quantity") is None or raw.get("unit_price") is None:
            raise ValidationError("Each item must have product_id, quantity, and unit_price")
        try:
            product_id = int(raw["product_id"])
            qty = quantity(raw["quantity"])
            unit_price = money(raw["unit_price"])
        except (TypeError, ValueError):
            raise ValidationError(f"Item {index} has a non-numeric product_id, quantity or unit_price")
        if qty <= ZERO:
            raise ValidationError(f"Item {index}: quantity must be positive")
        if unit_price < ZERO:
            raise ValidationError(f"Item {index}: unit_price cannot be negative")

        assignments = raw.get("item_assignments")
        if assignments is not None and not isinstance(assignments, list):
            raise ValidationError(f"Item {index}: item_assignments must be a list")

        lines.append(LineRequest(product_id, qty, unit_price, assignments or None))
    return lines


def _parse_valid_until(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError("valid_until must be an ISO date (YYYY-MM-DD)")


def _optional_id(value, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


# =============================================================================
# Lookups
# =============================================================================

def _load_products(product_ids) -> dict[int, Product]:
    ids = set(product_ids)
    rows = db.session.query(Product).filter(Product.id.in_(ids)).all() if ids else []
    found = {p.id: p for p in rows}
    for product_id in sorted(ids):
        if product_id not in found:
            raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
    return found


def load_catalog(product_ids) -> Catalog:
    """
    Products plus recipes for the manufactured ones, in three queries.

    A manufactured product without a recipe fails the whole sale.
    """
    products = _load_products(product_ids)
    virtual_ids = [p.id for p in products.values() if p.is_manufactured]
    recipes = recipe_service.load_recipes(virtual_ids)
    for product_id in virtual_ids:
        if product_id not in recipes:
            raise recipe_service.RecipeNotFoundError(
                f"No recipe found for manufactured product '{products[product_id].name}'",
                {"product_id": product_id},
            )
    raw_ids = {r.raw_product_id for r in recipes.values()}
    raw_products = _load_products(raw_ids) if raw_ids else {}
    return Catalog(products=products, recipes=recipes, raw_products=raw_products)


def check_branch_availability(products: dict[int, Product], branch_id: int) -> None:
    """A product with ProductBranch rows is sold only at those branches."""
    rows = (
        db.session.query(ProductBranch.product_id, ProductBranch.branch_id)
        .filter(ProductBranch.product_id.in_(list(products)))
        .all()
    )
    allowed: dict[int, set] = {}
    for product_id, allowed_branch in rows:
        allowed.setdefault(product_id, set()).add(allowed_branch)
    for product_id, branches in allowed.items():
        if branch_id not in branches:
            raise SaleError(
                f"Product '{products[product_id].name}' is not available at this branch",
                {"product_id": product_id, "branch_id": branch_id},
            )


def check_price_overrides(caller: CallerContext, policy, lines, products: dict[int, Product]) -> None:
    """Any price other than the list price needs SALE_EDIT_PRICE."""
    if policy.has_permission(caller, Permission.SALE_EDIT_PRICE):
        return
    for line in lines:
        product = products[line.product_id]
        if money(line.unit_price) != money(product.sale_price):
            raise AuthorizationError(
                f"Permission denied: cannot change the price of '{product.name}'",
                {"product_id": product.id, "required_permission": Permission.SALE_EDIT_PRICE.value},
            )


def line_discount(product: Product, line_quantity, unit_price) -> Decimal:
    """(list - unit) * qty when sold below list price, else 0."""
    list_price = money(product.sale_price)
    if less_than(unit_price, list_price):
        return multiply(list_price - money(unit_price), line_quantity)
    return ZERO


def _validate_agent(agent_id: int, branch_id: int, caller: CallerContext, policy) -> Agent:
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found", {"agent_id": agent_id})
    if not agent.is_active:
        raise ValidationError("Agent is not active", {"agent_id": agent_id})
    if not policy.has_unrestricted_branch_access(caller) and agent.branch_id != branch_id:
        raise AuthorizationError("Agent does not belong to this branch", {"agent_id": agent_id})
    return agent


def lock_order(order_id: int) -> SalesOrder:
    order = lock_for_update(db.session.query(SalesOrder).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError("Sales order not found", {"order_id": order_id})
    return order


def _has_manufactured(order: SalesOrder) -> bool:
    return any(item.product is not None and item.product.is_manufactured for item in order.items)


# =============================================================================
# Effects (stock, commission, ledger)
# =============================================================================

def apply_order_effects(
    order: SalesOrder,
    caller: CallerContext,
    *,
    catalog: Catalog | None = None,
    assignments_by_item_id: dict | None = None,
) -> None:
    """
    Run the stock, commission and ledger effects of an approved invoice.

    Called exactly once per order, inside the transaction that makes the
    order effective (creation, conversion or discount approval), with the
    order row locked or newly created.

    1. customer credit check (customer locked first)
    2. allocation per stock-managed item: manual if assignments were given
       for the item id, else FIFO; manufactured items draw the recipe's
       raw product
    3. commission when the agent's rate is positive
    4. one INVOICE debit when a customer is attached and the total is positive
    """
    assignments_by_item_id = assignments_by_item_id or {}
    items = list(order.items)
    if catalog is None:
        catalog = load_catalog(item.product_id for item in items)

    customer = None
    if order.customer_id:
        customer = ledger_service.lock_party("customer", order.customer_id)
        # Credit already held covers the whole order; the debit below
        # consumes it, so no separate payment is recorded.
        if is_positive(order.total_amount) and -money(customer.ledger_balance) >= money(order.total_amount):
            order.payment_status = "paid"

    for item in items:
        product = catalog.products[item.product_id]
        if not product.manage_stock:
            continue
        raw_assignments = assignments_by_item_id.get(item.id) or assignments_by_item_id.get(str(item.id))
        if product.is_manufactured:
            requirement = recipe_service.resolve(product, item.quantity, catalog.recipes)
            stock_product = catalog.raw_products[requirement.raw_product_id]
            required = requirement.raw_quantity
        else:
            stock_product = product
            required = item.quantity
        allocation_service.allocate(
            sales_item=item,
            stock_product=stock_product,
            branch_id=order.branch_id,
            required_quantity=required,
            raw_assignments=raw_assignments,
        )

    if order.agent_id:
        agent = db.session.get(Agent, order.agent_id)
        if agent and is_positive(agent.commission_rate):
            existing = db.session.query(AgentCommission).filter_by(sales_order_id=order.id).first()
            if existing is None:
                db.session.add(AgentCommission(
                    agent_id=agent.id,
                    sales_order_id=order.id,
                    commission_rate=agent.commission_rate,
                    commission_amount=percentage(order.total_amount, agent.commission_rate),
                    status="pending",
                ))

    if customer is not None and is_positive(order.total_amount):
        ledger_service.post_entry(
            party_type="customer",
            party_id=customer.id,
            party=customer,
            transaction_type="INVOICE",
            transaction_id=order.id,
            debit=order.total_amount,
            description=f"Invoice {order.invoice_number}",
            branch_id=order.branch_id,
            created_by=caller.user_id,
        )

    db.session.flush()


def _gate_discount(order: SalesOrder, products: dict[int, Product], sink=None) -> None:
    """
    Recompute total_discount from list prices.

    An invoice with any below-list line waits for approval (pending) and
    every approver is notified. Everything else is "approved".
    """
    order.total_discount = total(
        line_discount(products[item.product_id], item.quantity, item.unit_price)
        for item in order.items
    )
    if order.order_type == "invoice" and order.total_discount > ZERO:
        order.discount_status = "pending"
        db.session.flush()
        notification_service.notify_discount_approvers(order, sink=sink)
    else:
        order.discount_status = "approved"


def finish_invoice(order: SalesOrder, caller: CallerContext, catalog: Catalog, assignments_by_item_id, sink) -> None:
    """Discount gate, effects and production intake for a new or converted invoice."""
    _gate_discount(order, catalog.products, sink)
    if order.effects_applied:
        apply_order_effects(order, caller, catalog=catalog, assignments_by_item_id=assignments_by_item_id)
    if order.order_type == "invoice" and _has_manufactured(order):
        order.production_status = "pending_approval"
        order.manufacturing_rejection_reason = None


def _add_items(order: SalesOrder, lines: list[LineRequest], products: dict[int, Product]) -> dict:
    """Persist SalesItems; returns {item_id: item_assignments} for lines that carried them."""
    assignments_by_item_id = {}
    for line in lines:
        item = SalesItem(
            order=order,
            product=products[line.product_id],
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=multiply(line.quantity, line.unit_price),
        )
        db.session.add(item)
        db.session.flush()
        if line.item_assignments:
            assignments_by_item_id[item.id] = line.item_assignments
    return assignments_by_item_id


def replace_items(order: SalesOrder, lines: list[LineRequest], products: dict[int, Product]) -> dict:
    """Swap an inert order's items for new ones. Only for orders without assignments."""
    old_items = list(order.items)
    if old_items:
        db.session.query(SalesItem).filter(
            SalesItem.id.in_([item.id for item in old_items])
        ).delete(synchronize_session=False)
        for item in old_items:
            db.session.expunge(item)
    db.session.expire(order, ["items"])
    return _add_items(order, lines, products)


# =============================================================================
# Create
# =============================================================================

def create_sale(
    caller: CallerContext,
    *,
    items,
    order_type: str = "invoice",
    branch_id=None,
    customer_id=None,
    agent_id=None,
    valid_until=None,
    quotation_notes: str | None = None,
    policy=None,
    sink=None,
) -> SalesOrder:
    """
    Create an invoice, draft or quotation.

    Steps (one transaction):
    1. validate items; resolve and authorize the branch
    2. allocate today's next invoice number
    3. fetch products and recipes once; check branch availability
    4. a price different from list needs SALE_EDIT_PRICE; a below-list
       invoice is stored with discount_status "pending" and no effects
    5. persist order and items
    6. effective invoices: credit check, allocation, commission, debit
    7. invoices with manufactured items enter production as pending_approval

    Returns the committed SalesOrder.
    """
    policy = get_policy(policy)
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")
    lines = parse_items(items)
    require_permission(policy, caller, Permission.POS_ACCESS)
    branch_id = resolve_branch(policy, caller, _optional_id(branch_id, "branch_id"))
    customer_id = _optional_id(customer_id, "customer_id")
    agent_id = _optional_id(agent_id, "agent_id")
    valid_until = _parse_valid_until(valid_until) if order_type == "quotation" else None

    def _op():
        if not db.session.get(Branch, branch_id):
            raise NotFoundError(f"Branch {branch_id} not found", {"branch_id": branch_id})

        invoice_number = next_invoice_number()

        catalog = load_catalog(line.product_id for line in lines)
        check_branch_availability(catalog.products, branch_id)
        check_price_overrides(caller, policy, lines, catalog.products)

        if agent_id is not None:
            _validate_agent(agent_id, branch_id, caller, policy)
        if customer_id is not None:
            ledger_service.lock_party("customer", customer_id)

        order = SalesOrder(
            invoice_number=invoice_number,
            order_type=order_type,
            payment_status="unpaid",
            production_status="na",
            discount_status="approved",
            total_amount=total(multiply(line.quantity, line.unit_price) for line in lines),
            total_discount=ZERO,
            branch_id=branch_id,
            customer_id=customer_id,
            agent_id=agent_id,
            user_id=caller.user_id,
            valid_until=valid_until,
            quotation_notes=quotation_notes if order_type == "quotation" else None,
        )
        db.session.add(order)

        assignments_by_item_id = _add_items(order, lines, catalog.products)
        if order_type == "invoice":
            finish_invoice(order, caller, catalog, assignments_by_item_id, sink)

        db.session.flush()
        current_app.logger.info(
            "Created %s %s: branch=%s total=%s discount_status=%s payment_status=%s",
            order.order_type, order.invoice_number, order.branch_id,
            order.total_amount, order.discount_status, order.payment_status,
        )
        return order

    return run_in_transaction(_op)


# =============================================================================
# Drafts and quotations
# =============================================================================

def _manage_permission(order_type: str) -> Permission:
    return Permission.DRAFT_MANAGE if order_type == "draft" else Permission.QUOTE_MANAGE


def convert_to_invoice(
    order_id: int,
    caller: CallerContext,
    *,
    item_assignments: dict | None = None,
    policy=None,
    sink=None,
) -> SalesOrder:
    """
    Promote a draft or quotation to an invoice, keeping its number.

    item_assignments maps sales item id -> [{inventory_batch_id,
    quantity_deducted}] for items the operator allocates by hand; other
    items use FIFO. Discount gating is re-evaluated against current list
    prices. Expired quotations are rejected.
    """
    policy = get_policy(policy)
    if item_assignments is not None and not isinstance(item_assignments, dict):
        raise ValidationError("item_assignments must map sales item ids to assignment lists")

    def _op():
        order = lock_order(order_id)
        if order.order_type not in ("draft", "quotation"):
            raise SaleError("Only drafts and quotations can be converted to invoices")
        require_branch_access(policy, caller, order.branch_id)
        require_permission(policy, caller, _manage_permission(order.order_type))
        if order.order_type == "quotation" and order.valid_until and order.valid_until < today():
            raise SaleError("This quotation has expired", {"valid_until": order.valid_until.isoformat()})
        if not order.items:
            raise SaleError("Cannot convert an order without items")

        catalog = load_catalog(item.product_id for item in order.items)
        check_branch_availability(catalog.products, order.branch_id)

        source_type = order.order_type
        order.order_type = "invoice"
        finish_invoice(order, caller, catalog, item_assignments or {}, sink)

        db.session.flush()
        current_app.logger.info(
            "Converted %s %s to invoice: discount_status=%s", source_type, order.invoice_number, order.discount_status
        )
        return order

    return run_in_transaction(_op)


def update_draft(
    order_id: int,
    caller: CallerContext,
    *,
    items,
    customer_id=_UNSET,
    policy=None,
) -> SalesOrder:
    """Replace a draft's items (and optionally its customer); recomputes the total."""
    policy = get_policy(policy)
    lines = parse_items(items)
    if customer_id is not _UNSET:
        customer_id = _optional_id(customer_id, "customer_id")

    def _op():
        order = lock_order(order_id)
        if order.order_type != "draft":
            raise SaleError("Only drafts can be updated")
        require_branch_access(policy, caller, order.branch_id)
        require_permission(policy, caller, Permission.DRAFT_MANAGE)

        catalog = load_catalog(line.product_id for line in lines)
        check_branch_availability(catalog.products, order.branch_id)
        check_price_overrides(caller, policy, lines, catalog.products)

        if customer_id is not _UNSET:
            if customer_id is not None:
                ledger_service.lock_party("customer", customer_id)
            order.customer_id = customer_id

        replace_items(order, lines, catalog.products)
        order.total_amount = total(multiply(line.quantity, line.unit_price) for line in lines)
        db.session.flush()
        return order

    return run_in_transaction(_op)


def delete_order(order_id: int, caller: CallerContext, *, order_type: str, policy=None) -> dict:
    """Hard-delete a draft or quotation and its items. Invoices are cancelled instead."""
    policy = get_policy(policy)
    if order_type not in ("draft", "quotation"):
        raise ValidationError("Only drafts and quotations can be deleted")

    def _op():
        order = lock_order(order_id)
        if order.order_type != order_type:
            raise SaleError(f"Only {order_type}s can be deleted here")
        require_branch_access(policy, caller, order.branch_id)
        require_permission(policy, caller, _manage_permission(order_type))

        invoice_number = order.invoice_number
        items = list(order.items)
        item_ids = [item.id for item in items]
        if item_ids:
            db.session.query(SalesItem).filter(SalesItem.id.in_(item_ids)).delete(synchronize_session=False)
        db.session.query(SalesOrder).filter_by(id=order.id).delete(synchronize_session=False)
        for obj in items + [order]:
            db.session.expunge(obj)

        current_app.logger.info("Deleted %s %s", order_type, invoice_number)
        return {"id": order_id, "invoice_number": invoice_number, "order_type": order_type}

    return run_in_transaction(_op)


# =============================================================================
# Cancellation
# =============================================================================

def cancel_sale(order_id: int, caller: CallerContext, *, policy=None) -> dict:
    """
    Cancel an unpaid order, undoing every effect it had.

    1. order locked; paid orders are refused
    2. an effective invoice with a customer gets an ADJUSTMENT credit for
       the original total
    3. every assignment's batch is locked and refilled, then the
       assignment is deleted
    4. commission, items and the order are deleted, in that order

    Explicit deletes in dependency order, never storage-level cascades.
    A second cancel finds no order (404), so nothing is credited twice.
    """
    policy = get_policy(policy)

    def _op():
        order = lock_order(order_id)
        require_branch_access(policy, caller, order.branch_id)
        require_permission(policy, caller, Permission.SALE_CANCEL)
        if order.payment_status == "paid":
            raise SaleError("Cannot cancel a paid order", {"order_id": order.id})

        ledger_credit = ZERO
        if order.effects_applied and order.customer_id and is_positive(order.total_amount):
            ledger_credit = money(order.total_amount)
            ledger_service.post_entry(
                party_type="customer",
                party_id=order.customer_id,
                transaction_type="ADJUSTMENT",
                transaction_id=order.id,
                credit=ledger_credit,
                description=f"Cancelled Invoice {order.invoice_number}",
                branch_id=order.branch_id,
                created_by=caller.user_id,
            )

        items = list(order.items)
        assignments = [a for item in items for a in item.assignments]
        batches = batch_ledger.lock_batches(a.inventory_batch_id for a in assignments)
        restored = []
        for assignment in assignments:
            batch = batches[assignment.inventory_batch_id]
            batch_ledger.restore(batch, assignment.quantity_deducted)
            restored.append({
                "inventory_batch_id": batch.id,
                "quantity_restored": str(quantity(assignment.quantity_deducted)),
                "remaining_quantity": str(quantity(batch.remaining_quantity)),
            })
        db.session.flush()

        if assignments:
            db.session.query(ItemAssignment).filter(
                ItemAssignment.id.in_([a.id for a in assignments])
            ).delete(synchronize_session=False)
        db.session.query(AgentCommission).filter_by(sales_order_id=order.id).delete(synchronize_session=False)
        if items:
            db.session.query(SalesItem).filter(
                SalesItem.id.in_([item.id for item in items])
            ).delete(synchronize_session=False)
        notification_service.mark_reference_read(notification_service.SALES_ORDER_REFERENCE, order.id)
        db.session.query(SalesOrder).filter_by(id=order.id).delete(synchronize_session=False)
        for obj in assignments + items + [order]:
            db.session.expunge(obj)

        current_app.logger.info(
            "Cancelled order %s: %s batch restorations, ledger credit %s",
            order.invoice_number, len(restored), ledger_credit,
        )
        return {
            "id": order_id,
            "invoice_number": order.invoice_number,
            "ledger_credit": str(ledger_credit),
            "restored_batches": restored,
        }

    return run_in_transaction(_op)


# =============================================================================
# Reads
# =============================================================================

def sales_order_to_dict(order: SalesOrder) -> dict:
    """Order with customer, agent, items, each item's product and assignments with batch."""
    data = order.to_dict()
    data["branch"] = order.branch.to_dict() if order.branch else None
    data["customer"] = order.customer.to_dict() if order.customer else None
    data["agent"] = order.agent.to_dict() if order.agent else None
    data["items"] = [item.to_dict() for item in order.items]
    return data


def get_order(order_id: int, caller: CallerContext, *, policy=None) -> SalesOrder:
    policy = get_policy(policy)
    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found", {"order_id": order_id})
    require_branch_access(policy, caller, order.branch_id)
    return order


def list_orders(caller: CallerContext, filters: dict | None = None, *, policy=None) -> dict:
    """
    Branch-scoped order listing, newest first.

    Without SALE_VIEW_ALL a caller sees only orders they created.
    Filters: branch_id, customer_id, order_type, payment_status,
    production_status, discount_status, start_date, end_date, limit, offset.
    A bare YYYY-MM-DD end_date includes that whole day.
    """
    policy = get_policy(policy)
    filters = filters or {}
    q = db.session.query(SalesOrder)

    branch_id = _optional_id(filters.get("branch_id"), "branch_id")
    if branch_id is not None:
        require_branch_access(policy, caller, branch_id)
        q = q.filter(SalesOrder.branch_id == branch_id)
    elif not policy.has_unrestricted_branch_access(caller):
        require_branch_access(policy, caller, caller.branch_id)
        q = q.filter(SalesOrder.branch_id == caller.branch_id)

    if not policy.has_permission(caller, Permission.SALE_VIEW_ALL):
        q = q.filter(SalesOrder.user_id == caller.user_id)

    customer_id = _optional_id(filters.get("customer_id"), "customer_id")
    if customer_id is not None:
        q = q.filter(SalesOrder.customer_id == customer_id)

    for key, allowed in (
        ("order_type", ORDER_TYPES),
        ("payment_status", PAYMENT_STATUSES),
        ("discount_status", DISCOUNT_STATUSES),
    ):
        value = filters.get(key)
        if value:
            if value not in allowed:
                raise ValidationError(f"{key} must be one of: {', '.join(allowed)}")
            q = q.filter(getattr(SalesOrder, key) == value)
    if filters.get("production_status"):
        q = q.filter(SalesOrder.production_status == filters["production_status"])

    try:
        start = parse_iso_datetime(filters.get("start_date"))
        end = parse_iso_end(filters.get("end_date"))
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO dates")
    if start is not None:
        q = q.filter(SalesOrder.created_at >= start)
    if end is not None:
        q = q.filter(SalesOrder.created_at <= end)

    try:
        limit = min(int(filters.get("limit") or 50), 200)
        offset = max(int(filters.get("offset") or 0), 0)
    except (TypeError, ValueError):
        raise ValidationError("limit and offset must be integers")

    count = q.count()
    orders = q.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc()).offset(offset).limit(limit).all()
    return {"orders": orders, "total": count, "limit": limit, "offset": offset}
