# Overview: Stock allocation strategies (automatic FIFO and explicit operator assignment).

"""
Allocation strategies.

Both strategies consume the batch ledger for one sales item and record one
ItemAssignment per batch they draw from. They run inside the owning sale's
transaction and lock every batch before reading its quantity; any failure
propagates and the whole sale rolls back.

The stock product is the product whose batches are consumed: the item's
own product for regular items, the recipe's raw product for manufactured
items.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import BusinessRuleError, ValidationError
from ..models import InventoryBatch, ItemAssignment, Product, SalesItem
from lotpos.money import ZERO, quantities_equal, quantity, to_decimal, total_quantity
from . import batch_ledger


class AllocationError(BusinessRuleError):
    """Base for allocation failures (400)."""
    pass


class InsufficientStockError(AllocationError):
    """Requested more than the batches hold."""
    pass


class AssignmentMismatchError(AllocationError):
    """Explicit assignments do not match the requirement or the product."""
    pass


def _record(sales_item: SalesItem, batch: InventoryBatch, amount: Decimal) -> ItemAssignment:
    batch_ledger.deduct(batch, amount)
    assignment = ItemAssignment(
        sales_item=sales_item,
        batch=batch,
        quantity_deducted=amount,
    )
    db.session.add(assignment)
    return assignment


def allocate_fifo(
    *,
    sales_item: SalesItem,
    stock_product: Product,
    branch_id: int,
    required_quantity,
) -> list[ItemAssignment]:
    """
    Consume the oldest in-stock batches first until the requirement is met.

    Eligible batches are locked in FIFO order (created_at, then id) before
    any quantity is read. If they cannot cover the requirement nothing is
    deducted and InsufficientStockError names required vs available.
    """
    required = quantity(required_quantity)
    if required <= ZERO:
        raise ValidationError("Required quantity must be positive")

    candidates = batch_ledger.lock_fifo_candidates(stock_product.id, branch_id)
    available = total_quantity(b.remaining_quantity for b in candidates)
    if available < required:
        raise InsufficientStockError(
            f"Insufficient stock for '{stock_product.name}': required {required}, available {available}",
            {"product_id": stock_product.id, "required": str(required), "available": str(available)},
        )

    assignments = []
    outstanding = required
    for batch in candidates:
        if outstanding <= ZERO:
            break
        take = min(quantity(batch.remaining_quantity), outstanding)
        if take <= ZERO:
            continue
        assignments.append(_record(sales_item, batch, take))
        outstanding -= take

    return assignments


def _parse_assignments(raw_assignments) -> list[tuple[int, Decimal]]:
    if not isinstance(raw_assignments, list) or not raw_assignments:
        raise ValidationError("item_assignments must be a non-empty list")

    parsed = []
    for entry in raw_assignments:
        if not isinstance(entry, dict):
            raise ValidationError("Each item assignment must be an object")
        batch_id = entry.get("inventory_batch_id", entry.get("batch_id"))
        try:
            batch_id = int(batch_id)
            amount = quantity(to_decimal(entry.get("quantity_deducted")))
        except (TypeError, ValueError):
            raise ValidationError(
                "Each item assignment needs inventory_batch_id and a numeric quantity_deducted"
            )
        if amount <= ZERO:
            raise ValidationError(f"Assigned quantity for batch {batch_id} must be positive")
        parsed.append((batch_id, amount))
    return parsed


def allocate_manual(
    *,
    sales_item: SalesItem,
    stock_product: Product,
    branch_id: int,
    required_quantity,
    raw_assignments,
) -> list[ItemAssignment]:
    """
    Deduct exactly the batches and quantities the operator chose.

    Checks, in order:
    1. the assigned total equals the requirement exactly (3 decimal places)
    2. every batch exists, holds stock_product and sits at branch_id
    3. every batch has enough left (repeated batch ids are summed)
    """
    required = quantity(required_quantity)
    entries = _parse_assignments(raw_assignments)

    assigned_total = total_quantity(amount for _, amount in entries)
    if not quantities_equal(assigned_total, required):
        raise AssignmentMismatchError(
            f"Assigned quantity {assigned_total} does not match required quantity {required} for '{stock_product.name}'",
            {"product_id": stock_product.id, "required": str(required), "assigned": str(assigned_total)},
        )

    per_batch: dict[int, Decimal] = {}
    for batch_id, amount in entries:
        per_batch[batch_id] = per_batch.get(batch_id, ZERO) + amount

    batches = batch_ledger.lock_batches(per_batch.keys())

    for batch_id, amount in per_batch.items():
        batch = batches[batch_id]
        if batch.product_id != stock_product.id:
            raise AssignmentMismatchError(
                f"Batch {batch_id} does not belong to product '{stock_product.name}'",
                {"inventory_batch_id": batch_id, "expected_product_id": stock_product.id, "batch_product_id": batch.product_id},
            )
        if batch.branch_id != branch_id:
            raise AssignmentMismatchError(
                f"Batch {batch_id} is not stocked at branch {branch_id}",
                {"inventory_batch_id": batch_id, "branch_id": branch_id},
            )
        remaining = quantity(batch.remaining_quantity)
        if batch.status != batch_ledger.IN_STOCK or remaining < amount:
            raise InsufficientStockError(
                f"Insufficient stock in batch {batch.batch_identifier or batch_id}: requested {amount}, available {remaining}",
                {"inventory_batch_id": batch_id, "requested": str(amount), "available": str(remaining)},
            )

    return [_record(sales_item, batches[batch_id], amount) for batch_id, amount in per_batch.items()]


def allocate(
    *,
    sales_item: SalesItem,
    stock_product: Product,
    branch_id: int,
    required_quantity,
    raw_assignments=None,
) -> list[ItemAssignment]:
    """Manual allocation when the caller supplied assignments, else FIFO."""
    if raw_assignments:
        return allocate_manual(
            sales_item=sales_item,
            stock_product=stock_product,
            branch_id=branch_id,
            required_quantity=required_quantity,
            raw_assignments=raw_assignments,
        )
    return allocate_fifo(
        sales_item=sales_item,
        stock_product=stock_product,
        branch_id=branch_id,
        required_quantity=required_quantity,
    )
