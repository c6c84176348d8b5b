# Overview: Service-layer operations for inventory batches (lots); the only code that mutates batch quantities.

"""
Batch ledger.

Every InventoryBatch mutation goes through deduct() or restore(), always on
a row fetched with lock_batch() / lock_batches() inside the caller's
transaction.

INVARIANTS (checked on every mutation):
- 0 <= remaining_quantity <= initial_quantity
- status == "depleted" iff remaining_quantity == 0
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import BusinessRuleError, NotFoundError, ValidationError
from ..models import Branch, InventoryBatch, Product
from lotpos.money import ZERO, is_positive, quantity, total_quantity
from .concurrency import lock_for_update, run_in_transaction


IN_STOCK = "in_stock"
DEPLETED = "depleted"


class BatchError(BusinessRuleError):
    """Raised when a batch mutation would break its quantity invariants."""
    pass


def _sync_status(batch: InventoryBatch) -> None:
    batch.status = IN_STOCK if quantity(batch.remaining_quantity) > ZERO else DEPLETED


def lock_batch(batch_id: int) -> InventoryBatch:
    batch = lock_for_update(db.session.query(InventoryBatch).filter_by(id=batch_id)).first()
    if not batch:
        raise NotFoundError(f"Inventory batch {batch_id} not found", {"inventory_batch_id": batch_id})
    return batch


def lock_batches(batch_ids) -> dict[int, InventoryBatch]:
    """Lock several batches in id order (consistent order avoids deadlocks)."""
    ids = sorted(set(batch_ids))
    if not ids:
        return {}
    rows = lock_for_update(
        db.session.query(InventoryBatch)
        .filter(InventoryBatch.id.in_(ids))
        .order_by(InventoryBatch.id)
    ).all()
    found = {b.id: b for b in rows}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError(
            f"Inventory batch {missing[0]} not found",
            {"missing_batch_ids": missing},
        )
    return found


def lock_fifo_candidates(product_id: int, branch_id: int) -> list[InventoryBatch]:
    """In-stock batches with stock left, oldest first, locked."""
    return lock_for_update(
        db.session.query(InventoryBatch)
        .filter(
            InventoryBatch.product_id == product_id,
            InventoryBatch.branch_id == branch_id,
            InventoryBatch.status == IN_STOCK,
            InventoryBatch.remaining_quantity > 0,
        )
        .order_by(InventoryBatch.created_at.asc(), InventoryBatch.id.asc())
    ).all()


def deduct(batch: InventoryBatch, amount) -> Decimal:
    """Take amount out of a locked batch; flips to depleted at zero."""
    amount = quantity(amount)
    if amount <= ZERO:
        raise ValidationError("Deduction quantity must be positive")
    remaining = quantity(batch.remaining_quantity)
    if batch.status != IN_STOCK or amount > remaining:
        raise BatchError(
            f"Batch {batch.id} has {remaining} remaining, cannot deduct {amount}",
            {"inventory_batch_id": batch.id, "remaining": str(remaining), "requested": str(amount)},
        )
    batch.remaining_quantity = remaining - amount
    _sync_status(batch)
    return batch.remaining_quantity


def restore(batch: InventoryBatch, amount) -> Decimal:
    """Put amount back into a locked batch; flips depleted back to in_stock."""
    amount = quantity(amount)
    if amount <= ZERO:
        raise ValidationError("Restore quantity must be positive")
    restored = quantity(batch.remaining_quantity) + amount
    if restored > quantity(batch.initial_quantity):
        raise BatchError(
            f"Restoring {amount} to batch {batch.id} would exceed its initial quantity",
            {"inventory_batch_id": batch.id, "initial": str(batch.initial_quantity), "restored": str(restored)},
        )
    batch.remaining_quantity = restored
    _sync_status(batch)
    return batch.remaining_quantity


def available_quantity(product_id: int, branch_id: int) -> Decimal:
    rows = (
        db.session.query(InventoryBatch.remaining_quantity)
        .filter_by(product_id=product_id, branch_id=branch_id, status=IN_STOCK)
        .all()
    )
    return total_quantity(r[0] for r in rows)


def list_batches(product_id: int, branch_id: int | None = None, include_depleted: bool = False) -> list[InventoryBatch]:
    q = db.session.query(InventoryBatch).filter_by(product_id=product_id)
    if branch_id is not None:
        q = q.filter_by(branch_id=branch_id)
    if not include_depleted:
        q = q.filter_by(status=IN_STOCK)
    return q.order_by(InventoryBatch.created_at.asc(), InventoryBatch.id.asc()).all()


def receive_batch(
    *,
    product_id: int,
    branch_id: int,
    quantity_received,
    batch_identifier: str | None = None,
    unit_cost=None,
    created_at=None,
) -> InventoryBatch:
    """
    Record a new in-stock lot.

    Manufactured virtual products are rejected: they never hold stock.
    created_at may be given to backdate a lot (it is the FIFO key).
    """
    qty = quantity(quantity_received)
    if not is_positive(qty):
        raise ValidationError("quantity must be positive")

    def _op():
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if product.is_manufactured:
            raise ValidationError(
                f"Cannot receive stock for manufactured product '{product.name}'; stock its raw material instead"
            )
        if not db.session.get(Branch, branch_id):
            raise NotFoundError(f"Branch {branch_id} not found")

        batch = InventoryBatch(
            product_id=product_id,
            branch_id=branch_id,
            batch_identifier=batch_identifier,
            initial_quantity=qty,
            remaining_quantity=qty,
            unit_cost=unit_cost,
            status=IN_STOCK,
        )
        if created_at is not None:
            batch.created_at = created_at
        db.session.add(batch)
        db.session.flush()
        current_app.logger.info(
            "Received batch %s: product=%s branch=%s qty=%s", batch.id, product_id, branch_id, qty
        )
        return batch

    return run_in_transaction(_op)
