from __future__ import annotations

from ..extensions import db
from lotpos.money import format_amount
from lotpos.time_utils import to_utc_z, utcnow


class InventoryBatch(db.Model):
    """
    A dated lot of one product at one branch.

    WHY: Stock is tracked per lot so that sales can be traced to the lot
    they consumed and reversed exactly.

    INVARIANTS:
    - 0 <= remaining_quantity <= initial_quantity
    - status == "depleted" iff remaining_quantity == 0

    created_at is the FIFO ordering key (ties broken by id). It is set on
    the Python side so sub-second ordering survives on every backend.
    No version column: concurrent writers serialize on SELECT ... FOR UPDATE.
    """
    __tablename__ = "inventory_batches"
    __table_args__ = (
        db.CheckConstraint("remaining_quantity >= 0", name="ck_batches_remaining_nonneg"),
        db.CheckConstraint("remaining_quantity <= initial_quantity", name="ck_batches_remaining_le_initial"),
        # FIFO scan: product + branch + status ordered by age
        db.Index("ix_batches_fifo", "product_id", "branch_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    batch_identifier = db.Column(db.String(64), nullable=True)
    initial_quantity = db.Column(db.Numeric(15, 3), nullable=False)
    remaining_quantity = db.Column(db.Numeric(15, 3), nullable=False)
    unit_cost = db.Column(db.Numeric(15, 2), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="in_stock", index=True)  # in_stock, depleted

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))
    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "branch_id": self.branch_id,
            "batch_identifier": self.batch_identifier,
            "initial_quantity": format_amount(self.initial_quantity),
            "remaining_quantity": format_amount(self.remaining_quantity),
            "unit_cost": format_amount(self.unit_cost) if self.unit_cost is not None else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class ItemAssignment(db.Model):
    """
    Links a sales item to a batch it drew from.

    Deleting an assignment without restoring its batch breaks stock
    integrity; only the reversal flow removes these rows.
    """
    __tablename__ = "item_assignments"
    __table_args__ = (
        db.CheckConstraint("quantity_deducted > 0", name="ck_assignments_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_item_id = db.Column(db.Integer, db.ForeignKey("sales_items.id"), nullable=False, index=True)
    inventory_batch_id = db.Column(db.Integer, db.ForeignKey("inventory_batches.id"), nullable=False, index=True)
    quantity_deducted = db.Column(db.Numeric(15, 3), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sales_item = db.relationship("SalesItem", backref=db.backref("assignments", lazy=True, order_by="ItemAssignment.id"))
    batch = db.relationship("InventoryBatch")

    def to_dict(self, include_batch: bool = True) -> dict:
        data = {
            "id": self.id,
            "sales_item_id": self.sales_item_id,
            "inventory_batch_id": self.inventory_batch_id,
            "quantity_deducted": format_amount(self.quantity_deducted),
        }
        if include_batch and self.batch is not None:
            data["batch"] = self.batch.to_dict()
        return data
