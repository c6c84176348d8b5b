from __future__ import annotations

from ..extensions import db
from lotpos.money import format_amount
from lotpos.time_utils import to_iso_date, to_utc_z


ORDER_TYPES = ("invoice", "draft", "quotation")
PAYMENT_STATUSES = ("unpaid", "paid")
DISCOUNT_STATUSES = ("approved", "pending", "declined")


class SalesOrder(db.Model):
    """
    Sales document: invoice, draft or quotation.

    WHY: The order is the durable cause of every stock deduction and ledger
    debit it triggers. Effects fire only for invoices whose discount is not
    pending; drafts, quotations and gated invoices are stored inert.

    STATUS FIELDS:
    - payment_status: unpaid, paid
    - production_status: na, pending_approval, rejected, queue, processing,
      produced, delivered (see production_service)
    - discount_status: approved, pending, declined
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.Index("ix_sales_orders_branch_type_created", "branch_id", "order_type", "created_at"),
        db.Index("ix_sales_orders_production", "production_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # INV-YYYYMMDD-NNNN, unique across all branches
    invoice_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    order_type = db.Column(db.String(16), nullable=False, default="invoice", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)
    production_status = db.Column(db.String(32), nullable=False, default="na")
    discount_status = db.Column(db.String(16), nullable=False, default="approved", index=True)

    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_discount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Quotation fields
    valid_until = db.Column(db.Date, nullable=True)
    quotation_notes = db.Column(db.Text, nullable=True)

    # Production / delivery tracking
    worker_name = db.Column(db.String(128), nullable=True)
    produced_at = db.Column(db.DateTime(timezone=True), nullable=True)
    dispatcher_name = db.Column(db.String(128), nullable=True)
    vehicle_plate = db.Column(db.String(32), nullable=True)
    delivery_signature = db.Column(db.Text, nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manufacturing_rejection_reason = db.Column(db.Text, nullable=True)

    # Discount decision audit
    discount_decided_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    discount_decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    discount_declined_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch")
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    agent = db.relationship("Agent")
    user = db.relationship("User", foreign_keys=[user_id])

    @property
    def effects_applied(self) -> bool:
        """True when stock/ledger/commission effects have fired for this order."""
        return self.order_type == "invoice" and self.discount_status == "approved"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "order_type": self.order_type,
            "payment_status": self.payment_status,
            "production_status": self.production_status,
            "discount_status": self.discount_status,
            "total_amount": format_amount(self.total_amount),
            "total_discount": format_amount(self.total_discount),
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "agent_id": self.agent_id,
            "user_id": self.user_id,
            "valid_until": to_iso_date(self.valid_until),
            "quotation_notes": self.quotation_notes,
            "worker_name": self.worker_name,
            "produced_at": to_utc_z(self.produced_at),
            "dispatcher_name": self.dispatcher_name,
            "vehicle_plate": self.vehicle_plate,
            "delivery_signature": self.delivery_signature,
            "delivered_at": to_utc_z(self.delivered_at),
            "manufacturing_rejection_reason": self.manufacturing_rejection_reason,
            "discount_decided_by": self.discount_decided_by,
            "discount_decided_at": to_utc_z(self.discount_decided_at),
            "discount_declined_reason": self.discount_declined_reason,
            "created_at": to_utc_z(self.created_at),
        }


class SalesItem(db.Model):
    """Line item on a sales order; subtotal = quantity * unit_price."""
    __tablename__ = "sales_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(15, 3), nullable=False)
    unit_price = db.Column(db.Numeric(15, 2), nullable=False)
    subtotal = db.Column(db.Numeric(15, 2), nullable=False)

    order = db.relationship("SalesOrder", backref=db.backref("items", lazy=True, order_by="SalesItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "quantity": format_amount(self.quantity),
            "unit_price": format_amount(self.unit_price),
            "subtotal": format_amount(self.subtotal),
            "item_assignments": [a.to_dict() for a in self.assignments],
        }


class Agent(db.Model):
    """Sales agent earning a percentage commission on attached invoices."""
    __tablename__ = "agents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)  # percent
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "branch_id": self.branch_id,
            "commission_rate": format_amount(self.commission_rate),
            "is_active": self.is_active,
        }


class AgentCommission(db.Model):
    """One commission record per order, created when stock effects fire."""
    __tablename__ = "agent_commissions"
    __table_args__ = (
        db.UniqueConstraint("sales_order_id", name="uq_agent_commissions_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(15, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending, paid

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    agent = db.relationship("Agent", backref=db.backref("commissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "sales_order_id": self.sales_order_id,
            "commission_rate": format_amount(self.commission_rate),
            "commission_amount": format_amount(self.commission_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
