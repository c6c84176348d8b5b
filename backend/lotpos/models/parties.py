from __future__ import annotations

from ..extensions import db
from lotpos.money import format_amount
from lotpos.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer account.

    ledger_balance = sum(debits) - sum(credits). Positive means the customer
    owes money; negative is a credit held on account. Mutated only by
    ledger_service.post_entry with the row locked.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    ledger_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "branch_id": self.branch_id,
            "ledger_balance": format_amount(self.ledger_balance),
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    """Supplier account; same balance convention as Customer."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    ledger_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "ledger_balance": format_amount(self.ledger_balance),
            "created_at": to_utc_z(self.created_at),
        }


class LedgerEntry(db.Model):
    """
    Immutable accounting record against a customer or supplier.

    WHY: Append-only. Corrections are new entries (ADJUSTMENT), never edits.
    running_balance is the party balance after this entry and can be rebuilt
    with ledger_service.recalculate_balance.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint("debit_amount >= 0 AND credit_amount >= 0", name="ck_ledger_amounts_nonneg"),
        db.Index("ix_ledger_party_date", "party_type", "party_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    party_type = db.Column(db.String(16), nullable=False)  # customer, supplier
    party_id = db.Column(db.Integer, nullable=False)

    # INVOICE, ADJUSTMENT, PAYMENT
    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, nullable=True)

    debit_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    credit_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    running_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    description = db.Column(db.Text, nullable=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "party_type": self.party_type,
            "party_id": self.party_id,
            "transaction_type": self.transaction_type,
            "transaction_id": self.transaction_id,
            "debit_amount": format_amount(self.debit_amount),
            "credit_amount": format_amount(self.credit_amount),
            "running_balance": format_amount(self.running_balance),
            "description": self.description,
            "branch_id": self.branch_id,
            "created_by": self.created_by,
            "transaction_date": to_utc_z(self.transaction_date),
        }
