# Overview: Customer/supplier accounting ledger; append-only entries with running balances.

"""
Accounting ledger.

Balance convention: balance = sum(debits) - sum(credits). An INVOICE debit
increases what the party owes; ADJUSTMENT/PAYMENT credits decrease it.

post_entry() must be called inside the transaction of the order mutation
that caused it, with the party row locked, so the entry and its cause
commit or roll back together.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import BusinessRuleError, NotFoundError, ValidationError
from ..models import Customer, LedgerEntry, Supplier
from lotpos.money import ZERO, money
from .concurrency import lock_for_update, run_in_transaction


PARTY_MODELS = {
    "customer": Customer,
    "supplier": Supplier,
}

TRANSACTION_TYPES = ("INVOICE", "ADJUSTMENT", "PAYMENT", "OPENING_BALANCE")


class LedgerError(BusinessRuleError):
    """Raised for malformed ledger postings."""
    pass


def _party_model(party_type: str):
    model = PARTY_MODELS.get(party_type)
    if model is None:
        raise ValidationError(f"Unknown party type '{party_type}'")
    return model


def lock_party(party_type: str, party_id: int):
    """Fetch a customer/supplier under a row lock."""
    model = _party_model(party_type)
    party = lock_for_update(db.session.query(model).filter_by(id=party_id)).first()
    if not party:
        raise NotFoundError(f"{party_type.capitalize()} {party_id} not found", {"party_id": party_id})
    return party


def post_entry(
    *,
    party_type: str,
    party_id: int,
    transaction_type: str,
    debit=0,
    credit=0,
    description: str | None = None,
    branch_id: int | None = None,
    created_by: int | None = None,
    transaction_id: int | None = None,
    transaction_date: datetime | None = None,
    party=None,
) -> LedgerEntry:
    """
    Append one entry and move the party's cached balance.

    Exactly one of debit/credit must be positive. Pass party when the
    caller already holds it locked; otherwise it is locked here.
    """
    debit = money(debit)
    credit = money(credit)
    if debit < ZERO or credit < ZERO:
        raise LedgerError("Ledger amounts cannot be negative")
    if (debit > ZERO) == (credit > ZERO):
        raise LedgerError(
            "A ledger entry needs exactly one of debit or credit",
            {"debit": str(debit), "credit": str(credit)},
        )
    if transaction_type not in TRANSACTION_TYPES:
        raise LedgerError(f"Unknown ledger transaction type '{transaction_type}'")

    if party is None:
        party = lock_party(party_type, party_id)

    balance = money(party.ledger_balance) + debit - credit
    party.ledger_balance = balance

    entry = LedgerEntry(
        party_type=party_type,
        party_id=party_id,
        transaction_type=transaction_type,
        transaction_id=transaction_id,
        debit_amount=debit,
        credit_amount=credit,
        running_balance=balance,
        description=description,
        branch_id=branch_id,
        created_by=created_by,
    )
    if transaction_date is not None:
        entry.transaction_date = transaction_date
    db.session.add(entry)
    db.session.flush()
    return entry


def get_ledger(
    party_type: str,
    party_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    branch_id: int | None = None,
) -> dict:
    """
    Entries for a party in posting order, with opening and closing balance.

    opening_balance is the running balance just before the first listed
    entry (0 without a start filter).

    With branch_id only that branch's entries are listed, and both balances
    are sums over that branch's entries: the stored running_balance is
    party-wide and would disagree with the listed rows.
    """
    model = _party_model(party_type)
    party = db.session.get(model, party_id)
    if not party:
        raise NotFoundError(f"{party_type.capitalize()} {party_id} not found")

    q = db.session.query(LedgerEntry).filter_by(party_type=party_type, party_id=party_id)
    if branch_id is not None:
        q = q.filter(LedgerEntry.branch_id == branch_id)
    opening = ZERO
    if start is not None:
        earlier = q.filter(LedgerEntry.transaction_date < start)
        if branch_id is not None:
            debits, credits = earlier.with_entities(
                func.coalesce(func.sum(LedgerEntry.debit_amount), 0),
                func.coalesce(func.sum(LedgerEntry.credit_amount), 0),
            ).one()
            opening = money(money(debits) - money(credits))
        else:
            before = earlier.order_by(LedgerEntry.transaction_date.desc(), LedgerEntry.id.desc()).first()
            if before is not None:
                opening = money(before.running_balance)
        q = q.filter(LedgerEntry.transaction_date >= start)
    if end is not None:
        q = q.filter(LedgerEntry.transaction_date <= end)

    entries = q.order_by(LedgerEntry.transaction_date.asc(), LedgerEntry.id.asc()).all()
    if branch_id is not None:
        closing = opening
        for entry in entries:
            closing = closing + money(entry.debit_amount) - money(entry.credit_amount)
        closing = money(closing)
    else:
        closing = money(entries[-1].running_balance) if entries else opening

    return {
        "party": party.to_dict(),
        "party_type": party_type,
        "opening_balance": str(opening),
        "closing_balance": str(closing),
        "current_balance": str(money(party.ledger_balance)),
        "entries": [e.to_dict() for e in entries],
    }


def recalculate_balance(party_type: str, party_id: int) -> Decimal:
    """
    Rebuild running balances and the cached party balance from the entries.

    Used to repair drift (e.g. after a manual data fix). Entries are walked
    in (transaction_date, id) order.
    """
    def _op():
        party = lock_party(party_type, party_id)
        entries = (
            db.session.query(LedgerEntry)
            .filter_by(party_type=party_type, party_id=party_id)
            .order_by(LedgerEntry.transaction_date.asc(), LedgerEntry.id.asc())
            .all()
        )
        balance = ZERO
        for entry in entries:
            balance = balance + money(entry.debit_amount) - money(entry.credit_amount)
            entry.running_balance = balance
        previous = money(party.ledger_balance)
        party.ledger_balance = money(balance)
        if previous != money(balance):
            current_app.logger.warning(
                "Ledger balance repaired for %s %s: %s -> %s", party_type, party_id, previous, money(balance)
            )
        return money(balance)

    return run_in_transaction(_op)


def party_ids(party_type: str) -> list[int]:
    model = _party_model(party_type)
    return [row[0] for row in db.session.query(model.id).order_by(model.id).all()]
