# Overview: Invoice number allocation.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import SalesOrder
from lotpos.time_utils import today
from .concurrency import acquire_advisory_lock, lock_for_update


SEQUENCE_PAD = 4


def invoice_stem(day: date, prefix: str | None = None) -> str:
    prefix = prefix or current_app.config.get("INVOICE_PREFIX", "INV")
    return f"{prefix}-{day:%Y%m%d}-"


def next_invoice_number(*, day: date | None = None, prefix: str | None = None) -> str:
    """
    Allocate the next INV-YYYYMMDD-NNNN number for a calendar day.

    Must run inside the caller's write transaction:
    1. a named lock keyed by the day serializes concurrent allocators
    2. the last number for the day is read under a row lock

    The sequence resets daily. Ordering by length first keeps it correct
    past 9999.
    """
    day = day or today()
    stem = invoice_stem(day, prefix)

    acquire_advisory_lock(f"invoice_{day:%Y%m%d}")

    last = lock_for_update(
        db.session.query(SalesOrder)
        .filter(SalesOrder.invoice_number.like(f"{stem}%"))
        .order_by(
            func.length(SalesOrder.invoice_number).desc(),
            SalesOrder.invoice_number.desc(),
        )
    ).first()

    sequence = 1
    if last is not None:
        suffix = last.invoice_number[len(stem):]
        if suffix.isdigit():
            sequence = int(suffix) + 1

    return f"{stem}{sequence:0{SEQUENCE_PAD}d}"
