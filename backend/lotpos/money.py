"""
Fixed-precision arithmetic for money and stock quantities.

Every monetary or stock value that is combined anywhere in the engine goes
through these helpers so that no float ever participates in a sum.

- Money is carried with 2 decimal places, quantities with 3 (matching the
  Numeric(15, 2) / Numeric(15, 3) columns).
- Inputs may be Decimal, int, str or float; floats are converted through
  their repr so 0.1 stays 0.1.
- Rounding is half-up at the column scale, applied once per operation.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Union

Number = Union[Decimal, int, str, float]

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
ZERO = Decimal("0")


def to_decimal(value: Number | None) -> Decimal:
    """Coerce a loose numeric input to Decimal. None counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def money(value: Number | None) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantity(value: Number | None) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def multiply(a: Number, b: Number) -> Decimal:
    """Line subtotal: exact product, rounded once to money scale."""
    return money(to_decimal(a) * to_decimal(b))


def multiply_quantity(a: Number, b: Number) -> Decimal:
    """Quantity conversion (e.g. recipe factor), rounded to quantity scale."""
    return quantity(to_decimal(a) * to_decimal(b))


def add(a: Number, b: Number) -> Decimal:
    return to_decimal(a) + to_decimal(b)


def subtract(a: Number, b: Number) -> Decimal:
    return to_decimal(a) - to_decimal(b)


def total(values: Iterable[Number]) -> Decimal:
    """Exact sum, rounded to money scale."""
    acc = ZERO
    for v in values:
        acc += to_decimal(v)
    return money(acc)


def total_quantity(values: Iterable[Number]) -> Decimal:
    acc = ZERO
    for v in values:
        acc += to_decimal(v)
    return quantity(acc)


def percentage(amount: Number, rate: Number) -> Decimal:
    """amount * rate / 100 at money scale (rate 5 means 5%)."""
    return money(to_decimal(amount) * to_decimal(rate) / Decimal(100))


def quantities_equal(a: Number, b: Number) -> bool:
    """
    Exact equality at quantity scale.

    Both sides are quantized to 3 places first, so 6 == 6.000 but
    5.999 != 6.
    """
    return quantity(a) == quantity(b)


def is_positive(value: Number | None) -> bool:
    return to_decimal(value) > ZERO


def less_than(a: Number, b: Number) -> bool:
    return to_decimal(a) < to_decimal(b)


def format_amount(value: Number | None) -> str:
    """JSON-safe rendering that keeps trailing zeros ("12.50")."""
    return str(to_decimal(value))
