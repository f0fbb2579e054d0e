# ledger/money.py
"""
Money is kept as integer minor units (cents) everywhere inside the ledger.
Decimal only appears at the boundaries: request parsing and response models.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ledger.errors import ValidationError

CENT = Decimal("0.01")

# 0.01 currency units
TOLERANCE_CENTS = 1

Amount = Union[Decimal, int, float, str]


def to_cents(value: Amount) -> int:
    if value is None:
        return 0
    try:
        # str() first so floats like 0.1 don't drag in binary noise
        dec = Decimal(str(value).strip() or "0")
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if not dec.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return int((dec / CENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents or 0) * CENT).quantize(CENT)


def line_amount_cents(quantity: Decimal, unit_price_cents: int) -> int:
    """quantity x unit price, rounded half-up to the cent."""
    raw = Decimal(str(quantity)) * Decimal(unit_price_cents)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
