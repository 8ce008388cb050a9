"""
Monetary helpers.

All amounts are Decimal with two places, rounded half-up. Values arrive as
Decimal from Numeric columns, as str from the config table and as int/float
from JSON bodies; everything passes through to_money() before arithmetic.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce to a 2-place Decimal. Raises ValueError on unparsable or non-finite input."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a monetary amount")
    if isinstance(value, float):
        # go through str so 0.1 becomes 0.10, not 0.1000000000000000055...
        value = repr(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise ValueError(f"invalid monetary amount: {value!r}")
        # quantize signals InvalidOperation once the result exceeds context precision
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"invalid monetary amount: {value!r}") from exc


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return to_money(amount * percent / Decimal(100))


def format_money(amount: Decimal) -> str:
    return f"{to_money(amount)} TK"
