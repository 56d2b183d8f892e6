from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

CENT = Decimal("0.01")

# NUMERIC(12, 2) upper bound
MAX_AMOUNT = Decimal("9999999999.99")


def to_money(value) -> Decimal:
    """
    Normalize a number to a 2-decimal Decimal (half-up).

    Floats go through str() so 19.99 stays 19.99 instead of its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError):
        raise ValueError("amount must be a number")


def money_json(value: Optional[Decimal]) -> Optional[float]:
    """Wire representation: JSON number with two decimals."""
    if value is None:
        return None
    return float(to_money(value))
