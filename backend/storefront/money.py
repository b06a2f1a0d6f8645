# Overview: Fixed-point money helpers shared by cart, order and catalog code.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce to a Decimal rounded half-up to cents. Floats go through str()."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid money amount: {value!r}")


def format_money(value) -> str | None:
    if value is None:
        return None
    return f"{to_money(value):.2f}"
