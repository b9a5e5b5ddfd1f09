from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENTS = Decimal("0.01")
QUANTITY_STEP = Decimal("0.0001")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a DB or JSON value to Decimal without passing through binary floats.

    - None -> Decimal("0")
    - float -> Decimal(str(value)) so 0.15 stays 0.15
    - bool is rejected (it is an int subclass, never a quantity)
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"invalid number: {value!r}")
    return result


def quantize_money(value: Any) -> Decimal:
    """Nearest-cent rounding (half-up)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Any) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def money_str(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    return str(quantize_money(value))


def quantity_str(value: Optional[Any]) -> Optional[str]:
    """Quantities keep their scale (e.g. '0.1500') so kg/litre values are unambiguous."""
    if value is None:
        return None
    return str(quantize_quantity(value))
