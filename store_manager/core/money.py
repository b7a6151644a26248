"""Currency helpers shared by the report builders."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

TWOPLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of a stored amount to ``Decimal``."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def money(value: Any) -> float:
    """Round to cents (half up) and return a JSON-friendly float."""

    return float(to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP))
