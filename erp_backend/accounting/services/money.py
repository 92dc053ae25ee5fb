# accounting/services/money.py

"""
Money helpers shared by the engine and the document services.

All amounts are Decimal; values are quantized to 2 places (ROUND_HALF_UP)
at the point they are stored or compared.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def money_sum(values) -> Decimal:
    return money(sum((to_decimal(v) for v in values), Decimal("0")))
