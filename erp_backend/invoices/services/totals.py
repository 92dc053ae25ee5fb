# invoices/services/totals.py

"""
INVOICE TOTALS CALCULATOR

Pure function: no database access, no side effects other than annotating
the given line mappings with taxable_amount / tax_amount / line_total.

Per line:
    subtotal = quantity * unit_price
    discount = discount_amount (if non-zero) else subtotal * discount_percentage / 100
    taxable  = subtotal - discount
    tax      = tax_amount (if non-zero) else taxable * tax_percentage / 100
    total    = taxable + tax

Document:
    subtotal = sum(line taxable)
    discount = discount_amount (if non-zero) else subtotal * discount_percentage / 100
    taxable  = max(0, subtotal - discount)
    tax      = sum(taxes[].tax_amount)       <- the tax schedule, not line taxes
    total    = taxable + tax
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal

from accounting.services.money import ZERO, money, to_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def _given(value) -> bool:
    return bool(value) and to_decimal(value) != 0


def calculate_line(line: dict) -> dict:
    quantity = to_decimal(line.get("quantity"))
    unit_price = to_decimal(line.get("unit_price"))

    line_subtotal = quantity * unit_price

    if _given(line.get("discount_amount")):
        line_discount = to_decimal(line["discount_amount"])
    else:
        line_discount = line_subtotal * to_decimal(line.get("discount_percentage")) / HUNDRED

    taxable = money(line_subtotal - line_discount)

    if _given(line.get("tax_amount")):
        tax = money(line["tax_amount"])
    else:
        tax = money(taxable * to_decimal(line.get("tax_percentage")) / HUNDRED)

    line["taxable_amount"] = taxable
    line["tax_amount"] = tax
    line["line_total"] = money(taxable + tax)
    return line


def calculate_totals(lines, taxes=None, discount_amount=None, discount_percentage=None) -> Totals:
    subtotal = ZERO
    for line in lines:
        calculate_line(line)
        subtotal += line["taxable_amount"]
    subtotal = money(subtotal)

    if _given(discount_amount):
        discount = money(discount_amount)
    else:
        discount = money(subtotal * to_decimal(discount_percentage) / HUNDRED)

    taxable_amount = max(ZERO, money(subtotal - discount))
    tax_amount = money(sum((to_decimal(t.get("tax_amount")) for t in (taxes or [])), Decimal("0")))
    total_amount = money(taxable_amount + tax_amount)

    return Totals(
        subtotal=subtotal,
        discount_amount=discount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
        paid_amount=ZERO,
        balance_amount=total_amount,
    )
