# accounting/services/numbering.py

"""
Sequential document numbers: <PREFIX><zero-padded counter>, per tenant.

The counter is the highest existing counter for (tenant, prefix) + 1.
Uniqueness is still enforced by the (tenant_id, number) constraint, so a
concurrent duplicate surfaces as an IntegrityError at insert time.
"""

from __future__ import annotations

import re

JOURNAL_PREFIXES = {
    "general": "GN",
    "sales": "SL",
    "purchase": "PU",
    "receipt": "RC",
    "payment": "PM",
    "expense": "EX",
    "depreciation": "DP",
    "adjustment": "AD",
    "opening": "OP",
    "closing": "CL",
}
DEFAULT_JOURNAL_PREFIX = "JR"

INVOICE_PREFIXES = {
    "sales": "INV",
    "purchase": "PINV",
    "sales_return": "SR",
    "purchase_return": "PR",
}

PAYMENT_PREFIXES = {
    "receipt": "RV",
    "payment": "PV",
}

NUMBER_WIDTH = 6


def journal_prefix(journal_type: str) -> str:
    return JOURNAL_PREFIXES.get(journal_type, DEFAULT_JOURNAL_PREFIX)


def next_number(queryset, *, tenant_id, field: str, prefix: str, width: int = NUMBER_WIDTH) -> str:
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")

    existing = queryset.filter(tenant_id=tenant_id, **{f"{field}__startswith": prefix}).values_list(
        field, flat=True
    )

    highest = 0
    for value in existing:
        match = pattern.match(value or "")
        if match:
            highest = max(highest, int(match.group(1)))

    return f"{prefix}{highest + 1:0{width}d}"
