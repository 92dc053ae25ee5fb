# accounting/tests/helpers.py

from __future__ import annotations

import uuid
from datetime import date

from accounting.models.account import ChartOfAccount

A = ChartOfAccount

# key -> (code, name_en, account_type)
DEFAULT_TEST_CHART = {
    "cash": ("1100", "Cash on Hand", A.ASSET),
    "bank": ("1110", "Bank Account", A.ASSET),
    "ar": ("1200", "Accounts Receivable", A.ASSET),
    "vat_in": ("1300", "Input Tax Recoverable", A.ASSET),
    "ap": ("2100", "Accounts Payable", A.LIABILITY),
    "vat_out": ("2200", "Output Tax Payable", A.LIABILITY),
    "capital": ("3100", "Owner Capital", A.EQUITY),
    "sales": ("4100", "Sales Revenue", A.REVENUE),
    "sales_returns": ("4200", "Sales Returns", A.REVENUE),
    "purchases": ("5100", "Purchases", A.EXPENSE),
    "purchase_returns": ("5200", "Purchase Returns", A.EXPENSE),
    "rent": ("6100", "Rent Expense", A.EXPENSE),
}


def make_account(tenant_id, code: str, name_en: str, account_type: str, **extra) -> ChartOfAccount:
    return ChartOfAccount.objects.create(
        tenant_id=tenant_id,
        code=code,
        name_en=name_en,
        name_ar=extra.pop("name_ar", name_en),
        account_type=account_type,
        **extra,
    )


def seed_chart(tenant_id, only=None) -> dict[str, ChartOfAccount]:
    """Create the name-matched test chart (no role tags) for a tenant."""
    keys = only or DEFAULT_TEST_CHART.keys()
    return {key: make_account(tenant_id, *DEFAULT_TEST_CHART[key]) for key in keys}


def sales_invoice_data(party_id, *, quantity="2", unit_price="50.00", tax="10.00", **overrides) -> dict:
    data = {
        "invoice_type": "sales",
        "party_id": party_id,
        "party_type": "customer",
        "invoice_date": date(2024, 3, 1),
        "lines": [
            {
                "description_ar": "صنف اختبار",
                "description_en": "Test item",
                "quantity": quantity,
                "unit_price": unit_price,
                "tax_percentage": "10",
            }
        ],
        "taxes": [{"tax_type": "output", "tax_name": "VAT", "tax_amount": tax}] if tax else [],
    }
    data.update(overrides)
    return data


def purchase_invoice_data(party_id, **overrides) -> dict:
    data = sales_invoice_data(party_id, tax=None)
    data.update(
        invoice_type="purchase",
        party_type="vendor",
        taxes=[{"tax_type": "input", "tax_name": "VAT", "tax_amount": "10.00"}],
    )
    data.update(overrides)
    return data


def posted_invoice(data, *, tenant_id, user_id=None):
    """Create an invoice and drive it through submit / approve / post."""
    from invoices.services import invoice_service

    invoice = invoice_service.create_invoice(data, tenant_id=tenant_id, user_id=user_id)
    invoice_service.submit_invoice(invoice.id, tenant_id=tenant_id, user_id=user_id)
    invoice_service.approve_invoice(invoice.id, tenant_id=tenant_id, user_id=user_id)
    return invoice_service.post_invoice(invoice.id, tenant_id=tenant_id, user_id=user_id)


def new_id() -> uuid.UUID:
    return uuid.uuid4()
