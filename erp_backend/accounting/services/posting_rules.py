# accounting/services/posting_rules.py

"""
POSTING RULES: INVOICES & PAYMENTS (AUTHORITATIVE)

Defines HOW a business document maps to accounting intent.

RESPONSIBILITIES:
- Group invoice lines by revenue / expense account
- Construct ordered debit / credit journal lines
- Describe the journal header for the document

THIS MODULE DOES NOT:
- Write to the database
- Create JournalEntry directly
- Enforce debit == credit math (journal_entry_service does)

Accounting effect per document type:

    sales            Dr AR              / Cr revenue groups, Cr tax payable
    purchase         Dr expense groups, Dr tax recoverable / Cr AP
    sales_return     Dr sales returns, Dr tax payable      / Cr AR
    purchase_return  Dr AP              / Cr purchase returns, Cr tax recoverable
    receipt          Dr bank / Cr AR
    payment          Dr AP   / Cr bank
"""

from __future__ import annotations

from decimal import Decimal

from accounting.services.account_resolver import AccountSet
from accounting.services.exceptions import AccountResolutionError, PostingRuleError
from accounting.services.money import ZERO, money, to_decimal

INVOICE_TYPES = ("sales", "purchase", "sales_return", "purchase_return")
PAYMENT_TYPES = ("receipt", "payment")

INVOICE_JOURNAL_TYPES = {
    "sales": "sales",
    "sales_return": "sales",
    "purchase": "purchase",
    "purchase_return": "purchase",
}

INVOICE_DESCRIPTIONS = {
    "sales": ("فاتورة مبيعات رقم {number}", "Sales Invoice {number}"),
    "purchase": ("فاتورة مشتريات رقم {number}", "Purchase Invoice {number}"),
    "sales_return": ("مرتجع مبيعات رقم {number}", "Sales Return {number}"),
    "purchase_return": ("مرتجع مشتريات رقم {number}", "Purchase Return {number}"),
}

PAYMENT_DESCRIPTIONS = {
    "receipt": ("سند قبض رقم {number}", "Receipt {number}"),
    "payment": ("سند صرف رقم {number}", "Payment {number}"),
}


# ============================================================
# INVOICE HELPERS
# ============================================================


def _ordered_lines(invoice):
    lines = invoice.lines
    if hasattr(lines, "order_by"):
        return list(lines.order_by("line_number"))
    return sorted(lines, key=lambda line: line.line_number)


def _line_amount(line) -> Decimal:
    taxable = getattr(line, "taxable_amount", None)
    if taxable is not None:
        # zero is a real amount (fully discounted line)
        return money(to_decimal(taxable))
    return money(to_decimal(line.quantity) * to_decimal(line.unit_price))


def _group_invoice_lines(invoice, default_account) -> list[dict]:
    """
    Group lines by account (line override, else the default account).
    Insertion order follows line_number.
    """
    groups: dict = {}

    for line in _ordered_lines(invoice):
        account_id = getattr(line, "account_id", None) or default_account
        if not account_id:
            side = "expense" if invoice.invoice_type.startswith("purchase") else "revenue"
            raise AccountResolutionError(
                f"No {side} account for invoice line {line.line_number}. "
                f"Set an account on the line or create a default {side} account."
            )

        group = groups.setdefault(account_id, {"account_id": account_id, "amount": ZERO, "descriptions": []})
        group["amount"] += _line_amount(line)
        if line.description_ar:
            group["descriptions"].append(line.description_ar)

    return list(groups.values())


def _spread_to_target(groups: list[dict], target: Decimal) -> None:
    """
    Scale group amounts so they sum to `target` (document discount).
    Rounding remainder lands on the last group.
    """
    current = sum((g["amount"] for g in groups), ZERO)
    if not groups or current == target or current <= ZERO:
        return

    allocated = ZERO
    for group in groups[:-1]:
        share = money(group["amount"] * target / current)
        group["amount"] = share
        allocated += share
    groups[-1]["amount"] = money(target - allocated)


def _merge_by_account(groups: list[dict]) -> list[dict]:
    merged: dict = {}
    for group in groups:
        slot = merged.setdefault(
            group["account_id"], {"account_id": group["account_id"], "amount": ZERO, "descriptions": []}
        )
        slot["amount"] += group["amount"]
        slot["descriptions"].extend(group["descriptions"])
    return list(merged.values())


class _LineWriter:
    def __init__(self):
        self.lines: list[dict] = []

    def add(self, account_id, *, debit=ZERO, credit=ZERO, description_ar="", description_en=""):
        debit = money(debit)
        credit = money(credit)
        if debit == ZERO and credit == ZERO:
            return
        self.lines.append(
            {
                "line_number": len(self.lines) + 1,
                "account_id": account_id,
                "debit": debit,
                "credit": credit,
                "description_ar": description_ar,
                "description_en": description_en,
            }
        )


# ============================================================
# INVOICE RULES
# ============================================================


def build_invoice_journal_lines(invoice, accounts: AccountSet) -> list[dict]:
    """
    BUILD INVOICE JOURNAL LINES

    Totals come from the stored invoice header (total_amount, tax_amount,
    taxable_amount); revenue / expense is taken from the lines and spread
    over any document-level discount.
    """
    invoice_type = invoice.invoice_type
    if invoice_type not in INVOICE_TYPES:
        raise PostingRuleError(f"Unsupported invoice type: {invoice_type}")

    default_account = {
        "sales": accounts.revenue,
        "purchase": accounts.expense,
        "sales_return": accounts.sales_returns or accounts.revenue,
        "purchase_return": accounts.purchase_returns or accounts.expense,
    }[invoice_type]

    groups = _group_invoice_lines(invoice, default_account)
    _spread_to_target(groups, money(invoice.taxable_amount))

    total = money(invoice.total_amount)
    tax = money(invoice.tax_amount)
    party = invoice.party_id
    out = _LineWriter()

    if invoice_type == "sales":
        # --------------------------------------------------
        # DEBIT: AR  /  CREDIT: REVENUE GROUPS, TAX PAYABLE
        # --------------------------------------------------
        out.add(
            accounts.receivable,
            debit=total,
            description_ar=f"العميل: {party}",
            description_en=f"Customer: {party}",
        )
        for group in groups:
            out.add(group["account_id"], credit=group["amount"], description_ar="; ".join(group["descriptions"]))
        if tax > ZERO:
            out.add(
                accounts.tax_payable,
                credit=tax,
                description_ar="ضريبة المبيعات",
                description_en="Sales Tax",
            )

    elif invoice_type == "purchase":
        # --------------------------------------------------
        # DEBIT: EXPENSE GROUPS, TAX RECOVERABLE  /  CREDIT: AP
        # --------------------------------------------------
        for group in groups:
            out.add(group["account_id"], debit=group["amount"], description_ar="; ".join(group["descriptions"]))
        if tax > ZERO:
            out.add(
                accounts.tax_recoverable,
                debit=tax,
                description_ar="ضريبة قابلة للاسترداد",
                description_en="Recoverable Tax",
            )
        out.add(
            accounts.payable,
            credit=total,
            description_ar=f"المورد: {party}",
            description_en=f"Vendor: {party}",
        )

    elif invoice_type == "sales_return":
        # --------------------------------------------------
        # DEBIT: SALES RETURNS, TAX PAYABLE  /  CREDIT: AR
        # --------------------------------------------------
        if accounts.sales_returns:
            for group in groups:
                group["account_id"] = accounts.sales_returns
        for group in _merge_by_account(groups):
            out.add(
                group["account_id"],
                debit=group["amount"],
                description_ar="مرتجعات مبيعات",
                description_en="Sales Returns",
            )
        if tax > ZERO:
            out.add(
                accounts.tax_payable,
                debit=tax,
                description_ar="ضريبة المبيعات (مرتجع)",
                description_en="Sales Tax (Return)",
            )
        out.add(
            accounts.receivable,
            credit=total,
            description_ar=f"مرتجع عميل: {party}",
            description_en=f"Customer Return: {party}",
        )

    else:
        # --------------------------------------------------
        # DEBIT: AP  /  CREDIT: PURCHASE RETURNS, TAX RECOVERABLE
        # --------------------------------------------------
        out.add(
            accounts.payable,
            debit=total,
            description_ar=f"مرتجع مورد: {party}",
            description_en=f"Vendor Return: {party}",
        )
        if accounts.purchase_returns:
            for group in groups:
                group["account_id"] = accounts.purchase_returns
        for group in _merge_by_account(groups):
            out.add(
                group["account_id"],
                credit=group["amount"],
                description_ar="مرتجعات مشتريات",
                description_en="Purchase Returns",
            )
        if tax > ZERO:
            out.add(
                accounts.tax_recoverable,
                credit=tax,
                description_ar="ضريبة قابلة للاسترداد (مرتجع)",
                description_en="Recoverable Tax (Return)",
            )

    return out.lines


# ============================================================
# PAYMENT RULES
# ============================================================


def build_payment_journal_lines(payment, accounts: AccountSet) -> list[dict]:
    payment_type = payment.payment_type
    if payment_type not in PAYMENT_TYPES:
        raise PostingRuleError(f"Unsupported payment type: {payment_type}")

    amount = money(payment.amount)
    party = payment.party_id
    out = _LineWriter()

    if payment_type == "receipt":
        # DEBIT: BANK / CASH  /  CREDIT: AR
        out.add(
            accounts.bank,
            debit=amount,
            description_ar=f"استلام من عميل: {party}",
            description_en=f"Receipt from customer: {party}",
        )
        out.add(
            accounts.receivable,
            credit=amount,
            description_ar="تحصيل حسابات مدينة",
            description_en="Accounts Receivable Collection",
        )
    else:
        # DEBIT: AP  /  CREDIT: BANK / CASH
        out.add(
            accounts.payable,
            debit=amount,
            description_ar=f"دفع لمورد: {party}",
            description_en=f"Payment to vendor: {party}",
        )
        out.add(
            accounts.bank,
            credit=amount,
            description_ar="دفع نقداً/بنك",
            description_en="Cash/Bank Payment",
        )

    return out.lines


# ============================================================
# DISPATCH
# ============================================================


def build_journal_lines(document, accounts: AccountSet) -> list[dict]:
    """
    Dispatch on document kind. Unsupported types raise PostingRuleError
    before any line is produced.
    """
    if hasattr(document, "invoice_type"):
        return build_invoice_journal_lines(document, accounts)
    if hasattr(document, "payment_type"):
        return build_payment_journal_lines(document, accounts)
    raise PostingRuleError(f"Unsupported document: {type(document).__name__}")


def build_journal_header(document) -> dict:
    """Header fields for the journal generated from an invoice or payment."""
    if hasattr(document, "invoice_type"):
        doc_type = document.invoice_type
        journal_type = INVOICE_JOURNAL_TYPES.get(doc_type)
        number = document.invoice_number
        date = document.invoice_date
        descriptions = INVOICE_DESCRIPTIONS.get(doc_type)
        source_module = "invoices"
    elif hasattr(document, "payment_type"):
        doc_type = document.payment_type
        journal_type = doc_type if doc_type in PAYMENT_TYPES else None
        number = document.payment_number
        date = document.payment_date
        descriptions = PAYMENT_DESCRIPTIONS.get(doc_type)
        source_module = "payments"
    else:
        raise PostingRuleError(f"Unsupported document: {type(document).__name__}")

    if journal_type is None:
        raise PostingRuleError(f"Unsupported document type: {doc_type}")

    description_ar, description_en = descriptions
    return {
        "journal_type": journal_type,
        "reference_number": number,
        "description_ar": description_ar.format(number=number),
        "description_en": description_en.format(number=number),
        "transaction_date": date,
        "currency": document.currency,
        "exchange_rate": document.exchange_rate,
        "source_module": source_module,
        "source_id": document.id,
    }
