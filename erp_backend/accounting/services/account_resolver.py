# PATH: accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Resolution order (per role):
1. Explicit `account_role` tag on an active account (first by code)
2. Name heuristic on the lower-cased English name (first by code)

Design goals:
- deterministic (candidates always sorted by code)
- tenant-safe (only the tenant's active accounts are considered)
- hard-fail on missing required setup (so we don't post to wrong accounts)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from accounting.models.account import ChartOfAccount
from accounting.services.exceptions import AccountResolutionError, PostingRuleError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# DOCUMENT TYPES -> REQUIRED ROLES
# ------------------------------------------------------------

SALES_SIDE = {"sales", "sales_return", "receipt"}
PURCHASE_SIDE = {"purchase", "purchase_return", "payment"}

SUPPORTED_DOCUMENT_TYPES = SALES_SIDE | PURCHASE_SIDE

CANDIDATE_TYPES = (
    ChartOfAccount.ASSET,
    ChartOfAccount.LIABILITY,
    ChartOfAccount.REVENUE,
    ChartOfAccount.EXPENSE,
)

MISSING_MESSAGES = {
    "receivable": (
        "Accounts Receivable account not found. "
        'Please create an asset account with "receivable" in the name.'
    ),
    "payable": (
        "Accounts Payable account not found. "
        'Please create a liability account with "payable" in the name.'
    ),
    "bank": (
        "Bank/Cash account not found. "
        'Please create an asset account with "bank" or "cash" in the name, '
        "or specify a bank account in the payment."
    ),
}

_CURRENT_ASSET = re.compile(r"current.*asset")


@dataclass(frozen=True)
class AccountSet:
    """Resolved account ids for one posting. Optional roles may be None."""

    receivable: object | None = None
    payable: object | None = None
    tax_payable: object | None = None
    tax_recoverable: object | None = None
    revenue: object | None = None
    expense: object | None = None
    sales_returns: object | None = None
    purchase_returns: object | None = None
    bank: object | None = None


# ------------------------------------------------------------
# NAME HEURISTICS
# ------------------------------------------------------------


def _is_receivable(acc, name):
    return acc.account_type == ChartOfAccount.ASSET and "receivable" in name


def _is_payable(acc, name):
    return acc.account_type == ChartOfAccount.LIABILITY and "payable" in name and "tax" not in name


def _is_tax_payable(acc, name):
    return acc.account_type == ChartOfAccount.LIABILITY and "tax" in name and "payable" in name


def _is_tax_recoverable(acc, name):
    return (
        acc.account_type == ChartOfAccount.ASSET
        and "tax" in name
        and ("recoverable" in name or "input" in name)
    )


def _is_revenue(acc, name):
    return acc.account_type == ChartOfAccount.REVENUE and "sales" in name and "return" not in name


def _is_expense(acc, name):
    return acc.account_type == ChartOfAccount.EXPENSE and "purchase" in name and "return" not in name


def _is_sales_returns(acc, name):
    return "sales" in name and "return" in name


def _is_purchase_returns(acc, name):
    return "purchase" in name and "return" in name


HEURISTICS = {
    "receivable": _is_receivable,
    "payable": _is_payable,
    "tax_payable": _is_tax_payable,
    "tax_recoverable": _is_tax_recoverable,
    "revenue": _is_revenue,
    "expense": _is_expense,
    "sales_returns": _is_sales_returns,
    "purchase_returns": _is_purchase_returns,
}

ROLE_TAGS = {
    "receivable": ChartOfAccount.ROLE_RECEIVABLE,
    "payable": ChartOfAccount.ROLE_PAYABLE,
    "tax_payable": ChartOfAccount.ROLE_TAX_PAYABLE,
    "tax_recoverable": ChartOfAccount.ROLE_TAX_RECOVERABLE,
    "revenue": ChartOfAccount.ROLE_DEFAULT_REVENUE,
    "expense": ChartOfAccount.ROLE_DEFAULT_EXPENSE,
    "sales_returns": ChartOfAccount.ROLE_SALES_RETURNS,
    "purchase_returns": ChartOfAccount.ROLE_PURCHASE_RETURNS,
}


# ------------------------------------------------------------
# INTERNALS
# ------------------------------------------------------------


def _candidates(tenant_id) -> list[ChartOfAccount]:
    return list(
        ChartOfAccount.objects.filter(
            tenant_id=tenant_id,
            is_active=True,
            account_type__in=CANDIDATE_TYPES,
        ).order_by("code")
    )


def _pick(accounts, role: str):
    tag = ROLE_TAGS[role]
    for acc in accounts:
        if acc.account_role == tag:
            return acc.id

    matches = HEURISTICS[role]
    for acc in accounts:
        if matches(acc, (acc.name_en or "").lower()):
            return acc.id

    return None


def _required_roles(document_type: str) -> tuple[str, ...]:
    if document_type in SALES_SIDE:
        return ("receivable",)
    if document_type in PURCHASE_SIDE:
        return ("payable",)
    raise PostingRuleError(f"Unsupported document type: {document_type}")


def _resolve_roles(tenant_id, document_type: str, accounts) -> dict:
    required = _required_roles(document_type)

    found = {role: _pick(accounts, role) for role in HEURISTICS}

    for role in required:
        if not found[role]:
            logger.warning(
                "Required account missing",
                extra={"tenant_id": str(tenant_id), "role": role, "document_type": document_type},
            )
            raise AccountResolutionError(MISSING_MESSAGES[role])

    # Tax accounts fall back to the control account of the same side
    if not found["tax_payable"]:
        found["tax_payable"] = found["receivable"]
    if not found["tax_recoverable"]:
        found["tax_recoverable"] = found["payable"]

    return found


# ------------------------------------------------------------
# PUBLIC API
# ------------------------------------------------------------


def resolve_default_accounts(tenant_id, document_type: str) -> AccountSet:
    """
    Resolve the posting accounts for an invoice (or payment) type.

    Raises:
        PostingRuleError for an unknown document type.
        AccountResolutionError when a required control account is missing.
    """
    found = _resolve_roles(tenant_id, document_type, _candidates(tenant_id))
    return AccountSet(**found)


def _resolve_bank(tenant_id, payment, accounts):
    explicit = getattr(payment, "bank_account_id", None)
    if explicit:
        exists = ChartOfAccount.objects.filter(
            id=explicit, tenant_id=tenant_id, is_active=True
        ).exists()
        if not exists:
            raise AccountResolutionError("Bank account not found or inactive")
        return explicit

    is_cash = getattr(payment, "payment_method", "") == "cash"
    keyword = "cash" if is_cash else "bank"
    tag_order = (
        (ChartOfAccount.ROLE_CASH, ChartOfAccount.ROLE_BANK)
        if is_cash
        else (ChartOfAccount.ROLE_BANK, ChartOfAccount.ROLE_CASH)
    )

    for tag in tag_order:
        for acc in accounts:
            if acc.account_role == tag:
                return acc.id

    for acc in accounts:
        if acc.account_type != ChartOfAccount.ASSET:
            continue
        name = (acc.name_en or "").lower()
        if keyword in name or _CURRENT_ASSET.search(name):
            return acc.id

    return None


def resolve_payment_accounts(tenant_id, payment) -> AccountSet:
    """
    Resolve control + bank/cash accounts for a payment or receipt.

    Bank/cash precedence: payment.bank_account -> role tag -> name match.
    """
    accounts = _candidates(tenant_id)
    found = _resolve_roles(tenant_id, payment.payment_type, accounts)

    bank = _resolve_bank(tenant_id, payment, accounts)
    if not bank:
        logger.warning(
            "Bank/cash account missing",
            extra={"tenant_id": str(tenant_id), "payment_method": getattr(payment, "payment_method", "")},
        )
        raise AccountResolutionError(MISSING_MESSAGES["bank"])

    return AccountSet(bank=bank, **found)
