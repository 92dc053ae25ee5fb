# accounting/services/chart_service.py

"""
CHART OF ACCOUNTS SERVICE

Tenant-scoped account maintenance + balances.

Rules:
- code unique per tenant
- parent must belong to the same tenant; level = parent.level + 1
- balance_type defaults from account_type (asset/expense -> debit)
- accounts with children or journal lines cannot be deleted
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Sum

from accounting.api.serializers.accounts import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
)
from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services.exceptions import (
    AccountingServiceError,
    DocumentNotFound,
    PersistenceError,
    ValidationFailed,
)
from accounting.services.money import ZERO, money
from accounting.services.validation import validate_input

logger = logging.getLogger(__name__)


class AccountInUseError(AccountingServiceError):
    """Raised when deleting an account that still has children or journal lines."""


def get_account(account_id, *, tenant_id) -> ChartOfAccount:
    try:
        return ChartOfAccount.objects.get(pk=account_id, tenant_id=tenant_id)
    except ChartOfAccount.DoesNotExist as exc:
        raise DocumentNotFound("Account not found") from exc


@transaction.atomic
def create_account(data, *, tenant_id, user_id=None) -> ChartOfAccount:
    validated = dict(validate_input(AccountCreateSerializer, data))

    code = validated["code"]
    if ChartOfAccount.objects.filter(tenant_id=tenant_id, code=code).exists():
        raise ValidationFailed({"code": ["Account code already exists"]}, message="Account code already exists")

    parent = None
    level = 1
    parent_id = validated.pop("parent_id", None)
    if parent_id:
        parent = ChartOfAccount.objects.filter(pk=parent_id, tenant_id=tenant_id).first()
        if parent is None:
            raise DocumentNotFound("Parent account not found")
        level = parent.level + 1

    try:
        account = ChartOfAccount(
            tenant_id=tenant_id,
            parent=parent,
            level=level,
            created_by=user_id,
            **validated,
        )
        account.save()
    except DjangoValidationError as exc:
        raise ValidationFailed(exc.message_dict if hasattr(exc, "error_dict") else exc.messages) from exc
    except IntegrityError as exc:
        raise ValidationFailed({"code": ["Account code already exists"]}, message="Account code already exists") from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to create account: {exc}") from exc

    logger.info(
        "Account created",
        extra={"tenant_id": str(tenant_id), "account_id": str(account.id), "account_code": account.code},
    )
    return account


@transaction.atomic
def update_account(account_id, data, *, tenant_id) -> ChartOfAccount:
    validated = validate_input(AccountUpdateSerializer, data, partial=True)
    account = get_account(account_id, tenant_id=tenant_id)

    for field, value in validated.items():
        setattr(account, field, value)

    try:
        account.save()
    except DjangoValidationError as exc:
        raise ValidationFailed(exc.message_dict if hasattr(exc, "error_dict") else exc.messages) from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to update account: {exc}") from exc

    return account


@transaction.atomic
def delete_account(account_id, *, tenant_id) -> None:
    account = get_account(account_id, tenant_id=tenant_id)

    if ChartOfAccount.objects.filter(parent_id=account.id).exists():
        raise AccountInUseError("Cannot delete account with child accounts")

    if JournalLine.objects.filter(account_id=account.id).exists():
        raise AccountInUseError("Cannot delete account with posted transactions")

    try:
        account.delete()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to delete account: {exc}") from exc

    logger.info("Account deleted", extra={"tenant_id": str(tenant_id), "account_id": str(account_id)})


def list_accounts(tenant_id, *, include_inactive: bool = False):
    qs = ChartOfAccount.objects.filter(tenant_id=tenant_id)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs.order_by("code")


def list_posting_accounts(tenant_id, account_type: str):
    return ChartOfAccount.objects.filter(
        tenant_id=tenant_id,
        account_type=account_type,
        is_active=True,
        is_posting_allowed=True,
    ).order_by("code")


def build_account_tree(accounts) -> list[dict]:
    """
    Nest accounts under their parents.

    An account whose parent is not in `accounts` (e.g. parent inactive and
    filtered out) is returned at root level.
    """
    accounts = list(accounts)
    nodes = {acc.id: {**AccountSerializer(acc).data, "children": []} for acc in accounts}
    roots: list[dict] = []

    for acc in accounts:
        node = nodes[acc.id]
        parent = nodes.get(acc.parent_id) if acc.parent_id else None
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)

    return roots


def get_account_balance(account_id, *, tenant_id, as_of=None) -> dict:
    """
    Balance of one account over posted journals (optionally up to `as_of`).

    balance = debit - credit for debit-normal accounts, credit - debit otherwise.
    """
    account = get_account(account_id, tenant_id=tenant_id)

    lines = JournalLine.objects.filter(
        tenant_id=tenant_id,
        account_id=account.id,
        journal__status=JournalEntry.STATUS_POSTED,
    )
    if as_of is not None:
        lines = lines.filter(journal__transaction_date__lte=as_of)

    agg = lines.aggregate(debit=Sum("debit"), credit=Sum("credit"))
    debit = money(agg["debit"])
    credit = money(agg["credit"])

    is_debit = account.is_debit_balance
    balance = debit - credit if is_debit else credit - debit

    return {
        "account_id": account.id,
        "debit": debit,
        "credit": credit,
        "balance": balance,
        "net_debit": balance if is_debit else ZERO,
        "net_credit": ZERO if is_debit else balance,
        "balance_type": ChartOfAccount.BALANCE_DEBIT if is_debit else ChartOfAccount.BALANCE_CREDIT,
    }
