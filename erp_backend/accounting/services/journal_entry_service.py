# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry / JournalLine
- Enforce debit == credit
- Enforce one-sided lines and posting-allowed accounts
- Enforce fiscal period locks
- Drive the journal workflow (draft -> submitted -> approved -> posted)

Everything else (invoices, payments, manual entries) must pass through here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from accounting.api.serializers.journal_entries import (
    JournalEntryCreateSerializer,
    JournalEntryUpdateSerializer,
    JournalLineInputSerializer,
)
from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services import lifecycle
from accounting.services.exceptions import (
    DocumentNotFound,
    InvalidStateTransition,
    JournalEntryCreationError,
    PersistenceError,
    UnbalancedJournalError,
)
from accounting.services.money import ZERO, money
from accounting.services.numbering import journal_prefix, next_number
from accounting.services.period_lock import assert_period_open
from accounting.services.validation import validate_input

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "journal_type",
    "reference_number",
    "description_ar",
    "description_en",
    "transaction_date",
    "posting_date",
    "currency",
    "exchange_rate",
    "notes",
    "attachment_url",
    "source_module",
    "source_id",
)


# ============================================================
# LINE NORMALIZATION
# ============================================================


def _normalize_lines(lines, *, tenant_id) -> tuple[list[dict], Decimal, Decimal]:
    """
    Validate journal lines and return (normalized_lines, total_debit, total_credit).

    Rules:
    - at least two lines
    - debit >= 0, credit >= 0, exactly one of them non-zero
    - sum(debit) == sum(credit) after 2-place quantization, and non-zero
    - accounts exist in the tenant, are active and allow posting
    """
    lines = list(lines or [])
    if len(lines) < 2:
        raise JournalEntryCreationError("Journal must have at least two lines")

    total_debit = ZERO
    total_credit = ZERO
    normalized: list[dict] = []
    seen_numbers: set[int] = set()

    for index, line in enumerate(lines, start=1):
        line_number = line.get("line_number") or index
        if line_number in seen_numbers:
            raise JournalEntryCreationError(f"Duplicate journal line number: {line_number}")
        seen_numbers.add(line_number)

        debit = money(line.get("debit"))
        credit = money(line.get("credit"))

        if debit < ZERO or credit < ZERO:
            raise JournalEntryCreationError(f"Line {line_number}: debit or credit cannot be negative")
        if debit > ZERO and credit > ZERO:
            raise JournalEntryCreationError(f"Line {line_number}: cannot have both debit and credit")
        if debit == ZERO and credit == ZERO:
            raise JournalEntryCreationError(f"Line {line_number}: must have either debit or credit")

        total_debit += debit
        total_credit += credit

        normalized.append({**line, "line_number": line_number, "debit": debit, "credit": credit})

    total_debit = money(total_debit)
    total_credit = money(total_credit)

    if total_debit != total_credit:
        raise UnbalancedJournalError(
            f"Journal must be balanced: debit={total_debit} credit={total_credit}"
        )
    if total_debit == ZERO:
        raise UnbalancedJournalError("Journal must have non-zero amounts")

    _check_accounts(normalized, tenant_id=tenant_id)

    normalized.sort(key=lambda item: item["line_number"])
    return normalized, total_debit, total_credit


def _check_accounts(lines: list[dict], *, tenant_id) -> None:
    account_ids = {line["account_id"] for line in lines}
    accounts = {
        acc.id: acc
        for acc in ChartOfAccount.objects.filter(tenant_id=tenant_id, id__in=account_ids)
    }

    for line in lines:
        acc = accounts.get(line["account_id"])
        if acc is None:
            raise JournalEntryCreationError(f"Account {line['account_id']} not found")
        if not acc.is_active:
            raise JournalEntryCreationError(f"Account {acc.code} is inactive")
        if not acc.is_posting_allowed:
            raise JournalEntryCreationError(f"Account {acc.code} does not allow posting")


def _build_line_rows(journal: JournalEntry, lines: list[dict]) -> list[JournalLine]:
    return [
        JournalLine(
            tenant_id=journal.tenant_id,
            journal=journal,
            line_number=line["line_number"],
            account_id=line["account_id"],
            cost_center_id=line.get("cost_center_id"),
            debit=line["debit"],
            credit=line["credit"],
            description_ar=line.get("description_ar") or "",
            description_en=line.get("description_en") or "",
            currency=journal.currency,
            exchange_rate=journal.exchange_rate,
            reference=line.get("reference") or "",
            reference_type=line.get("reference_type") or "",
            reference_id=line.get("reference_id"),
        )
        for line in lines
    ]


def _locked_journal(journal_id, *, tenant_id) -> JournalEntry:
    try:
        return JournalEntry.objects.select_for_update().get(pk=journal_id, tenant_id=tenant_id)
    except JournalEntry.DoesNotExist as exc:
        raise DocumentNotFound("Journal not found") from exc


def _require_draft(journal: JournalEntry, action: str) -> None:
    if journal.status != JournalEntry.STATUS_DRAFT:
        raise InvalidStateTransition(f"Can only {action} draft journals")


# ============================================================
# CREATE / EDIT
# ============================================================


@transaction.atomic
def create_journal(data, *, tenant_id, user_id=None, branch_id=None) -> JournalEntry:
    """
    CREATE JOURNAL (DRAFT)

    Header + lines are persisted together; nothing is written when any
    rule fails.
    """
    validated = validate_input(JournalEntryCreateSerializer, data)

    lines, total_debit, total_credit = _normalize_lines(validated["lines"], tenant_id=tenant_id)

    assert_period_open(tenant_id=tenant_id, transaction_date=validated["transaction_date"])

    journal_type = validated["journal_type"]
    journal_number = (validated.get("journal_number") or "").strip()
    if journal_number:
        if JournalEntry.objects.filter(tenant_id=tenant_id, journal_number=journal_number).exists():
            raise JournalEntryCreationError(f"Journal number {journal_number} already exists")
    else:
        journal_number = next_number(
            JournalEntry.objects,
            tenant_id=tenant_id,
            field="journal_number",
            prefix=journal_prefix(journal_type),
        )

    header = {field: validated[field] for field in HEADER_FIELDS if field in validated}
    header.setdefault("currency", settings.ACCOUNTING_DEFAULT_CURRENCY)
    header.setdefault("exchange_rate", Decimal("1"))

    try:
        journal = JournalEntry(
            tenant_id=tenant_id,
            branch_id=branch_id,
            journal_number=journal_number,
            status=JournalEntry.STATUS_DRAFT,
            total_debit=total_debit,
            total_credit=total_credit,
            created_by=user_id,
            **header,
        )
        journal.save()
        JournalLine.objects.bulk_create(_build_line_rows(journal, lines))
    except DjangoValidationError as exc:
        raise JournalEntryCreationError(f"Invalid journal: {exc}") from exc
    except IntegrityError as exc:
        raise PersistenceError(f"Failed to create journal {journal_number}: {exc}") from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to create journal: {exc}") from exc

    logger.info(
        "Journal created",
        extra={
            "tenant_id": str(tenant_id),
            "journal_id": str(journal.id),
            "journal_number": journal.journal_number,
            "journal_type": journal_type,
            "total": str(total_debit),
        },
    )
    return journal


@transaction.atomic
def update_journal(journal_id, data, *, tenant_id) -> JournalEntry:
    """Update header fields of a draft journal. Lines are untouched."""
    validated = validate_input(JournalEntryUpdateSerializer, data, partial=True)

    journal = _locked_journal(journal_id, tenant_id=tenant_id)
    _require_draft(journal, "update")

    if "transaction_date" in validated:
        assert_period_open(tenant_id=tenant_id, transaction_date=validated["transaction_date"])

    for field in HEADER_FIELDS:
        if field in validated:
            setattr(journal, field, validated[field])

    try:
        journal.save()
    except DjangoValidationError as exc:
        raise JournalEntryCreationError(f"Invalid journal: {exc}") from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to update journal: {exc}") from exc

    return journal


@transaction.atomic
def replace_journal_lines(journal_id, lines, *, tenant_id) -> JournalEntry:
    """Replace every line of a draft journal; same rules as creation."""
    validated = validate_input(JournalLineInputSerializer, lines, many=True)

    journal = _locked_journal(journal_id, tenant_id=tenant_id)
    _require_draft(journal, "update lines of")

    normalized, total_debit, total_credit = _normalize_lines(validated, tenant_id=tenant_id)

    try:
        journal.lines.all().delete()
        JournalLine.objects.bulk_create(_build_line_rows(journal, normalized))
        JournalEntry.objects.filter(pk=journal.pk).update(
            total_debit=total_debit,
            total_credit=total_credit,
            updated_at=timezone.now(),
        )
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to replace journal lines: {exc}") from exc

    journal.total_debit = total_debit
    journal.total_credit = total_credit
    return journal


@transaction.atomic
def delete_journal(journal_id, *, tenant_id) -> None:
    journal = _locked_journal(journal_id, tenant_id=tenant_id)
    _require_draft(journal, "delete")

    try:
        journal.delete()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to delete journal: {exc}") from exc

    logger.info("Journal deleted", extra={"tenant_id": str(tenant_id), "journal_id": str(journal_id)})


# ============================================================
# WORKFLOW
# ============================================================


@transaction.atomic
def submit_journal(journal_id, *, tenant_id, user_id=None) -> JournalEntry:
    lifecycle.transition_status(
        lifecycle.JOURNAL,
        JournalEntry.objects,
        pk=journal_id,
        tenant_id=tenant_id,
        expected=JournalEntry.STATUS_DRAFT,
        target=JournalEntry.STATUS_SUBMITTED,
        message="Journal not found or not in draft status",
        submitted_by=user_id,
        submitted_at=timezone.now(),
    )
    return get_journal(journal_id, tenant_id=tenant_id)


@transaction.atomic
def approve_journal(journal_id, *, tenant_id, user_id=None) -> JournalEntry:
    lifecycle.transition_status(
        lifecycle.JOURNAL,
        JournalEntry.objects,
        pk=journal_id,
        tenant_id=tenant_id,
        expected=JournalEntry.STATUS_SUBMITTED,
        target=JournalEntry.STATUS_APPROVED,
        message="Journal not found or not in submitted status",
        approved_by=user_id,
        approved_at=timezone.now(),
    )
    return get_journal(journal_id, tenant_id=tenant_id)


@transaction.atomic
def post_journal(journal_id, *, tenant_id, user_id=None) -> JournalEntry:
    """
    POST JOURNAL (approved -> posted)

    Re-checks under a row lock:
    - at least two lines
    - lines still balance
    - transaction date not in a locked period
    """
    journal = _locked_journal(journal_id, tenant_id=tenant_id)
    if journal.status != JournalEntry.STATUS_APPROVED:
        raise InvalidStateTransition("Journal not found or not in approved status")

    agg = journal.lines.aggregate(
        n=Count("id"),
        debit=Sum("debit"),
        credit=Sum("credit"),
    )
    if (agg["n"] or 0) < 2:
        raise JournalEntryCreationError("Journal must have at least two lines")

    total_debit = money(agg["debit"])
    total_credit = money(agg["credit"])
    if total_debit != total_credit:
        raise UnbalancedJournalError(
            f"Journal must be balanced: debit={total_debit} credit={total_credit}"
        )

    assert_period_open(tenant_id=tenant_id, transaction_date=journal.transaction_date)

    now = timezone.now()
    lifecycle.transition_status(
        lifecycle.JOURNAL,
        JournalEntry.objects,
        pk=journal_id,
        tenant_id=tenant_id,
        expected=JournalEntry.STATUS_APPROVED,
        target=JournalEntry.STATUS_POSTED,
        message="Journal not found or not in approved status",
        posted_by=user_id,
        posted_at=now,
        posting_date=journal.posting_date or timezone.localdate(now),
    )

    logger.info(
        "Journal posted",
        extra={
            "tenant_id": str(tenant_id),
            "journal_id": str(journal_id),
            "journal_number": journal.journal_number,
            "total": str(total_debit),
        },
    )
    return get_journal(journal_id, tenant_id=tenant_id)


# ============================================================
# QUERIES
# ============================================================


def get_journal(journal_id, *, tenant_id) -> JournalEntry:
    try:
        return JournalEntry.objects.prefetch_related("lines__account").get(
            pk=journal_id, tenant_id=tenant_id
        )
    except JournalEntry.DoesNotExist as exc:
        raise DocumentNotFound("Journal not found") from exc


def list_journals(tenant_id, *, status=None, journal_type=None, start_date=None, end_date=None):
    qs = JournalEntry.objects.filter(tenant_id=tenant_id)

    if status:
        qs = qs.filter(status=status)
    if journal_type:
        qs = qs.filter(journal_type=journal_type)
    if start_date:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date:
        qs = qs.filter(transaction_date__lte=end_date)

    return qs.order_by("-transaction_date", "-created_at")


def get_journal_balance(journal_id, *, tenant_id) -> dict:
    if not JournalEntry.objects.filter(pk=journal_id, tenant_id=tenant_id).exists():
        raise DocumentNotFound("Journal not found")

    agg = JournalLine.objects.filter(journal_id=journal_id, tenant_id=tenant_id).aggregate(
        debit=Sum("debit"),
        credit=Sum("credit"),
    )
    total_debit = money(agg["debit"])
    total_credit = money(agg["credit"])

    return {
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": total_debit == total_credit,
    }
