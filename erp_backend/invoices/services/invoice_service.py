# invoices/services/invoice_service.py

"""
======================================================
PATH: invoices/services/invoice_service.py
======================================================
INVOICE SERVICE

Draft maintenance + workflow for sales / purchase invoices and returns.

Rules:
- sales / sales_return -> customer; purchase / purchase_return -> vendor
- at least one line
- header totals always come from calculate_totals()
- only drafts can be edited or deleted
- posting creates the journal and flips approved -> posted in ONE
  transaction; on any failure the invoice stays approved
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.models.account import ChartOfAccount
from accounting.services import lifecycle
from accounting.services.exceptions import (
    AccountingServiceError,
    DocumentNotFound,
    InvalidStateTransition,
    PersistenceError,
    PostingError,
    ValidationFailed,
)
from accounting.services.money import ZERO, money
from accounting.services.numbering import INVOICE_PREFIXES, next_number
from accounting.services.posting import post_document_journal
from accounting.services.validation import validate_input
from invoices.api.serializers import InvoiceCreateSerializer, InvoiceUpdateSerializer
from invoices.models import Invoice, InvoiceLine, InvoiceTax
from invoices.services.totals import calculate_totals

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "party_id",
    "party_type",
    "invoice_date",
    "due_date",
    "currency",
    "exchange_rate",
    "discount_percentage",
    "notes",
    "terms_and_conditions",
)

LINE_FIELDS = (
    "line_number",
    "item_code",
    "description_ar",
    "description_en",
    "quantity",
    "unit_of_measure",
    "unit_price",
    "discount_amount",
    "discount_percentage",
    "tax_code_id",
    "tax_percentage",
    "tax_amount",
    "taxable_amount",
    "line_total",
    "account_id",
    "cost_center_id",
)

TAX_FIELDS = ("tax_code_id", "tax_type", "tax_name", "tax_percentage", "taxable_amount", "tax_amount")

BALANCE_STATUSES = (
    Invoice.STATUS_POSTED,
    Invoice.STATUS_PARTIALLY_PAID,
    Invoice.STATUS_PAID,
    Invoice.STATUS_OVERDUE,
)


# ============================================================
# VALIDATION HELPERS
# ============================================================


def _check_party(invoice_type: str, party_type: str) -> None:
    if invoice_type in (Invoice.TYPE_SALES, Invoice.TYPE_SALES_RETURN):
        if party_type != Invoice.PARTY_CUSTOMER:
            msg = "Sales invoices must have a customer"
            raise ValidationFailed({"party_type": [msg]}, message=msg)
    elif party_type != Invoice.PARTY_VENDOR:
        msg = "Purchase invoices must have a vendor"
        raise ValidationFailed({"party_type": [msg]}, message=msg)


def _check_lines(lines, *, tenant_id) -> None:
    if not lines:
        msg = "Invoice must have at least one line"
        raise ValidationFailed({"lines": [msg]}, message=msg)

    account_ids = {line["account_id"] for line in lines if line.get("account_id")}
    if not account_ids:
        return

    found = set(
        ChartOfAccount.objects.filter(
            tenant_id=tenant_id, id__in=account_ids, is_active=True
        ).values_list("id", flat=True)
    )
    missing = account_ids - found
    if missing:
        msg = "Line account not found or inactive"
        raise ValidationFailed({"lines": [f"{msg}: {', '.join(sorted(map(str, missing)))}"]}, message=msg)


def _locked_invoice(invoice_id, *, tenant_id) -> Invoice:
    try:
        return Invoice.objects.select_for_update().get(pk=invoice_id, tenant_id=tenant_id)
    except Invoice.DoesNotExist as exc:
        raise DocumentNotFound("Invoice not found") from exc


def _line_rows(invoice: Invoice, lines: list[dict]) -> list[InvoiceLine]:
    rows = []
    for index, line in enumerate(lines, start=1):
        values = {field: line[field] for field in LINE_FIELDS if line.get(field) is not None}
        values["line_number"] = line.get("line_number") or index
        rows.append(InvoiceLine(invoice=invoice, **values))
    return rows


def _tax_rows(invoice: Invoice, taxes: list[dict]) -> list[InvoiceTax]:
    return [
        InvoiceTax(invoice=invoice, **{f: t[f] for f in TAX_FIELDS if t.get(f) is not None})
        for t in taxes
    ]


def _stored_lines(invoice: Invoice) -> list[dict]:
    return [
        {field: getattr(line, field) for field in LINE_FIELDS}
        for line in invoice.lines.order_by("line_number")
    ]


def _stored_taxes(invoice: Invoice) -> list[dict]:
    return [{field: getattr(tax, field) for field in TAX_FIELDS} for tax in invoice.taxes.all()]


# ============================================================
# CREATE / EDIT
# ============================================================


@transaction.atomic
def create_invoice(data, *, tenant_id, user_id=None, branch_id=None) -> Invoice:
    validated = validate_input(InvoiceCreateSerializer, data)

    invoice_type = validated["invoice_type"]
    _check_party(invoice_type, validated["party_type"])

    lines = [dict(line) for line in validated["lines"]]
    taxes = [dict(tax) for tax in validated.get("taxes") or []]
    _check_lines(lines, tenant_id=tenant_id)

    totals = calculate_totals(
        lines,
        taxes,
        discount_amount=validated.get("discount_amount"),
        discount_percentage=validated.get("discount_percentage"),
    )

    invoice_number = next_number(
        Invoice.objects,
        tenant_id=tenant_id,
        field="invoice_number",
        prefix=INVOICE_PREFIXES[invoice_type],
    )

    header = {field: validated[field] for field in HEADER_FIELDS if field in validated}
    if validated.get("discount_amount"):
        header["discount_percentage"] = ZERO

    try:
        invoice = Invoice(
            tenant_id=tenant_id,
            branch_id=branch_id,
            invoice_number=invoice_number,
            invoice_type=invoice_type,
            status=Invoice.STATUS_DRAFT,
            created_by=user_id,
            **header,
            **totals.as_dict(),
        )
        invoice.save()
        InvoiceLine.objects.bulk_create(_line_rows(invoice, lines))
        InvoiceTax.objects.bulk_create(_tax_rows(invoice, taxes))
    except DjangoValidationError as exc:
        raise ValidationFailed(exc.message_dict) from exc
    except IntegrityError as exc:
        raise PersistenceError(f"Failed to create invoice {invoice_number}: {exc}") from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to create invoice: {exc}") from exc

    logger.info(
        "Invoice created",
        extra={
            "tenant_id": str(tenant_id),
            "invoice_id": str(invoice.id),
            "invoice_number": invoice_number,
            "invoice_type": invoice_type,
            "total": str(invoice.total_amount),
        },
    )
    return invoice


@transaction.atomic
def update_invoice(invoice_id, data, *, tenant_id) -> Invoice:
    """
    Edit a draft invoice. Lines / taxes, when given, replace the stored ones;
    totals are recomputed whenever lines, taxes or the discount change.
    """
    validated = validate_input(InvoiceUpdateSerializer, data, partial=True)

    invoice = _locked_invoice(invoice_id, tenant_id=tenant_id)
    if invoice.status != Invoice.STATUS_DRAFT:
        raise InvalidStateTransition("Can only update draft invoices")

    for field in HEADER_FIELDS:
        if field in validated:
            setattr(invoice, field, validated[field])

    _check_party(invoice.invoice_type, invoice.party_type)

    recompute = any(k in validated for k in ("lines", "taxes", "discount_amount", "discount_percentage"))
    replace_lines = "lines" in validated
    replace_taxes = "taxes" in validated

    if recompute:
        lines = [dict(line) for line in validated["lines"]] if replace_lines else _stored_lines(invoice)
        taxes = [dict(tax) for tax in validated["taxes"]] if replace_taxes else _stored_taxes(invoice)
        if replace_lines:
            _check_lines(lines, tenant_id=tenant_id)

        # a stored non-zero percentage means the stored amount was derived from it
        if validated.get("discount_amount"):
            discount_amount = validated["discount_amount"]
            invoice.discount_percentage = ZERO
        elif "discount_amount" in validated or "discount_percentage" in validated or invoice.discount_percentage:
            discount_amount = None
        else:
            discount_amount = invoice.discount_amount

        totals = calculate_totals(
            lines,
            taxes,
            discount_amount=discount_amount,
            discount_percentage=invoice.discount_percentage,
        )
        for field, value in totals.as_dict().items():
            setattr(invoice, field, value)

    try:
        invoice.save()
        if recompute:
            invoice.lines.all().delete()
            InvoiceLine.objects.bulk_create(_line_rows(invoice, lines))
        if replace_taxes:
            invoice.taxes.all().delete()
            InvoiceTax.objects.bulk_create(_tax_rows(invoice, taxes))
    except DjangoValidationError as exc:
        raise ValidationFailed(exc.message_dict) from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to update invoice: {exc}") from exc

    return invoice


@transaction.atomic
def delete_invoice(invoice_id, *, tenant_id) -> None:
    invoice = _locked_invoice(invoice_id, tenant_id=tenant_id)
    if invoice.status != Invoice.STATUS_DRAFT:
        raise InvalidStateTransition("Can only delete draft invoices")

    try:
        invoice.delete()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to delete invoice: {exc}") from exc

    logger.info("Invoice deleted", extra={"tenant_id": str(tenant_id), "invoice_id": str(invoice_id)})


# ============================================================
# WORKFLOW
# ============================================================


@transaction.atomic
def submit_invoice(invoice_id, *, tenant_id, user_id=None) -> Invoice:
    lifecycle.transition_status(
        lifecycle.INVOICE,
        Invoice.objects,
        pk=invoice_id,
        tenant_id=tenant_id,
        expected=Invoice.STATUS_DRAFT,
        target=Invoice.STATUS_SUBMITTED,
        message="Can only submit draft invoices",
        submitted_by=user_id,
        submitted_at=timezone.now(),
    )
    return get_invoice(invoice_id, tenant_id=tenant_id)


@transaction.atomic
def approve_invoice(invoice_id, *, tenant_id, user_id=None) -> Invoice:
    lifecycle.transition_status(
        lifecycle.INVOICE,
        Invoice.objects,
        pk=invoice_id,
        tenant_id=tenant_id,
        expected=Invoice.STATUS_SUBMITTED,
        target=Invoice.STATUS_APPROVED,
        message="Can only approve submitted invoices",
        approved_by=user_id,
        approved_at=timezone.now(),
    )
    return get_invoice(invoice_id, tenant_id=tenant_id)


@transaction.atomic
def post_invoice(invoice_id, *, tenant_id, user_id=None) -> Invoice:
    """
    POST INVOICE (approved -> posted)

    Steps (one transaction):
    1. Lock the invoice row, require approved + at least one line
    2. Resolve accounts, build lines, create (and auto-post) the journal
    3. CAS approved -> posted and link posted_journal
    """
    # 1) Lock + preconditions
    invoice = _locked_invoice(invoice_id, tenant_id=tenant_id)
    # only approved; posted is also a balance-driven target of paid / partially_paid
    if invoice.status != Invoice.STATUS_APPROVED:
        raise InvalidStateTransition("Can only post approved invoices")

    if not invoice.lines.exists():
        raise PostingError("Invoice must have at least one line")

    # 2) Journal
    try:
        journal = post_document_journal(invoice, tenant_id=tenant_id, user_id=user_id or invoice.created_by)
    except AccountingServiceError as exc:
        logger.error(
            "Invoice posting failed",
            extra={
                "tenant_id": str(tenant_id),
                "invoice_id": str(invoice_id),
                "invoice_number": invoice.invoice_number,
                "error": str(exc),
            },
        )
        raise PostingError(f"Failed to create journal entry: {exc}") from exc

    # 3) Status flip
    lifecycle.transition_status(
        lifecycle.INVOICE,
        Invoice.objects,
        pk=invoice_id,
        tenant_id=tenant_id,
        expected=Invoice.STATUS_APPROVED,
        target=Invoice.STATUS_POSTED,
        message="Can only post approved invoices",
        posted_journal=journal,
        posted_by=user_id,
        posted_at=timezone.now(),
    )

    logger.info(
        "Invoice posted",
        extra={
            "tenant_id": str(tenant_id),
            "invoice_id": str(invoice_id),
            "invoice_number": invoice.invoice_number,
            "journal_id": str(journal.id),
        },
    )
    return get_invoice(invoice_id, tenant_id=tenant_id)


# ============================================================
# BALANCES
# ============================================================


def refresh_invoice_balance(invoice: Invoice) -> Invoice:
    """
    Recompute paid / balance from allocations of non-cancelled payments.

    Status follows the balance for posted invoices:
    paid == 0 -> posted, paid < total -> partially_paid, else paid.
    """
    paid = money(
        invoice.allocations.exclude(payment__status="cancelled").aggregate(total=Sum("amount"))["total"]
    )
    total = money(invoice.total_amount)

    fields = {
        "paid_amount": paid,
        "balance_amount": money(total - paid),
        "updated_at": timezone.now(),
    }

    if invoice.status in BALANCE_STATUSES:
        if paid <= ZERO:
            status = Invoice.STATUS_OVERDUE if invoice.status == Invoice.STATUS_OVERDUE else Invoice.STATUS_POSTED
        elif paid < total:
            status = Invoice.STATUS_PARTIALLY_PAID
        else:
            status = Invoice.STATUS_PAID
        fields["status"] = status

    try:
        Invoice.objects.filter(pk=invoice.pk).update(**fields)
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to refresh invoice balance: {exc}") from exc

    for field, value in fields.items():
        setattr(invoice, field, value)
    return invoice


# ============================================================
# QUERIES
# ============================================================


def get_invoice(invoice_id, *, tenant_id) -> Invoice:
    try:
        return Invoice.objects.prefetch_related("lines", "taxes").get(pk=invoice_id, tenant_id=tenant_id)
    except Invoice.DoesNotExist as exc:
        raise DocumentNotFound("Invoice not found") from exc


def list_invoices(tenant_id, *, invoice_type=None, status=None, party_type=None, party_id=None):
    qs = Invoice.objects.filter(tenant_id=tenant_id)

    if invoice_type:
        qs = qs.filter(invoice_type=invoice_type)
    if status:
        qs = qs.filter(status=status)
    if party_type:
        qs = qs.filter(party_type=party_type)
    if party_id:
        qs = qs.filter(party_id=party_id)

    return qs.order_by("-invoice_date", "-created_at")
