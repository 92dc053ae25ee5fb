# payments/services/payment_service.py

"""
======================================================
PATH: payments/services/payment_service.py
======================================================
PAYMENT SERVICE

Receipts (customer -> us) and payments (us -> vendor).

Workflow: draft -> submitted -> approved -> posted
Cancel:   draft / submitted / approved -> cancelled
          (posted payments cannot be cancelled; there is no reversal)

Posting creates the Dr/Cr bank vs AR/AP journal and flips
approved -> posted in ONE transaction.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError, transaction
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
from accounting.services.numbering import PAYMENT_PREFIXES, next_number
from accounting.services.posting import post_document_journal
from accounting.services.validation import validate_input
from payments.api.serializers import PaymentCreateSerializer, PaymentUpdateSerializer
from payments.models import Payment
from payments.services.allocation_service import apply_allocations, refresh_invoices, validate_allocations

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "party_id",
    "party_type",
    "payment_date",
    "currency",
    "exchange_rate",
    "amount",
    "payment_method",
    "reference_number",
    "check_number",
    "check_date",
    "bank_account_id",
    "description_ar",
    "description_en",
    "notes",
)


def _check_party(payment_type: str, party_type: str) -> None:
    if payment_type == Payment.TYPE_RECEIPT and party_type != "customer":
        msg = "Receipts must be from customers"
        raise ValidationFailed({"party_type": [msg]}, message=msg)
    if payment_type == Payment.TYPE_PAYMENT and party_type != "vendor":
        msg = "Payments must be to vendors"
        raise ValidationFailed({"party_type": [msg]}, message=msg)


def _check_check_details(payment_method, check_number, check_date) -> None:
    if payment_method == Payment.METHOD_CHECK and (not (check_number or "").strip() or not check_date):
        msg = "Check number and date are required for check payments"
        raise ValidationFailed({"check_number": [msg]}, message=msg)


def _check_bank_account(bank_account_id, *, tenant_id) -> None:
    if not bank_account_id:
        return
    exists = ChartOfAccount.objects.filter(
        pk=bank_account_id,
        tenant_id=tenant_id,
        is_active=True,
        account_type=ChartOfAccount.ASSET,
    ).exists()
    if not exists:
        msg = "Bank account not found or inactive"
        raise ValidationFailed({"bank_account_id": [msg]}, message=msg)


def _locked_payment(payment_id, *, tenant_id) -> Payment:
    try:
        return Payment.objects.select_for_update().get(pk=payment_id, tenant_id=tenant_id)
    except Payment.DoesNotExist as exc:
        raise DocumentNotFound("Payment not found") from exc


# ============================================================
# CREATE / EDIT
# ============================================================


@transaction.atomic
def create_payment(data, *, tenant_id, user_id=None, branch_id=None) -> Payment:
    validated = validate_input(PaymentCreateSerializer, data)

    payment_type = validated["payment_type"]
    _check_party(payment_type, validated["party_type"])
    _check_bank_account(validated.get("bank_account_id"), tenant_id=tenant_id)

    allocations = [dict(a) for a in validated.get("allocations") or []]
    invoices = validate_allocations(
        allocations,
        tenant_id=tenant_id,
        amount=validated["amount"],
        party_id=validated["party_id"],
        party_type=validated["party_type"],
    )

    payment_number = next_number(
        Payment.objects,
        tenant_id=tenant_id,
        field="payment_number",
        prefix=PAYMENT_PREFIXES[payment_type],
    )

    header = {field: validated[field] for field in HEADER_FIELDS if field in validated}

    try:
        payment = Payment.objects.create(
            tenant_id=tenant_id,
            branch_id=branch_id,
            payment_number=payment_number,
            payment_type=payment_type,
            status=Payment.STATUS_DRAFT,
            unallocated_amount=validated["amount"],
            created_by=user_id,
            **header,
        )
    except IntegrityError as exc:
        raise PersistenceError(f"Failed to create payment {payment_number}: {exc}") from exc
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to create payment: {exc}") from exc

    if allocations:
        apply_allocations(payment, allocations, invoices, user_id=user_id)

    logger.info(
        "Payment created",
        extra={
            "tenant_id": str(tenant_id),
            "payment_id": str(payment.id),
            "payment_number": payment_number,
            "payment_type": payment_type,
            "amount": str(payment.amount),
        },
    )
    return payment


@transaction.atomic
def update_payment(payment_id, data, *, tenant_id, user_id=None) -> Payment:
    """
    Edit a draft payment. When allocations are given they replace the
    stored ones and are validated against balances excluding this
    payment's previous allocations.
    """
    validated = validate_input(PaymentUpdateSerializer, data, partial=True)

    payment = _locked_payment(payment_id, tenant_id=tenant_id)
    if payment.status != Payment.STATUS_DRAFT:
        raise InvalidStateTransition("Can only update draft payments")

    for field in HEADER_FIELDS:
        if field in validated:
            setattr(payment, field, validated[field])

    _check_party(payment.payment_type, payment.party_type)
    _check_check_details(payment.payment_method, payment.check_number, payment.check_date)
    _check_bank_account(payment.bank_account_id, tenant_id=tenant_id)

    if "allocations" in validated:
        allocations = [dict(a) for a in validated["allocations"]]
    else:
        allocations = [
            {
                "invoice_id": a.invoice_id,
                "amount": a.amount,
                "discount_allowed": a.discount_allowed,
                "write_off": a.write_off,
                "notes": a.notes,
            }
            for a in payment.allocations.all()
        ]

    invoices = validate_allocations(
        allocations,
        tenant_id=tenant_id,
        amount=payment.amount,
        party_id=payment.party_id,
        party_type=payment.party_type,
        exclude_payment_id=payment.id,
    )

    try:
        payment.save()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to update payment: {exc}") from exc

    apply_allocations(payment, allocations, invoices, user_id=user_id)
    return payment


@transaction.atomic
def delete_payment(payment_id, *, tenant_id) -> None:
    payment = _locked_payment(payment_id, tenant_id=tenant_id)
    if payment.status != Payment.STATUS_DRAFT:
        raise InvalidStateTransition("Can only delete draft payments")

    invoice_ids = set(payment.allocations.values_list("invoice_id", flat=True))

    try:
        payment.delete()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to delete payment: {exc}") from exc

    refresh_invoices(invoice_ids, tenant_id=tenant_id)
    logger.info("Payment deleted", extra={"tenant_id": str(tenant_id), "payment_id": str(payment_id)})


# ============================================================
# WORKFLOW
# ============================================================


@transaction.atomic
def submit_payment(payment_id, *, tenant_id, user_id=None) -> Payment:
    lifecycle.transition_status(
        lifecycle.PAYMENT,
        Payment.objects,
        pk=payment_id,
        tenant_id=tenant_id,
        expected=Payment.STATUS_DRAFT,
        target=Payment.STATUS_SUBMITTED,
        message="Can only submit draft payments",
        submitted_by=user_id,
        submitted_at=timezone.now(),
    )
    return get_payment(payment_id, tenant_id=tenant_id)


@transaction.atomic
def approve_payment(payment_id, *, tenant_id, user_id=None) -> Payment:
    lifecycle.transition_status(
        lifecycle.PAYMENT,
        Payment.objects,
        pk=payment_id,
        tenant_id=tenant_id,
        expected=Payment.STATUS_SUBMITTED,
        target=Payment.STATUS_APPROVED,
        message="Can only approve submitted payments",
        approved_by=user_id,
        approved_at=timezone.now(),
    )
    return get_payment(payment_id, tenant_id=tenant_id)


@transaction.atomic
def post_payment(payment_id, *, tenant_id, user_id=None) -> Payment:
    """
    POST PAYMENT (approved -> posted)

    Steps (one transaction):
    1. Lock the payment row, require approved + at least one allocation
    2. Resolve AR/AP + bank/cash, create (and auto-post) the journal
    3. CAS approved -> posted and link posted_journal
    """
    # 1) Lock + preconditions
    payment = _locked_payment(payment_id, tenant_id=tenant_id)
    lifecycle.validate_transition(
        lifecycle.PAYMENT,
        document=payment,
        target_status=Payment.STATUS_POSTED,
        message="Can only post approved payments",
    )

    if not payment.allocations.exists():
        raise PostingError("Payment must have at least one allocation")

    # 2) Journal
    try:
        journal = post_document_journal(payment, tenant_id=tenant_id, user_id=user_id or payment.created_by)
    except AccountingServiceError as exc:
        logger.error(
            "Payment posting failed",
            extra={
                "tenant_id": str(tenant_id),
                "payment_id": str(payment_id),
                "payment_number": payment.payment_number,
                "error": str(exc),
            },
        )
        raise PostingError(f"Failed to create journal entry: {exc}") from exc

    # 3) Status flip
    lifecycle.transition_status(
        lifecycle.PAYMENT,
        Payment.objects,
        pk=payment_id,
        tenant_id=tenant_id,
        expected=Payment.STATUS_APPROVED,
        target=Payment.STATUS_POSTED,
        message="Can only post approved payments",
        posted_journal=journal,
        posted_by=user_id,
        posted_at=timezone.now(),
    )

    logger.info(
        "Payment posted",
        extra={
            "tenant_id": str(tenant_id),
            "payment_id": str(payment_id),
            "payment_number": payment.payment_number,
            "journal_id": str(journal.id),
        },
    )
    return get_payment(payment_id, tenant_id=tenant_id)


@transaction.atomic
def cancel_payment(payment_id, *, tenant_id, user_id=None) -> Payment:
    """
    Cancel a payment that has not been posted. Its allocations stay on
    record but no longer count toward invoice balances.
    """
    payment = _locked_payment(payment_id, tenant_id=tenant_id)
    if payment.status == Payment.STATUS_CANCELLED:
        raise InvalidStateTransition("Payment is already cancelled")
    if payment.status == Payment.STATUS_POSTED:
        raise InvalidStateTransition("Posted payments cannot be cancelled")

    lifecycle.transition_status(
        lifecycle.PAYMENT,
        Payment.objects,
        pk=payment_id,
        tenant_id=tenant_id,
        expected=set(Payment.CANCELLABLE_STATUSES),
        target=Payment.STATUS_CANCELLED,
        message="Payment cannot be cancelled in its current status",
        cancelled_by=user_id,
        cancelled_at=timezone.now(),
    )

    refresh_invoices(payment.allocations.values_list("invoice_id", flat=True), tenant_id=tenant_id)

    logger.info("Payment cancelled", extra={"tenant_id": str(tenant_id), "payment_id": str(payment_id)})
    return get_payment(payment_id, tenant_id=tenant_id)


# ============================================================
# QUERIES
# ============================================================


def get_payment(payment_id, *, tenant_id) -> Payment:
    try:
        return Payment.objects.prefetch_related("allocations__invoice").get(pk=payment_id, tenant_id=tenant_id)
    except Payment.DoesNotExist as exc:
        raise DocumentNotFound("Payment not found") from exc


def list_payments(tenant_id, *, payment_type=None, status=None, party_type=None, party_id=None):
    qs = Payment.objects.filter(tenant_id=tenant_id)

    if payment_type:
        qs = qs.filter(payment_type=payment_type)
    if status:
        qs = qs.filter(status=status)
    if party_type:
        qs = qs.filter(party_type=party_type)
    if party_id:
        qs = qs.filter(party_id=party_id)

    return qs.order_by("-payment_date", "-created_at")
