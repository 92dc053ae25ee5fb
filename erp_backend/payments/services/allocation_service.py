# payments/services/allocation_service.py

"""
PAYMENT ALLOCATION SERVICE

Links a payment to the invoices it settles.

Rules (all checked before any write):
- sum(allocations) <= payment.amount
- each target invoice belongs to the tenant + the payment's party
- each target invoice is posted and not fully paid (paid is accepted
  when re-validating an edited payment; the balance check still applies)
- allocations per invoice <= its outstanding balance, where outstanding
  excludes this payment's own previous allocations
"""

from __future__ import annotations

import logging
from collections import defaultdict

from django.db import DatabaseError
from django.db.models import Sum

from accounting.services.exceptions import AllocationError, DocumentNotFound, PersistenceError
from accounting.services.money import ZERO, money, money_sum
from invoices.models import Invoice
from invoices.services.invoice_service import refresh_invoice_balance
from payments.models import Payment, PaymentAllocation

logger = logging.getLogger(__name__)


def _outstanding(invoice: Invoice, *, exclude_payment_id=None):
    qs = invoice.allocations.exclude(payment__status=Payment.STATUS_CANCELLED)
    if exclude_payment_id:
        qs = qs.exclude(payment_id=exclude_payment_id)
    already = money(qs.aggregate(total=Sum("amount"))["total"])
    return money(invoice.total_amount) - already


def validate_allocations(
    allocations,
    *,
    tenant_id,
    amount,
    party_id,
    party_type,
    exclude_payment_id=None,
) -> dict:
    """
    Validate allocation input and lock the target invoices.

    Returns {invoice_id: Invoice}. Raises AllocationError / DocumentNotFound.
    """
    allocations = list(allocations or [])
    if not allocations:
        return {}

    total = money_sum(a["amount"] for a in allocations)
    if total > money(amount):
        raise AllocationError("Allocated amount cannot exceed payment amount")

    invoice_ids = {a["invoice_id"] for a in allocations}
    invoices = {
        inv.id: inv
        for inv in Invoice.objects.select_for_update().filter(tenant_id=tenant_id, id__in=invoice_ids)
    }

    missing = invoice_ids - set(invoices)
    if missing:
        raise DocumentNotFound(f"Invoice not found: {', '.join(sorted(map(str, missing)))}")

    requested = defaultdict(lambda: ZERO)
    for a in allocations:
        requested[a["invoice_id"]] += money(a["amount"])

    # a draft payment being edited may have fully paid the invoice itself
    open_statuses = set(Invoice.OPEN_STATUSES)
    if exclude_payment_id:
        open_statuses.add(Invoice.STATUS_PAID)

    for invoice_id, wanted in requested.items():
        invoice = invoices[invoice_id]

        if invoice.status not in open_statuses:
            raise AllocationError(
                f"Invoice {invoice.invoice_number} is not open for payment (status: {invoice.status})"
            )
        if invoice.party_type != party_type or invoice.party_id != party_id:
            raise AllocationError(f"Invoice {invoice.invoice_number} belongs to a different party")

        outstanding = _outstanding(invoice, exclude_payment_id=exclude_payment_id)
        if wanted > outstanding:
            raise AllocationError(
                f"Allocation of {wanted} exceeds outstanding balance {outstanding} "
                f"of invoice {invoice.invoice_number}"
            )

    return invoices


def apply_allocations(payment: Payment, allocations, invoices: dict, *, user_id=None) -> Payment:
    """
    Replace the payment's allocations, then refresh every touched invoice
    (old targets and new ones) and the payment's unallocated amount.
    """
    allocations = list(allocations or [])
    previous_ids = set(payment.allocations.values_list("invoice_id", flat=True))

    try:
        payment.allocations.all().delete()
        PaymentAllocation.objects.bulk_create(
            [
                PaymentAllocation(
                    payment=payment,
                    invoice_id=a["invoice_id"],
                    amount=money(a["amount"]),
                    discount_allowed=money(a.get("discount_allowed")),
                    write_off=money(a.get("write_off")),
                    notes=a.get("notes") or "",
                    created_by=user_id,
                )
                for a in allocations
            ]
        )

        allocated = money_sum(a["amount"] for a in allocations)
        payment.unallocated_amount = money(money(payment.amount) - allocated)
        Payment.objects.filter(pk=payment.pk).update(unallocated_amount=payment.unallocated_amount)
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to record allocations: {exc}") from exc

    refresh_invoices(previous_ids | set(invoices), tenant_id=payment.tenant_id)

    logger.info(
        "Allocations applied",
        extra={
            "tenant_id": str(payment.tenant_id),
            "payment_id": str(payment.id),
            "allocation_count": len(allocations),
            "unallocated": str(payment.unallocated_amount),
        },
    )
    return payment


def refresh_invoices(invoice_ids, *, tenant_id) -> None:
    for invoice in Invoice.objects.select_for_update().filter(tenant_id=tenant_id, id__in=set(invoice_ids)):
        refresh_invoice_balance(invoice)
