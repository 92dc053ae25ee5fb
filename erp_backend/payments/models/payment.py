# payments/models/payment.py

"""
======================================================
PATH: payments/models/payment.py
======================================================
PAYMENT MODELS

Receipts (from customers) and payments (to vendors), plus their
allocations against posted invoices.

Guarantees:
- payment_number unique per tenant
- unallocated_amount = amount - sum(allocations) (kept by allocation_service)
- allocation amount > 0
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry, default_currency
from invoices.models import Invoice

MONEY = {"max_digits": 16, "decimal_places": 2, "default": Decimal("0.00")}


class Payment(models.Model):
    TYPE_RECEIPT = "receipt"
    TYPE_PAYMENT = "payment"

    PAYMENT_TYPES = [
        (TYPE_RECEIPT, "Receipt"),
        (TYPE_PAYMENT, "Payment"),
    ]

    METHOD_CASH = "cash"
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_CHECK = "check"
    METHOD_CREDIT_CARD = "credit_card"
    METHOD_ONLINE = "online"
    METHOD_OTHER = "other"

    PAYMENT_METHODS = [
        (METHOD_CASH, "Cash"),
        (METHOD_BANK_TRANSFER, "Bank Transfer"),
        (METHOD_CHECK, "Check"),
        (METHOD_CREDIT_CARD, "Credit Card"),
        (METHOD_ONLINE, "Online"),
        (METHOD_OTHER, "Other"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_SUBMITTED = "submitted"
    STATUS_APPROVED = "approved"
    STATUS_POSTED = "posted"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_POSTED, "Posted"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    CANCELLABLE_STATUSES = (STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    branch_id = models.UUIDField(null=True, blank=True)

    payment_number = models.CharField(max_length=50)
    payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPES)

    party_id = models.UUIDField()
    party_type = models.CharField(max_length=10, choices=Invoice.PARTY_TYPES)

    payment_date = models.DateField()

    currency = models.CharField(max_length=3, default=default_currency)
    exchange_rate = models.DecimalField(max_digits=12, decimal_places=6, default=Decimal("1"))

    amount = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    unallocated_amount = models.DecimalField(**MONEY)

    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS)
    reference_number = models.CharField(max_length=100, blank=True, default="")
    check_number = models.CharField(max_length=50, blank=True, default="")
    check_date = models.DateField(null=True, blank=True)

    bank_account = models.ForeignKey(
        ChartOfAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        help_text="Explicit bank / cash account; resolved from the chart when empty",
    )

    description_ar = models.TextField(blank=True, default="")
    description_en = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    posted_journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    created_by = models.UUIDField(null=True, blank=True)
    submitted_by = models.UUIDField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.UUIDField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.UUIDField(null=True, blank=True)
    posted_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.UUIDField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payments"
        ordering = ["-payment_date", "-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "payment_type"]),
            models.Index(fields=["tenant_id", "party_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "payment_number"],
                name="uniq_payment_tenant_number",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=Decimal("0.00")),
                name="chk_payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(unallocated_amount__gte=Decimal("0.00")),
                name="chk_payment_unallocated_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} ({self.payment_type}, {self.amount})"


class PaymentAllocation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="allocations",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="allocations",
    )

    amount = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    discount_allowed = models.DecimalField(**MONEY)
    write_off = models.DecimalField(**MONEY)
    notes = models.TextField(blank=True, default="")

    created_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_allocations"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=Decimal("0.00")),
                name="chk_allocation_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_id} → {self.invoice_id}: {self.amount}"
