# invoices/models/invoice.py

"""
======================================================
PATH: invoices/models/invoice.py
======================================================
INVOICE MODELS

Sales / purchase invoices and their returns.

Guarantees:
- invoice_number unique per tenant
- Header totals are produced by invoices.services.totals (never typed in)
- posted_journal is a non-owning link to the journal created on posting
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry, default_currency

MONEY = {"max_digits": 16, "decimal_places": 2, "default": Decimal("0.00")}


class Invoice(models.Model):
    TYPE_SALES = "sales"
    TYPE_PURCHASE = "purchase"
    TYPE_SALES_RETURN = "sales_return"
    TYPE_PURCHASE_RETURN = "purchase_return"

    INVOICE_TYPES = [
        (TYPE_SALES, "Sales"),
        (TYPE_PURCHASE, "Purchase"),
        (TYPE_SALES_RETURN, "Sales Return"),
        (TYPE_PURCHASE_RETURN, "Purchase Return"),
    ]

    PARTY_CUSTOMER = "customer"
    PARTY_VENDOR = "vendor"

    PARTY_TYPES = [
        (PARTY_CUSTOMER, "Customer"),
        (PARTY_VENDOR, "Vendor"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_SUBMITTED = "submitted"
    STATUS_APPROVED = "approved"
    STATUS_POSTED = "posted"
    STATUS_PAID = "paid"
    STATUS_PARTIALLY_PAID = "partially_paid"
    STATUS_OVERDUE = "overdue"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_POSTED, "Posted"),
        (STATUS_PAID, "Paid"),
        (STATUS_PARTIALLY_PAID, "Partially Paid"),
        (STATUS_OVERDUE, "Overdue"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Statuses an allocation may target (posted and not fully settled)
    OPEN_STATUSES = (STATUS_POSTED, STATUS_PARTIALLY_PAID, STATUS_OVERDUE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    branch_id = models.UUIDField(null=True, blank=True)

    invoice_number = models.CharField(max_length=50)
    invoice_type = models.CharField(max_length=20, choices=INVOICE_TYPES)

    party_id = models.UUIDField()
    party_type = models.CharField(max_length=10, choices=PARTY_TYPES)

    invoice_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)

    currency = models.CharField(max_length=3, default=default_currency)
    exchange_rate = models.DecimalField(max_digits=12, decimal_places=6, default=Decimal("1"))

    subtotal = models.DecimalField(**MONEY)
    discount_amount = models.DecimalField(**MONEY)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    taxable_amount = models.DecimalField(**MONEY)
    tax_amount = models.DecimalField(**MONEY)
    total_amount = models.DecimalField(**MONEY)
    paid_amount = models.DecimalField(**MONEY)
    balance_amount = models.DecimalField(**MONEY)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    posted_journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    notes = models.TextField(blank=True, default="")
    terms_and_conditions = models.TextField(blank=True, default="")

    created_by = models.UUIDField(null=True, blank=True)
    submitted_by = models.UUIDField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.UUIDField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.UUIDField(null=True, blank=True)
    posted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "invoices"
        ordering = ["-invoice_date", "-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "invoice_type"]),
            models.Index(fields=["tenant_id", "party_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "invoice_number"],
                name="uniq_invoice_tenant_number",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gte=Decimal("0.00")),
                name="chk_invoice_total_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} ({self.invoice_type}, {self.status})"

    def clean(self):
        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            raise ValidationError({"due_date": "Due date cannot be before invoice date"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)


class InvoiceLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField()

    item_code = models.CharField(max_length=50, blank=True, default="")
    description_ar = models.TextField()
    description_en = models.TextField(blank=True, default="")

    quantity = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("1"))
    unit_of_measure = models.CharField(max_length=20, blank=True, default="")
    unit_price = models.DecimalField(**MONEY)

    discount_amount = models.DecimalField(**MONEY)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    taxable_amount = models.DecimalField(**MONEY)

    tax_code_id = models.UUIDField(null=True, blank=True)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(**MONEY)
    line_total = models.DecimalField(**MONEY)

    account = models.ForeignKey(
        ChartOfAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        help_text="Revenue / expense override for this line",
    )
    cost_center_id = models.UUIDField(null=True, blank=True)

    class Meta:
        db_table = "invoice_lines"
        ordering = ["invoice", "line_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["invoice", "line_number"],
                name="uniq_invoice_line_number",
            ),
        ]

    def __str__(self):
        return f"{self.line_number}. {self.description_ar} × {self.quantity}"


class InvoiceTax(models.Model):
    TAX_OUTPUT = "output"
    TAX_INPUT = "input"

    TAX_TYPES = [
        (TAX_OUTPUT, "Output"),
        (TAX_INPUT, "Input"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="taxes",
    )

    tax_code_id = models.UUIDField(null=True, blank=True)
    tax_type = models.CharField(max_length=10, choices=TAX_TYPES)
    tax_name = models.CharField(max_length=100, blank=True, default="")
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    taxable_amount = models.DecimalField(**MONEY)
    tax_amount = models.DecimalField(**MONEY)

    class Meta:
        db_table = "invoice_taxes"

    def __str__(self):
        return f"{self.tax_name or self.tax_type}: {self.tax_amount}"
