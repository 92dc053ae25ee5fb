# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Journal header: one balanced accounting transaction.

Guarantees:
- journal_number unique per tenant
- total_debit / total_credit mirror the lines (set by the service)
- Once posted, the header is immutable (status + content)
- Workflow: draft -> submitted -> approved -> posted
  ("reversed" exists as a status value but nothing produces it)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


def default_currency():
    return getattr(settings, "ACCOUNTING_DEFAULT_CURRENCY", "QAR")


class JournalEntry(models.Model):
    TYPE_GENERAL = "general"
    TYPE_SALES = "sales"
    TYPE_PURCHASE = "purchase"
    TYPE_RECEIPT = "receipt"
    TYPE_PAYMENT = "payment"
    TYPE_EXPENSE = "expense"
    TYPE_DEPRECIATION = "depreciation"
    TYPE_ADJUSTMENT = "adjustment"
    TYPE_OPENING = "opening"
    TYPE_CLOSING = "closing"

    JOURNAL_TYPES = [
        (TYPE_GENERAL, "General"),
        (TYPE_SALES, "Sales"),
        (TYPE_PURCHASE, "Purchase"),
        (TYPE_RECEIPT, "Receipt"),
        (TYPE_PAYMENT, "Payment"),
        (TYPE_EXPENSE, "Expense"),
        (TYPE_DEPRECIATION, "Depreciation"),
        (TYPE_ADJUSTMENT, "Adjustment"),
        (TYPE_OPENING, "Opening"),
        (TYPE_CLOSING, "Closing"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_SUBMITTED = "submitted"
    STATUS_APPROVED = "approved"
    STATUS_POSTED = "posted"
    STATUS_REVERSED = "reversed"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_POSTED, "Posted"),
        (STATUS_REVERSED, "Reversed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)
    branch_id = models.UUIDField(null=True, blank=True)

    journal_number = models.CharField(max_length=50)
    journal_type = models.CharField(max_length=20, choices=JOURNAL_TYPES, default=TYPE_GENERAL)
    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    reference_number = models.CharField(max_length=100, blank=True, default="")
    description_ar = models.TextField()
    description_en = models.TextField(blank=True, default="")

    transaction_date = models.DateField()
    posting_date = models.DateField(null=True, blank=True)

    currency = models.CharField(max_length=3, default=default_currency)
    exchange_rate = models.DecimalField(max_digits=12, decimal_places=6, default=Decimal("1"))

    total_debit = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")
    attachment_url = models.URLField(max_length=500, blank=True, default="")

    source_module = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Module that generated this journal (invoices, payments)",
    )
    source_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Id of the originating document (not owned by the journal)",
    )

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
        db_table = "journals"
        ordering = ["-transaction_date", "-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "journal_type"]),
            models.Index(fields=["tenant_id", "transaction_date"]),
            models.Index(fields=["source_module", "source_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "journal_number"],
                name="uniq_journal_tenant_number",
            ),
            models.CheckConstraint(
                condition=Q(total_debit__gte=Decimal("0.00")) & Q(total_credit__gte=Decimal("0.00")),
                name="chk_journal_totals_nonnegative",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"{self.journal_number} – {self.transaction_date}"

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def clean(self):
        self.description_ar = (self.description_ar or "").strip()
        if not self.description_ar:
            raise ValidationError({"description_ar": "Journal description (Arabic) is required"})

        self.journal_number = (self.journal_number or "").strip()
        if not self.journal_number:
            raise ValidationError({"journal_number": "Journal number is required"})

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            stored = type(self).objects.filter(pk=self.pk).values_list("status", flat=True).first()
            if stored == self.STATUS_POSTED:
                raise ValidationError("Posted journals are immutable")

        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status != self.STATUS_DRAFT:
            raise ValidationError("Only draft journals can be deleted")
        return super().delete(*args, **kwargs)
