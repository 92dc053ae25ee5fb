# accounting/models/journal_line.py

"""
JOURNAL LINE MODEL

One debit or credit posting to a single account inside a journal.

Guarantees:
- debit >= 0 and credit >= 0
- line_number unique per journal (defines order)
- Deleted together with its journal (drafts only)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry


class JournalLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField()

    account = models.ForeignKey(
        ChartOfAccount,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )
    cost_center_id = models.UUIDField(null=True, blank=True)

    debit = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    description_ar = models.TextField(blank=True, default="")
    description_en = models.TextField(blank=True, default="")

    currency = models.CharField(max_length=3, blank=True, default="")
    exchange_rate = models.DecimalField(max_digits=12, decimal_places=6, default=Decimal("1"))

    reference = models.CharField(max_length=100, blank=True, default="")
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.UUIDField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "journal_lines"
        ordering = ["journal", "line_number"]
        indexes = [
            models.Index(fields=["account"]),
            models.Index(fields=["tenant_id", "account"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["journal", "line_number"],
                name="uniq_journal_line_number",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=Decimal("0.00")) & Q(credit__gte=Decimal("0.00")),
                name="chk_journal_line_amounts_nonnegative",
            ),
        ]

    def __str__(self):
        side = "Dr" if self.debit else "Cr"
        amount = self.debit or self.credit
        return f"{self.line_number}. {side} {self.account_id} {amount}"
