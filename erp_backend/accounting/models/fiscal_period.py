# accounting/models/fiscal_period.py

"""
FISCAL PERIOD MODEL

A dated window of a tenant's fiscal year. Locked periods reject journals
whose transaction date falls inside them.
"""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.db import models


class FiscalPeriod(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    is_locked = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "fiscal_periods"
        ordering = ["start_date"]
        indexes = [
            models.Index(fields=["tenant_id", "start_date", "end_date"]),
        ]

    def __str__(self):
        state = "locked" if self.is_locked else "open"
        return f"{self.name} ({self.start_date} → {self.end_date}, {state})"

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("Fiscal period end_date must be on or after start_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
