# accounting/services/period_lock.py

"""
======================================================
PATH: accounting/services/period_lock.py
======================================================
PERIOD LOCK GUARD

Purpose:
- Reject any journal whose transaction date falls inside a locked
  fiscal period of the tenant.
- Optionally (ACCOUNTING_REQUIRE_FISCAL_PERIOD) reject dates that no
  period covers at all.

Design:
- Thin, reusable guard
- Called by journal_entry_service (engine choke-point)
"""

from __future__ import annotations

from datetime import date, datetime

from django.conf import settings
from django.utils import timezone

from accounting.models.fiscal_period import FiscalPeriod
from accounting.services.exceptions import JournalEntryCreationError


class PeriodLockedError(JournalEntryCreationError):
    """Raised when attempting to post into a locked fiscal period."""


class MissingFiscalPeriodError(JournalEntryCreationError):
    """Raised when no fiscal period covers the date and one is required."""


def _to_date(dt: datetime | date | None) -> date | None:
    if dt is None:
        return None
    if isinstance(dt, datetime):
        if timezone.is_naive(dt):
            dt = timezone.make_aware(dt, timezone.get_current_timezone())
        return dt.date()
    if isinstance(dt, date):
        return dt
    return None


def assert_period_open(*, tenant_id, transaction_date: datetime | date | None) -> None:
    """
    Assert that transaction_date does NOT fall inside a locked period.

    Raises:
        PeriodLockedError if the date is locked.
        MissingFiscalPeriodError if periods are required and none covers it.
    """
    txn_date = _to_date(transaction_date)
    if txn_date is None:
        return

    periods = FiscalPeriod.objects.filter(
        tenant_id=tenant_id,
        start_date__lte=txn_date,
        end_date__gte=txn_date,
    )

    if periods.filter(is_locked=True).exists():
        raise PeriodLockedError("Cannot create journal in locked fiscal period")

    if getattr(settings, "ACCOUNTING_REQUIRE_FISCAL_PERIOD", False) and not periods.exists():
        raise MissingFiscalPeriodError("No fiscal period found for transaction date")
