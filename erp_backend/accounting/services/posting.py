# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ADAPTER

Turn an approved business document into a journal entry.

This module should remain a thin adapter:
- It DOES NOT change document status (document services do).
- It DOES map documents -> journal header + lines (posting_rules).
- It ALWAYS calls create_journal (engine) for validation + balance checks.

AUTO-POST:
- When ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS is on (default), the journal
  is driven draft -> submitted -> approved -> posted in the caller's
  transaction, so a posted document always references a posted journal.
"""

from __future__ import annotations

import logging

from django.conf import settings

from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import resolve_default_accounts, resolve_payment_accounts
from accounting.services.journal_entry_service import (
    approve_journal,
    create_journal,
    post_journal,
    submit_journal,
)
from accounting.services.posting_rules import build_journal_header, build_journal_lines

logger = logging.getLogger(__name__)


def _resolve_accounts(document, *, tenant_id):
    if hasattr(document, "payment_type"):
        return resolve_payment_accounts(tenant_id, document)
    return resolve_default_accounts(tenant_id, document.invoice_type)


def post_document_journal(document, *, tenant_id, user_id=None) -> JournalEntry:
    """
    POST DOCUMENT -> JOURNAL

    Must be called inside transaction.atomic(); any failure propagates and
    rolls the journal back with the caller's work.
    """
    accounts = _resolve_accounts(document, tenant_id=tenant_id)
    lines = build_journal_lines(document, accounts)

    data = build_journal_header(document)
    data["lines"] = lines

    journal = create_journal(
        data,
        tenant_id=tenant_id,
        user_id=user_id,
        branch_id=getattr(document, "branch_id", None),
    )

    if getattr(settings, "ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS", True):
        submit_journal(journal.id, tenant_id=tenant_id, user_id=user_id)
        approve_journal(journal.id, tenant_id=tenant_id, user_id=user_id)
        journal = post_journal(journal.id, tenant_id=tenant_id, user_id=user_id)

    logger.info(
        "Document journal created",
        extra={
            "tenant_id": str(tenant_id),
            "source_module": data["source_module"],
            "source_id": str(document.id),
            "journal_id": str(journal.id),
            "journal_status": journal.status,
        },
    )
    return journal
