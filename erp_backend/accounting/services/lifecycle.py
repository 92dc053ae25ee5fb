# accounting/services/lifecycle.py

"""
DOCUMENT LIFECYCLE RULES

This module defines the ONLY allowed status transitions for journals,
invoices and payments, plus the compare-and-swap helper every workflow
step goes through.

DESIGN PRINCIPLES:
- Transition tables have no side effects
- transition_status() is the single write path for status changes
- A transition succeeds only if the stored status is still the expected one
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from django.utils import timezone

from accounting.services.exceptions import (
    DocumentNotFound,
    InvalidStateTransition,
    PersistenceError,
)

logger = logging.getLogger(__name__)

# ============================================================
# STATE DEFINITIONS
# ============================================================

JOURNAL = "journal"
INVOICE = "invoice"
PAYMENT = "payment"

TERMINAL_STATES = {
    JOURNAL: {"posted", "reversed"},
    INVOICE: {"cancelled"},
    PAYMENT: {"posted", "cancelled"},
}

ALLOWED_TRANSITIONS = {
    JOURNAL: {
        "draft": {"submitted"},
        "submitted": {"approved"},
        "approved": {"posted"},
    },
    INVOICE: {
        "draft": {"submitted"},
        "submitted": {"approved"},
        "approved": {"posted"},
        # balance-driven moves after posting (allocations / cancellations)
        "posted": {"partially_paid", "paid", "overdue"},
        "partially_paid": {"posted", "paid", "overdue"},
        "paid": {"posted", "partially_paid"},
        "overdue": {"partially_paid", "paid"},
    },
    PAYMENT: {
        "draft": {"submitted", "cancelled"},
        "submitted": {"approved", "cancelled"},
        "approved": {"posted", "cancelled"},
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(kind: str, *, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES.get(kind, set()):
        return False

    return to_status in ALLOWED_TRANSITIONS.get(kind, {}).get(from_status, set())


def validate_transition(kind: str, *, document, target_status: str, message: str | None = None) -> None:
    if not can_transition(kind, from_status=document.status, to_status=target_status):
        raise InvalidStateTransition(
            message
            or f"{kind.capitalize()} {document.pk} cannot transition from "
            f"'{document.status}' to '{target_status}'"
        )


# ============================================================
# COMPARE-AND-SWAP
# ============================================================


def transition_status(
    kind: str,
    queryset,
    *,
    pk,
    tenant_id,
    expected: str | set[str],
    target: str,
    message: str,
    **fields,
) -> int:
    """
    UPDATE ... SET status = target WHERE id = pk AND tenant_id = ? AND status IN expected

    Zero rows updated means either the row does not exist for this tenant
    (DocumentNotFound) or it is no longer in an expected status
    (InvalidStateTransition carrying `message`).
    """
    allowed = {expected} if isinstance(expected, str) else set(expected)
    fields.setdefault("updated_at", timezone.now())

    for src in allowed:
        if not can_transition(kind, from_status=src, to_status=target):
            raise InvalidStateTransition(
                f"{kind.capitalize()} transition '{src}' -> '{target}' is not allowed"
            )

    try:
        updated = queryset.filter(pk=pk, tenant_id=tenant_id, status__in=allowed).update(
            status=target, **fields
        )
        if updated:
            logger.info(
                "Status changed",
                extra={"document_kind": kind, "document_id": str(pk), "to_status": target},
            )
            return updated

        exists = queryset.filter(pk=pk, tenant_id=tenant_id).exists()
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to update {kind} status: {exc}") from exc

    if not exists:
        raise DocumentNotFound(f"{kind.capitalize()} not found")
    raise InvalidStateTransition(message)
