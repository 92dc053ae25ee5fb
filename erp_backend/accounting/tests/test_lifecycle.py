# accounting/tests/test_lifecycle.py

import uuid
from datetime import date
from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase

from accounting.models.journal import JournalEntry
from accounting.services import lifecycle
from accounting.services.exceptions import DocumentNotFound, InvalidStateTransition


class TransitionTableTests(SimpleTestCase):
    def test_journal_happy_path(self):
        self.assertTrue(lifecycle.can_transition(lifecycle.JOURNAL, from_status="draft", to_status="submitted"))
        self.assertTrue(lifecycle.can_transition(lifecycle.JOURNAL, from_status="submitted", to_status="approved"))
        self.assertTrue(lifecycle.can_transition(lifecycle.JOURNAL, from_status="approved", to_status="posted"))

    def test_journal_steps_cannot_be_skipped(self):
        self.assertFalse(lifecycle.can_transition(lifecycle.JOURNAL, from_status="draft", to_status="posted"))
        self.assertFalse(lifecycle.can_transition(lifecycle.JOURNAL, from_status="submitted", to_status="posted"))
        self.assertFalse(lifecycle.can_transition(lifecycle.JOURNAL, from_status="approved", to_status="draft"))

    def test_terminal_states_never_move(self):
        self.assertFalse(lifecycle.can_transition(lifecycle.JOURNAL, from_status="posted", to_status="draft"))
        self.assertFalse(lifecycle.can_transition(lifecycle.PAYMENT, from_status="posted", to_status="cancelled"))
        self.assertFalse(lifecycle.can_transition(lifecycle.PAYMENT, from_status="cancelled", to_status="draft"))
        self.assertFalse(lifecycle.can_transition(lifecycle.INVOICE, from_status="cancelled", to_status="posted"))

    def test_invoice_balance_moves(self):
        self.assertTrue(lifecycle.can_transition(lifecycle.INVOICE, from_status="posted", to_status="paid"))
        self.assertTrue(lifecycle.can_transition(lifecycle.INVOICE, from_status="paid", to_status="partially_paid"))
        self.assertFalse(lifecycle.can_transition(lifecycle.INVOICE, from_status="draft", to_status="paid"))

    def test_payments_cancel_before_posting(self):
        for status in ("draft", "submitted", "approved"):
            self.assertTrue(lifecycle.can_transition(lifecycle.PAYMENT, from_status=status, to_status="cancelled"))

    def test_unknown_kind(self):
        self.assertFalse(lifecycle.can_transition("order", from_status="draft", to_status="submitted"))

    def test_validate_transition_uses_custom_message(self):
        doc = SimpleNamespace(pk=1, status="draft")

        with self.assertRaisesMessage(InvalidStateTransition, "Can only post approved invoices"):
            lifecycle.validate_transition(
                lifecycle.INVOICE,
                document=doc,
                target_status="posted",
                message="Can only post approved invoices",
            )

    def test_validate_transition_default_message(self):
        doc = SimpleNamespace(pk=7, status="posted")

        with self.assertRaisesMessage(InvalidStateTransition, "cannot transition from 'posted' to 'draft'"):
            lifecycle.validate_transition(lifecycle.JOURNAL, document=doc, target_status="draft")


class CompareAndSwapTests(TestCase):
    def setUp(self):
        self.tenant = uuid.uuid4()
        self.journal = JournalEntry.objects.create(
            tenant_id=self.tenant,
            journal_number="GN000001",
            journal_type=JournalEntry.TYPE_GENERAL,
            description_ar="قيد",
            transaction_date=date(2024, 1, 1),
        )

    def _swap(self, expected, target, tenant_id=None, pk=None):
        return lifecycle.transition_status(
            lifecycle.JOURNAL,
            JournalEntry.objects,
            pk=pk or self.journal.pk,
            tenant_id=tenant_id or self.tenant,
            expected=expected,
            target=target,
            message="stale status",
        )

    def test_swap_updates_status(self):
        self.assertEqual(self._swap("draft", "submitted"), 1)

        self.journal.refresh_from_db()
        self.assertEqual(self.journal.status, JournalEntry.STATUS_SUBMITTED)

    def test_stale_expected_status_raises_given_message(self):
        self._swap("draft", "submitted")

        with self.assertRaisesMessage(InvalidStateTransition, "stale status"):
            self._swap("draft", "submitted")

    def test_disallowed_pair_is_rejected_before_touching_rows(self):
        with self.assertRaisesMessage(InvalidStateTransition, "is not allowed"):
            self._swap("draft", "posted")

        self.journal.refresh_from_db()
        self.assertEqual(self.journal.status, JournalEntry.STATUS_DRAFT)

    def test_missing_row_raises_not_found(self):
        with self.assertRaises(DocumentNotFound):
            self._swap("draft", "submitted", pk=uuid.uuid4())

    def test_other_tenant_sees_not_found(self):
        with self.assertRaises(DocumentNotFound):
            self._swap("draft", "submitted", tenant_id=uuid.uuid4())
