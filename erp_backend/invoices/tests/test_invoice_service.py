# invoices/tests/test_invoice_service.py

import uuid
from datetime import date
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from accounting.models.account import ChartOfAccount
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import (
    DocumentNotFound,
    InvalidStateTransition,
    JournalEntryCreationError,
    PostingError,
    ValidationFailed,
)
from accounting.tests.helpers import (
    make_account,
    posted_invoice,
    purchase_invoice_data,
    sales_invoice_data,
    seed_chart,
)
from invoices.models import Invoice, InvoiceLine
from invoices.services import invoice_service as svc


def journal_summary(journal):
    return [(l.account_id, l.debit, l.credit) for l in journal.lines.order_by("line_number")]


class InvoiceDraftTests(TestCase):
    def setUp(self):
        self.tenant = uuid.uuid4()
        self.user = uuid.uuid4()
        self.customer = uuid.uuid4()
        self.chart = seed_chart(self.tenant)

    def test_create_computes_totals_and_number(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant, user_id=self.user)

        self.assertEqual(invoice.invoice_number, "INV000001")
        self.assertEqual(invoice.status, Invoice.STATUS_DRAFT)
        self.assertEqual(invoice.subtotal, Decimal("100.00"))
        self.assertEqual(invoice.taxable_amount, Decimal("100.00"))
        self.assertEqual(invoice.tax_amount, Decimal("10.00"))
        self.assertEqual(invoice.total_amount, Decimal("110.00"))
        self.assertEqual(invoice.balance_amount, Decimal("110.00"))
        self.assertEqual(invoice.created_by, self.user)

        line = invoice.lines.get()
        self.assertEqual(line.line_number, 1)
        self.assertEqual(line.taxable_amount, Decimal("100.00"))
        self.assertEqual(line.tax_amount, Decimal("10.00"))
        self.assertEqual(line.line_total, Decimal("110.00"))
        self.assertEqual(invoice.taxes.count(), 1)

    def test_numbering_per_invoice_type(self):
        first = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)
        second = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)
        purchase = svc.create_invoice(purchase_invoice_data(uuid.uuid4()), tenant_id=self.tenant)
        sales_return = svc.create_invoice(
            sales_invoice_data(self.customer, invoice_type="sales_return"), tenant_id=self.tenant
        )

        self.assertEqual(first.invoice_number, "INV000001")
        self.assertEqual(second.invoice_number, "INV000002")
        self.assertEqual(purchase.invoice_number, "PINV000001")
        self.assertEqual(sales_return.invoice_number, "SR000001")

    def test_sales_invoice_requires_customer(self):
        with self.assertRaisesMessage(ValidationFailed, "Sales invoices must have a customer"):
            svc.create_invoice(sales_invoice_data(self.customer, party_type="vendor"), tenant_id=self.tenant)

    def test_purchase_invoice_requires_vendor(self):
        with self.assertRaisesMessage(ValidationFailed, "Purchase invoices must have a vendor"):
            svc.create_invoice(
                purchase_invoice_data(uuid.uuid4(), party_type="customer"), tenant_id=self.tenant
            )

    def test_invoice_requires_a_line(self):
        with self.assertRaisesMessage(ValidationFailed, "Invoice must have at least one line"):
            svc.create_invoice(sales_invoice_data(self.customer, lines=[]), tenant_id=self.tenant)

        self.assertFalse(Invoice.objects.exists())

    def test_inactive_line_account_is_rejected(self):
        self.chart["rent"].is_active = False
        self.chart["rent"].save()
        data = sales_invoice_data(self.customer)
        data["lines"][0]["account_id"] = self.chart["rent"].id

        with self.assertRaises(ValidationFailed):
            svc.create_invoice(data, tenant_id=self.tenant)

    def test_due_date_before_invoice_date_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            svc.create_invoice(
                sales_invoice_data(self.customer, due_date=date(2024, 2, 1)), tenant_id=self.tenant
            )

        self.assertFalse(Invoice.objects.exists())

    def test_update_lines_recomputes_totals(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        updated = svc.update_invoice(
            invoice.id,
            {
                "lines": [
                    {"description_ar": "أ", "quantity": "3", "unit_price": "50.00"},
                    {"description_ar": "ب", "quantity": "1", "unit_price": "20.00"},
                ]
            },
            tenant_id=self.tenant,
        )

        self.assertEqual(updated.subtotal, Decimal("170.00"))
        self.assertEqual(updated.tax_amount, Decimal("10.00"))
        self.assertEqual(updated.total_amount, Decimal("180.00"))
        self.assertEqual(InvoiceLine.objects.filter(invoice=invoice).count(), 2)

    def test_update_discount_percentage_recomputes_totals(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        updated = svc.update_invoice(invoice.id, {"discount_percentage": "10"}, tenant_id=self.tenant)

        self.assertEqual(updated.discount_amount, Decimal("10.00"))
        self.assertEqual(updated.taxable_amount, Decimal("90.00"))
        self.assertEqual(updated.total_amount, Decimal("100.00"))
        self.assertEqual(updated.lines.count(), 1)

    def test_update_lines_reapplies_stored_discount_percentage(self):
        invoice = svc.create_invoice(
            sales_invoice_data(self.customer, discount_percentage="10"), tenant_id=self.tenant
        )
        self.assertEqual(invoice.discount_amount, Decimal("10.00"))

        updated = svc.update_invoice(
            invoice.id,
            {"lines": [{"description_ar": "أ", "quantity": "4", "unit_price": "50.00"}]},
            tenant_id=self.tenant,
        )

        self.assertEqual(updated.subtotal, Decimal("200.00"))
        self.assertEqual(updated.discount_amount, Decimal("20.00"))
        self.assertEqual(updated.taxable_amount, Decimal("180.00"))

    def test_update_lines_keeps_fixed_discount_amount(self):
        invoice = svc.create_invoice(
            sales_invoice_data(self.customer, discount_amount="15.00", discount_percentage="50"),
            tenant_id=self.tenant,
        )
        self.assertEqual(invoice.discount_percentage, Decimal("0"))

        updated = svc.update_invoice(
            invoice.id,
            {"lines": [{"description_ar": "أ", "quantity": "4", "unit_price": "50.00"}]},
            tenant_id=self.tenant,
        )

        self.assertEqual(updated.discount_amount, Decimal("15.00"))
        self.assertEqual(updated.taxable_amount, Decimal("185.00"))

    def test_clearing_discount_percentage_removes_derived_discount(self):
        invoice = svc.create_invoice(
            sales_invoice_data(self.customer, discount_percentage="10"), tenant_id=self.tenant
        )

        updated = svc.update_invoice(invoice.id, {"discount_percentage": "0"}, tenant_id=self.tenant)

        self.assertEqual(updated.discount_amount, Decimal("0.00"))
        self.assertEqual(updated.taxable_amount, Decimal("100.00"))

    def test_update_header_only_keeps_totals(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        updated = svc.update_invoice(invoice.id, {"notes": "deliver Sunday"}, tenant_id=self.tenant)

        self.assertEqual(updated.notes, "deliver Sunday")
        self.assertEqual(updated.total_amount, Decimal("110.00"))

    def test_only_drafts_can_be_updated_or_deleted(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)
        svc.submit_invoice(invoice.id, tenant_id=self.tenant)

        with self.assertRaisesMessage(InvalidStateTransition, "Can only update draft invoices"):
            svc.update_invoice(invoice.id, {"notes": "x"}, tenant_id=self.tenant)
        with self.assertRaisesMessage(InvalidStateTransition, "Can only delete draft invoices"):
            svc.delete_invoice(invoice.id, tenant_id=self.tenant)

    def test_delete_draft(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        svc.delete_invoice(invoice.id, tenant_id=self.tenant)

        self.assertFalse(Invoice.objects.filter(pk=invoice.id).exists())
        self.assertFalse(InvoiceLine.objects.filter(invoice_id=invoice.id).exists())

    def test_get_invoice_is_tenant_scoped(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        with self.assertRaises(DocumentNotFound):
            svc.get_invoice(invoice.id, tenant_id=uuid.uuid4())

    def test_list_invoices_filters(self):
        svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)
        svc.create_invoice(purchase_invoice_data(uuid.uuid4()), tenant_id=self.tenant)

        self.assertEqual(svc.list_invoices(self.tenant).count(), 2)
        self.assertEqual(svc.list_invoices(self.tenant, invoice_type="purchase").count(), 1)
        self.assertEqual(svc.list_invoices(self.tenant, party_id=self.customer).count(), 1)
        self.assertEqual(svc.list_invoices(self.tenant, status="posted").count(), 0)


class InvoicePostingTests(TestCase):
    def setUp(self):
        self.tenant = uuid.uuid4()
        self.user = uuid.uuid4()
        self.customer = uuid.uuid4()
        self.chart = seed_chart(self.tenant)

    def _approved(self, data):
        invoice = svc.create_invoice(data, tenant_id=self.tenant, user_id=self.user)
        svc.submit_invoice(invoice.id, tenant_id=self.tenant, user_id=self.user)
        return svc.approve_invoice(invoice.id, tenant_id=self.tenant, user_id=self.user)

    def test_post_sales_invoice_creates_posted_journal(self):
        invoice = posted_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant, user_id=self.user)

        self.assertEqual(invoice.status, Invoice.STATUS_POSTED)
        self.assertEqual(invoice.posted_by, self.user)
        self.assertIsNotNone(invoice.posted_at)

        journal = invoice.posted_journal
        self.assertEqual(journal.status, JournalEntry.STATUS_POSTED)
        self.assertEqual(journal.journal_type, JournalEntry.TYPE_SALES)
        self.assertEqual(journal.journal_number, "SL000001")
        self.assertEqual(journal.reference_number, invoice.invoice_number)
        self.assertEqual(journal.description_en, f"Sales Invoice {invoice.invoice_number}")
        self.assertEqual(journal.source_module, "invoices")
        self.assertEqual(journal.source_id, invoice.id)
        self.assertEqual(journal.transaction_date, invoice.invoice_date)
        self.assertEqual(
            journal_summary(journal),
            [
                (self.chart["ar"].id, Decimal("110.00"), Decimal("0.00")),
                (self.chart["sales"].id, Decimal("0.00"), Decimal("100.00")),
                (self.chart["vat_out"].id, Decimal("0.00"), Decimal("10.00")),
            ],
        )

    def test_post_purchase_invoice(self):
        invoice = posted_invoice(purchase_invoice_data(uuid.uuid4()), tenant_id=self.tenant)

        self.assertEqual(invoice.posted_journal.journal_type, JournalEntry.TYPE_PURCHASE)
        self.assertEqual(
            journal_summary(invoice.posted_journal),
            [
                (self.chart["purchases"].id, Decimal("100.00"), Decimal("0.00")),
                (self.chart["vat_in"].id, Decimal("10.00"), Decimal("0.00")),
                (self.chart["ap"].id, Decimal("0.00"), Decimal("110.00")),
            ],
        )

    def test_post_sales_return(self):
        invoice = posted_invoice(
            sales_invoice_data(self.customer, invoice_type="sales_return"), tenant_id=self.tenant
        )

        self.assertEqual(
            journal_summary(invoice.posted_journal),
            [
                (self.chart["sales_returns"].id, Decimal("100.00"), Decimal("0.00")),
                (self.chart["vat_out"].id, Decimal("10.00"), Decimal("0.00")),
                (self.chart["ar"].id, Decimal("0.00"), Decimal("110.00")),
            ],
        )

    def test_discounted_invoice_with_line_override_balances(self):
        services = make_account(self.tenant, "4300", "Service Income", ChartOfAccount.REVENUE)
        data = sales_invoice_data(self.customer, discount_percentage="10")
        data["lines"] = [
            {"description_ar": "أ", "quantity": "1", "unit_price": "60.00"},
            {"description_ar": "ب", "quantity": "1", "unit_price": "40.00", "account_id": services.id},
        ]

        invoice = posted_invoice(data, tenant_id=self.tenant)

        self.assertEqual(invoice.total_amount, Decimal("100.00"))
        journal = invoice.posted_journal
        self.assertEqual(journal.total_debit, journal.total_credit)
        self.assertEqual(
            journal_summary(journal),
            [
                (self.chart["ar"].id, Decimal("100.00"), Decimal("0.00")),
                (self.chart["sales"].id, Decimal("0.00"), Decimal("54.00")),
                (services.id, Decimal("0.00"), Decimal("36.00")),
                (self.chart["vat_out"].id, Decimal("0.00"), Decimal("10.00")),
            ],
        )

    def test_fully_discounted_line_posts_no_revenue_to_its_account(self):
        services = make_account(self.tenant, "4300", "Service Income", ChartOfAccount.REVENUE)
        data = sales_invoice_data(self.customer, tax=None)
        data["lines"] = [
            {
                "description_ar": "خدمة مجانية",
                "quantity": "1",
                "unit_price": "100.00",
                "discount_percentage": "100",
                "account_id": services.id,
            },
            {"description_ar": "صنف", "quantity": "1", "unit_price": "100.00"},
        ]

        invoice = posted_invoice(data, tenant_id=self.tenant)

        self.assertEqual(invoice.total_amount, Decimal("100.00"))
        self.assertEqual(
            journal_summary(invoice.posted_journal),
            [
                (self.chart["ar"].id, Decimal("100.00"), Decimal("0.00")),
                (self.chart["sales"].id, Decimal("0.00"), Decimal("100.00")),
            ],
        )

    def test_workflow_order_is_enforced(self):
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        with self.assertRaisesMessage(InvalidStateTransition, "Can only approve submitted invoices"):
            svc.approve_invoice(invoice.id, tenant_id=self.tenant)
        with self.assertRaisesMessage(InvalidStateTransition, "Can only post approved invoices"):
            svc.post_invoice(invoice.id, tenant_id=self.tenant)

        svc.submit_invoice(invoice.id, tenant_id=self.tenant)
        with self.assertRaisesMessage(InvalidStateTransition, "Can only submit draft invoices"):
            svc.submit_invoice(invoice.id, tenant_id=self.tenant)
        with self.assertRaisesMessage(InvalidStateTransition, "Can only post approved invoices"):
            svc.post_invoice(invoice.id, tenant_id=self.tenant)

    def test_second_post_is_rejected(self):
        invoice = posted_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        with self.assertRaisesMessage(InvalidStateTransition, "Can only post approved invoices"):
            svc.post_invoice(invoice.id, tenant_id=self.tenant)

        self.assertEqual(JournalEntry.objects.filter(tenant_id=self.tenant).count(), 1)

    def test_partially_paid_invoice_is_rejected_before_building_a_journal(self):
        invoice = posted_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)
        Invoice.objects.filter(pk=invoice.id).update(status=Invoice.STATUS_PARTIALLY_PAID)

        with mock.patch("invoices.services.invoice_service.post_document_journal") as post_journal:
            with self.assertRaisesMessage(InvalidStateTransition, "Can only post approved invoices"):
                svc.post_invoice(invoice.id, tenant_id=self.tenant)

        post_journal.assert_not_called()

    def test_unknown_invoice(self):
        with self.assertRaises(DocumentNotFound):
            svc.post_invoice(uuid.uuid4(), tenant_id=self.tenant)

    def test_journal_failure_leaves_invoice_approved(self):
        invoice = self._approved(sales_invoice_data(self.customer))

        with mock.patch(
            "invoices.services.invoice_service.post_document_journal",
            side_effect=JournalEntryCreationError("boom"),
        ):
            with self.assertRaisesMessage(PostingError, "Failed to create journal entry: boom"):
                svc.post_invoice(invoice.id, tenant_id=self.tenant)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_APPROVED)
        self.assertIsNone(invoice.posted_journal_id)
        self.assertFalse(JournalEntry.objects.exists())

    def test_missing_receivable_account_blocks_posting(self):
        tenant = uuid.uuid4()
        seed_chart(tenant, only=["sales", "vat_out"])
        invoice = svc.create_invoice(sales_invoice_data(self.customer), tenant_id=tenant)
        svc.submit_invoice(invoice.id, tenant_id=tenant)
        svc.approve_invoice(invoice.id, tenant_id=tenant)

        with self.assertRaisesMessage(PostingError, "Accounts Receivable account not found"):
            svc.post_invoice(invoice.id, tenant_id=tenant)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_APPROVED)
        self.assertFalse(JournalEntry.objects.filter(tenant_id=tenant).exists())

    def test_locked_period_blocks_posting(self):
        from accounting.models.fiscal_period import FiscalPeriod

        FiscalPeriod.objects.create(
            tenant_id=self.tenant,
            name="Mar 2024",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            is_locked=True,
        )
        invoice = self._approved(sales_invoice_data(self.customer))

        with self.assertRaisesMessage(PostingError, "locked fiscal period"):
            svc.post_invoice(invoice.id, tenant_id=self.tenant)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_APPROVED)

    @override_settings(ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS=False)
    def test_journal_left_in_draft_when_auto_post_is_off(self):
        invoice = posted_invoice(sales_invoice_data(self.customer), tenant_id=self.tenant)

        self.assertEqual(invoice.status, Invoice.STATUS_POSTED)
        self.assertEqual(invoice.posted_journal.status, JournalEntry.STATUS_DRAFT)


class InvoiceRepresentationTests(TestCase):
    def test_serializer_nests_lines_and_taxes(self):
        from invoices.api.serializers import InvoiceSerializer

        tenant = uuid.uuid4()
        seed_chart(tenant)
        invoice = posted_invoice(sales_invoice_data(uuid.uuid4()), tenant_id=tenant)

        data = InvoiceSerializer(invoice).data

        self.assertEqual(data["invoice_number"], "INV000001")
        self.assertEqual(data["status"], "posted")
        self.assertEqual(data["total_amount"], "110.00")
        self.assertEqual(data["posted_journal"], invoice.posted_journal_id)
        self.assertEqual(data["lines"][0]["line_total"], "110.00")
        self.assertEqual(data["taxes"][0]["tax_type"], "output")
