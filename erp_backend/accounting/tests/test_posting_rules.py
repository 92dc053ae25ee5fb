# accounting/tests/test_posting_rules.py

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from accounting.services.account_resolver import AccountSet
from accounting.services.exceptions import AccountResolutionError, PostingRuleError
from accounting.services.posting_rules import (
    build_invoice_journal_lines,
    build_journal_header,
    build_journal_lines,
    build_payment_journal_lines,
)

ACCOUNTS = AccountSet(
    receivable="AR",
    payable="AP",
    tax_payable="VAT-OUT",
    tax_recoverable="VAT-IN",
    revenue="SALES",
    expense="PURCHASES",
    sales_returns="SALES-RET",
    purchase_returns="PURCH-RET",
    bank="BANK",
)


def line(number, amount, account_id=None, description_ar="بند"):
    return SimpleNamespace(
        line_number=number,
        account_id=account_id,
        taxable_amount=Decimal(amount),
        quantity=Decimal("1"),
        unit_price=Decimal(amount),
        description_ar=description_ar,
    )


def invoice(invoice_type, lines, *, taxable, tax="0.00", total=None):
    taxable = Decimal(taxable)
    tax = Decimal(tax)
    return SimpleNamespace(
        id="inv-1",
        invoice_type=invoice_type,
        invoice_number="INV000001",
        invoice_date=date(2024, 3, 1),
        currency="QAR",
        exchange_rate=Decimal("1"),
        party_id="party-1",
        lines=lines,
        taxable_amount=taxable,
        tax_amount=tax,
        total_amount=Decimal(total) if total is not None else taxable + tax,
    )


def payment(payment_type, amount="110.00"):
    return SimpleNamespace(
        id="pay-1",
        payment_type=payment_type,
        payment_number="RV000001",
        payment_date=date(2024, 3, 5),
        currency="QAR",
        exchange_rate=Decimal("1"),
        party_id="party-1",
        amount=Decimal(amount),
    )


def summary(lines):
    return [(l["account_id"], l["debit"], l["credit"]) for l in lines]


def assert_balanced(testcase, lines):
    testcase.assertEqual(sum(l["debit"] for l in lines), sum(l["credit"] for l in lines))


class InvoicePostingRuleTests(SimpleTestCase):
    def test_sales_invoice(self):
        lines = build_invoice_journal_lines(
            invoice("sales", [line(1, "100.00")], taxable="100.00", tax="10.00"), ACCOUNTS
        )

        self.assertEqual(
            summary(lines),
            [
                ("AR", Decimal("110.00"), Decimal("0.00")),
                ("SALES", Decimal("0.00"), Decimal("100.00")),
                ("VAT-OUT", Decimal("0.00"), Decimal("10.00")),
            ],
        )
        self.assertEqual([l["line_number"] for l in lines], [1, 2, 3])
        self.assertEqual(lines[2]["description_en"], "Sales Tax")

    def test_purchase_invoice(self):
        lines = build_invoice_journal_lines(
            invoice("purchase", [line(1, "100.00")], taxable="100.00", tax="10.00"), ACCOUNTS
        )

        self.assertEqual(
            summary(lines),
            [
                ("PURCHASES", Decimal("100.00"), Decimal("0.00")),
                ("VAT-IN", Decimal("10.00"), Decimal("0.00")),
                ("AP", Decimal("0.00"), Decimal("110.00")),
            ],
        )

    def test_sales_return(self):
        lines = build_invoice_journal_lines(
            invoice(
                "sales_return",
                [line(1, "60.00"), line(2, "40.00", account_id="OTHER")],
                taxable="100.00",
                tax="5.00",
            ),
            ACCOUNTS,
        )

        self.assertEqual(
            summary(lines),
            [
                ("SALES-RET", Decimal("100.00"), Decimal("0.00")),
                ("VAT-OUT", Decimal("5.00"), Decimal("0.00")),
                ("AR", Decimal("0.00"), Decimal("105.00")),
            ],
        )

    def test_purchase_return(self):
        lines = build_invoice_journal_lines(
            invoice("purchase_return", [line(1, "80.00")], taxable="80.00", tax="8.00"), ACCOUNTS
        )

        self.assertEqual(
            summary(lines),
            [
                ("AP", Decimal("88.00"), Decimal("0.00")),
                ("PURCH-RET", Decimal("0.00"), Decimal("80.00")),
                ("VAT-IN", Decimal("0.00"), Decimal("8.00")),
            ],
        )

    def test_returns_fall_back_to_revenue_and_expense(self):
        accounts = AccountSet(
            receivable="AR",
            payable="AP",
            tax_payable="AR",
            tax_recoverable="AP",
            revenue="SALES",
            expense="PURCHASES",
        )

        sales_return = build_invoice_journal_lines(invoice("sales_return", [line(1, "10.00")], taxable="10.00"), accounts)
        purchase_return = build_invoice_journal_lines(
            invoice("purchase_return", [line(1, "10.00")], taxable="10.00"), accounts
        )

        self.assertEqual(sales_return[0]["account_id"], "SALES")
        self.assertEqual(purchase_return[1]["account_id"], "PURCHASES")

    def test_lines_are_grouped_by_account_in_line_order(self):
        lines = build_invoice_journal_lines(
            invoice(
                "sales",
                [
                    line(3, "30.00", description_ar="ج"),
                    line(1, "10.00", account_id="SERVICES", description_ar="أ"),
                    line(2, "20.00", description_ar="ب"),
                    line(4, "5.00", account_id="SERVICES", description_ar="د"),
                ],
                taxable="65.00",
            ),
            ACCOUNTS,
        )

        self.assertEqual(
            summary(lines),
            [
                ("AR", Decimal("65.00"), Decimal("0.00")),
                ("SERVICES", Decimal("0.00"), Decimal("15.00")),
                ("SALES", Decimal("0.00"), Decimal("50.00")),
            ],
        )
        self.assertEqual(lines[1]["description_ar"], "أ; د")
        self.assertEqual(lines[2]["description_ar"], "ب; ج")

    def test_document_discount_is_spread_over_groups(self):
        lines = build_invoice_journal_lines(
            invoice(
                "sales",
                [line(1, "33.33"), line(2, "66.67", account_id="SERVICES")],
                taxable="90.00",
                tax="9.00",
            ),
            ACCOUNTS,
        )

        self.assertEqual(
            summary(lines),
            [
                ("AR", Decimal("99.00"), Decimal("0.00")),
                ("SALES", Decimal("0.00"), Decimal("30.00")),
                ("SERVICES", Decimal("0.00"), Decimal("60.00")),
                ("VAT-OUT", Decimal("0.00"), Decimal("9.00")),
            ],
        )
        assert_balanced(self, lines)

    def test_uneven_discount_remainder_lands_on_last_group(self):
        lines = build_invoice_journal_lines(
            invoice(
                "sales",
                [line(1, "10.00"), line(2, "10.00", account_id="B"), line(3, "10.00", account_id="C")],
                taxable="20.00",
            ),
            ACCOUNTS,
        )

        credits = [l["credit"] for l in lines[1:]]
        self.assertEqual(credits, [Decimal("6.67"), Decimal("6.67"), Decimal("6.66")])
        assert_balanced(self, lines)

    def test_line_without_taxable_amount_uses_quantity_times_price(self):
        item = SimpleNamespace(
            line_number=1,
            account_id=None,
            taxable_amount=None,
            quantity=Decimal("3"),
            unit_price=Decimal("12.50"),
            description_ar="",
        )

        lines = build_invoice_journal_lines(invoice("sales", [item], taxable="37.50"), ACCOUNTS)

        self.assertEqual(lines[1]["credit"], Decimal("37.50"))

    def test_fully_discounted_line_credits_nothing_to_its_account(self):
        free = line(1, "0.00", account_id="SERVICES")
        free.quantity, free.unit_price = Decimal("1"), Decimal("100.00")

        lines = build_invoice_journal_lines(
            invoice("sales", [free, line(2, "100.00")], taxable="100.00"), ACCOUNTS
        )

        credits = {l["account_id"]: l["credit"] for l in lines if l["credit"]}
        self.assertEqual(credits, {"SALES": Decimal("100.00")})
        assert_balanced(self, lines)

    def test_zero_tax_produces_no_tax_line(self):
        lines = build_invoice_journal_lines(invoice("sales", [line(1, "50.00")], taxable="50.00"), ACCOUNTS)

        self.assertEqual(len(lines), 2)
        self.assertNotIn("VAT-OUT", [l["account_id"] for l in lines])

    def test_missing_default_account_fails(self):
        accounts = AccountSet(receivable="AR", tax_payable="AR")

        with self.assertRaises(AccountResolutionError):
            build_invoice_journal_lines(invoice("sales", [line(1, "10.00")], taxable="10.00"), accounts)

    def test_line_override_needs_no_default_account(self):
        accounts = AccountSet(receivable="AR", tax_payable="AR")

        lines = build_invoice_journal_lines(
            invoice("sales", [line(1, "10.00", account_id="SERVICES")], taxable="10.00"), accounts
        )

        self.assertEqual(lines[1]["account_id"], "SERVICES")

    def test_unsupported_invoice_type(self):
        with self.assertRaises(PostingRuleError):
            build_invoice_journal_lines(invoice("proforma", [line(1, "10.00")], taxable="10.00"), ACCOUNTS)


class PaymentPostingRuleTests(SimpleTestCase):
    def test_receipt(self):
        lines = build_payment_journal_lines(payment("receipt"), ACCOUNTS)

        self.assertEqual(
            summary(lines),
            [
                ("BANK", Decimal("110.00"), Decimal("0.00")),
                ("AR", Decimal("0.00"), Decimal("110.00")),
            ],
        )

    def test_vendor_payment(self):
        lines = build_payment_journal_lines(payment("payment", "75.50"), ACCOUNTS)

        self.assertEqual(
            summary(lines),
            [
                ("AP", Decimal("75.50"), Decimal("0.00")),
                ("BANK", Decimal("0.00"), Decimal("75.50")),
            ],
        )

    def test_unsupported_payment_type(self):
        with self.assertRaises(PostingRuleError):
            build_payment_journal_lines(payment("refund"), ACCOUNTS)


class DispatchAndHeaderTests(SimpleTestCase):
    def test_dispatch_by_document_kind(self):
        self.assertEqual(
            build_journal_lines(payment("receipt"), ACCOUNTS)[0]["account_id"],
            "BANK",
        )
        self.assertEqual(
            build_journal_lines(invoice("sales", [line(1, "1.00")], taxable="1.00"), ACCOUNTS)[0]["account_id"],
            "AR",
        )

    def test_unknown_document_kind(self):
        with self.assertRaises(PostingRuleError):
            build_journal_lines(SimpleNamespace(id="x"), ACCOUNTS)

    def test_invoice_header(self):
        header = build_journal_header(invoice("sales_return", [], taxable="0.00"))

        self.assertEqual(header["journal_type"], "sales")
        self.assertEqual(header["reference_number"], "INV000001")
        self.assertEqual(header["description_en"], "Sales Return INV000001")
        self.assertEqual(header["description_ar"], "مرتجع مبيعات رقم INV000001")
        self.assertEqual(header["transaction_date"], date(2024, 3, 1))
        self.assertEqual(header["source_module"], "invoices")
        self.assertEqual(header["source_id"], "inv-1")

    def test_payment_header(self):
        header = build_journal_header(payment("receipt"))

        self.assertEqual(header["journal_type"], "receipt")
        self.assertEqual(header["description_en"], "Receipt RV000001")
        self.assertEqual(header["source_module"], "payments")

    def test_header_for_unknown_type(self):
        with self.assertRaises(PostingRuleError):
            build_journal_header(payment("refund"))
