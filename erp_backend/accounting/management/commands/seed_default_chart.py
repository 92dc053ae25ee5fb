# accounting/management/commands/seed_default_chart.py

import uuid

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounting.models.account import ChartOfAccount

A = ChartOfAccount

# (code, name_en, name_ar, account_type, account_role, parent_code, posting_allowed)
DEFAULT_ACCOUNTS = [
    # ASSETS
    ("1000", "Assets", "الأصول", A.ASSET, None, None, False),
    ("1100", "Cash on Hand", "النقدية بالصندوق", A.ASSET, A.ROLE_CASH, "1000", True),
    ("1110", "Bank Account", "الحساب البنكي", A.ASSET, A.ROLE_BANK, "1000", True),
    ("1200", "Accounts Receivable", "الذمم المدينة", A.ASSET, A.ROLE_RECEIVABLE, "1000", True),
    ("1300", "Input Tax Recoverable", "ضريبة المدخلات القابلة للاسترداد", A.ASSET, A.ROLE_TAX_RECOVERABLE, "1000", True),
    # LIABILITIES
    ("2000", "Liabilities", "الخصوم", A.LIABILITY, None, None, False),
    ("2100", "Accounts Payable", "الذمم الدائنة", A.LIABILITY, A.ROLE_PAYABLE, "2000", True),
    ("2200", "Output Tax Payable", "ضريبة المخرجات المستحقة", A.LIABILITY, A.ROLE_TAX_PAYABLE, "2000", True),
    # EQUITY
    ("3000", "Equity", "حقوق الملكية", A.EQUITY, None, None, False),
    ("3100", "Owner Capital", "رأس المال", A.EQUITY, None, "3000", True),
    ("3200", "Retained Earnings", "الأرباح المحتجزة", A.EQUITY, None, "3000", True),
    # REVENUE
    ("4000", "Revenue", "الإيرادات", A.REVENUE, None, None, False),
    ("4100", "Sales Revenue", "إيرادات المبيعات", A.REVENUE, A.ROLE_DEFAULT_REVENUE, "4000", True),
    ("4200", "Sales Returns", "مرتجعات المبيعات", A.REVENUE, A.ROLE_SALES_RETURNS, "4000", True),
    # EXPENSES
    ("5000", "Expenses", "المصروفات", A.EXPENSE, None, None, False),
    ("5100", "Purchases", "المشتريات", A.EXPENSE, A.ROLE_DEFAULT_EXPENSE, "5000", True),
    ("5200", "Purchase Returns", "مرتجعات المشتريات", A.EXPENSE, A.ROLE_PURCHASE_RETURNS, "5000", True),
    ("6000", "Operating Expenses", "المصروفات التشغيلية", A.EXPENSE, None, "5000", True),
]


class Command(BaseCommand):
    help = "Seed a minimal role-tagged Chart of Accounts for a tenant (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", required=True, help="Tenant UUID")

    @transaction.atomic
    def handle(self, *args, **options):
        try:
            tenant_id = uuid.UUID(str(options["tenant"]))
        except ValueError as exc:
            raise CommandError(f"Invalid tenant id: {options['tenant']!r}") from exc

        self.stdout.write(f"Seeding default Chart of Accounts for tenant {tenant_id}...")

        by_code: dict[str, ChartOfAccount] = {}
        created_count = 0
        updated_count = 0

        for code, name_en, name_ar, account_type, role, parent_code, posting in DEFAULT_ACCOUNTS:
            parent = by_code.get(parent_code) if parent_code else None

            acc = ChartOfAccount.objects.filter(tenant_id=tenant_id, code=code).first()
            if acc is None:
                acc = ChartOfAccount(
                    tenant_id=tenant_id,
                    code=code,
                    name_en=name_en,
                    name_ar=name_ar,
                    account_type=account_type,
                    account_role=role,
                    parent=parent,
                    level=(parent.level + 1) if parent else 1,
                    is_control_account=role in (A.ROLE_RECEIVABLE, A.ROLE_PAYABLE),
                    is_posting_allowed=posting,
                    is_active=True,
                )
                acc.save()
                created_count += 1
            else:
                # Only backfill the role tag; never rename tenant-edited accounts
                if role and not acc.account_role:
                    acc.account_role = role
                    acc.save()
                    updated_count += 1

            by_code[code] = acc

        self.stdout.write(
            self.style.SUCCESS(
                f"Chart seeded: {created_count} created, {updated_count} updated"
            )
        )
