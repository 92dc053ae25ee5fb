# accounting/models/account.py

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class ChartOfAccount(models.Model):
    """
    A single ledger account in a tenant's chart of accounts.

    Guarantees:
    - Account codes are unique per tenant
    - Code + names are normalized (trimmed)
    - balance_type defaults from account_type (asset/expense -> debit)
    - Optional account_role tag lets the resolver skip name heuristics
    """

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    BALANCE_DEBIT = "debit"
    BALANCE_CREDIT = "credit"

    BALANCE_TYPES = [
        (BALANCE_DEBIT, "Debit"),
        (BALANCE_CREDIT, "Credit"),
    ]

    ROLE_RECEIVABLE = "receivable"
    ROLE_PAYABLE = "payable"
    ROLE_TAX_PAYABLE = "tax_payable"
    ROLE_TAX_RECOVERABLE = "tax_recoverable"
    ROLE_DEFAULT_REVENUE = "default_revenue"
    ROLE_DEFAULT_EXPENSE = "default_expense"
    ROLE_SALES_RETURNS = "sales_returns"
    ROLE_PURCHASE_RETURNS = "purchase_returns"
    ROLE_CASH = "cash"
    ROLE_BANK = "bank"

    ACCOUNT_ROLES = [
        (ROLE_RECEIVABLE, "Accounts Receivable"),
        (ROLE_PAYABLE, "Accounts Payable"),
        (ROLE_TAX_PAYABLE, "Tax Payable"),
        (ROLE_TAX_RECOVERABLE, "Tax Recoverable"),
        (ROLE_DEFAULT_REVENUE, "Default Revenue"),
        (ROLE_DEFAULT_EXPENSE, "Default Expense"),
        (ROLE_SALES_RETURNS, "Sales Returns"),
        (ROLE_PURCHASE_RETURNS, "Purchase Returns"),
        (ROLE_CASH, "Cash"),
        (ROLE_BANK, "Bank"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True)

    code = models.CharField(max_length=20)
    name_en = models.CharField(max_length=200)
    name_ar = models.CharField(max_length=200)

    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPES)
    subtype = models.CharField(max_length=50, blank=True, default="")
    account_role = models.CharField(
        max_length=32,
        choices=ACCOUNT_ROLES,
        null=True,
        blank=True,
        default=None,
        help_text="Explicit posting role; preferred over name matching by the resolver.",
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    level = models.PositiveSmallIntegerField(default=1)

    balance_type = models.CharField(max_length=6, choices=BALANCE_TYPES, blank=True, default="")
    is_control_account = models.BooleanField(default=False)
    is_posting_allowed = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    currency = models.CharField(max_length=3, blank=True, default="")
    description = models.TextField(blank=True, default="")
    cost_center_required = models.BooleanField(default=False)

    created_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "chart_of_accounts"
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Chart of Accounts"
        indexes = [
            models.Index(fields=["tenant_id", "code"]),
            models.Index(fields=["tenant_id", "account_type"]),
            models.Index(fields=["tenant_id", "account_role"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "code"],
                name="uniq_account_tenant_code",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name_en}"

    @property
    def is_debit_balance(self) -> bool:
        if self.balance_type:
            return self.balance_type == self.BALANCE_DEBIT
        return self.account_type in self.DEBIT_NORMAL_TYPES

    def clean(self):
        self.code = (self.code or "").strip()
        self.name_en = (self.name_en or "").strip()
        self.name_ar = (self.name_ar or "").strip()

        if not self.code:
            raise ValidationError({"code": "Account code is required"})
        if not self.name_en:
            raise ValidationError({"name_en": "Account name is required"})

        if not self.balance_type:
            self.balance_type = (
                self.BALANCE_DEBIT
                if self.account_type in self.DEBIT_NORMAL_TYPES
                else self.BALANCE_CREDIT
            )

        if self.parent_id and self.parent_id == self.id:
            raise ValidationError({"parent": "An account cannot be its own parent"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)
