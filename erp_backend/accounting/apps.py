# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Chart of accounts, journals and the posting engine:
- Account resolution (role tags + name heuristics)
- Journal creation, validation and workflow
- Document -> journal line rules
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting"
