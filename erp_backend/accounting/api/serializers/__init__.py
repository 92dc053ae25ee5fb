# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
)
from accounting.api.serializers.journal_entries import (
    JournalEntryCreateSerializer,
    JournalEntrySerializer,
    JournalEntryUpdateSerializer,
    JournalLineInputSerializer,
    JournalLineSerializer,
)

__all__ = [
    "AccountCreateSerializer",
    "AccountUpdateSerializer",
    "AccountSerializer",
    "JournalEntryCreateSerializer",
    "JournalEntryUpdateSerializer",
    "JournalEntrySerializer",
    "JournalLineInputSerializer",
    "JournalLineSerializer",
]
