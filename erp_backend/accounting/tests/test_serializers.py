# accounting/tests/test_serializers.py

import uuid
from datetime import date

from django.test import TestCase

from accounting.api.serializers import JournalEntrySerializer
from accounting.services import journal_entry_service
from accounting.tests.helpers import seed_chart


class JournalEntrySerializerTests(TestCase):
    def test_representation_includes_lines_and_balance_flag(self):
        tenant = uuid.uuid4()
        chart = seed_chart(tenant, only=["cash", "capital"])
        journal = journal_entry_service.create_journal(
            {
                "description_ar": "رأس المال",
                "transaction_date": date(2024, 1, 1),
                "lines": [
                    {"account_id": chart["cash"].id, "debit": "1000.00", "description_en": "Owner deposit"},
                    {"account_id": chart["capital"].id, "credit": "1000.00"},
                ],
            },
            tenant_id=tenant,
        )

        data = JournalEntrySerializer(journal_entry_service.get_journal(journal.id, tenant_id=tenant)).data

        self.assertEqual(data["journal_number"], "GN000001")
        self.assertEqual(data["status"], "draft")
        self.assertEqual(data["total_debit"], "1000.00")
        self.assertTrue(data["is_balanced"])
        self.assertEqual([line["account_code"] for line in data["lines"]], ["1100", "3100"])
        self.assertEqual(data["lines"][0]["description_en"], "Owner deposit")
