# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine


class JournalLineInputSerializer(serializers.Serializer):
    line_number = serializers.IntegerField(min_value=1, required=False)
    account_id = serializers.UUIDField()
    cost_center_id = serializers.UUIDField(required=False, allow_null=True)

    debit = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False, default=0)
    credit = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False, default=0)

    description_ar = serializers.CharField(required=False, allow_blank=True, default="")
    description_en = serializers.CharField(required=False, allow_blank=True, default="")

    reference = serializers.CharField(required=False, allow_blank=True, default="")
    reference_type = serializers.CharField(required=False, allow_blank=True, default="")
    reference_id = serializers.UUIDField(required=False, allow_null=True)


class JournalEntryHeaderSerializer(serializers.Serializer):
    journal_type = serializers.ChoiceField(
        choices=[c for c, _ in JournalEntry.JOURNAL_TYPES],
        default=JournalEntry.TYPE_GENERAL,
    )
    journal_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)

    description_ar = serializers.CharField()
    description_en = serializers.CharField(required=False, allow_blank=True)

    transaction_date = serializers.DateField()
    posting_date = serializers.DateField(required=False, allow_null=True)

    currency = serializers.CharField(required=False, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, min_value=0, required=False)

    notes = serializers.CharField(required=False, allow_blank=True)
    attachment_url = serializers.URLField(required=False, allow_blank=True, max_length=500)

    source_module = serializers.CharField(required=False, allow_blank=True, max_length=50)
    source_id = serializers.UUIDField(required=False, allow_null=True)


class JournalEntryCreateSerializer(JournalEntryHeaderSerializer):
    lines = JournalLineInputSerializer(many=True, allow_empty=True)


class JournalEntryUpdateSerializer(JournalEntryHeaderSerializer):
    """Header-only update; every field optional (partial=True at call site)."""


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)

    class Meta:
        model = JournalLine
        fields = (
            "id",
            "line_number",
            "account",
            "account_code",
            "cost_center_id",
            "debit",
            "credit",
            "description_ar",
            "description_en",
            "reference",
            "reference_type",
            "reference_id",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    is_balanced = serializers.BooleanField(read_only=True)

    class Meta:
        model = JournalEntry
        fields = "__all__"
        read_only_fields = ("id",)
