# invoices/api/serializers.py

from rest_framework import serializers

from invoices.models import Invoice, InvoiceLine, InvoiceTax


class InvoiceLineCreateSerializer(serializers.Serializer):
    line_number = serializers.IntegerField(min_value=1, required=False)
    item_code = serializers.CharField(required=False, allow_blank=True, max_length=50)
    description_ar = serializers.CharField()
    description_en = serializers.CharField(required=False, allow_blank=True)

    quantity = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0)
    unit_of_measure = serializers.CharField(required=False, allow_blank=True, max_length=20)
    unit_price = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0)

    discount_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )

    tax_code_id = serializers.UUIDField(required=False, allow_null=True)
    tax_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )
    tax_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)

    account_id = serializers.UUIDField(required=False, allow_null=True)
    cost_center_id = serializers.UUIDField(required=False, allow_null=True)


class InvoiceTaxCreateSerializer(serializers.Serializer):
    tax_code_id = serializers.UUIDField(required=False, allow_null=True)
    tax_type = serializers.ChoiceField(choices=[c for c, _ in InvoiceTax.TAX_TYPES])
    tax_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    tax_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)
    taxable_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    tax_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0)


class InvoiceCreateSerializer(serializers.Serializer):
    invoice_type = serializers.ChoiceField(choices=[c for c, _ in Invoice.INVOICE_TYPES])
    party_id = serializers.UUIDField()
    party_type = serializers.ChoiceField(choices=[c for c, _ in Invoice.PARTY_TYPES])

    invoice_date = serializers.DateField()
    due_date = serializers.DateField(required=False, allow_null=True)

    currency = serializers.CharField(required=False, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, min_value=0, required=False)

    discount_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )

    notes = serializers.CharField(required=False, allow_blank=True)
    terms_and_conditions = serializers.CharField(required=False, allow_blank=True)

    lines = InvoiceLineCreateSerializer(many=True, allow_empty=True)
    taxes = InvoiceTaxCreateSerializer(many=True, required=False)


class InvoiceUpdateSerializer(serializers.Serializer):
    """Draft edits. invoice_type is fixed once created."""

    party_id = serializers.UUIDField(required=False)
    party_type = serializers.ChoiceField(choices=[c for c, _ in Invoice.PARTY_TYPES], required=False)

    invoice_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)

    currency = serializers.CharField(required=False, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, min_value=0, required=False)

    discount_amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )

    notes = serializers.CharField(required=False, allow_blank=True)
    terms_and_conditions = serializers.CharField(required=False, allow_blank=True)

    lines = InvoiceLineCreateSerializer(many=True, required=False)
    taxes = InvoiceTaxCreateSerializer(many=True, required=False)


class InvoiceLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceLine
        exclude = ("invoice",)


class InvoiceTaxSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceTax
        exclude = ("invoice",)


class InvoiceSerializer(serializers.ModelSerializer):
    lines = InvoiceLineSerializer(many=True, read_only=True)
    taxes = InvoiceTaxSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = "__all__"
        read_only_fields = ("id", "invoice_number", "status", "posted_journal")
