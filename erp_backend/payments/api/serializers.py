# payments/api/serializers.py

from decimal import Decimal

from rest_framework import serializers

from invoices.models import Invoice
from payments.models import Payment, PaymentAllocation


class PaymentAllocationCreateSerializer(serializers.Serializer):
    invoice_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    discount_allowed = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    write_off = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class PaymentCreateSerializer(serializers.Serializer):
    payment_type = serializers.ChoiceField(choices=[c for c, _ in Payment.PAYMENT_TYPES])
    party_id = serializers.UUIDField()
    party_type = serializers.ChoiceField(choices=[c for c, _ in Invoice.PARTY_TYPES])

    payment_date = serializers.DateField()

    currency = serializers.CharField(required=False, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, min_value=0, required=False)

    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"))
    payment_method = serializers.ChoiceField(choices=[c for c, _ in Payment.PAYMENT_METHODS])

    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    check_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    check_date = serializers.DateField(required=False, allow_null=True)
    bank_account_id = serializers.UUIDField(required=False, allow_null=True)

    description_ar = serializers.CharField(required=False, allow_blank=True)
    description_en = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    allocations = PaymentAllocationCreateSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs.get("payment_method") == Payment.METHOD_CHECK:
            if not (attrs.get("check_number") or "").strip() or not attrs.get("check_date"):
                raise serializers.ValidationError(
                    {"check_number": ["Check number and date are required for check payments"]}
                )
        return attrs


class PaymentUpdateSerializer(serializers.Serializer):
    """Draft edits. payment_type is fixed once created."""

    party_id = serializers.UUIDField(required=False)
    party_type = serializers.ChoiceField(choices=[c for c, _ in Invoice.PARTY_TYPES], required=False)

    payment_date = serializers.DateField(required=False)

    currency = serializers.CharField(required=False, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=12, decimal_places=6, min_value=0, required=False)

    amount = serializers.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0.01"), required=False)
    payment_method = serializers.ChoiceField(choices=[c for c, _ in Payment.PAYMENT_METHODS], required=False)

    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    check_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    check_date = serializers.DateField(required=False, allow_null=True)
    bank_account_id = serializers.UUIDField(required=False, allow_null=True)

    description_ar = serializers.CharField(required=False, allow_blank=True)
    description_en = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    allocations = PaymentAllocationCreateSerializer(many=True, required=False)


class PaymentAllocationSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)

    class Meta:
        model = PaymentAllocation
        fields = ("id", "invoice", "invoice_number", "amount", "discount_allowed", "write_off", "notes")
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    allocations = PaymentAllocationSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = "__all__"
        read_only_fields = ("id", "payment_number", "status", "posted_journal", "unallocated_amount")
