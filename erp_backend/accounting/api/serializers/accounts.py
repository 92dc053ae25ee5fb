# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import ChartOfAccount


class AccountCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    name_en = serializers.CharField(max_length=200)
    name_ar = serializers.CharField(max_length=200)

    account_type = serializers.ChoiceField(choices=[c for c, _ in ChartOfAccount.ACCOUNT_TYPES])
    subtype = serializers.CharField(required=False, allow_blank=True, max_length=50)
    account_role = serializers.ChoiceField(
        choices=[c for c, _ in ChartOfAccount.ACCOUNT_ROLES],
        required=False,
        allow_null=True,
    )

    parent_id = serializers.UUIDField(required=False, allow_null=True)
    balance_type = serializers.ChoiceField(
        choices=[c for c, _ in ChartOfAccount.BALANCE_TYPES],
        required=False,
    )

    is_control_account = serializers.BooleanField(required=False)
    is_posting_allowed = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)

    currency = serializers.CharField(required=False, allow_blank=True, max_length=3)
    description = serializers.CharField(required=False, allow_blank=True)
    cost_center_required = serializers.BooleanField(required=False)

    def validate_code(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Account code is required")
        return value


class AccountUpdateSerializer(serializers.Serializer):
    """
    Mutable account attributes. code, account_type and parent are fixed
    after creation.
    """

    name_en = serializers.CharField(required=False, max_length=200)
    name_ar = serializers.CharField(required=False, max_length=200)
    subtype = serializers.CharField(required=False, allow_blank=True, max_length=50)
    account_role = serializers.ChoiceField(
        choices=[c for c, _ in ChartOfAccount.ACCOUNT_ROLES],
        required=False,
        allow_null=True,
    )
    balance_type = serializers.ChoiceField(
        choices=[c for c, _ in ChartOfAccount.BALANCE_TYPES],
        required=False,
    )

    is_control_account = serializers.BooleanField(required=False)
    is_posting_allowed = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)

    currency = serializers.CharField(required=False, allow_blank=True, max_length=3)
    description = serializers.CharField(required=False, allow_blank=True)
    cost_center_required = serializers.BooleanField(required=False)


class AccountSerializer(serializers.ModelSerializer):
    """
    Read serializer for accounts.
    `children` is filled by build_account_tree(), not by the ORM.
    """

    class Meta:
        model = ChartOfAccount
        fields = (
            "id",
            "code",
            "name_en",
            "name_ar",
            "account_type",
            "subtype",
            "account_role",
            "parent",
            "level",
            "balance_type",
            "is_control_account",
            "is_posting_allowed",
            "is_active",
            "currency",
        )
        read_only_fields = fields
