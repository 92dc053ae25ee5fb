# accounting/services/validation.py

from __future__ import annotations

from accounting.services.exceptions import ValidationFailed


def validate_input(serializer_class, data, *, partial: bool = False, many: bool = False):
    """
    Run a DRF serializer as an input guard. Returns validated_data or raises
    ValidationFailed carrying serializer.errors. Nothing is written.
    """
    serializer = serializer_class(data=data, partial=partial, many=many)
    if not serializer.is_valid():
        raise ValidationFailed(serializer.errors)
    return serializer.validated_data
