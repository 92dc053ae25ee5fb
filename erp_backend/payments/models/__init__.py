# payments/models/__init__.py

from payments.models.payment import Payment, PaymentAllocation

__all__ = [
    "Payment",
    "PaymentAllocation",
]
