# invoices/models/__init__.py

from invoices.models.invoice import Invoice, InvoiceLine, InvoiceTax

__all__ = [
    "Invoice",
    "InvoiceLine",
    "InvoiceTax",
]
