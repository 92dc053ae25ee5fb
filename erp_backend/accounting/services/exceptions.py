# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for the accounting engine and the document
services built on top of it.

Taxonomy:
- ValidationFailed          -> bad input shape, raised before any write
- InvalidStateTransition,
  UnbalancedJournalError,
  AccountResolutionError,
  AllocationError, ...      -> domain rule violations (client-facing)
- DocumentNotFound          -> missing row for (id, tenant)
- PersistenceError          -> storage failure, original error chained
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class ValidationFailed(AccountingServiceError):
    """Raised when command input fails serializer validation."""

    def __init__(self, errors, message: str = "Invalid input"):
        self.errors = errors
        super().__init__(f"{message}: {errors}")


class DocumentNotFound(AccountingServiceError):
    """Raised when a journal, invoice, payment or account is not found for a tenant."""


class InvalidStateTransition(AccountingServiceError):
    """Raised when a workflow step is attempted from the wrong status."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""


class UnbalancedJournalError(JournalEntryCreationError):
    """Raised when a journal fails the double-entry balance check."""


class PostingRuleError(AccountingServiceError):
    """Raised when a posting rule cannot be applied."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class PostingError(AccountingServiceError):
    """Raised when a document cannot be posted to the ledger."""


class AllocationError(AccountingServiceError):
    """Raised when a payment allocation breaks an amount rule."""


class PersistenceError(AccountingServiceError):
    """Raised when the database rejects a write or read."""
