"""
Exception hierarchy for the payout workflow.

Every failure inside process_payout is one of these (or an unexpected
exception) and ends up as the error text of a FailedPayout row. A duplicate
delivery is not an error: it is reported as ProcessOutcome.DUPLICATE.
"""

from typing import Optional


class PayoutError(Exception):
    """Base exception for payout processing failures."""


class ProviderError(PayoutError):
    """The transfer provider answered non-2xx, timed out, or was unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ValidationError(PayoutError):
    """The provider demands transfer fields we did not supply."""

    def __init__(self, missing_fields: list[str]):
        super().__init__(f"Missing required transfer fields: {', '.join(missing_fields)}")
        self.missing_fields = missing_fields


class RecipientOrAccountLookupError(PayoutError):
    """Account details or the payout target account could not be resolved."""


class StorageError(PayoutError):
    """Persistence failure in the payout store."""
