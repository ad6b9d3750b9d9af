"""Enumerations for the payout service domain model."""

from enum import Enum


class PayoutStatus(str, Enum):
    """Lifecycle states for a payout record."""

    CREATED = "created"
    PROCESSED = "processed"


class ProcessOutcome(str, Enum):
    """Result of a single process_payout invocation."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    FAILED = "failed"


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    PAYOUT_CREATED = "payout.created"
    PAYOUT_FAILED = "payout.failed"
    RETRY_SUCCEEDED = "retry.succeeded"
    RETRY_FAILED = "retry.failed"


PAYMENT_SUCCEEDED = "succeeded"
PAYMENT_CREATED_EVENT = "payment.created"
