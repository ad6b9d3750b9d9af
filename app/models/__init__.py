from app.models.enums import AuditAction, PayoutStatus, ProcessOutcome
from app.models.events import PaymentEvent
from app.models.payout import AuditLog, Base, FailedPayout, PayoutRecord, Recipient

__all__ = [
    "Base",
    "PayoutRecord",
    "FailedPayout",
    "Recipient",
    "AuditLog",
    "PaymentEvent",
    "PayoutStatus",
    "ProcessOutcome",
    "AuditAction",
]
