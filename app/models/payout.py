"""SQLAlchemy models for the payout service."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class PayoutRecord(Base):
    """
    A completed payout for a single upstream payment.

    At most one row exists per payment_id; the UNIQUE constraint is what makes
    the orchestrator's insert-if-absent race-free. Rows are written once with
    status "processed" and never updated or deleted.
    """

    __tablename__ = "payouts"

    id = Column(String(32), primary_key=True, default=_new_id)
    payment_id = Column(String(100), nullable=False, unique=True, index=True)
    amount = Column(Float, nullable=False)  # settlement amount (source amount x rate)
    currency = Column(String(3), nullable=False)  # settlement currency
    exchange_rate = Column(Float, nullable=False)
    source_amount = Column(Float, nullable=False)
    source_currency = Column(String(3), nullable=False)
    recipient_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="created")
    provider_transfer_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class FailedPayout(Base):
    """
    A retry-eligible marker for a payment whose payout attempt failed.

    event_payload holds the original payment event as JSON so the retry sweep
    replays the real input.
    """

    __tablename__ = "failed_payouts"

    payment_id = Column(String(100), primary_key=True)
    error = Column(Text, nullable=False)
    event_payload = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    last_attempt = Column(DateTime(timezone=True), nullable=True)


class Recipient(Base):
    """Payout recipient, keyed by the upstream customer id."""

    __tablename__ = "recipients"

    customer_id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False)
    account_number = Column(String(50), nullable=True)
    ifsc_code = Column(String(20), nullable=True)
    email = Column(String(200), nullable=True)
    provider_profile_id = Column(String(50), nullable=True)
    provider_account_id = Column(String(50), nullable=True)


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every payout creation, failure and retry outcome gets an entry, written
    in the same transaction as the state change. Append-only.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(100), nullable=False, index=True)
    payout_id = Column(String(32), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)
