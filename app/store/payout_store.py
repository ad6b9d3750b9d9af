"""
Persistence for payouts, failed payouts, recipients and the audit trail.

Each public method runs in its own session and transaction. Database errors
surface as StorageError; the one expected conflict, a second payout for the
same payment, is reported by create_payout returning False.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.audit.logger import log_event
from app.engine.errors import StorageError
from app.models.enums import AuditAction
from app.models.events import PaymentEvent
from app.models.payout import AuditLog, FailedPayout, PayoutRecord, Recipient

logger = logging.getLogger("payout_service.store")


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageError(f"Storage failure during {operation}: {e}") from e


class PayoutStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    # ─── Payouts ──────────────────────────────────────────────────────

    async def get_payout_by_payment(self, payment_id: str) -> Optional[PayoutRecord]:
        with _storage_errors("payout lookup"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(PayoutRecord).where(PayoutRecord.payment_id == payment_id)
                )
                return result.scalar_one_or_none()

    async def payout_exists(self, payment_id: str) -> bool:
        return await self.get_payout_by_payment(payment_id) is not None

    async def get_payout(self, payout_id: str) -> Optional[PayoutRecord]:
        with _storage_errors("payout fetch"):
            async with self._sessionmaker() as session:
                return await session.get(PayoutRecord, payout_id)

    async def list_payouts(self) -> list[PayoutRecord]:
        with _storage_errors("payout listing"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(PayoutRecord).order_by(PayoutRecord.created_at.desc())
                )
                return list(result.scalars().all())

    async def create_payout(self, record: PayoutRecord) -> bool:
        """
        Insert a payout unless one already exists for its payment.

        Any failed-payout row for the same payment is deleted in the same
        transaction, so a payment never has both.

        Returns:
            True if inserted, False if the unique constraint on payment_id
            rejected it.
        """
        with _storage_errors("payout insert"):
            try:
                async with self._sessionmaker() as session:
                    async with session.begin():
                        session.add(record)
                        await session.flush()
                        cleared = await session.execute(
                            delete(FailedPayout).where(FailedPayout.payment_id == record.payment_id)
                        )
                        log_event(
                            session,
                            AuditAction.PAYOUT_CREATED,
                            payment_id=record.payment_id,
                            payout_id=record.id,
                            details={
                                "amount": record.amount,
                                "currency": record.currency,
                                "exchange_rate": record.exchange_rate,
                                "provider_transfer_id": record.provider_transfer_id,
                                "cleared_failure": bool(cleared.rowcount),
                            },
                        )
            except IntegrityError:
                logger.info("Payout already recorded for payment %s", record.payment_id)
                return False
        return True

    # ─── Failed payouts ───────────────────────────────────────────────

    async def record_failure(self, event: PaymentEvent, error: str) -> FailedPayout:
        """
        Create or refresh the failed-payout row for a payment.

        A new row starts at attempts=1. An existing row keeps its attempt
        count (the retry sweep owns it) but gets the latest error and event.
        """
        with _storage_errors("failed payout upsert"):
            async with self._sessionmaker() as session:
                async with session.begin():
                    failed = await session.get(FailedPayout, event.payment_id)
                    if failed is None:
                        failed = FailedPayout(
                            payment_id=event.payment_id,
                            error=error,
                            event_payload=event.to_json(),
                            attempts=1,
                        )
                        session.add(failed)
                    else:
                        failed.error = error
                        failed.event_payload = event.to_json()
                    log_event(
                        session,
                        AuditAction.PAYOUT_FAILED,
                        payment_id=event.payment_id,
                        details={"error": error[:500], "attempts": failed.attempts},
                    )
                return failed

    async def get_failed(self, payment_id: str) -> Optional[FailedPayout]:
        with _storage_errors("failed payout fetch"):
            async with self._sessionmaker() as session:
                return await session.get(FailedPayout, payment_id)

    async def list_failed(self) -> list[FailedPayout]:
        with _storage_errors("failed payout listing"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(FailedPayout).order_by(FailedPayout.created_at.asc())
                )
                return list(result.scalars().all())

    async def resolve_failed(self, payment_id: str, attempts: int) -> bool:
        """Delete the failed-payout row after a successful retry. Returns True if a row was removed."""
        with _storage_errors("failed payout delete"):
            async with self._sessionmaker() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(FailedPayout).where(FailedPayout.payment_id == payment_id)
                    )
                    log_event(
                        session,
                        AuditAction.RETRY_SUCCEEDED,
                        payment_id=payment_id,
                        details={"attempts": attempts},
                    )
                return bool(result.rowcount)

    async def record_failed_attempt(self, payment_id: str, error: Optional[str] = None) -> Optional[FailedPayout]:
        """Bump attempts by one and stamp last_attempt. Returns None if the row is gone."""
        with _storage_errors("failed payout update"):
            async with self._sessionmaker() as session:
                async with session.begin():
                    failed = await session.get(FailedPayout, payment_id)
                    if failed is None:
                        return None
                    failed.attempts = (failed.attempts or 0) + 1
                    failed.last_attempt = datetime.now(timezone.utc)
                    if error:
                        failed.error = error
                    log_event(
                        session,
                        AuditAction.RETRY_FAILED,
                        payment_id=payment_id,
                        details={"attempts": failed.attempts, "error": failed.error[:500]},
                    )
                return failed

    # ─── Recipients & audit ───────────────────────────────────────────

    async def get_recipient(self, customer_id: str) -> Optional[Recipient]:
        with _storage_errors("recipient lookup"):
            async with self._sessionmaker() as session:
                return await session.get(Recipient, customer_id)

    async def list_audit(self, payment_id: str) -> list[AuditLog]:
        with _storage_errors("audit listing"):
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(AuditLog)
                    .where(AuditLog.payment_id == payment_id)
                    .order_by(AuditLog.id.asc())
                )
                return list(result.scalars().all())
