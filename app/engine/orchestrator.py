"""
Payout orchestrator: turns a succeeded payment into a provider transfer.

The flow for each payment event:

  1. Dedup check (a payout already exists for the payment → no-op)
  2. Account lookup (provider account details, recipient target account)
  3. Transfer requirements check (unmet fields → ValidationError)
  4. Transfer creation via the provider
  5. Payout record insert (clears any failed-payout row for the payment)

Any failure in steps 2-5 is recorded as a FailedPayout with the original
event attached, for the retry sweep to replay. Nothing propagates to the
caller: once process_payout returns, the event is consumed.

Idempotency guarantees:
  - A per-payment lock serializes concurrent deliveries of the same event
  - payouts.payment_id is UNIQUE, so a second insert is rejected by the database
  - The provider idempotency key is derived from the payment id, so a replayed
    transfer creation is recognised by the provider
"""

import logging
import uuid
from typing import Any, Optional

from app.engine.errors import PayoutError, RecipientOrAccountLookupError, ValidationError
from app.engine.locks import KeyedLock
from app.engine.requirements import check_requirements
from app.models.enums import PayoutStatus, ProcessOutcome
from app.models.events import PaymentEvent
from app.models.payout import PayoutRecord
from app.providers.base import TransferProvider, TransferResult
from app.store.payout_store import PayoutStore

logger = logging.getLogger("payout_service.orchestrator")

_TRANSACTION_NAMESPACE = uuid.UUID("6f1c8a4e-3b1d-4d0a-9c7e-2f5b8e9a1c34")


def transaction_id_for(payment_id: str) -> str:
    """Stable provider idempotency key for a payment."""
    return str(uuid.uuid5(_TRANSACTION_NAMESPACE, payment_id))


class PayoutOrchestrator:
    def __init__(
        self,
        provider: TransferProvider,
        store: PayoutStore,
        reference: str = "Payout",
        transfer_details: Optional[dict[str, str]] = None,
    ):
        self.provider = provider
        self.store = store
        self.reference = reference
        self.transfer_details = {"reference": reference, **(transfer_details or {})}
        self._locks = KeyedLock()

    async def process_payout(self, event: PaymentEvent) -> ProcessOutcome:
        """
        Process a single payment event. Idempotent per payment id; never raises.

        Returns:
            CREATED, DUPLICATE, SKIPPED (payment not succeeded) or FAILED.
        """
        if not event.is_succeeded:
            logger.info("Ignoring payment %s with status %r", event.payment_id, event.status)
            return ProcessOutcome.SKIPPED

        async with self._locks.hold(event.payment_id):
            try:
                if await self.store.payout_exists(event.payment_id):
                    logger.info("Payout already exists for payment %s", event.payment_id)
                    return ProcessOutcome.DUPLICATE

                result = await self._execute_transfer(event)
                return await self._save_payout(event, result)

            except Exception as e:
                return await self._record_failure(event, e)

    async def _execute_transfer(self, event: PaymentEvent) -> TransferResult:
        account_details = await self.provider.fetch_account_details()
        if not account_details:
            raise RecipientOrAccountLookupError("Provider returned no account details")
        logger.debug("Account details for payment %s: %s", event.payment_id, _summarize(account_details))

        target_account_id = await self._resolve_target_account(event.customer_id)
        transaction_id = transaction_id_for(event.payment_id)

        requirements = await self.provider.get_transfer_requirements(
            target_account_id,
            event.provider_quote_id,
            self.reference,
            transaction_id,
            details=self.transfer_details,
        )
        check = check_requirements(requirements, self.transfer_details)
        if not check.satisfied:
            raise ValidationError(check.unmet)

        return await self.provider.create_transfer(
            event.amount,
            target_account_id,
            event.provider_quote_id,
            transaction_id=transaction_id,
            details=self.transfer_details,
        )

    async def _resolve_target_account(self, customer_id: str) -> str:
        recipient = await self.store.get_recipient(customer_id)
        if recipient is None:
            # Unregistered customers are addressed by their id directly
            return customer_id
        if not recipient.provider_account_id:
            raise RecipientOrAccountLookupError(
                f"Recipient {customer_id} has no provider account on file"
            )
        return recipient.provider_account_id

    async def _save_payout(self, event: PaymentEvent, result: TransferResult) -> ProcessOutcome:
        record = PayoutRecord(
            id=uuid.uuid4().hex,
            payment_id=event.payment_id,
            amount=event.amount * result.rate,
            currency=result.target_currency or event.currency,
            exchange_rate=result.rate,
            source_amount=event.amount,
            source_currency=event.currency,
            recipient_id=event.customer_id,
            status=PayoutStatus.PROCESSED.value,
            provider_transfer_id=result.transfer_id,
        )
        if not await self.store.create_payout(record):
            return ProcessOutcome.DUPLICATE

        logger.info(
            "Payout %s created for payment %s: %.2f %s at rate %s (transfer %s)",
            record.id,
            event.payment_id,
            record.amount,
            record.currency,
            record.exchange_rate,
            result.transfer_id,
        )
        return ProcessOutcome.CREATED

    async def _record_failure(self, event: PaymentEvent, error: Exception) -> ProcessOutcome:
        if isinstance(error, PayoutError):
            message = str(error)
            logger.warning("Payout failed for payment %s: %s", event.payment_id, message)
        else:
            message = f"Unexpected error: {error}"
            logger.exception("Unexpected error processing payment %s", event.payment_id)

        try:
            await self.store.record_failure(event, message)
        except PayoutError:
            logger.exception("Could not record failed payout for payment %s", event.payment_id)
        return ProcessOutcome.FAILED


def _summarize(data: Any) -> str:
    text = str(data)
    return text if len(text) <= 200 else text[:200] + "..."
