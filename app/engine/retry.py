"""
Retry sweep for failed payouts.

Replays every failed payout through the orchestrator, one at a time: running
them concurrently could create two provider transfers for the same payment.
Each replay uses the original payment event stored with the failure. A row
without a stored event cannot be replayed faithfully and is counted as a
failed attempt rather than retried with made-up values.

A failure on one record is logged and counted; the sweep carries on with the
rest. Triggered on demand (POST /api/payouts/retry-failed), never on a timer.
"""

import logging
from dataclasses import asdict, dataclass

from pydantic import ValidationError as PydanticValidationError

from app.engine.orchestrator import PayoutOrchestrator
from app.models.events import PaymentEvent
from app.models.payout import FailedPayout
from app.store.payout_store import PayoutStore

logger = logging.getLogger("payout_service.retry")


@dataclass
class RetrySummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _replay_event(failed: FailedPayout) -> PaymentEvent:
    if not failed.event_payload:
        raise ValueError(f"No stored payment event for {failed.payment_id}; cannot replay")
    try:
        return PaymentEvent.model_validate_json(failed.event_payload)
    except PydanticValidationError as e:
        raise ValueError(f"Stored payment event for {failed.payment_id} is invalid: {e}") from e


async def retry_failed_payouts(orchestrator: PayoutOrchestrator, store: PayoutStore) -> RetrySummary:
    """
    Re-drive every failed payout through the orchestrator.

    For each record: if a payout exists afterwards the failed row is
    removed, otherwise its attempt count goes up by one and last_attempt is
    stamped.

    Returns:
        RetrySummary with total, succeeded and failed counts.
    """
    failed_payouts = await store.list_failed()
    if not failed_payouts:
        return RetrySummary()

    summary = RetrySummary(total=len(failed_payouts))
    logger.info("Retrying %d failed payouts", summary.total)

    for failed in failed_payouts:
        try:
            event = _replay_event(failed)
            await orchestrator.process_payout(event)

            if await store.payout_exists(failed.payment_id):
                await store.resolve_failed(failed.payment_id, attempts=failed.attempts)
                summary.succeeded += 1
                continue

            await store.record_failed_attempt(failed.payment_id)
            summary.failed += 1

        except Exception as e:
            logger.error("Retry failed for payout %s: %s", failed.payment_id, e)
            summary.failed += 1
            try:
                await store.record_failed_attempt(failed.payment_id, error=str(e))
            except Exception:
                logger.exception("Could not update attempts for payout %s", failed.payment_id)

    logger.info(
        "Retry summary: total=%d, succeeded=%d, failed=%d",
        summary.total,
        summary.succeeded,
        summary.failed,
    )
    return summary
