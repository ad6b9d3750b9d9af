"""
Service context: the initialized database, store, provider client,
orchestrator and queue consumer, built once at startup and passed to the
components that need them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.config import Settings
from app.database import Database
from app.engine.orchestrator import PayoutOrchestrator
from app.intake.consumer import PaymentEventConsumer
from app.providers.base import TransferProvider
from app.providers.mock_provider import MockTransferProvider
from app.providers.wise import WiseTransferClient
from app.store.payout_store import PayoutStore

logger = logging.getLogger("payout_service.context")


@dataclass
class ServiceContext:
    settings: Settings
    database: Database
    store: PayoutStore
    provider: TransferProvider
    orchestrator: PayoutOrchestrator
    consumer: Optional[PaymentEventConsumer] = None

    async def close(self) -> None:
        try:
            if self.consumer is not None:
                await self.consumer.stop()
        finally:
            try:
                await self.provider.aclose()
            finally:
                await self.database.dispose()


def build_provider(settings: Settings) -> TransferProvider:
    mode = settings.provider_mode.strip().lower()
    if mode == "wise":
        if not (settings.wise_api_key and settings.wise_profile_id):
            raise ValueError("WISE_API_KEY and WISE_PROFILE_ID are required when PROVIDER_MODE=wise")
        return WiseTransferClient(
            api_key=settings.wise_api_key,
            base_url=settings.wise_api_url,
            profile_id=settings.wise_profile_id,
            timeout_s=settings.provider_timeout_s,
        )
    if mode == "mock":
        return MockTransferProvider(
            failure_rate=settings.mock_failure_rate,
            latency_ms=settings.mock_latency_ms,
            rate=settings.mock_exchange_rate,
            target_currency=settings.mock_target_currency,
        )
    raise ValueError(f"Unknown PROVIDER_MODE: {settings.provider_mode}")


def build_orchestrator(settings: Settings, provider: TransferProvider, store: PayoutStore) -> PayoutOrchestrator:
    return PayoutOrchestrator(
        provider,
        store,
        reference=settings.transfer_reference,
        transfer_details={
            "transferPurpose": settings.transfer_purpose,
            "sourceOfFunds": settings.source_of_funds,
            "sourceOfFundsOther": settings.source_of_funds_other,
        },
    )


async def create_context(
    settings: Settings,
    provider: Optional[TransferProvider] = None,
    start_consumer: bool = True,
) -> ServiceContext:
    """Initialize every collaborator. The consumer only starts if enabled and reachable."""
    database = Database(settings.database_url)
    await database.init()
    store = PayoutStore(database.sessionmaker)
    provider = provider or build_provider(settings)
    orchestrator = build_orchestrator(settings, provider, store)

    consumer = None
    if start_consumer and settings.queue_enabled:
        consumer = PaymentEventConsumer(orchestrator, settings.rabbitmq_url, settings.queue_name)
        await consumer.start()

    logger.info("Service context ready (provider=%s, queue=%s)", provider.name, bool(consumer and consumer.is_ready()))
    return ServiceContext(
        settings=settings,
        database=database,
        store=store,
        provider=provider,
        orchestrator=orchestrator,
        consumer=consumer,
    )
