"""
Mock transfer provider for local runs.

Simulates the Wise API surface:
  - Configurable latency (default 100ms)
  - Configurable failure rate (default 5%)
  - A fixed quoted exchange rate and settlement currency
  - Realistic transfer ids

Selected with PROVIDER_MODE=mock. The real client lives in app.providers.wise.
"""

import asyncio
import random
from typing import Any, Optional

from app.config import settings
from app.engine.errors import ProviderError
from app.providers.base import (
    RequirementField,
    RequirementGroupEntry,
    TransferProvider,
    TransferRequirement,
    TransferResult,
)


class MockTransferProvider(TransferProvider):
    def __init__(
        self,
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
        rate: Optional[float] = None,
        target_currency: Optional[str] = None,
    ):
        self._failure_rate = failure_rate if failure_rate is not None else settings.mock_failure_rate
        self._latency_ms = latency_ms if latency_ms is not None else settings.mock_latency_ms
        self._rate = rate if rate is not None else settings.mock_exchange_rate
        self._target_currency = target_currency or settings.mock_target_currency
        self._next_id = random.randint(10_000_000, 19_999_999)

    @property
    def name(self) -> str:
        return "mock_provider"

    async def _simulate(self, stage: str) -> None:
        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        if random.random() < self._failure_rate:
            raise ProviderError(
                f"Mock transient error ({stage}): service temporarily unavailable",
                status_code=503,
                body='{"error": "service_unavailable"}',
            )

    async def fetch_account_details(self) -> Any:
        await self._simulate("Account Details")
        return [{"id": 1, "currency": {"code": "USD"}, "status": "ACTIVE"}]

    async def get_transfer_requirements(
        self,
        target_account_id: str,
        quote_id: str,
        reference: str,
        transaction_id: str,
        details: Optional[dict[str, str]] = None,
    ) -> list[TransferRequirement]:
        await self._simulate("Transfer Requirements")
        return [
            TransferRequirement(
                type="transfer",
                fields=[
                    RequirementField(
                        name="Transfer reference",
                        group=[RequirementGroupEntry(key="reference", name="Transfer reference")],
                    ),
                    RequirementField(
                        name="Transfer purpose",
                        group=[RequirementGroupEntry(key="transferPurpose", required=True)],
                    ),
                ],
            )
        ]

    async def create_transfer(
        self,
        amount: float,
        target_account_id: str,
        quote_id: str,
        transaction_id: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> TransferResult:
        await self._simulate("Transfer")
        self._next_id += 1
        return TransferResult(
            transfer_id=str(self._next_id),
            status="incoming_payment_waiting",
            rate=self._rate,
            source_currency="USD",
            target_currency=self._target_currency,
            source_value=amount,
            target_value=round(amount * self._rate, 2),
        )
