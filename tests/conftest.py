"""Shared test fixtures."""

from typing import Any, Optional

import pytest
import pytest_asyncio

from app.database import Database
from app.engine.errors import ProviderError
from app.engine.orchestrator import PayoutOrchestrator
from app.models.events import PaymentEvent
from app.models.payout import Recipient
from app.providers.base import (
    RequirementField,
    RequirementGroupEntry,
    TransferProvider,
    TransferRequirement,
    TransferResult,
)
from app.store.payout_store import PayoutStore

TRANSFER_DETAILS = {
    "transferPurpose": "PERSONAL_EXPENSES",
    "sourceOfFunds": "verification.source.of.funds.other",
    "sourceOfFundsOther": "Business revenue",
}


class FakeTransferProvider(TransferProvider):
    """
    In-memory provider. Set ``fail_stage`` to "account_details",
    "requirements" or "transfer" to make that call raise ProviderError.
    """

    def __init__(self, rate: float = 85.4613, target_currency: str = "INR"):
        self.rate = rate
        self.target_currency = target_currency
        self.fail_stage: Optional[str] = None
        self.account_details: Any = [{"id": 1, "currency": {"code": "USD"}}]
        self.requirements: list[TransferRequirement] = [
            TransferRequirement(
                type="transfer",
                fields=[
                    RequirementField(
                        name="Transfer purpose",
                        group=[RequirementGroupEntry(key="transferPurpose", required=True)],
                    )
                ],
            )
        ]
        self.transfers: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    def _maybe_fail(self, stage: str) -> None:
        if self.fail_stage == stage:
            raise ProviderError(f"Fake provider failure ({stage})", status_code=503, body="unavailable")

    async def fetch_account_details(self) -> Any:
        self._maybe_fail("account_details")
        return self.account_details

    async def get_transfer_requirements(self, target_account_id, quote_id, reference, transaction_id, details=None):
        self._maybe_fail("requirements")
        return self.requirements

    async def create_transfer(self, amount, target_account_id, quote_id, transaction_id=None, details=None):
        self._maybe_fail("transfer")
        self.transfers.append({
            "amount": amount,
            "target_account_id": target_account_id,
            "quote_id": quote_id,
            "transaction_id": transaction_id,
        })
        return TransferResult(
            transfer_id=f"tr_{len(self.transfers)}",
            status="processing",
            rate=self.rate,
            source_currency="USD",
            target_currency=self.target_currency,
            source_value=amount,
        )


def make_event(payment_id: str = "p1", **overrides) -> PaymentEvent:
    data = {
        "paymentId": payment_id,
        "amount": 100,
        "currency": "USD",
        "customerId": "c1",
        "status": "succeeded",
        "providerQuoteId": "q1",
    }
    data.update(overrides)
    return PaymentEvent.model_validate(data)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Create a fresh SQLite database file for each test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'payouts.db'}")
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture
def store(database: Database) -> PayoutStore:
    return PayoutStore(database.sessionmaker)


@pytest.fixture
def provider() -> FakeTransferProvider:
    return FakeTransferProvider()


@pytest.fixture
def orchestrator(provider: FakeTransferProvider, store: PayoutStore) -> PayoutOrchestrator:
    return PayoutOrchestrator(provider, store, reference="Payout", transfer_details=TRANSFER_DETAILS)


@pytest_asyncio.fixture
async def seeded_store(database: Database, store: PayoutStore):
    """Store pre-loaded with sample recipients."""
    async with database.sessionmaker() as session:
        session.add(Recipient(customer_id="cust_linked", name="Aarav Sharma", provider_account_id="701000001"))
        session.add(Recipient(customer_id="cust_unlinked", name="Unlinked Customer", provider_account_id=None))
        await session.commit()
    yield store


@pytest.fixture
def event_factory():
    return make_event
