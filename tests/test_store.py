"""Tests for the payout store's uniqueness and error handling."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.engine.errors import StorageError
from app.models.enums import ProcessOutcome
from app.models.payout import AuditLog, FailedPayout, PayoutRecord


def _record(payment_id: str = "p1", record_id: str = "payout-1") -> PayoutRecord:
    return PayoutRecord(
        id=record_id,
        payment_id=payment_id,
        amount=8546.13,
        currency="INR",
        exchange_rate=85.4613,
        source_amount=100,
        source_currency="USD",
        recipient_id="c1",
        status="processed",
        provider_transfer_id="tr_1",
    )


@pytest.mark.asyncio
async def test_second_payout_for_payment_is_rejected_by_constraint(database, store):
    async with database.sessionmaker() as session:
        session.add(_record(record_id="payout-1"))
        session.add(FailedPayout(payment_id="p1", error="earlier failure", attempts=3))
        await session.commit()

    inserted = await store.create_payout(_record(record_id="payout-2"))

    assert inserted is False
    assert [p.id for p in await store.list_payouts()] == ["payout-1"]
    failed = await store.get_failed("p1")
    assert failed is not None
    assert failed.attempts == 3
    assert failed.error == "earlier failure"
    assert await store.list_audit("p1") == []


@pytest.mark.asyncio
async def test_create_payout_clears_failure_in_same_transaction(database, store):
    async with database.sessionmaker() as session:
        session.add(FailedPayout(payment_id="p1", error="earlier failure", attempts=2))
        await session.commit()

    assert await store.create_payout(_record()) is True

    assert await store.get_failed("p1") is None
    async with database.sessionmaker() as session:
        actions = (await session.execute(select(AuditLog.action))).scalars().all()
    assert actions == ["payout.created"]


@pytest.mark.asyncio
async def test_database_errors_surface_as_storage_error(store, monkeypatch):
    def broken_session():
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "_sessionmaker", broken_session)

    with pytest.raises(StorageError):
        await store.list_payouts()


@pytest.mark.asyncio
async def test_race_past_existence_check_reports_duplicate(orchestrator, store, provider, event_factory, monkeypatch):
    await orchestrator.process_payout(event_factory("p1"))

    async def not_found(payment_id):
        return False

    monkeypatch.setattr(store, "payout_exists", not_found)

    outcome = await orchestrator.process_payout(event_factory("p1"))

    assert outcome == ProcessOutcome.DUPLICATE
    assert len(await store.list_payouts()) == 1
    assert await store.get_failed("p1") is None


@pytest.mark.asyncio
async def test_storage_error_on_insert_records_failure(orchestrator, store, event_factory, monkeypatch):
    async def fail_insert(record):
        raise StorageError("Storage failure during payout insert: disk I/O error")

    monkeypatch.setattr(store, "create_payout", fail_insert)

    outcome = await orchestrator.process_payout(event_factory("p1"))

    assert outcome == ProcessOutcome.FAILED
    failed = await store.get_failed("p1")
    assert failed is not None
    assert "disk I/O error" in failed.error
    assert await store.payout_exists("p1") is False


@pytest.mark.asyncio
async def test_storage_error_while_recording_failure_does_not_raise(orchestrator, store, provider, event_factory, monkeypatch):
    provider.fail_stage = "transfer"

    async def fail_record(event, error):
        raise StorageError("Storage failure during failed payout upsert")

    monkeypatch.setattr(store, "record_failure", fail_record)

    outcome = await orchestrator.process_payout(event_factory("p1"))

    assert outcome == ProcessOutcome.FAILED
    assert await store.get_failed("p1") is None
