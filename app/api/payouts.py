"""
Payout endpoints.

POST /payouts/process-payment  Process a payment event synchronously.
POST /payouts/retry-failed     Run the retry sweep over failed payouts.
GET  /payouts                  List payout records.
GET  /payouts/failed           List failed payouts awaiting retry.
GET  /payouts/{id}             Get a single payout.
GET  /payouts/{id}/trace       Payout plus its audit trail.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.engine.errors import PayoutError
from app.engine.retry import retry_failed_payouts
from app.models.events import PaymentEvent
from app.models.payout import AuditLog, FailedPayout, PayoutRecord

logger = logging.getLogger("payout_service.api")

router = APIRouter(prefix="/payouts", tags=["payouts"])


def get_context(request: Request):
    return request.app.state.context


class PayoutDetail(BaseModel):
    id: str
    payment_id: str
    amount: float
    currency: str
    exchange_rate: float
    source_amount: float
    source_currency: str
    recipient_id: str
    status: str
    provider_transfer_id: Optional[str]
    created_at: Optional[str]


class FailedPayoutDetail(BaseModel):
    payment_id: str
    error: str
    attempts: int
    created_at: Optional[str]
    last_attempt: Optional[str]


class AuditEntry(BaseModel):
    id: int
    action: str
    details: Optional[dict] = None
    timestamp: Optional[str]


class PayoutTrace(BaseModel):
    payout: PayoutDetail
    audit_trail: list[AuditEntry]


class RetryResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    message: Optional[str] = None


def _payout_to_detail(p: PayoutRecord) -> PayoutDetail:
    return PayoutDetail(
        id=p.id,
        payment_id=p.payment_id,
        amount=p.amount,
        currency=p.currency,
        exchange_rate=p.exchange_rate,
        source_amount=p.source_amount,
        source_currency=p.source_currency,
        recipient_id=p.recipient_id,
        status=p.status,
        provider_transfer_id=p.provider_transfer_id,
        created_at=p.created_at.isoformat() if p.created_at else None,
    )


def _failed_to_detail(f: FailedPayout) -> FailedPayoutDetail:
    return FailedPayoutDetail(
        payment_id=f.payment_id,
        error=f.error,
        attempts=f.attempts,
        created_at=f.created_at.isoformat() if f.created_at else None,
        last_attempt=f.last_attempt.isoformat() if f.last_attempt else None,
    )


def _audit_to_entry(log: AuditLog) -> AuditEntry:
    details = None
    if log.details:
        try:
            details = json.loads(log.details)
        except (json.JSONDecodeError, TypeError):
            details = {"raw": log.details}
    return AuditEntry(
        id=log.id,
        action=log.action,
        details=details,
        timestamp=log.timestamp.isoformat() if log.timestamp else None,
    )


@router.post("/process-payment", status_code=202)
async def process_payment(request: Request, ctx=Depends(get_context)):
    """
    Process a payment event and answer once the orchestrator is done.

    Business failures are recorded as failed payouts and still answer 202;
    only a malformed body or an internal fault answers 500.
    """
    try:
        event = PaymentEvent.model_validate(await request.json())
        outcome = await ctx.orchestrator.process_payout(event)
    except Exception:
        logger.exception("Error processing payment")
        return JSONResponse(status_code=500, content={"error": "Payment processing failed"})

    logger.info("Payment %s via API: %s", event.payment_id, outcome.value)
    return {"status": "processing"}


@router.post("/retry-failed", response_model=RetryResponse)
async def retry_failed(ctx=Depends(get_context)):
    """Run the retry sweep and return its counts."""
    try:
        summary = await retry_failed_payouts(ctx.orchestrator, ctx.store)
    except PayoutError:
        logger.exception("Error retrying failed payouts")
        return JSONResponse(status_code=500, content={"error": "Failed to retry payouts"})

    if summary.total == 0:
        return RetryResponse(**summary.to_dict(), message="No failed payouts to retry")
    return RetryResponse(**summary.to_dict())


@router.get("", response_model=list[PayoutDetail])
async def list_payouts(ctx=Depends(get_context)):
    """List all payout records, newest first."""
    try:
        payouts = await ctx.store.list_payouts()
    except PayoutError:
        logger.exception("Error fetching payouts")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch payouts"})
    return [_payout_to_detail(p) for p in payouts]


@router.get("/failed", response_model=list[FailedPayoutDetail])
async def list_failed_payouts(ctx=Depends(get_context)):
    """List failed payouts awaiting retry."""
    try:
        failed = await ctx.store.list_failed()
    except PayoutError:
        logger.exception("Error fetching failed payouts")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch payouts"})
    return [_failed_to_detail(f) for f in failed]


@router.get("/{payout_id}", response_model=PayoutDetail)
async def get_payout(payout_id: str, ctx=Depends(get_context)):
    payout = await ctx.store.get_payout(payout_id)
    if not payout:
        raise HTTPException(status_code=404, detail=f"Payout not found: {payout_id}")
    return _payout_to_detail(payout)


@router.get("/{payout_id}/trace", response_model=PayoutTrace)
async def get_payout_trace(payout_id: str, ctx=Depends(get_context)):
    """
    Full audit trail for a payout's payment.

    Includes the failures and retries that preceded the payout, ordered
    chronologically.
    """
    payout = await ctx.store.get_payout(payout_id)
    if not payout:
        raise HTTPException(status_code=404, detail=f"Payout not found: {payout_id}")

    logs = await ctx.store.list_audit(payout.payment_id)
    return PayoutTrace(
        payout=_payout_to_detail(payout),
        audit_trail=[_audit_to_entry(log) for log in logs],
    )
