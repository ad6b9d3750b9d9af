"""Liveness endpoint."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    ctx = getattr(request.app.state, "context", None)
    consumer = ctx.consumer if ctx is not None else None
    return {
        "status": "ok",
        "provider": ctx.provider.name if ctx is not None else None,
        "queue_consumer": bool(consumer and consumer.is_ready()),
    }
