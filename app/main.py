"""
Payout Service: turns succeeded payments into Wise payouts.

Payment events arrive on a RabbitMQ queue or through
POST /api/payouts/process-payment; each is turned into at most one provider
transfer and one payout record. Failures are kept for the on-demand retry
sweep.

Start the server:
    uvicorn app.main:app --reload

Or directly (listens on PORT):
    python -m app.main
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.health import router as health_router
from app.api.payouts import router as payouts_router
from app.config import settings
from app.context import create_context

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service context on startup and tear it down on shutdown."""
    ctx = await create_context(settings)
    app.state.context = ctx
    try:
        yield
    finally:
        await ctx.close()


app = FastAPI(
    title="Payout Service",
    description=(
        "Converts succeeded payments into outbound payouts through a transfer provider, "
        "with per-payment idempotency, recorded failures and an on-demand retry sweep."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(payouts_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
