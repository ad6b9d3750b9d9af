"""
RabbitMQ consumer for payment events.

Listens on a durable queue for envelopes of the form

  {"event": "payment.created", "data": {"paymentId": ..., "status": "succeeded", ...}}

and feeds succeeded payments to the orchestrator. Messages are handled one
at a time on a single task and acknowledged after process_payout returns,
whatever the outcome (process_payout records its own failures). Messages
that cannot be parsed are rejected without requeue so they do not loop.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractIncomingMessage, AbstractQueue, AbstractRobustConnection
from pydantic import ValidationError as PydanticValidationError

from app.engine.orchestrator import PayoutOrchestrator
from app.models.enums import PAYMENT_CREATED_EVENT, PAYMENT_SUCCEEDED
from app.models.events import PaymentEvent

logger = logging.getLogger("payout_service.consumer")


class MessageDisposition(str, Enum):
    PROCESSED = "processed"
    IGNORED = "ignored"
    MALFORMED = "malformed"


class PaymentEventConsumer:
    def __init__(self, orchestrator: PayoutOrchestrator, url: str, queue_name: str):
        self.orchestrator = orchestrator
        self.url = url
        self.queue_name = queue_name
        self._connection: Optional[AbstractRobustConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._connected = False

    def is_ready(self) -> bool:
        return self._connected

    async def handle_body(self, body: bytes) -> MessageDisposition:
        """Parse one message body and process it if it is a succeeded payment."""
        try:
            envelope = json.loads(body)
            if not isinstance(envelope, dict):
                raise ValueError("message is not a JSON object")
        except ValueError as e:
            logger.error("Dropping unparseable message: %s", e)
            return MessageDisposition.MALFORMED

        data = envelope.get("data")
        if not isinstance(data, dict):
            logger.error("Dropping message without a data object")
            return MessageDisposition.MALFORMED

        if envelope.get("event") != PAYMENT_CREATED_EVENT or data.get("status") != PAYMENT_SUCCEEDED:
            logger.debug("Ignoring event %r", envelope.get("event"))
            return MessageDisposition.IGNORED

        try:
            event = PaymentEvent.model_validate(data)
        except PydanticValidationError as e:
            logger.error("Dropping invalid payment event: %s", e)
            return MessageDisposition.MALFORMED

        outcome = await self.orchestrator.process_payout(event)
        logger.info("Payment %s from queue: %s", event.payment_id, outcome.value)
        return MessageDisposition.PROCESSED

    async def handle_message(self, message: AbstractIncomingMessage) -> None:
        disposition = await self.handle_body(message.body)
        if disposition is MessageDisposition.MALFORMED:
            await message.reject(requeue=False)
        else:
            await message.ack()

    async def start(self) -> bool:
        """Connect and start the receive loop. Returns False if the broker is unreachable."""
        try:
            self._connection = await aio_pika.connect_robust(self.url)
            channel = await self._connection.channel()
            await channel.set_qos(prefetch_count=1)
            queue = await channel.declare_queue(self.queue_name, durable=True)
        except Exception as e:
            logger.warning("Failed to connect to RabbitMQ, REST endpoint still available: %s", e)
            if self._connection is not None:
                await self._connection.close()
                self._connection = None
            self._connected = False
            return False

        self._connected = True
        self._task = asyncio.create_task(self._consume(queue), name="payment-event-consumer")
        self._task.add_done_callback(self._on_consume_done)
        logger.info("Payout consumer connected to RabbitMQ queue %s", self.queue_name)
        return True

    async def _consume(self, queue: AbstractQueue) -> None:
        async with queue.iterator() as messages:
            async for message in messages:
                try:
                    await self.handle_message(message)
                except Exception:
                    logger.exception("Error handling queue message")

    def _on_consume_done(self, task: asyncio.Task) -> None:
        self._connected = False
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Payout consumer stopped: %r", error)
        else:
            logger.warning("Payout consumer stopped: queue iterator closed")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Payout consumer had already failed: %r", e)
            self._task = None
        if self._connection is not None:
            try:
                await self._connection.close()
            except Exception as e:
                logger.warning("Error closing RabbitMQ connection: %s", e)
            self._connection = None
        self._connected = False
