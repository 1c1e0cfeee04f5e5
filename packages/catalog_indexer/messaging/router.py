"""
Retry Router

Decides what happens to a delivery after processing. Failures are
re-published with an incremented ``X-Retry-Count`` header to the retry
queue, or to the dead-letter queue once the retry budget is spent, and
the original delivery is acknowledged. If that publish fails the
delivery is requeued instead so the message is never lost.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable

from ..models.messages import IngestionJobMessage
from ..observability import delivery_context, get_tracer
from .broker import Delivery, MessageBroker
from .headers import get_retry_count, resolve_correlation_id, set_correlation_id, set_retry_count
from .topology import QueueTopology

logger = logging.getLogger(__name__)

MessageHandler = Callable[[IngestionJobMessage, int], Awaitable[object]]


class DeliveryOutcome(str, Enum):
    ACKED = "acked"
    RETRIED = "retried"
    DEAD_LETTERED = "dead_lettered"
    REQUEUED = "requeued"


class RetryRouter:
    """
    Runs the handler for one delivery and applies the ack/retry decision.

    Args:
        broker: Broker used for ack, requeue and re-publish
        topology: Queue names
        max_retry_count: Re-publishes allowed before dead-lettering
        handler: Coroutine called with (message, attempt)
    """

    def __init__(self, broker: MessageBroker, topology: QueueTopology, max_retry_count: int,
                 handler: MessageHandler, tracer=None):
        self.broker = broker
        self.topology = topology
        self.max_retry_count = max_retry_count
        self.handler = handler
        self.tracer = tracer or get_tracer()

    async def dispatch(self, delivery: Delivery) -> DeliveryOutcome:
        attempt = get_retry_count(delivery.headers)
        correlation_id = resolve_correlation_id(delivery.headers, delivery.correlation_id)

        with delivery_context(correlation_id):
            with self.tracer.start_as_current_span("IngestionJob") as span:
                span.set_attribute("messaging.retry_count", attempt)
                span.set_attribute("correlation_id", correlation_id)
                try:
                    message = IngestionJobMessage.from_body(delivery.body)
                    span.set_attribute("tenant_id", message.tenant_id)
                    await self.handler(message, attempt)
                except Exception as e:
                    span.record_exception(e)
                    logger.error(f"Ingestion delivery failed on attempt {attempt}: {e}")
                    return await self._route_failure(delivery, attempt, correlation_id)

                await self.broker.ack(delivery)
                return DeliveryOutcome.ACKED

    async def _route_failure(self, delivery: Delivery, attempt: int, correlation_id: str) -> DeliveryOutcome:
        next_attempt = attempt + 1
        if next_attempt <= self.max_retry_count:
            destination = self.topology.retry_queue
            outcome = DeliveryOutcome.RETRIED
        else:
            destination = self.topology.dead_letter_queue
            outcome = DeliveryOutcome.DEAD_LETTERED

        headers = dict(delivery.headers or {})
        set_retry_count(headers, next_attempt)
        set_correlation_id(headers, correlation_id)

        try:
            await self.broker.publish(destination, delivery.body, headers, correlation_id)
        except Exception as e:
            logger.error(f"Failed to publish to {destination}, requeueing original delivery: {e}")
            await self.broker.nack_requeue(delivery)
            return DeliveryOutcome.REQUEUED

        await self.broker.ack(delivery)

        if outcome is DeliveryOutcome.DEAD_LETTERED:
            logger.warning(f"Message dead-lettered to {destination} after {attempt} retries")
        else:
            logger.info(f"Message scheduled for retry {next_attempt}/{self.max_retry_count}")
        return outcome
