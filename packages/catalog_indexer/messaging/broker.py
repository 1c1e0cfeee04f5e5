"""
Message Broker Interface

The retry router only needs to acknowledge, requeue and publish, so the
broker is reduced to those three operations. ``AioPikaBroker`` implements
them on top of an aio-pika channel.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import aio_pika
from aio_pika import DeliveryMode, ExchangeType
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

from .topology import QueueTopology

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass
class Delivery:
    """A received message, independent of the broker client library."""
    body: bytes
    headers: Dict[str, Any] = field(default_factory=dict)
    correlation_id: Optional[str] = None
    raw: Any = None


class MessageBroker(ABC):

    @abstractmethod
    async def ack(self, delivery: Delivery) -> None:
        """Acknowledge a single delivery."""
        pass

    @abstractmethod
    async def nack_requeue(self, delivery: Delivery) -> None:
        """Reject a delivery and return it to its queue."""
        pass

    @abstractmethod
    async def publish(
        self,
        destination: str,
        body: bytes,
        headers: Dict[str, Any],
        correlation_id: Optional[str] = None,
    ) -> None:
        """
        Publish a persistent message.

        Args:
            destination: Routing key (queue name) on the ingestion exchange
            body: Message body bytes
            headers: Message headers
            correlation_id: Value for the correlation id message property
        """
        pass


class AioPikaBroker(MessageBroker):
    """MessageBroker over an aio-pika exchange; deliveries carry the aio-pika message in ``raw``."""

    def __init__(self, exchange: AbstractExchange):
        self.exchange = exchange

    async def ack(self, delivery: Delivery) -> None:
        await delivery.raw.ack()

    async def nack_requeue(self, delivery: Delivery) -> None:
        await delivery.raw.nack(requeue=True)

    async def publish(
        self,
        destination: str,
        body: bytes,
        headers: Dict[str, Any],
        correlation_id: Optional[str] = None,
    ) -> None:
        message = aio_pika.Message(
            body=body,
            headers=headers,
            content_type=JSON_CONTENT_TYPE,
            correlation_id=correlation_id,
            delivery_mode=DeliveryMode.PERSISTENT,
        )
        await self.exchange.publish(message, routing_key=destination)


async def declare_topology(
    channel: AbstractChannel, topology: QueueTopology
) -> Tuple[AbstractExchange, AbstractQueue]:
    """
    Declare the exchange and the main, retry and dead-letter queues.

    Returns:
        Tuple of (exchange, main ingestion queue)
    """
    exchange = await channel.declare_exchange(topology.exchange, ExchangeType.DIRECT, durable=True)

    ingestion_queue = await channel.declare_queue(
        topology.ingestion_queue,
        durable=True,
        arguments=topology.ingestion_queue_arguments(),
    )
    await ingestion_queue.bind(exchange, routing_key=topology.ingestion_queue)

    retry_queue = await channel.declare_queue(
        topology.retry_queue,
        durable=True,
        arguments=topology.retry_queue_arguments(),
    )
    await retry_queue.bind(exchange, routing_key=topology.retry_queue)

    dead_letter_queue = await channel.declare_queue(topology.dead_letter_queue, durable=True)
    await dead_letter_queue.bind(exchange, routing_key=topology.dead_letter_queue)

    logger.info(
        f"📦 Declared ingestion topology on {topology.exchange}: "
        f"{topology.ingestion_queue}, {topology.retry_queue}, {topology.dead_letter_queue}"
    )
    return exchange, ingestion_queue
