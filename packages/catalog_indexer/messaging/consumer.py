"""
Ingestion Queue Consumer

Long-running consume loop. Each connection declares the topology, sets
the prefetch limit and subscribes to the ingestion queue; each delivery
is handled on its own task. When the connection drops the loop logs it,
waits ``reconnect_delay`` seconds and connects again. Only cancellation
ends the loop.
"""

import asyncio
import logging
from typing import Optional, Set

import aio_pika
from aio_pika.abc import AbstractIncomingMessage

from .broker import AioPikaBroker, Delivery, declare_topology
from .router import MessageHandler, RetryRouter
from .topology import QueueTopology

logger = logging.getLogger(__name__)


class IngestionConsumer:
    """
    RabbitMQ consumer for ingestion job messages.

    Features:
    - Automatic reconnect with fixed backoff
    - Bounded in-flight deliveries through prefetch
    - Subscription cancelled before the connection is closed
    - In-flight deliveries drained for up to ``drain_timeout`` seconds on disconnect
    """

    def __init__(
        self,
        url: str,
        topology: QueueTopology,
        handler: MessageHandler,
        max_retry_count: int = 5,
        prefetch_count: int = 1,
        reconnect_delay: float = 5.0,
        drain_timeout: float = 10.0,
    ):
        self.url = url
        self.topology = topology
        self.handler = handler
        self.max_retry_count = max_retry_count
        self.prefetch_count = prefetch_count
        self.reconnect_delay = reconnect_delay
        self.drain_timeout = drain_timeout
        self.connected = False

    @classmethod
    def from_settings(cls, settings, handler: MessageHandler) -> "IngestionConsumer":
        return cls(
            url=settings.RABBITMQ_URL,
            topology=QueueTopology.from_settings(settings),
            handler=handler,
            max_retry_count=settings.MAX_RETRY_COUNT,
            prefetch_count=settings.PREFETCH_COUNT,
            reconnect_delay=settings.RECONNECT_DELAY_SECONDS,
            drain_timeout=settings.DRAIN_TIMEOUT_SECONDS,
        )

    async def run(self) -> None:
        """Consume until cancelled, reconnecting after any failure."""
        while True:
            try:
                await self._consume()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Ingestion consumer crashed: {e}. Reconnecting in {self.reconnect_delay}s")

            await asyncio.sleep(self.reconnect_delay)

    async def _consume(self) -> None:
        connection = await aio_pika.connect(self.url)
        lost = asyncio.Event()
        in_flight: Set[asyncio.Task] = set()
        queue = None
        consumer_tag: Optional[str] = None

        try:
            connection.close_callbacks.add(lambda *args: lost.set())
            channel = await connection.channel()
            channel.close_callbacks.add(lambda *args: lost.set())
            await channel.set_qos(prefetch_count=self.prefetch_count)

            exchange, queue = await declare_topology(channel, self.topology)
            router = RetryRouter(
                broker=AioPikaBroker(exchange),
                topology=self.topology,
                max_retry_count=self.max_retry_count,
                handler=self.handler,
            )

            async def on_message(message: AbstractIncomingMessage) -> None:
                task = asyncio.create_task(self._handle(router, message))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)

            consumer_tag = await queue.consume(on_message)
            self.connected = True
            logger.info(
                f"✅ Consuming {self.topology.ingestion_queue} (prefetch {self.prefetch_count}, "
                f"max retries {self.max_retry_count})"
            )

            await lost.wait()
            raise ConnectionError("Broker connection closed")

        finally:
            self.connected = False
            if queue is not None and consumer_tag is not None and not connection.is_closed:
                try:
                    await queue.cancel(consumer_tag)
                except Exception as e:
                    logger.warning(f"Failed to cancel consumer {consumer_tag}: {e}")

            if in_flight:
                await self._drain(set(in_flight))

            await connection.close()

    async def _drain(self, tasks: Set[asyncio.Task]) -> None:
        """Give in-flight deliveries ``drain_timeout`` seconds to finish, then cancel the rest."""
        _, pending = await asyncio.wait(tasks, timeout=self.drain_timeout)
        if not pending:
            return

        logger.warning(f"Cancelling {len(pending)} in-flight deliveries; the broker will redeliver them")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _handle(self, router: RetryRouter, message: AbstractIncomingMessage) -> None:
        delivery = Delivery(
            body=message.body,
            headers=dict(message.headers or {}),
            correlation_id=message.correlation_id,
            raw=message,
        )
        try:
            await router.dispatch(delivery)
        except asyncio.CancelledError:
            logger.warning(f"Delivery {message.delivery_tag} interrupted before it was settled")
            raise
        except Exception as e:
            # Unacked deliveries are redelivered by the broker once the channel closes.
            logger.error(f"Failed to settle delivery {message.delivery_tag}: {e}")
