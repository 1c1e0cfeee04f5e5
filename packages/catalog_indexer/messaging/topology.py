"""
Ingestion queue topology.

One durable direct exchange with three queues, each bound under its own
name:

- main queue: dead-letters rejected messages to the dead-letter queue
- retry queue: holds messages for ``RETRY_DELAY_MS`` then dead-letters
  them back onto the main queue
- dead-letter queue: terminal
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class QueueTopology:
    exchange: str
    ingestion_queue: str
    retry_queue: str
    dead_letter_queue: str
    retry_delay_ms: int

    @classmethod
    def from_settings(cls, settings) -> "QueueTopology":
        return cls(
            exchange=settings.RABBITMQ_EXCHANGE,
            ingestion_queue=settings.INGESTION_QUEUE,
            retry_queue=settings.RETRY_QUEUE,
            dead_letter_queue=settings.DEAD_LETTER_QUEUE,
            retry_delay_ms=settings.RETRY_DELAY_MS,
        )

    def ingestion_queue_arguments(self) -> Dict[str, Any]:
        return {
            "x-dead-letter-exchange": self.exchange,
            "x-dead-letter-routing-key": self.dead_letter_queue,
        }

    def retry_queue_arguments(self) -> Dict[str, Any]:
        return {
            "x-dead-letter-exchange": self.exchange,
            "x-dead-letter-routing-key": self.ingestion_queue,
            "x-message-ttl": self.retry_delay_ms,
        }
