"""
Messaging Module

Queue topology, broker abstraction, retry routing and the consume loop.
"""

from .headers import (
    RETRY_COUNT_HEADER,
    CORRELATION_ID_HEADER,
    get_retry_count,
    get_correlation_id,
    resolve_correlation_id,
)
from .topology import QueueTopology
from .broker import Delivery, MessageBroker, AioPikaBroker, declare_topology
from .router import RetryRouter, DeliveryOutcome
from .consumer import IngestionConsumer

__all__ = [
    'RETRY_COUNT_HEADER',
    'CORRELATION_ID_HEADER',
    'get_retry_count',
    'get_correlation_id',
    'resolve_correlation_id',
    'QueueTopology',
    'Delivery',
    'MessageBroker',
    'AioPikaBroker',
    'declare_topology',
    'RetryRouter',
    'DeliveryOutcome',
    'IngestionConsumer',
]
