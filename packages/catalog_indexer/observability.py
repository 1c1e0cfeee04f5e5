"""
Logging, Delivery Context and Tracing

Each queue delivery runs inside a delivery context that carries the
correlation id and tenant id in ``contextvars``. A logging filter stamps
both onto every record, and spans are opened through the OpenTelemetry
API (no-ops unless an SDK is configured by the host process).
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from opentelemetry import trace

TRACER_NAME = "catalog_indexer.ingestion"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[cid=%(correlation_id)s tenant=%(tenant_id)s] %(message)s"
)

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_tenant_id: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def get_tenant_id() -> Optional[str]:
    return _tenant_id.get()


@contextmanager
def delivery_context(correlation_id: Optional[str], tenant_id: Optional[str] = None) -> Iterator[None]:
    """
    Bind correlation and tenant ids for the duration of one delivery.

    Both values are reset on exit, including when the body raises, so
    nothing leaks into the next delivery handled by the same task.
    """
    correlation_token = _correlation_id.set(correlation_id)
    tenant_token = _tenant_id.set(tenant_id)
    try:
        yield
    finally:
        _tenant_id.reset(tenant_token)
        _correlation_id.reset(correlation_token)


@contextmanager
def tenant_scope(tenant_id: Optional[str]) -> Iterator[None]:
    """Bind the tenant id once it is known inside an open delivery context."""
    token = _tenant_id.set(tenant_id)
    try:
        yield
    finally:
        _tenant_id.reset(token)


class DeliveryContextFilter(logging.Filter):
    """Attach ``correlation_id`` and ``tenant_id`` attributes to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or "-"
        record.tenant_id = _tenant_id.get() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging with the delivery context filter.

    This function is idempotent - safe to call multiple times.
    """
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root_logger.setLevel(level)

    for handler in root_logger.handlers:
        if not any(isinstance(f, DeliveryContextFilter) for f in handler.filters):
            handler.addFilter(DeliveryContextFilter())


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)
