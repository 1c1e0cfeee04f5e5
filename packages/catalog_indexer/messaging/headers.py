"""
Message header helpers.

Retry count and correlation id travel as AMQP headers. Header values may
arrive as ints, strings or raw bytes depending on the publisher.
"""

import uuid
from typing import Any, Dict, Mapping, Optional

RETRY_COUNT_HEADER = "X-Retry-Count"
CORRELATION_ID_HEADER = "X-Correlation-Id"


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8", errors="replace")
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def get_retry_count(headers: Optional[Mapping[str, Any]]) -> int:
    """Attempt count carried on a delivery, 0 when absent or unreadable."""
    if not headers:
        return 0
    value = headers.get(RETRY_COUNT_HEADER)
    if value is None:
        return 0
    return max(_to_int(value), 0)


def set_retry_count(headers: Dict[str, Any], retry_count: int) -> None:
    headers[RETRY_COUNT_HEADER] = retry_count


def get_correlation_id(headers: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(CORRELATION_ID_HEADER)
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    text = str(value).strip()
    return text or None


def set_correlation_id(headers: Dict[str, Any], correlation_id: str) -> None:
    headers[CORRELATION_ID_HEADER] = correlation_id


def resolve_correlation_id(headers: Optional[Mapping[str, Any]], message_correlation_id: Optional[str] = None) -> str:
    """Header value first, then the message property, else a new id."""
    return get_correlation_id(headers) or (message_correlation_id or None) or uuid.uuid4().hex
