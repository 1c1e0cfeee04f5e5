"""
Bulk Write Client

Serializes product documents into the newline-delimited bulk format,
posts them and turns the response into per-document failure counts.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..errors import SearchEngineError
from .transport import NDJSON_CONTENT_TYPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkDocument:
    """One document addressed by its own id."""
    id: str
    body: Dict[str, Any]


@dataclass(frozen=True)
class BulkIndexResult:
    """Outcome of one or more bulk requests."""
    total: int
    failed_count: int
    took_ms: Optional[int]
    has_errors: bool

    @classmethod
    def empty(cls) -> "BulkIndexResult":
        return cls(total=0, failed_count=0, took_ms=None, has_errors=False)


def combine_results(results: Sequence[BulkIndexResult]) -> BulkIndexResult:
    """Sum totals, failures and took across chunked requests."""
    if not results:
        return BulkIndexResult.empty()

    took_values = [r.took_ms for r in results if r.took_ms is not None]
    return BulkIndexResult(
        total=sum(r.total for r in results),
        failed_count=sum(r.failed_count for r in results),
        took_ms=sum(took_values) if took_values else None,
        has_errors=any(r.has_errors for r in results),
    )


def build_bulk_payload(index_name: str, documents: Sequence[BulkDocument]) -> str:
    """Action line plus body line per document; ``None`` fields are dropped."""
    lines = []
    for document in documents:
        action = {"index": {"_index": index_name, "_id": document.id}}
        body = {key: value for key, value in document.body.items() if value is not None}
        lines.append(json.dumps(action))
        lines.append(json.dumps(body, allow_nan=False))
    return "\n".join(lines) + "\n"


def _item_failed(item: Any) -> bool:
    if not isinstance(item, dict) or not item:
        return False

    operation = next(iter(item.values()))
    if not isinstance(operation, dict):
        return False

    if "error" in operation:
        return True

    status = operation.get("status")
    return isinstance(status, int) and not isinstance(status, bool) and status >= 300


def parse_bulk_response(body: str, expected_count: int) -> BulkIndexResult:
    """
    Count failed documents in a bulk response.

    Args:
        body: Raw response text
        expected_count: Number of documents sent

    Returns:
        BulkIndexResult. An unreadable response counts the whole batch as failed.
    """
    try:
        root = json.loads(body)
    except (TypeError, ValueError):
        return BulkIndexResult(expected_count, expected_count, None, True)

    if not isinstance(root, dict):
        return BulkIndexResult(expected_count, expected_count, None, True)

    errors = root.get("errors") is True

    took = root.get("took")
    took_ms = int(took) if isinstance(took, (int, float)) and not isinstance(took, bool) else None

    items = root.get("items")
    if isinstance(items, list):
        failed = sum(1 for item in items if _item_failed(item))
        return BulkIndexResult(len(items), failed, took_ms, errors)

    if errors:
        return BulkIndexResult(expected_count, expected_count, took_ms, True)

    return BulkIndexResult(expected_count, 0, took_ms, False)


class BulkIndexer:
    """
    Writes documents to an index through the bulk API.

    Large batches are split into ``batch_size`` chunks and the per-chunk
    results combined.
    """

    def __init__(self, transport, batch_size: int = 500):
        self.transport = transport
        self.batch_size = batch_size

    async def index(self, index_name: str, documents: List[BulkDocument]) -> BulkIndexResult:
        if not documents:
            return BulkIndexResult.empty()

        results = []
        for start in range(0, len(documents), self.batch_size):
            chunk = documents[start:start + self.batch_size]
            results.append(await self._index_chunk(index_name, chunk))

        combined = combine_results(results)
        logger.info(
            f"📊 Bulk indexed {combined.total} documents into {index_name} "
            f"({combined.failed_count} failed, {len(results)} request(s))"
        )
        return combined

    async def _index_chunk(self, index_name: str, documents: Sequence[BulkDocument]) -> BulkIndexResult:
        payload = build_bulk_payload(index_name, documents)
        status, body = await self.transport.request("POST", "/_bulk", payload, NDJSON_CONTENT_TYPE)
        if not 200 <= status < 300:
            raise SearchEngineError("Elasticsearch bulk request failed", status_code=status, body=body)
        return parse_bulk_response(body, len(documents))
