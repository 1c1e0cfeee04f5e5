"""
Queue message and processing result models.

The admin API publishes ``IngestionJobMessage`` as JSON. Both the
snake_case field names used on the wire and their camelCase variants are
accepted when decoding.
"""

import json
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import InvalidMessageError

_FIELD_NAMES = {
    "job_id": ("job_id", "jobId"),
    "tenant_id": ("tenant_id", "tenantId"),
    "source_type": ("source_type", "sourceType"),
    "count": ("count",),
}


def _first(payload: Dict[str, Any], names) -> Any:
    for name in names:
        if name in payload and payload[name] is not None:
            return payload[name]
    return None


@dataclass(frozen=True)
class IngestionJobMessage:
    """Reference to a queued ingestion job."""
    job_id: str
    tenant_id: str
    source_type: str = "unknown"
    count: int = 0

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "IngestionJobMessage":
        job_id = _first(payload, _FIELD_NAMES["job_id"])
        tenant_id = _first(payload, _FIELD_NAMES["tenant_id"])
        source_type = _first(payload, _FIELD_NAMES["source_type"])
        count = _first(payload, _FIELD_NAMES["count"])

        if job_id is None:
            raise InvalidMessageError("job_id is required.")
        if not isinstance(tenant_id, str) or not tenant_id.strip():
            raise InvalidMessageError("tenant_id is required.")

        try:
            count = int(count) if count is not None else 0
        except (TypeError, ValueError):
            count = 0

        return cls(
            job_id=str(job_id),
            tenant_id=tenant_id,
            source_type=str(source_type) if source_type else "unknown",
            count=count,
        )

    @classmethod
    def from_body(cls, body: bytes) -> "IngestionJobMessage":
        """
        Decode a message body.

        Raises:
            InvalidMessageError: If the body is empty, not JSON or not an object
        """
        if not body or not body.strip():
            raise InvalidMessageError("Ingestion message body is empty.")

        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidMessageError("Ingestion message body is not valid JSON.", original_error=e)

        if not isinstance(payload, dict):
            raise InvalidMessageError("Ingestion message body must be a JSON object.")

        return cls.from_dict(payload)

    def parsed_job_id(self) -> uuid.UUID:
        try:
            return uuid.UUID(self.job_id)
        except (TypeError, ValueError) as e:
            raise InvalidMessageError("job_id is invalid.", original_error=e)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "tenant_id": self.tenant_id,
            "source_type": self.source_type,
            "count": self.count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class ProcessingResult:
    """
    Counts and timings reported for a processed job.

    ``attempted`` is every product element seen in the raw rows: built
    documents plus parse failures, not only the documents sent to the index.
    """
    job_id: uuid.UUID
    tenant_id: str
    source_type: str
    attempted: int
    processed: int
    failed: int
    bulk_duration_ms: int = 0
    es_took_ms: Optional[int] = None
