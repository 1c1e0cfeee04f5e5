"""
Shared fixtures and in-memory fakes for the ingestion worker tests.
"""

import json
import os
import sys
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Allow running the suite from a checkout without installing the package
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "packages"))

from catalog_indexer.config import create_test_settings
from catalog_indexer.embedding import DeterministicEmbeddingClient
from catalog_indexer.messaging.broker import Delivery, MessageBroker
from catalog_indexer.messaging.topology import QueueTopology
from catalog_indexer.persistence.models import IngestionJob, IngestionJobStatus, ProductRaw
from catalog_indexer.persistence.store import JobStore

TENANT_ID = "acme"


class FakeJobStore(JobStore):
    """In-memory JobStore that records every saved job state."""

    def __init__(self):
        self.jobs: Dict[Tuple[uuid.UUID, str], IngestionJob] = {}
        self.rows: List[ProductRaw] = []
        self.tenants: Dict[str, str] = {}
        self.saved_states: List[Dict[str, Any]] = []
        self.fail_on_save: Optional[Exception] = None

    def add_job(self, tenant_id: str = TENANT_ID, **fields) -> IngestionJob:
        job = IngestionJob(
            id=fields.pop("id", uuid.uuid4()),
            tenant_id=tenant_id,
            source_type=fields.pop("source_type", "Json"),
            status=fields.pop("status", IngestionJobStatus.QUEUED),
            processed_count=fields.pop("processed_count", 0),
            failed_count=fields.pop("failed_count", 0),
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        self.jobs[(job.id, tenant_id)] = job
        return job

    def add_row(self, job: IngestionJob, payload: Any) -> ProductRaw:
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        row = ProductRaw(
            id=uuid.uuid4(),
            tenant_id=job.tenant_id,
            job_id=job.id,
            payload_json=payload,
            created_at=datetime.now(timezone.utc) + timedelta(microseconds=len(self.rows)),
        )
        self.rows.append(row)
        return row

    async def get_job(self, job_id, tenant_id):
        return self.jobs.get((job_id, tenant_id))

    async def save_job(self, job):
        if self.fail_on_save is not None:
            raise self.fail_on_save
        self.saved_states.append({
            "status": job.status,
            "total_count": job.total_count,
            "processed_count": job.processed_count,
            "failed_count": job.failed_count,
            "error": job.error,
        })

    async def list_raw_rows(self, job_id, tenant_id):
        return [row for row in self.rows if row.job_id == job_id and row.tenant_id == tenant_id]

    async def list_active_tenant_ids(self):
        return [tenant_id for tenant_id, status in self.tenants.items() if status == "active"]


class FakeSearchEngine:
    """
    Stateful stand-in for the search engine REST API.

    Tracks templates, indices and aliases so lifecycle calls can be
    checked for idempotence. Bulk responses can be scripted.
    """

    def __init__(self):
        self.templates: Dict[str, Any] = {}
        self.indices: Dict[str, List[str]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.bulk_payloads: List[str] = []
        self.bulk_responses: List[Tuple[int, str]] = []
        self.status_overrides: Dict[Tuple[str, str], Tuple[int, str]] = {}

    def _alias_exists(self, alias: str) -> bool:
        return any(alias in aliases for aliases in self.indices.values())

    def queue_bulk_response(self, body: Any, status: int = 200) -> None:
        self.bulk_responses.append((status, body if isinstance(body, str) else json.dumps(body)))

    async def request(self, method, path, body=None, content_type="application/json"):
        self.calls.append((method, path))

        if (method, path) in self.status_overrides:
            return self.status_overrides[(method, path)]

        if method == "PUT" and path.startswith("/_index_template/"):
            self.templates[path.rsplit("/", 1)[-1]] = body
            return 200, '{"acknowledged":true}'

        if method == "HEAD" and path.startswith("/_alias/"):
            return (200 if self._alias_exists(path[len("/_alias/"):]) else 404), ""

        if method == "HEAD":
            return (200 if path[1:] in self.indices else 404), ""

        if method == "POST" and path == "/_aliases":
            for action in body["actions"]:
                add = action["add"]
                self.indices[add["index"]].append(add["alias"])
            return 200, '{"acknowledged":true}'

        if method == "PUT":
            name = path[1:]
            if name in self.indices:
                return 400, '{"error":{"type":"resource_already_exists_exception"}}'
            self.indices[name] = list((body or {}).get("aliases", {}).keys())
            return 200, '{"acknowledged":true}'

        if method == "POST" and path == "/_bulk":
            self.bulk_payloads.append(body)
            if self.bulk_responses:
                return self.bulk_responses.pop(0)
            count = len(body.strip().splitlines()) // 2
            items = [{"index": {"status": 201}} for _ in range(count)]
            return 200, json.dumps({"took": 3, "errors": False, "items": items})

        return 404, ""


class FakeBroker(MessageBroker):
    def __init__(self):
        self.acked: List[Delivery] = []
        self.requeued: List[Delivery] = []
        self.published: List[Dict[str, Any]] = []
        self.publish_error: Optional[Exception] = None

    async def ack(self, delivery):
        self.acked.append(delivery)

    async def nack_requeue(self, delivery):
        self.requeued.append(delivery)

    async def publish(self, destination, body, headers, correlation_id=None):
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append({
            "destination": destination,
            "body": body,
            "headers": dict(headers),
            "correlation_id": correlation_id,
        })


class MiscountingEmbeddingClient(DeterministicEmbeddingClient):
    """Returns a fixed number of vectors regardless of input size."""

    def __init__(self, count: int, dimensions: int = 8):
        super().__init__(dimensions)
        self.count = count

    async def embed(self, texts):
        vectors = await super().embed(texts)
        return vectors[:self.count]


@pytest.fixture
def settings():
    return create_test_settings()


@pytest.fixture
def job_store():
    return FakeJobStore()


@pytest.fixture
def search_engine():
    return FakeSearchEngine()


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def topology():
    return QueueTopology(
        exchange="ingestion.jobs.exchange",
        ingestion_queue="ingestion.jobs",
        retry_queue="ingestion.jobs.retry",
        dead_letter_queue="ingestion.jobs.dlq",
        retry_delay_ms=30000,
    )
