"""
Ingestion Job Processor

Runs one ingestion job end to end: load the job, make sure the tenant
index exists, build documents from the raw payload rows, embed them,
bulk-write them and record the outcome on the job row.

Every failure after the job is loaded is persisted on the job before it
propagates, so the job table always reflects the last attempt.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from ..errors import BulkIndexError, EmbeddingContractError, JobNotFoundError
from ..indexing.bulk import BulkDocument
from ..models.messages import IngestionJobMessage, ProcessingResult
from ..observability import get_tracer, tenant_scope
from ..persistence.models import IngestionJob, IngestionJobStatus
from .document_builder import ProductIndexDocument, build_documents

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 512
BULK_ERRORS = "elasticsearch_bulk_errors"
PARTIAL_FAILURES = "partial_failures"


def truncate_error(message: Optional[str]) -> str:
    if not message or not message.strip():
        return "unknown"
    return message[:MAX_ERROR_LENGTH]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionJobProcessor:
    """
    Orchestrates a single ingestion job.

    Features:
    - Idempotent reprocessing: counts are re-derived from the raw rows on every attempt
    - One span per step (DB, embedding, search engine)
    - Job row left Completed or Failed with accurate counts
    """

    def __init__(self, store, index_manager, bulk_indexer, embedding_client, tracer=None):
        self.store = store
        self.index_manager = index_manager
        self.bulk_indexer = bulk_indexer
        self.embedding_client = embedding_client
        self.tracer = tracer or get_tracer()

    async def process(self, message: IngestionJobMessage, attempt: int = 0) -> ProcessingResult:
        """
        Process the job referenced by a queue message.

        Args:
            message: Decoded queue message
            attempt: Number of times this message was already re-published

        Returns:
            ProcessingResult with counts and bulk timings

        Raises:
            InvalidMessageError: If the job id is not a UUID
            JobNotFoundError: If the job does not exist for the tenant
            EmbeddingContractError: If the embedding batch size does not match
            BulkIndexError: If the bulk write reported document errors
        """
        job_id = message.parsed_job_id()
        tenant_id = message.tenant_id

        with tenant_scope(tenant_id):
            return await self._process(message, job_id, tenant_id, attempt)

    async def _process(self, message, job_id, tenant_id, attempt) -> ProcessingResult:
        started = time.perf_counter()
        job: Optional[IngestionJob] = None
        parse_failures = 0
        processed_count = 0
        failed_count = 0

        try:
            job = await self.store.get_job(job_id, tenant_id)
            if job is None:
                raise JobNotFoundError(job_id=job_id, tenant_id=tenant_id)

            logger.info(f"🔍 Processing ingestion job {job_id} (attempt {attempt})")

            with self.tracer.start_as_current_span("ES.EnsureIndex"):
                index_name = await self.index_manager.ensure_index(tenant_id)

            job.status = IngestionJobStatus.PROCESSING
            if job.started_at is None:
                job.started_at = _utcnow()
            if (job.total_count is None or job.total_count <= 0) and message.count > 0:
                job.total_count = message.count

            with self.tracer.start_as_current_span("DB.UpdateJobStatus"):
                await self.store.save_job(job)

            with self.tracer.start_as_current_span("DB.FetchProductsRaw"):
                rows = await self.store.list_raw_rows(job_id, tenant_id)

            build = build_documents(rows)
            parse_failures = build.parse_failures
            documents = build.documents
            if job.total_count is None or job.total_count <= 0:
                job.total_count = build.attempted

            if not documents:
                failed_count = parse_failures
                await self._mark_completed(job, 0, failed_count)
                self._log_completed(job_id, tenant_id, 0, failed_count, 0, None, started)
                return ProcessingResult(
                    job_id=job_id,
                    tenant_id=tenant_id,
                    source_type=message.source_type,
                    attempted=build.attempted,
                    processed=0,
                    failed=failed_count,
                )

            await self._attach_embeddings(documents)

            bulk_started = time.perf_counter()
            with self.tracer.start_as_current_span("ES.BulkIndex") as span:
                bulk = await self.bulk_indexer.index(
                    index_name,
                    [BulkDocument(id=document.id, body=document.body) for document in documents],
                )
                span.set_attribute("bulk.total", bulk.total)
                span.set_attribute("bulk.failed", bulk.failed_count)
            bulk_duration_ms = int((time.perf_counter() - bulk_started) * 1000)

            processed_count = max(len(documents) - bulk.failed_count, 0)
            failed_count = parse_failures + bulk.failed_count

            if bulk.has_errors or bulk.failed_count > 0:
                await self._mark_failed(job, processed_count, failed_count, BULK_ERRORS)
                raise BulkIndexError(result=bulk)

            await self._mark_completed(job, processed_count, failed_count)

            if failed_count > 0:
                logger.warning(
                    f"ingestion_job_partial_failures job_id={job_id} tenant_id={tenant_id} "
                    f"parse_failures={parse_failures} bulk_failures={bulk.failed_count}"
                )
            self._log_completed(
                job_id, tenant_id, processed_count, failed_count, bulk_duration_ms, bulk.took_ms, started
            )

            return ProcessingResult(
                job_id=job_id,
                tenant_id=tenant_id,
                source_type=message.source_type,
                attempted=build.attempted,
                processed=processed_count,
                failed=failed_count,
                bulk_duration_ms=bulk_duration_ms,
                es_took_ms=bulk.took_ms,
            )

        except BulkIndexError as e:
            self._log_failed(job_id, tenant_id, e, started)
            raise
        except Exception as e:
            if job is not None:
                failed_count = max(failed_count, parse_failures)
                try:
                    await self._mark_failed(job, processed_count, failed_count, str(e))
                except Exception as save_error:
                    logger.error(f"Failed to persist failure for job {job_id}: {save_error}")
            self._log_failed(job_id, tenant_id, e, started)
            raise

    async def _attach_embeddings(self, documents: List[ProductIndexDocument]) -> None:
        with self.tracer.start_as_current_span("Embedding.Generate") as span:
            span.set_attribute("embedding.count", len(documents))
            vectors = await self.embedding_client.embed([document.embedding_text for document in documents])

        if len(vectors) != len(documents):
            raise EmbeddingContractError(expected=len(documents), actual=len(vectors))

        for document, vector in zip(documents, vectors):
            document.body['embedding'] = vector

    async def _mark_completed(self, job: IngestionJob, processed_count: int, failed_count: int) -> None:
        job.status = IngestionJobStatus.COMPLETED
        job.processed_count = processed_count
        job.failed_count = failed_count
        job.error = PARTIAL_FAILURES if failed_count > 0 else None
        job.completed_at = _utcnow()
        with self.tracer.start_as_current_span("DB.UpdateJobStatus"):
            await self.store.save_job(job)

    async def _mark_failed(self, job: IngestionJob, processed_count: int, failed_count: int, error: str) -> None:
        job.status = IngestionJobStatus.FAILED
        job.processed_count = processed_count
        job.failed_count = failed_count
        job.error = truncate_error(error)
        job.completed_at = _utcnow()
        with self.tracer.start_as_current_span("DB.UpdateJobStatus"):
            await self.store.save_job(job)

    def _log_completed(self, job_id, tenant_id, processed, failed, bulk_ms, took_ms: Optional[int], started):
        total_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"✅ ingestion_job_completed job_id={job_id} tenant_id={tenant_id} "
            f"processed={processed} failed={failed} bulk_ms={bulk_ms} "
            f"es_took_ms={took_ms} duration_ms={total_ms}"
        )

    def _log_failed(self, job_id, tenant_id, error: Exception, started):
        total_ms = int((time.perf_counter() - started) * 1000)
        logger.error(
            f"❌ ingestion_job_failed job_id={job_id} tenant_id={tenant_id} "
            f"error={type(error).__name__}: {error} duration_ms={total_ms}"
        )
