"""
Ingestion Worker Error Classes

Error taxonomy for the ingestion pipeline: invalid queue messages, missing
jobs, embedding contract violations, search engine failures and partial
bulk index failures. Every error propagates to the retry router.
"""

from typing import Any, Optional


class IndexerError(Exception):
    """Base exception for all ingestion worker errors"""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error
        self.message = message

    def __str__(self):
        return self.message


class InvalidMessageError(IndexerError):
    """Raised when a queue message body is empty or cannot be decoded"""

    def __init__(self, message: str = "Ingestion message is invalid.", **kwargs):
        super().__init__(message, **kwargs)


class JobNotFoundError(IndexerError):
    """Raised when the referenced ingestion job does not exist for the tenant"""

    def __init__(self, job_id: Any = None, tenant_id: Optional[str] = None, **kwargs):
        super().__init__(f"Ingestion job {job_id} not found for tenant {tenant_id}.", **kwargs)
        self.job_id = job_id
        self.tenant_id = tenant_id


class EmbeddingContractError(IndexerError):
    """Raised when the embedding service does not return one vector per input text"""

    def __init__(self, expected: int, actual: int, **kwargs):
        super().__init__(
            f"Embedding count mismatch. Expected {expected}, got {actual}.", **kwargs
        )
        self.expected = expected
        self.actual = actual


class EmbeddingServiceError(IndexerError):
    """Raised when the embedding provider call itself fails"""
    pass


class SearchEngineError(IndexerError):
    """Raised when the search engine answers with an unexpected status"""

    def __init__(self, message: str = "Search engine request failed",
                 status_code: int = None, body: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body

    def __str__(self):
        if self.status_code is not None and self.body:
            return f"{self.message} (status {self.status_code}): {self.body}"
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message


class BulkIndexError(IndexerError):
    """Raised when a bulk write reports document-level errors"""

    def __init__(self, message: str = "Elasticsearch bulk indexing reported errors.",
                 result: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.result = result
