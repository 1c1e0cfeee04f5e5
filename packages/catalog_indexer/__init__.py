"""
Catalog Indexer

Asynchronous ingestion worker for the multi-tenant catalog search
platform:
- Queue consumer with retry and dead-letter routing
- Job processor turning raw payloads into product documents
- Embedding providers
- Search index lifecycle and bulk writes
"""

__version__ = "0.1.0"

from .config import Settings, get_settings
from .errors import (
    IndexerError,
    InvalidMessageError,
    JobNotFoundError,
    EmbeddingContractError,
    EmbeddingServiceError,
    SearchEngineError,
    BulkIndexError,
)
from .models import IngestionJobMessage, ProcessingResult

__all__ = [
    "Settings",
    "get_settings",
    "IndexerError",
    "InvalidMessageError",
    "JobNotFoundError",
    "EmbeddingContractError",
    "EmbeddingServiceError",
    "SearchEngineError",
    "BulkIndexError",
    "IngestionJobMessage",
    "ProcessingResult",
]
