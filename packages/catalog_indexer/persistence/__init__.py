"""
Persistence Module

Job, raw payload and tenant tables plus the store used by the worker.
"""

from .models import (
    Base,
    IngestionJob,
    IngestionJobStatus,
    IngestionSourceType,
    ProductRaw,
    TenantRecord,
    TenantStatus,
)
from .store import JobStore, SqlAlchemyJobStore

__all__ = [
    "Base",
    "IngestionJob",
    "IngestionJobStatus",
    "IngestionSourceType",
    "ProductRaw",
    "TenantRecord",
    "TenantStatus",
    "JobStore",
    "SqlAlchemyJobStore",
]
