"""
Ingestion Module

Document building and job orchestration.
"""

from .document_builder import (
    DocumentBuildResult,
    ProductIndexDocument,
    build_documents,
    extract_products,
)
from .processor import IngestionJobProcessor, truncate_error

__all__ = [
    'DocumentBuildResult',
    'ProductIndexDocument',
    'build_documents',
    'extract_products',
    'IngestionJobProcessor',
    'truncate_error',
]
