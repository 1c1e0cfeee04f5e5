"""
Indexing Module

Search engine transport, tenant index lifecycle and bulk writes.
"""

from .names import resolve_index_name, backing_index_name
from .transport import ElasticsearchTransport
from .index_manager import IndexManager, build_index_template, TEMPLATE_NAME
from .bulk import BulkIndexer, BulkDocument, BulkIndexResult, combine_results

__all__ = [
    'resolve_index_name',
    'backing_index_name',
    'ElasticsearchTransport',
    'IndexManager',
    'build_index_template',
    'TEMPLATE_NAME',
    'BulkIndexer',
    'BulkDocument',
    'BulkIndexResult',
    'combine_results',
]
