"""
Embedding Module

Pluggable embedding providers for product documents.
"""

from .base import EmbeddingClient
from .deterministic import DeterministicEmbeddingClient
from .openai_client import OpenAIEmbeddingClient
from .factory import create_embedding_client

__all__ = [
    'EmbeddingClient',
    'DeterministicEmbeddingClient',
    'OpenAIEmbeddingClient',
    'create_embedding_client',
]
