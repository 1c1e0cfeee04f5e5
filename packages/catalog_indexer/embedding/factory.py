import logging

from .base import EmbeddingClient
from .deterministic import DeterministicEmbeddingClient
from .openai_client import OpenAIEmbeddingClient

logger = logging.getLogger(__name__)


def create_embedding_client(settings) -> EmbeddingClient:
    """Build the embedding client selected by ``EMBEDDING_PROVIDER``."""
    provider = settings.EMBEDDING_PROVIDER

    if provider == "openai":
        return OpenAIEmbeddingClient(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_EMBEDDING_MODEL,
            dimensions=settings.EMBEDDING_DIMENSIONS,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
        )

    if provider == "deterministic":
        logger.info(f"Using deterministic embeddings ({settings.EMBEDDING_DIMENSIONS} dims)")
        return DeterministicEmbeddingClient(settings.EMBEDDING_DIMENSIONS)

    raise ValueError(f"Unsupported embedding provider: {provider}")
