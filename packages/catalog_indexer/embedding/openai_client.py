"""
OpenAI embedding provider.

Calls the embeddings endpoint through ``AsyncOpenAI``, splitting large
batches into chunks and restoring input order from the returned indexes.
"""

import logging
from typing import List, Optional

import openai
from openai import AsyncOpenAI

from ..errors import EmbeddingServiceError
from .base import EmbeddingClient

logger = logging.getLogger(__name__)


class OpenAIEmbeddingClient(EmbeddingClient):
    """
    Embedding client for OpenAI ``text-embedding-*`` models.

    Features:
    - Requested dimensions match the index mapping
    - Inputs chunked by ``batch_size``
    - API errors wrapped in EmbeddingServiceError
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 384,
        batch_size: int = 256,
        client: Optional[AsyncOpenAI] = None,
    ):
        if not api_key and client is None:
            raise EmbeddingServiceError("OpenAI API key not provided")

        self.model = model
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.client = client or AsyncOpenAI(api_key=api_key)

        logger.info(f"OpenAI embedding client initialized with model: {model} ({dimensions} dims)")

    async def embed(self, texts: List[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            vectors.extend(await self._embed_chunk(texts[start:start + self.batch_size]))
        return vectors

    async def _embed_chunk(self, texts: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=texts,
                dimensions=self.dimensions,
            )
        except openai.OpenAIError as e:
            raise EmbeddingServiceError(f"OpenAI embedding request failed: {str(e)}", original_error=e)

        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]

    async def close(self) -> None:
        await self.client.close()
