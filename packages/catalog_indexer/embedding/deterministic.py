"""
Deterministic embedding provider.

Hash-derived vectors for local development and tests. Identical text
always maps to the identical vector; there is no semantic meaning.
"""

import hashlib
from typing import List

from .base import EmbeddingClient


class DeterministicEmbeddingClient(EmbeddingClient):

    def __init__(self, dimensions: int = 384):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def embed_one(self, text: str) -> List[float]:
        digest = hashlib.sha256((text or "").encode("utf-8")).digest()
        return [(digest[i % len(digest)] - 128) / 128 for i in range(self.dimensions)]

    async def embed(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_one(text) for text in texts]
