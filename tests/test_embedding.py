"""
Tests for embedding providers

The OpenAI client is exercised with a mocked ``AsyncOpenAI`` so no
network access is needed.
"""

import hashlib
from types import SimpleNamespace

import openai
import pytest
from unittest.mock import AsyncMock, MagicMock

from catalog_indexer.config import create_test_settings
from catalog_indexer.embedding import (
    DeterministicEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_client,
)
from catalog_indexer.errors import EmbeddingServiceError


class TestDeterministicEmbeddingClient:

    @pytest.mark.asyncio
    async def test_vectors_are_stable_and_sized(self):
        client = DeterministicEmbeddingClient(dimensions=40)

        first, second, other = await client.embed(["shoe", "shoe", "boot"])

        assert len(first) == 40
        assert first == second
        assert first != other

    def test_vector_derived_from_sha256(self):
        digest = hashlib.sha256(b"shoe").digest()

        vector = DeterministicEmbeddingClient(dimensions=34).embed_one("shoe")

        assert vector[0] == (digest[0] - 128) / 128
        assert vector[32] == vector[0]
        assert all(-1.0 <= value < 1.0 for value in vector)

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await DeterministicEmbeddingClient(8).embed([]) == []

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValueError):
            DeterministicEmbeddingClient(0)


def make_openai_client(responses):
    client = MagicMock()
    client.embeddings.create = AsyncMock(side_effect=responses)
    client.close = AsyncMock()
    return client


def embedding_response(vectors):
    data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    return SimpleNamespace(data=list(reversed(data)))


class TestOpenAIEmbeddingClient:

    @pytest.mark.asyncio
    async def test_chunks_and_restores_order(self):
        mock_client = make_openai_client([
            embedding_response([[1.0], [2.0]]),
            embedding_response([[3.0]]),
        ])
        client = OpenAIEmbeddingClient(api_key="sk-test", dimensions=1, batch_size=2, client=mock_client)

        vectors = await client.embed(["a", "b", "c"])

        assert vectors == [[1.0], [2.0], [3.0]]
        assert mock_client.embeddings.create.await_count == 2
        first_call = mock_client.embeddings.create.await_args_list[0].kwargs
        assert first_call["input"] == ["a", "b"]
        assert first_call["dimensions"] == 1
        assert first_call["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_api_errors_wrapped(self):
        mock_client = make_openai_client([openai.APIConnectionError(request=MagicMock())])
        client = OpenAIEmbeddingClient(api_key="sk-test", client=mock_client)

        with pytest.raises(EmbeddingServiceError) as exc_info:
            await client.embed(["a"])

        assert isinstance(exc_info.value.original_error, openai.APIConnectionError)

    def test_requires_api_key(self):
        with pytest.raises(EmbeddingServiceError):
            OpenAIEmbeddingClient(api_key=None)


class TestFactory:

    def test_deterministic_provider(self):
        client = create_embedding_client(create_test_settings(EMBEDDING_DIMENSIONS=16))

        assert isinstance(client, DeterministicEmbeddingClient)
        assert client.dimensions == 16

    def test_openai_provider(self):
        settings = create_test_settings(EMBEDDING_PROVIDER="openai", OPENAI_API_KEY="sk-test", EMBEDDING_BATCH_SIZE=8)

        client = create_embedding_client(settings)

        assert isinstance(client, OpenAIEmbeddingClient)
        assert client.batch_size == 8
