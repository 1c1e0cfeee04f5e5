"""
Tests for the Product Index Lifecycle Manager

Uses the stateful FakeSearchEngine to check that provisioning is
idempotent and follows the probe-before-create order.
"""

import asyncio

import pytest

from catalog_indexer.errors import SearchEngineError
from catalog_indexer.indexing.index_manager import TEMPLATE_NAME, IndexManager, build_index_template


class TestIndexTemplate:

    def test_template_shape(self):
        template = build_index_template(384)

        assert template["index_patterns"] == ["products-*"]
        assert template["priority"] == 200
        assert template["template"]["settings"] == {"number_of_shards": 1, "number_of_replicas": 0}
        properties = template["template"]["mappings"]["properties"]
        assert properties["embedding"] == {
            "type": "dense_vector",
            "dims": 384,
            "index": True,
            "similarity": "cosine",
        }
        assert properties["attributes"]["type"] == "flattened"
        assert properties["name"]["fields"]["keyword"]["ignore_above"] == 256


class TestEnsureIndex:

    @pytest.mark.asyncio
    async def test_creates_backing_index_with_write_alias(self, search_engine):
        manager = IndexManager(search_engine, embedding_dimensions=8)

        alias = await manager.ensure_index("acme")

        assert alias == "products-acme"
        assert search_engine.indices == {"products-acme-000001": ["products-acme"]}
        assert search_engine.templates[TEMPLATE_NAME]["template"]["mappings"]["properties"]["embedding"]["dims"] == 8
        assert search_engine.calls == [
            ("PUT", f"/_index_template/{TEMPLATE_NAME}"),
            ("HEAD", "/_alias/products-acme"),
            ("HEAD", "/products-acme"),
            ("HEAD", "/products-acme-000001"),
            ("PUT", "/products-acme-000001"),
        ]

    @pytest.mark.asyncio
    async def test_second_call_is_idempotent(self, search_engine):
        manager = IndexManager(search_engine, embedding_dimensions=8)

        await manager.ensure_index("acme")
        await manager.ensure_index("acme")

        assert search_engine.indices == {"products-acme-000001": ["products-acme"]}
        assert search_engine.calls.count(("PUT", "/products-acme-000001")) == 1
        assert search_engine.calls.count(("PUT", f"/_index_template/{TEMPLATE_NAME}")) == 1

    @pytest.mark.asyncio
    async def test_template_written_once_under_concurrency(self, search_engine):
        manager = IndexManager(search_engine, embedding_dimensions=8)

        await asyncio.gather(*(manager.ensure_index(f"tenant-{i}") for i in range(10)))

        assert search_engine.calls.count(("PUT", f"/_index_template/{TEMPLATE_NAME}")) == 1
        assert len(search_engine.indices) == 10

    @pytest.mark.asyncio
    async def test_existing_plain_index_accepted(self, search_engine):
        search_engine.indices["products-acme"] = []
        manager = IndexManager(search_engine, embedding_dimensions=8)

        await manager.ensure_index("acme")

        assert search_engine.indices == {"products-acme": []}
        assert ("HEAD", "/products-acme-000001") not in search_engine.calls

    @pytest.mark.asyncio
    async def test_existing_backing_index_gets_alias(self, search_engine):
        search_engine.indices["products-acme-000001"] = []
        manager = IndexManager(search_engine, embedding_dimensions=8)

        await manager.ensure_index("acme")

        assert search_engine.indices == {"products-acme-000001": ["products-acme"]}
        assert ("POST", "/_aliases") in search_engine.calls
        assert ("PUT", "/products-acme-000001") not in search_engine.calls

    @pytest.mark.asyncio
    async def test_concurrent_creation_conflict_is_success(self, search_engine):
        search_engine.status_overrides[("HEAD", "/products-acme-000001")] = (404, "")
        search_engine.indices["products-acme-000001"] = []
        manager = IndexManager(search_engine, embedding_dimensions=8)

        assert await manager.ensure_index("acme") == "products-acme"

    @pytest.mark.asyncio
    async def test_unexpected_probe_status_raises(self, search_engine):
        search_engine.status_overrides[("HEAD", "/_alias/products-acme")] = (500, "boom")
        manager = IndexManager(search_engine, embedding_dimensions=8)

        with pytest.raises(SearchEngineError) as exc_info:
            await manager.ensure_index("acme")

        assert exc_info.value.status_code == 500
        assert search_engine.indices == {}

    @pytest.mark.asyncio
    async def test_template_failure_is_retried_next_call(self, search_engine):
        path = f"/_index_template/{TEMPLATE_NAME}"
        search_engine.status_overrides[("PUT", path)] = (503, "unavailable")
        manager = IndexManager(search_engine, embedding_dimensions=8)

        with pytest.raises(SearchEngineError):
            await manager.ensure_index("acme")

        del search_engine.status_overrides[("PUT", path)]
        await manager.ensure_index("acme")

        assert search_engine.calls.count(("PUT", path)) == 2

    @pytest.mark.asyncio
    async def test_blank_tenant_rejected(self, search_engine):
        manager = IndexManager(search_engine, embedding_dimensions=8)

        with pytest.raises(ValueError):
            await manager.ensure_index("  ")

        assert search_engine.calls == []


class TestWarmUp:

    @pytest.mark.asyncio
    async def test_failures_are_reported_not_raised(self, search_engine):
        search_engine.status_overrides[("HEAD", "/_alias/products-broken")] = (500, "boom")
        manager = IndexManager(search_engine, embedding_dimensions=8)

        failed = await manager.warm_up(["acme", "broken", "globex"])

        assert failed == ["broken"]
        assert set(search_engine.indices) == {"products-acme-000001", "products-globex-000001"}
