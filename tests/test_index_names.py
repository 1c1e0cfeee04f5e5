"""Tests for tenant index name resolution."""

import pytest

from catalog_indexer.indexing.names import backing_index_name, resolve_index_name


class TestResolveIndexName:

    @pytest.mark.parametrize("tenant_id, expected", [
        ("acme", "products-acme"),
        ("  ACME Corp ", "products-acme-corp"),
        ("tenant_01-eu", "products-tenant_01-eu"),
        ("Shop@Example.com", "products-shop-example-com"),
        ("--edge__", "products-edge"),
    ])
    def test_normalization(self, tenant_id, expected):
        assert resolve_index_name(tenant_id) == expected

    @pytest.mark.parametrize("tenant_id", ["", "   ", None, "___", "-"])
    def test_empty_falls_back_to_default(self, tenant_id):
        assert resolve_index_name(tenant_id) == "products-default"

    def test_segment_truncated_to_sixty_characters(self):
        name = resolve_index_name("a" * 100)

        assert name == "products-" + "a" * 60

    def test_non_ascii_characters_replaced(self):
        assert resolve_index_name("café") == "products-caf"

    def test_backing_index_name(self):
        assert backing_index_name("products-acme") == "products-acme-000001"
