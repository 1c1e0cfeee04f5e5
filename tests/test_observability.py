"""
Tests for delivery context propagation and logging setup.
"""

import logging

import pytest

from catalog_indexer.observability import (
    DeliveryContextFilter,
    delivery_context,
    get_correlation_id,
    get_tenant_id,
    setup_logging,
    tenant_scope,
)


def make_record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)


class TestDeliveryContext:

    def test_values_bound_inside_and_reset_after(self):
        with delivery_context("cid-1", "acme"):
            assert get_correlation_id() == "cid-1"
            assert get_tenant_id() == "acme"

        assert get_correlation_id() is None
        assert get_tenant_id() is None

    def test_reset_when_body_raises(self):
        with pytest.raises(RuntimeError):
            with delivery_context("cid-2"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None

    def test_tenant_scope_nested_in_delivery(self):
        with delivery_context("cid-3"):
            with tenant_scope("globex"):
                assert get_tenant_id() == "globex"
            assert get_tenant_id() is None
            assert get_correlation_id() == "cid-3"


class TestDeliveryContextFilter:

    def test_stamps_context_onto_records(self):
        record = make_record()

        with delivery_context("cid-4", "acme"):
            DeliveryContextFilter().filter(record)

        assert record.correlation_id == "cid-4"
        assert record.tenant_id == "acme"

    def test_defaults_outside_context(self):
        record = make_record()

        assert DeliveryContextFilter().filter(record) is True
        assert record.correlation_id == "-"
        assert record.tenant_id == "-"


class TestSetupLogging:

    def test_filter_added_once(self):
        root_logger = logging.getLogger()
        handler = logging.StreamHandler()
        previous_level = root_logger.level
        root_logger.addHandler(handler)
        try:
            setup_logging("DEBUG")
            setup_logging("DEBUG")

            filters = [f for f in handler.filters if isinstance(f, DeliveryContextFilter)]
            assert len(filters) == 1
            assert root_logger.level == logging.DEBUG
        finally:
            root_logger.removeHandler(handler)
            root_logger.setLevel(previous_level)
