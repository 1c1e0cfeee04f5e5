"""
Tests for the command line entry point.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from catalog_indexer import cli
from catalog_indexer.config import create_test_settings


def make_container(ensure_index):
    container = MagicMock(close=AsyncMock())
    container.index_manager.ensure_index = ensure_index
    return container


class TestParser:

    def test_ensure_index_arguments(self):
        args = cli.build_parser().parse_args(["--log-level", "debug", "ensure-index", "acme"])

        assert args.command == "ensure-index"
        assert args.tenant_id == "acme"
        assert args.log_level == "debug"

    def test_run_is_default(self):
        assert cli.build_parser().parse_args([]).command is None


class TestEnsureIndexCommand:

    @pytest.mark.asyncio
    async def test_success_prints_alias(self, capsys):
        container = make_container(AsyncMock(return_value="products-acme"))

        with patch.object(cli.WorkerContainer, "create", return_value=container):
            code = await cli.ensure_index(create_test_settings(), "acme")

        assert code == 0
        assert "products-acme" in capsys.readouterr().out
        container.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_returns_error_code(self):
        container = make_container(AsyncMock(side_effect=RuntimeError("cluster down")))

        with patch.object(cli.WorkerContainer, "create", return_value=container):
            code = await cli.ensure_index(create_test_settings(), "acme")

        assert code == 1
        container.close.assert_awaited_once()


class TestRunWorkerCommand:

    @pytest.mark.asyncio
    async def test_production_refuses_missing_settings(self):
        settings = create_test_settings(ENV="prod", EMBEDDING_PROVIDER="openai", OPENAI_API_KEY=None)

        with patch.object(cli.WorkerContainer, "create") as create:
            code = await cli.run_worker(settings)

        assert code == 1
        create.assert_not_called()
