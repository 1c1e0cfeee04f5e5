"""
Product Index Lifecycle Manager

Makes sure the shared product index template exists and that every
tenant has a write alias pointing at a backing index. Every creation is
preceded by an existence probe so repeated calls are safe.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List

from ..errors import SearchEngineError
from .names import backing_index_name, resolve_index_name

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "catalog-products-template"
TEMPLATE_PRIORITY = 200
TEMPLATE_VERSION = 1
INDEX_PATTERN = "products-*"


def build_index_template(embedding_dimensions: int) -> Dict[str, Any]:
    """Composable index template applied to every ``products-*`` index."""
    return {
        "index_patterns": [INDEX_PATTERN],
        "priority": TEMPLATE_PRIORITY,
        "template": {
            "settings": {
                "number_of_shards": 1,
                "number_of_replicas": 0,
            },
            "mappings": {
                "dynamic": True,
                "properties": {
                    "tenant_id": {"type": "keyword"},
                    "product_id": {"type": "keyword"},
                    "name": {
                        "type": "text",
                        "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
                    },
                    "description": {"type": "text"},
                    "brand": {"type": "keyword"},
                    "category": {"type": "keyword"},
                    "price": {"type": "float"},
                    "in_stock": {"type": "boolean"},
                    "attributes": {"type": "flattened"},
                    "embedding": {
                        "type": "dense_vector",
                        "dims": embedding_dimensions,
                        "index": True,
                        "similarity": "cosine",
                    },
                },
            },
        },
        "_meta": {
            "managed_by": "catalog-indexer",
            "version": TEMPLATE_VERSION,
        },
    }


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class IndexManager:
    """
    Idempotent provisioning of tenant product indexes.

    The template is written at most once per process; concurrent callers
    wait on a lock and re-check the flag before doing any work.
    """

    def __init__(self, transport, embedding_dimensions: int):
        self.transport = transport
        self.embedding_dimensions = embedding_dimensions
        self._template_lock = asyncio.Lock()
        self._template_ensured = False

    async def ensure_index(self, tenant_id: str) -> str:
        """
        Ensure the tenant's product alias exists.

        Args:
            tenant_id: Tenant whose index should exist

        Returns:
            The resolved alias name
        """
        if not tenant_id or not tenant_id.strip():
            raise ValueError("tenant_id is required for index creation.")

        await self._ensure_template()
        return await self._ensure_alias(tenant_id)

    async def warm_up(self, tenant_ids: Iterable[str]) -> List[str]:
        """
        Ensure indexes for a set of tenants, logging failures instead of raising.

        Returns:
            Tenant ids whose index could not be ensured
        """
        failed = []
        for tenant_id in tenant_ids:
            try:
                await self.ensure_index(tenant_id)
            except Exception as e:
                logger.warning(f"Failed to ensure index for tenant {tenant_id}: {e}")
                failed.append(tenant_id)
        return failed

    async def _ensure_template(self) -> None:
        if self._template_ensured:
            return

        async with self._template_lock:
            if self._template_ensured:
                return

            status, body = await self.transport.request(
                "PUT",
                f"/_index_template/{TEMPLATE_NAME}",
                build_index_template(self.embedding_dimensions),
            )
            if not _is_success(status):
                raise SearchEngineError("Failed to create index template", status_code=status, body=body)

            self._template_ensured = True
            logger.info(f"✅ Index template ensured: {TEMPLATE_NAME}")

    async def _ensure_alias(self, tenant_id: str) -> str:
        alias = resolve_index_name(tenant_id)

        if await self._exists(f"/_alias/{alias}"):
            return alias

        if await self._exists(f"/{alias}"):
            logger.info(f"Index {alias} exists without alias, using it as-is")
            return alias

        backing = backing_index_name(alias)
        if await self._exists(f"/{backing}"):
            await self._attach_alias(alias, backing)
            return alias

        await self._create_index_with_alias(alias, backing)
        return alias

    async def _exists(self, path: str) -> bool:
        status, body = await self.transport.request("HEAD", path)
        if status == 404:
            return False
        if _is_success(status):
            return True
        raise SearchEngineError(f"Unexpected response probing {path}", status_code=status, body=body)

    async def _attach_alias(self, alias: str, backing: str) -> None:
        payload = {
            "actions": [
                {"add": {"index": backing, "alias": alias, "is_write_index": True}}
            ]
        }
        status, body = await self.transport.request("POST", "/_aliases", payload)
        if not _is_success(status):
            raise SearchEngineError(f"Failed to create alias {alias}", status_code=status, body=body)
        logger.info(f"🔗 Attached alias {alias} to {backing}")

    async def _create_index_with_alias(self, alias: str, backing: str) -> None:
        payload = {"aliases": {alias: {"is_write_index": True}}}
        status, body = await self.transport.request("PUT", f"/{backing}", payload)
        if status == 400 and "resource_already_exists_exception" in (body or ""):
            # Another worker created it between the probe and the PUT.
            logger.info(f"Index {backing} was created concurrently")
            return
        if not _is_success(status):
            raise SearchEngineError(f"Failed to create index {backing}", status_code=status, body=body)
        logger.info(f"📦 Created index {backing} with write alias {alias}")
