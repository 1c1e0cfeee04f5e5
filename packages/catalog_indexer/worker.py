"""
Ingestion Worker Process

Wires the job store, search engine clients, embedding provider and
processor together, warms tenant indexes, serves ``/health`` and runs the
queue consumer until SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import List, Optional

from aiohttp import web

from .config import Settings
from .embedding import EmbeddingClient, create_embedding_client
from .indexing import BulkIndexer, ElasticsearchTransport, IndexManager
from .ingestion import IngestionJobProcessor
from .messaging import IngestionConsumer
from .persistence import JobStore, SqlAlchemyJobStore

logger = logging.getLogger(__name__)


@dataclass
class WorkerContainer:
    """
    Dependency container for the ingestion worker.

    Holds every long-lived collaborator so the worker, the CLI and tests
    share one place where the object graph is built.
    """

    settings: Settings
    store: JobStore
    transport: ElasticsearchTransport
    index_manager: IndexManager
    bulk_indexer: BulkIndexer
    embedding_client: EmbeddingClient
    processor: IngestionJobProcessor

    @classmethod
    def create(cls, settings: Settings) -> "WorkerContainer":
        """
        Build all worker dependencies from settings.

        Args:
            settings: Loaded worker settings

        Returns:
            WorkerContainer with connected (but not yet used) clients
        """
        store = SqlAlchemyJobStore.from_url(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        transport = ElasticsearchTransport.from_settings(settings)
        index_manager = IndexManager(transport, settings.EMBEDDING_DIMENSIONS)
        bulk_indexer = BulkIndexer(transport, batch_size=settings.BULK_BATCH_SIZE)
        embedding_client = create_embedding_client(settings)
        processor = IngestionJobProcessor(
            store=store,
            index_manager=index_manager,
            bulk_indexer=bulk_indexer,
            embedding_client=embedding_client,
        )

        return cls(
            settings=settings,
            store=store,
            transport=transport,
            index_manager=index_manager,
            bulk_indexer=bulk_indexer,
            embedding_client=embedding_client,
            processor=processor,
        )

    async def close(self) -> None:
        """Release clients in reverse order of creation."""
        await self.embedding_client.close()
        await self.transport.close()
        await self.store.close()


async def warm_up_indexes(container: WorkerContainer) -> None:
    """Ensure indexes for all active tenants; never raises."""
    try:
        tenant_ids = await container.store.list_active_tenant_ids()
    except Exception as e:
        logger.warning(f"Index warm-up skipped, could not load active tenants: {e}")
        return

    failed = await container.index_manager.warm_up(tenant_ids)
    logger.info(f"🔍 Index warm-up ensured {len(tenant_ids) - len(failed)}/{len(tenant_ids)} tenant indexes")


def create_health_app(consumer: IngestionConsumer) -> web.Application:
    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "broker_connected": consumer.connected})

    app = web.Application()
    app.router.add_get("/health", health)
    return app


class IngestionWorker:
    """
    Top-level worker lifecycle.

    Features:
    - Startup index warm-up for active tenants
    - Optional /health endpoint
    - Graceful shutdown on SIGINT/SIGTERM
    """

    def __init__(self, container: WorkerContainer, consumer: Optional[IngestionConsumer] = None):
        self.container = container
        self.settings = container.settings
        self.consumer = consumer or IngestionConsumer.from_settings(
            self.settings, container.processor.process
        )
        self._consumer_task: Optional[asyncio.Task] = None
        self._health_runner: Optional[web.AppRunner] = None
        self._signals: List[signal.Signals] = []

    def stop(self) -> None:
        if self._consumer_task and not self._consumer_task.done():
            logger.info("Shutdown requested, cancelling consumer")
            self._consumer_task.cancel()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
                self._signals.append(sig)
            except NotImplementedError:
                logger.debug(f"Signal handler for {sig} not supported on this platform")

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        while self._signals:
            loop.remove_signal_handler(self._signals.pop())

    async def _start_health_server(self) -> None:
        runner = web.AppRunner(create_health_app(self.consumer))
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", self.settings.HEALTH_PORT)
        await site.start()
        self._health_runner = runner
        logger.info(f"Health endpoint listening on :{self.settings.HEALTH_PORT}/health")

    async def run(self) -> None:
        """Run until the consumer task is cancelled."""
        if self.settings.WARM_INDEXES_ON_STARTUP:
            await warm_up_indexes(self.container)

        if self.settings.HEALTH_ENABLED:
            await self._start_health_server()

        self._consumer_task = asyncio.create_task(self.consumer.run())
        self._install_signal_handlers()

        try:
            await self._consumer_task
        except asyncio.CancelledError:
            logger.info("Ingestion consumer stopped")
        finally:
            self._remove_signal_handlers()
            if self._health_runner is not None:
                await self._health_runner.cleanup()
            await self.container.close()
