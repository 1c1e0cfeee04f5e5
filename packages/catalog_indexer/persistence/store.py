"""
Job Store

Read/write access to ingestion jobs plus read-only access to raw payloads
and tenants. ``SqlAlchemyJobStore`` opens one short session per call so a
job instance can be held across awaits without pinning a connection.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from .models import IngestionJob, ProductRaw, TenantRecord, TenantStatus

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Persistence interface used by the job processor."""

    @abstractmethod
    async def get_job(self, job_id: uuid.UUID, tenant_id: str) -> Optional[IngestionJob]:
        """
        Load a job scoped to its tenant.

        Returns:
            The job if found, None otherwise
        """
        pass

    @abstractmethod
    async def save_job(self, job: IngestionJob) -> None:
        """Persist the current state of a job."""
        pass

    @abstractmethod
    async def list_raw_rows(self, job_id: uuid.UUID, tenant_id: str) -> List[ProductRaw]:
        """Raw payload rows of a job, oldest first."""
        pass

    @abstractmethod
    async def list_active_tenant_ids(self) -> List[str]:
        pass

    async def close(self) -> None:
        pass


class SqlAlchemyJobStore(JobStore):
    """JobStore backed by an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlAlchemyJobStore":
        engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)
        return cls(engine)

    async def get_job(self, job_id: uuid.UUID, tenant_id: str) -> Optional[IngestionJob]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(IngestionJob).where(
                    IngestionJob.id == job_id,
                    IngestionJob.tenant_id == tenant_id,
                )
            )
            return result.scalar_one_or_none()

    async def save_job(self, job: IngestionJob) -> None:
        async with self._session_factory() as session:
            await session.merge(job)
            await session.commit()

    async def list_raw_rows(self, job_id: uuid.UUID, tenant_id: str) -> List[ProductRaw]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProductRaw)
                .where(ProductRaw.job_id == job_id, ProductRaw.tenant_id == tenant_id)
                .order_by(ProductRaw.created_at, ProductRaw.id)
            )
            return list(result.scalars().all())

    async def list_active_tenant_ids(self) -> List[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TenantRecord.id).where(TenantRecord.status == TenantStatus.ACTIVE)
            )
            return list(result.scalars().all())

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
