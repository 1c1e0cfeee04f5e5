"""
Command line entry point for the ingestion worker.

Usage:
    catalog-indexer run
    catalog-indexer ensure-index TENANT_ID
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import get_settings
from .observability import setup_logging
from .worker import IngestionWorker, WorkerContainer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='catalog-indexer',
        description='Catalog ingestion worker: consumes ingestion jobs and indexes products'
    )
    parser.add_argument(
        '--log-level',
        help='Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)'
    )

    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('run', help='Run the ingestion worker (default)')

    ensure = subparsers.add_parser('ensure-index', help='Provision the product index for one tenant')
    ensure.add_argument('tenant_id', help='Tenant identifier')

    return parser


async def run_worker(settings) -> int:
    missing = settings.validate_required_settings()
    if missing:
        for item in missing:
            logger.error(f"Missing required setting: {item}")
        if settings.is_production:
            return 1

    container = WorkerContainer.create(settings)
    await IngestionWorker(container).run()
    return 0


async def ensure_index(settings, tenant_id: str) -> int:
    container = WorkerContainer.create(settings)
    try:
        alias = await container.index_manager.ensure_index(tenant_id)
        print(f"✅ Index ready for tenant {tenant_id}: {alias}")
        return 0
    except Exception as e:
        logger.error(f"Failed to ensure index for tenant {tenant_id}: {e}")
        return 1
    finally:
        await container.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()

    settings = get_settings()
    if args.log_level:
        settings.LOG_LEVEL = args.log_level
    setup_logging(settings.LOG_LEVEL)

    if args.command == 'ensure-index':
        return asyncio.run(ensure_index(settings, args.tenant_id))

    return asyncio.run(run_worker(settings))


if __name__ == '__main__':
    sys.exit(main())
