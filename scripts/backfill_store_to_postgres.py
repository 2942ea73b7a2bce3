"""
Copy a flat-file store into the relational backend.

Usage:
    python scripts/backfill_store_to_postgres.py [store_path]
"""

import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import dispose_engine, get_session_maker
from core.logging import setup_logging
from ingestion.loaders.backfill import backfill_file_store_to_relational
from ingestion.loaders.file_store import FileStore, resolve_store_path
from ingestion.loaders.postgres_loader import PostgresStore

logger = logging.getLogger(__name__)


async def backfill(store_path=None):
    file_store = FileStore.load(store_path)

    try:
        async with get_session_maker()() as session:
            pg_store = PostgresStore(session)
            try:
                summary = await backfill_file_store_to_relational(file_store, pg_store)
                await pg_store.commit()
            except Exception:
                await pg_store.rollback()
                raise
    finally:
        await dispose_engine()

    logger.info(
        json.dumps(
            {
                "status": "ok",
                "store_path": str(resolve_store_path(store_path)),
                "summary": summary.model_dump(),
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    setup_logging()
    asyncio.run(backfill(sys.argv[1] if len(sys.argv) > 1 else None))
