import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import dispose_engine, get_engine
from core.logging import setup_logging
from models.base import Base
# Import all models to ensure they are registered
from models.observation import ObservationRecord
from models.raw_snapshot import RawSnapshotRecord
from models.source import SourceRecord
from models.source_cursor import SourceCursorRecord
from models.ingestion_run import IngestionRunRecord

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = get_engine()

    async with engine.begin() as conn:
        logger.info("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created successfully.")

    await dispose_engine()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
