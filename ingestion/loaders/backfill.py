"""
Copy a flat-file store into the relational backend
"""

from pydantic import BaseModel
from ingestion.loaders.file_store import FileStore
from ingestion.loaders.postgres_loader import PostgresStore
import logging

logger = logging.getLogger(__name__)


class BackfillSummary(BaseModel):
    sources: int
    raw_snapshots: int
    observations_inserted: int
    observations_updated: int
    source_cursors: int
    ingestion_runs: int


async def backfill_file_store_to_relational(
    file_store: FileStore,
    pg_store: PostgresStore
) -> BackfillSummary:
    """
    Replay every ledger of the file store through the relational store contract.

    Snapshots keep their snapshot_id and captured_at, cursors keep their
    updated_at and runs keep their run_id, so both backends hold the same
    history. Re-running is safe: snapshots dedup by checksum and observations
    upsert by identity. The caller commits.
    """
    document = file_store.document

    await pg_store.ensure_source_catalog(document.sources)

    restored = 0
    for snapshot in document.raw_snapshots:
        if await pg_store.restore_raw_snapshot(snapshot):
            restored += 1

    result = await pg_store.upsert_observations(document.observations)

    for cursor in document.source_cursors:
        await pg_store.restore_source_cursor(cursor)

    for run in document.ingestion_runs:
        await pg_store.upsert_ingestion_run(run)

    logger.info(
        f"Backfilled {len(document.observations)} observations, "
        f"{restored} new of {len(document.raw_snapshots)} snapshots, {len(document.ingestion_runs)} runs"
    )
    return BackfillSummary(
        sources=len(document.sources),
        raw_snapshots=len(document.raw_snapshots),
        observations_inserted=result.inserted,
        observations_updated=result.updated,
        source_cursors=len(document.source_cursors),
        ingestion_runs=len(document.ingestion_runs),
    )
