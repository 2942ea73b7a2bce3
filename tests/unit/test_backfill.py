"""
Unit tests for the file-store to relational backfill
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
import pytest
from ingestion.loaders.backfill import backfill_file_store_to_relational
from ingestion.loaders.base import now_iso, payload_checksum_sha256
from ingestion.loaders.file_store import FileStore
from ingestion.loaders.postgres_loader import PostgresStore
from models.base import RunStatus
from schemas.store import IngestionRunCreate, RawSnapshot, SourceCursor, UpsertResult


def _pg_store_double():
    pg_store = MagicMock()
    pg_store.ensure_source_catalog = AsyncMock()
    pg_store.restore_raw_snapshot = AsyncMock(return_value=True)
    pg_store.upsert_observations = AsyncMock(return_value=UpsertResult(inserted=2))
    pg_store.restore_source_cursor = AsyncMock()
    pg_store.upsert_ingestion_run = AsyncMock()
    return pg_store


def _mock_session(existing=None):
    result = MagicMock()
    result.scalar_one_or_none.return_value = existing
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.get = AsyncMock(return_value=existing)
    session.flush = AsyncMock()
    return session


@pytest.mark.asyncio
async def test_backfill_replays_every_ledger(store_path, make_observation):
    file_store = FileStore.load(store_path)
    await file_store.upsert_observations([make_observation(date="2025-Q3"), make_observation(date="2025-Q4")])
    await file_store.stage_raw_payload("abs_housing", "{}", "application/json", now_iso())
    await file_store.set_source_cursor("abs_housing", "2025-Q4")
    now = now_iso()
    run = await file_store.append_ingestion_run(
        IngestionRunCreate(job="sync-housing-abs-daily", status=RunStatus.OK, started_at=now, finished_at=now)
    )
    pg_store = _pg_store_double()

    summary = await backfill_file_store_to_relational(file_store, pg_store)

    assert summary.observations_inserted == 2
    assert summary.raw_snapshots == 1
    assert summary.sources == len(file_store.document.sources)
    pg_store.restore_raw_snapshot.assert_awaited_once_with(file_store.document.raw_snapshots[0])
    pg_store.restore_source_cursor.assert_awaited_once_with(file_store.document.source_cursors[0])
    assert pg_store.upsert_ingestion_run.await_args[0][0].run_id == run.run_id
    pg_store.commit.assert_not_called()


@pytest.mark.asyncio
async def test_restored_snapshot_keeps_id_and_capture_time():
    session = _mock_session()
    store = PostgresStore(session)
    snapshot = RawSnapshot(
        snapshot_id="abs_housing-1767225600000-a1b2c3",
        source_id="abs_housing",
        checksum_sha256=payload_checksum_sha256("{}"),
        captured_at="2026-01-01T00:00:00.000Z",
        content_type="application/json",
        payload="{}",
    )

    restored = await store.restore_raw_snapshot(snapshot)

    assert restored is True
    record = session.add.call_args[0][0]
    assert record.snapshot_id == "abs_housing-1767225600000-a1b2c3"
    assert record.captured_at == datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_restore_skips_known_checksum():
    session = _mock_session(existing=MagicMock())
    store = PostgresStore(session)
    snapshot = RawSnapshot(
        snapshot_id="abs_housing-1-abc",
        source_id="abs_housing",
        checksum_sha256="abc",
        captured_at="2026-01-01T00:00:00.000Z",
        content_type="application/json",
        payload="{}",
    )

    assert await store.restore_raw_snapshot(snapshot) is False
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_restored_cursor_keeps_updated_at():
    session = _mock_session()
    store = PostgresStore(session)

    cursor = await store.restore_source_cursor(
        SourceCursor(source_id="abs_housing", cursor="2025-Q4", updated_at="2026-01-01T00:00:00.000Z")
    )

    record = session.add.call_args[0][0]
    assert record.updated_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert cursor.updated_at == "2026-01-01T00:00:00.000Z"
