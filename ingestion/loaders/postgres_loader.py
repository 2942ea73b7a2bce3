"""
Relational store backend (SQLAlchemy async) with read-then-write upserts
"""

import secrets
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from ingestion.loaders.base import (
    ObservationStore,
    ensure_finite,
    epoch_ms,
    generate_run_id,
    payload_checksum_sha256,
)
from ingestion.loaders.freshness import format_iso, parse_iso_datetime
from models.base import ObservationConfidence, RunStatus, SourceDomain
from models.ingestion_run import IngestionRunRecord
from models.observation import ObservationRecord
from models.raw_snapshot import RawSnapshotRecord
from models.source import SourceRecord
from models.source_cursor import SourceCursorRecord
from schemas.observation import Observation, ObservationKey
from schemas.store import (
    IngestionRun,
    IngestionRunCreate,
    RawSnapshot,
    SourceCatalogItem,
    SourceCursor,
    StageResult,
    UpsertResult,
)
import logging

logger = logging.getLogger(__name__)

_OBSERVATION_COLUMNS = (
    "country_code",
    "market",
    "metric_family",
    "interval_start_utc",
    "interval_end_utc",
    "value",
    "unit",
    "currency",
    "tax_status",
    "consumption_band",
    "source_name",
    "source_url",
    "is_modeled",
    "confidence",
    "methodology_version",
)


def _parse_datetime(value: Optional[str]) -> datetime:
    """Timestamp column value; unparsable input falls back to now"""
    parsed = parse_iso_datetime(value) if value else None
    return parsed or datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return format_iso(value)


def _observation_values(observation: Observation) -> Dict:
    values = {column: getattr(observation, column) for column in _OBSERVATION_COLUMNS}
    values["published_at"] = _parse_datetime(observation.published_at)
    values["ingested_at"] = _parse_datetime(observation.ingested_at)
    values["confidence"] = ObservationConfidence(observation.confidence)
    return values


def record_to_observation(record: ObservationRecord) -> Observation:
    return Observation(
        series_id=record.series_id,
        region_code=record.region_code,
        date=record.date,
        vintage=record.vintage,
        published_at=_isoformat(record.published_at),
        ingested_at=_isoformat(record.ingested_at),
        **{column: getattr(record, column) for column in _OBSERVATION_COLUMNS}
    )


def _snapshot_from_record(record: RawSnapshotRecord) -> RawSnapshot:
    return RawSnapshot(
        snapshot_id=record.snapshot_id,
        source_id=record.source_id,
        checksum_sha256=record.checksum_sha256,
        captured_at=_isoformat(record.captured_at),
        content_type=record.content_type,
        payload=record.payload,
    )


class PostgresStore(ObservationStore):
    """
    Store backed by the relational schema.

    Ensures:
    - No duplicate rows on repeated runs (lookup by identity, then insert or update)
    - Unique constraints on every ledger key as the last line of defence
    - Nothing is durable until commit(); rollback() discards the job's writes

    Two jobs writing the same database concurrently are not isolated from
    each other here; the scheduler serialises jobs per store target.
    """

    backend_name = "postgres"

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def upsert_observations(self, incoming: List[Observation]) -> UpsertResult:
        if not incoming:
            return UpsertResult()

        ensure_finite(incoming, "upsert_observations")

        inserted = 0
        updated = 0
        # Rows added earlier in this batch are not visible to SELECT until flush
        pending: Dict[ObservationKey, ObservationRecord] = {}

        for observation in incoming:
            key = observation.key
            record = pending.get(key)

            if record is None:
                result = await self.db.execute(
                    select(ObservationRecord).where(
                        and_(
                            ObservationRecord.series_id == key.series_id,
                            ObservationRecord.region_code == key.region_code,
                            ObservationRecord.date == key.date,
                            ObservationRecord.vintage == key.vintage,
                        )
                    ).limit(1)
                )
                record = result.scalar_one_or_none()

            values = _observation_values(observation)

            if record is None:
                record = ObservationRecord(
                    series_id=key.series_id,
                    region_code=key.region_code,
                    date=key.date,
                    vintage=key.vintage,
                    **values
                )
                self.db.add(record)
                pending[key] = record
                inserted += 1
                continue

            for column, value in values.items():
                setattr(record, column, value)
            pending[key] = record
            updated += 1

        await self.db.flush()

        logger.info(f"Upserted observations: {inserted} inserted, {updated} updated")
        return UpsertResult(inserted=inserted, updated=updated)

    async def _find_snapshot(self, source_id: str, checksum: str) -> Optional[RawSnapshotRecord]:
        result = await self.db.execute(
            select(RawSnapshotRecord).where(
                and_(
                    RawSnapshotRecord.source_id == source_id,
                    RawSnapshotRecord.checksum_sha256 == checksum,
                )
            ).limit(1)
        )
        return result.scalar_one_or_none()

    def _add_snapshot(self, snapshot: RawSnapshot) -> None:
        self.db.add(
            RawSnapshotRecord(
                snapshot_id=snapshot.snapshot_id,
                source_id=snapshot.source_id,
                checksum_sha256=snapshot.checksum_sha256,
                captured_at=_parse_datetime(snapshot.captured_at),
                content_type=snapshot.content_type,
                payload=snapshot.payload,
            )
        )

    async def stage_raw_payload(
        self,
        source_id: str,
        payload: str,
        content_type: str,
        captured_at: str
    ) -> StageResult:
        checksum = payload_checksum_sha256(payload)

        existing = await self._find_snapshot(source_id, checksum)
        if existing is not None:
            return StageResult(staged=False, snapshot=_snapshot_from_record(existing))

        snapshot = RawSnapshot(
            snapshot_id=f"{source_id}-{epoch_ms()}-{secrets.token_hex(3)}",
            source_id=source_id,
            checksum_sha256=checksum,
            captured_at=captured_at,
            content_type=content_type,
            payload=payload,
        )
        self._add_snapshot(snapshot)
        await self.db.flush()
        return StageResult(staged=True, snapshot=snapshot)

    async def restore_raw_snapshot(self, snapshot: RawSnapshot) -> bool:
        """
        Write a snapshot captured elsewhere under its own snapshot_id and
        captured_at. Returns False when (source_id, checksum) is already stored.
        """
        existing = await self._find_snapshot(snapshot.source_id, snapshot.checksum_sha256)
        if existing is not None:
            return False

        self._add_snapshot(snapshot)
        await self.db.flush()
        return True

    async def _write_cursor(self, source_id: str, cursor: str, updated_at: datetime) -> SourceCursor:
        record = await self.db.get(SourceCursorRecord, source_id)
        if record is None:
            self.db.add(SourceCursorRecord(source_id=source_id, cursor=cursor, updated_at=updated_at))
        else:
            record.cursor = cursor
            record.updated_at = updated_at
        await self.db.flush()
        return SourceCursor(source_id=source_id, cursor=cursor, updated_at=_isoformat(updated_at))

    async def set_source_cursor(self, source_id: str, cursor: str) -> SourceCursor:
        return await self._write_cursor(source_id, cursor, datetime.now(timezone.utc))

    async def restore_source_cursor(self, cursor: SourceCursor) -> SourceCursor:
        """Write a cursor keeping the updated_at it was recorded with"""
        return await self._write_cursor(cursor.source_id, cursor.cursor, _parse_datetime(cursor.updated_at))

    async def get_source_cursor(self, source_id: str) -> Optional[SourceCursor]:
        record = await self.db.get(SourceCursorRecord, source_id)
        if record is None:
            return None
        return SourceCursor(
            source_id=record.source_id,
            cursor=record.cursor,
            updated_at=_isoformat(record.updated_at),
        )

    async def append_ingestion_run(self, run: IngestionRunCreate) -> IngestionRun:
        ingestion_run = IngestionRun(run_id=generate_run_id(run.job), **run.model_dump())
        await self.upsert_ingestion_run(ingestion_run)
        return ingestion_run

    async def upsert_ingestion_run(self, run: IngestionRun) -> None:
        """Write a run under its existing run_id (used when backfilling history)"""
        record = await self.db.get(IngestionRunRecord, run.run_id)
        values = {
            "job": run.job,
            "status": RunStatus(run.status),
            "started_at": _parse_datetime(run.started_at),
            "finished_at": _parse_datetime(run.finished_at),
            "rows_inserted": run.rows_inserted,
            "rows_updated": run.rows_updated,
            "error_summary": run.error_summary,
        }
        if record is None:
            self.db.add(IngestionRunRecord(run_id=run.run_id, **values))
        else:
            for column, value in values.items():
                setattr(record, column, value)
        await self.db.flush()

    async def list_observations(self) -> List[Observation]:
        result = await self.db.execute(select(ObservationRecord))
        return [record_to_observation(record) for record in result.scalars().all()]

    async def ensure_source_catalog(self, items: List[SourceCatalogItem]) -> None:
        for item in items:
            record = await self.db.get(SourceRecord, item.source_id)
            if record is None:
                self.db.add(
                    SourceRecord(
                        source_id=item.source_id,
                        domain=SourceDomain(item.domain),
                        name=item.name,
                        url=item.url,
                        expected_cadence=item.expected_cadence,
                    )
                )
            else:
                record.domain = SourceDomain(item.domain)
                record.name = item.name
                record.url = item.url
                record.expected_cadence = item.expected_cadence
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def close(self) -> None:
        await self.db.close()
