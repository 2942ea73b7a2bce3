"""
Ingestion job runner - fetch, stage, map, upsert, derive, record.

This module provides the job skeleton shared by every sync job:
- All fetching happens before the store is opened, so a failed or
  cancelled fetch never mutates the store
- Raw payloads are staged before their observations are upserted
- Every execution appends an IngestionRun, including failed ones
- Errors are re-raised after the failed run is recorded; retry decisions
  belong to the scheduler
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel, Field
from core.config import settings
from core.exceptions import ETLException
from ingestion.base import SourceClient, SourceFetch
from ingestion.catalog import SOURCE_CATALOG
from ingestion.fixtures import fixture_fetch
from ingestion.loaders.backend import open_store, resolve_ingest_backend
from ingestion.loaders.base import ObservationStore, now_iso
from ingestion.loaders.freshness import to_timestamp
from ingestion.transformers.mappers import MapperOptions
from ingestion.transformers.normalizer import ComparisonNormalizer, DerivationGap
from models.base import RunStatus
from schemas.observation import Observation
from schemas.snapshots import SourceSnapshot
from schemas.store import IngestionRunCreate
import logging

logger = logging.getLogger(__name__)

SOURCE_MODE_FIXTURE = "fixture"
SOURCE_MODE_LIVE = "live"

# Sort key for date tokens with no place on the timeline
_UNPLACED = datetime.min.replace(tzinfo=timezone.utc)


class JobOutput(BaseModel):
    """What a job's build step hands back to the runner"""
    observations: List[Observation] = Field(default_factory=list)
    cursors: Dict[str, str] = Field(default_factory=dict)
    details: Dict[str, Any] = Field(default_factory=dict)


class JobResult(BaseModel):
    job: str
    status: RunStatus
    run_id: str
    points_ingested: int = 0
    rows_inserted: int = 0
    rows_updated: int = 0
    synced_at: str
    gaps: List[DerivationGap] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        use_enum_values = True


def default_vintage() -> str:
    """INGEST_VINTAGE when set, else the UTC date of the run"""
    if settings.INGEST_VINTAGE:
        return settings.INGEST_VINTAGE
    return datetime.now(timezone.utc).date().isoformat()


def latest_value(values: Sequence[str]) -> Optional[str]:
    """
    Latest date token on the timeline; tokens that resolve to the same instant
    (2025-Q4 and 2025-12) are ordered as strings.
    """
    if not values:
        return None
    return max(values, key=lambda value: (to_timestamp(value) or _UNPLACED, value))


def summarize_error(error: BaseException) -> str:
    message = error.message if isinstance(error, ETLException) else str(error)
    return f"{type(error).__name__}: {message}"[:1000]


class IngestionJob(ABC):
    """
    Base class for sync jobs.

    Subclasses declare job_id and their clients, and implement build()
    as a pure function of the fetched snapshots. Jobs that set a
    normalizer also derive comparison rows from the store contents.

    Attributes:
        backend: "store" or "postgres", validated at construction
        source_mode: "fixture" serves built-in payloads, "live" calls providers
        endpoints: Per-source endpoint overrides keyed by source_id
    """

    job_id: str = ""

    def __init__(
        self,
        store_path: Optional[str] = None,
        backend: Optional[str] = None,
        source_mode: Optional[str] = None,
        fetch_impl: Optional[SourceFetch] = None,
        endpoints: Optional[Dict[str, str]] = None,
        vintage: Optional[str] = None,
        normalizer: Optional[ComparisonNormalizer] = None
    ):
        self.backend = resolve_ingest_backend(
            backend if backend is not None else settings.INGEST_BACKEND
        )
        if source_mode is None:
            source_mode = SOURCE_MODE_LIVE if settings.INGEST_LIVE else SOURCE_MODE_FIXTURE
        self.source_mode = source_mode
        self.store_path = store_path
        self.fetch_impl = fetch_impl
        self.endpoints = endpoints or {}
        self.vintage = vintage
        self.normalizer = normalizer

    @abstractmethod
    def create_clients(self) -> List[SourceClient]:
        """Clients whose snapshots this job consumes"""
        pass

    @abstractmethod
    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        """Map fetched snapshots onto base observations and source cursors"""
        pass

    def client_kwargs(self, source_id: str) -> Dict[str, Any]:
        """Endpoint override and fetch function for one source client"""
        if self.source_mode == SOURCE_MODE_LIVE:
            fetch = self.fetch_impl
        else:
            fetch = fixture_fetch(source_id)
        return {"endpoint": self.endpoints.get(source_id), "fetch_impl": fetch}

    async def fetch_snapshots(self) -> Dict[str, SourceSnapshot]:
        """Fetch every source concurrently; any failure aborts the job before the store is touched"""
        clients = self.create_clients()
        tasks = [asyncio.create_task(client.fetch_snapshot()) for client in clients]
        try:
            snapshots = await asyncio.gather(*tasks)
        except BaseException:
            # Sibling fetches are cancelled and joined before the error propagates
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return {snapshot.source_id: snapshot for snapshot in snapshots}

    async def run(self) -> JobResult:
        started_at = now_iso()
        vintage = self.vintage or default_vintage()
        logger.info(f"Starting {self.job_id} ({self.source_mode} mode, {self.backend} backend)")

        try:
            snapshots = await self.fetch_snapshots()
        except Exception as e:
            logger.error(f"{self.job_id}: fetch failed - {e}")
            await self._record_failed_run_in_new_store(started_at, e)
            raise

        async with open_store(self.backend, self.store_path) as store:
            try:
                return await self._ingest(store, snapshots, started_at, vintage)
            except Exception as e:
                logger.error(f"{self.job_id}: ingestion failed, rolling back - {e}")
                await store.rollback()
                await self._record_failed_run(store, started_at, e)
                raise

    async def _ingest(
        self,
        store: ObservationStore,
        snapshots: Dict[str, SourceSnapshot],
        started_at: str,
        vintage: str
    ) -> JobResult:
        ingested_at = now_iso()
        options = MapperOptions(ingested_at=ingested_at, vintage=vintage)

        await store.ensure_source_catalog(SOURCE_CATALOG)

        for snapshot in snapshots.values():
            stage = await store.stage_raw_payload(
                snapshot.source_id,
                snapshot.raw_payload,
                snapshot.content_type,
                ingested_at,
            )
            if not stage.staged:
                logger.info(f"{snapshot.source_id}: payload unchanged, reusing {stage.snapshot.snapshot_id}")

        output = self.build(snapshots, options)
        result = await store.upsert_observations(output.observations)
        points_ingested = len(output.observations)

        gaps: List[DerivationGap] = []
        if self.normalizer is not None:
            outcome = self.normalizer.derive(await store.list_observations(), ingested_at, vintage)
            result = result + await store.upsert_observations(outcome.observations)
            points_ingested += len(outcome.observations)
            gaps = outcome.gaps

        for source_id, cursor in output.cursors.items():
            await store.set_source_cursor(source_id, cursor)

        status = RunStatus.DEGRADED if gaps else RunStatus.OK
        run = await store.append_ingestion_run(
            IngestionRunCreate(
                job=self.job_id,
                status=status,
                started_at=started_at,
                finished_at=now_iso(),
                rows_inserted=result.inserted,
                rows_updated=result.updated,
                error_summary=self._gap_summary(gaps),
            )
        )
        await store.commit()

        logger.info(
            f"{self.job_id} finished: {status.value}, "
            f"{result.inserted} inserted, {result.updated} updated"
        )
        return JobResult(
            job=self.job_id,
            status=status,
            run_id=run.run_id,
            points_ingested=points_ingested,
            rows_inserted=result.inserted,
            rows_updated=result.updated,
            synced_at=now_iso(),
            gaps=gaps,
            details=output.details,
        )

    @staticmethod
    def _gap_summary(gaps: Sequence[DerivationGap]) -> Optional[str]:
        if not gaps:
            return None
        return "; ".join(f"{gap.series_id} skipped for {gap.country_code}: {gap.reason}" for gap in gaps)

    async def _record_failed_run(self, store: ObservationStore, started_at: str, error: BaseException):
        """Append and commit a failed run; a failure here is logged, the job error still propagates"""
        try:
            await store.append_ingestion_run(
                IngestionRunCreate(
                    job=self.job_id,
                    status=RunStatus.FAILED,
                    started_at=started_at,
                    finished_at=now_iso(),
                    error_summary=summarize_error(error),
                )
            )
            await store.commit()
        except Exception:
            logger.exception(f"{self.job_id}: could not record failed run")

    async def _record_failed_run_in_new_store(self, started_at: str, error: BaseException):
        try:
            async with open_store(self.backend, self.store_path) as store:
                await self._record_failed_run(store, started_at, error)
        except Exception:
            logger.exception(f"{self.job_id}: could not open store to record failed run")

