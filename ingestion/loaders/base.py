"""
Store contract shared by the flat-file and relational backends.
"""

import hashlib
import math
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from core.exceptions import StoreIntegrityError
from ingestion.loaders.freshness import format_iso
from schemas.observation import Observation
from schemas.store import (
    IngestionRun,
    IngestionRunCreate,
    SourceCatalogItem,
    SourceCursor,
    StageResult,
    UpsertResult,
)


def now_iso() -> str:
    """UTC timestamp in the store's ISO format (millisecond precision, Z suffix)"""
    return format_iso(datetime.now(timezone.utc))


def epoch_ms() -> int:
    return int(time.time() * 1000)


def payload_checksum_sha256(payload: str) -> str:
    """SHA-256 hex digest of the payload's UTF-8 bytes"""
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def generate_run_id(job: str) -> str:
    # Millisecond clock plus a random suffix keeps ids unique for runs
    # that finish within the same millisecond.
    return f"{job}-{epoch_ms()}-{secrets.token_hex(3)}"


def ensure_finite(observations: Iterable[Observation], operation: str) -> None:
    """Fail fast before any write when an unvalidated value slipped through"""
    for observation in observations:
        if not math.isfinite(observation.value):
            raise StoreIntegrityError(
                "non-finite observation value",
                context={"operation": operation, "key": tuple(observation.key)}
            )


class ObservationStore(ABC):
    """
    Abstract canonical store.

    Responsibilities:
    - Observation upsert keyed by (series_id, region_code, date, vintage)
    - Raw snapshot staging deduplicated by (source_id, checksum_sha256)
    - One cursor per source
    - Append-only ingestion run history

    A store instance is owned by one job for the duration of its run;
    mutations become durable on commit().
    """

    backend_name: str = ""

    @abstractmethod
    async def upsert_observations(self, incoming: List[Observation]) -> UpsertResult:
        """Insert unseen keys, replace existing ones in place"""
        pass

    @abstractmethod
    async def stage_raw_payload(
        self,
        source_id: str,
        payload: str,
        content_type: str,
        captured_at: str
    ) -> StageResult:
        """Capture a raw payload unless identical content is already staged"""
        pass

    @abstractmethod
    async def set_source_cursor(self, source_id: str, cursor: str) -> SourceCursor:
        pass

    @abstractmethod
    async def get_source_cursor(self, source_id: str) -> Optional[SourceCursor]:
        pass

    @abstractmethod
    async def append_ingestion_run(self, run: IngestionRunCreate) -> IngestionRun:
        pass

    @abstractmethod
    async def list_observations(self) -> List[Observation]:
        pass

    @abstractmethod
    async def ensure_source_catalog(self, items: List[SourceCatalogItem]) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Make every mutation since the last commit durable"""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every mutation since the last commit"""
        pass

    async def close(self) -> None:
        pass
