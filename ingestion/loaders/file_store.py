"""
Flat-file JSON store.

The whole ledger is loaded into memory, mutated by one job, then rewritten
in a single atomic replace on commit(). Nothing touches the file between
load and commit, so an aborted job leaves the previous document intact.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import ValidationError as PydanticValidationError
from core.config import settings
from core.exceptions import StoreIntegrityError
from ingestion.catalog import SOURCE_CATALOG
from ingestion.loaders.base import (
    ObservationStore,
    ensure_finite,
    epoch_ms,
    generate_run_id,
    now_iso,
    payload_checksum_sha256,
)
from schemas.observation import Observation, ObservationKey
from schemas.store import (
    IngestionRun,
    IngestionRunCreate,
    LiveStoreDocument,
    RawSnapshot,
    SourceCatalogItem,
    SourceCursor,
    StageResult,
    UpsertResult,
)
import logging

logger = logging.getLogger(__name__)


def resolve_store_path(explicit_path: Optional[str] = None) -> Path:
    """Explicit path, else STORE_PATH from settings, resolved to absolute"""
    if explicit_path:
        return Path(explicit_path).resolve()
    return Path(settings.STORE_PATH).resolve()


def create_seed_document() -> LiveStoreDocument:
    """Empty ledger carrying the known source catalog"""
    return LiveStoreDocument(
        version=1,
        updated_at=now_iso(),
        sources=[item.model_copy() for item in SOURCE_CATALOG],
    )


def write_document(document: LiveStoreDocument, store_path: Path) -> None:
    """Serialize and atomically replace the store file"""
    store_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(
        document.model_dump(mode="json", by_alias=True, exclude_none=True),
        indent=2,
    )

    fd, tmp_path = tempfile.mkstemp(
        dir=str(store_path.parent), prefix=f".{store_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_path, store_path)
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def read_document(store_path: Path) -> LiveStoreDocument:
    """
    Load the store document, seeding a fresh one when the file is absent.

    Raises:
        StoreIntegrityError: The file exists but is not a version-1 store
    """
    if not store_path.exists():
        seeded = create_seed_document()
        write_document(seeded, store_path)
        logger.info(f"Seeded new store at {store_path}")
        return seeded

    try:
        raw = json.loads(store_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict) or raw.get("version") != 1:
            raise ValueError("missing or unsupported store version")
        return LiveStoreDocument.model_validate(raw)
    except (ValueError, PydanticValidationError) as e:
        raise StoreIntegrityError(
            "Store file is not a readable version-1 document",
            context={"store_path": str(store_path), "operation": "load"},
            original_exception=e
        )


class FileStore(ObservationStore):
    """
    In-memory store backed by a JSON document.

    With store_path=None the store lives purely in memory; commit() then
    only moves the rollback point.
    """

    backend_name = "store"

    def __init__(
        self,
        document: Optional[LiveStoreDocument] = None,
        store_path: Optional[Path] = None
    ):
        self.store_path = store_path
        self.document = document or create_seed_document()
        self._committed = self.document.model_copy(deep=True)
        self._index: Dict[ObservationKey, int] = {}
        self._rebuild_index()

    @classmethod
    def load(cls, store_path: Optional[str] = None) -> "FileStore":
        path = resolve_store_path(store_path)
        return cls(document=read_document(path), store_path=path)

    def _rebuild_index(self):
        self._index = {
            observation.key: position
            for position, observation in enumerate(self.document.observations)
        }

    def _touch(self, timestamp: Optional[str] = None):
        self.document.updated_at = timestamp or now_iso()

    @property
    def updated_at(self) -> str:
        return self.document.updated_at

    async def upsert_observations(self, incoming: List[Observation]) -> UpsertResult:
        ensure_finite(incoming, "upsert_observations")

        inserted = 0
        updated = 0
        observations = self.document.observations

        for observation in incoming:
            key = observation.key
            position = self._index.get(key)

            if position is None:
                observations.append(observation)
                self._index[key] = len(observations) - 1
                inserted += 1
                continue

            observations[position] = observation
            updated += 1

        if inserted or updated:
            self._touch()

        return UpsertResult(inserted=inserted, updated=updated)

    async def stage_raw_payload(
        self,
        source_id: str,
        payload: str,
        content_type: str,
        captured_at: str
    ) -> StageResult:
        checksum = payload_checksum_sha256(payload)
        for snapshot in self.document.raw_snapshots:
            if snapshot.source_id == source_id and snapshot.checksum_sha256 == checksum:
                return StageResult(staged=False, snapshot=snapshot)

        snapshot = RawSnapshot(
            snapshot_id=f"{source_id}-{epoch_ms()}-{len(self.document.raw_snapshots) + 1}",
            source_id=source_id,
            checksum_sha256=checksum,
            captured_at=captured_at,
            content_type=content_type,
            payload=payload,
        )
        self.document.raw_snapshots.append(snapshot)
        self._touch()
        return StageResult(staged=True, snapshot=snapshot)

    async def set_source_cursor(self, source_id: str, cursor: str) -> SourceCursor:
        updated_at = now_iso()
        for existing in self.document.source_cursors:
            if existing.source_id == source_id:
                existing.cursor = cursor
                existing.updated_at = updated_at
                self._touch(updated_at)
                return existing

        source_cursor = SourceCursor(source_id=source_id, cursor=cursor, updated_at=updated_at)
        self.document.source_cursors.append(source_cursor)
        self._touch(updated_at)
        return source_cursor

    async def get_source_cursor(self, source_id: str) -> Optional[SourceCursor]:
        for existing in self.document.source_cursors:
            if existing.source_id == source_id:
                return existing
        return None

    async def append_ingestion_run(self, run: IngestionRunCreate) -> IngestionRun:
        ingestion_run = IngestionRun(run_id=generate_run_id(run.job), **run.model_dump())
        self.document.ingestion_runs.append(ingestion_run)
        self._touch(run.finished_at)
        return ingestion_run

    async def list_observations(self) -> List[Observation]:
        return list(self.document.observations)

    async def ensure_source_catalog(self, items: List[SourceCatalogItem]) -> None:
        by_id = {item.source_id: position for position, item in enumerate(self.document.sources)}
        changed = False
        for item in items:
            position = by_id.get(item.source_id)
            if position is None:
                self.document.sources.append(item)
                by_id[item.source_id] = len(self.document.sources) - 1
                changed = True
            elif self.document.sources[position] != item:
                self.document.sources[position] = item
                changed = True
        if changed:
            self._touch()

    async def commit(self) -> None:
        if self.store_path is not None:
            write_document(self.document, self.store_path)
            logger.debug(f"Store written to {self.store_path}")
        self._committed = self.document.model_copy(deep=True)

    async def rollback(self) -> None:
        self.document = self._committed.model_copy(deep=True)
        self._rebuild_index()
