"""
Pydantic schemas for the auxiliary ledgers and the file-store document
"""

from typing import List, Optional
from pydantic import Field
from models.base import RunStatus, SourceDomain
from schemas.observation import CanonicalModel, Observation


class RawSnapshot(CanonicalModel):
    """Immutable capture of one fetch response from one source"""
    snapshot_id: str
    source_id: str
    checksum_sha256: str
    captured_at: str
    content_type: str
    payload: str


class SourceCursor(CanonicalModel):
    """Per-source watermark; at most one per source_id"""
    source_id: str
    cursor: str
    updated_at: str


class IngestionRunCreate(CanonicalModel):
    """Run record before the store assigns its run_id"""
    job: str = Field(..., min_length=1)
    status: RunStatus
    started_at: str
    finished_at: str
    rows_inserted: int = Field(0, ge=0)
    rows_updated: int = Field(0, ge=0)
    error_summary: Optional[str] = None


class IngestionRun(IngestionRunCreate):
    """Audit record of one job execution"""
    run_id: str


class SourceCatalogItem(CanonicalModel):
    """Catalog entry describing one upstream provider"""
    source_id: str
    domain: SourceDomain
    name: str
    url: str
    expected_cadence: str


class UpsertResult(CanonicalModel):
    inserted: int = 0
    updated: int = 0

    def __add__(self, other: "UpsertResult") -> "UpsertResult":
        return UpsertResult(
            inserted=self.inserted + other.inserted,
            updated=self.updated + other.updated
        )


class StageResult(CanonicalModel):
    staged: bool
    snapshot: RawSnapshot


class LiveStoreDocument(CanonicalModel):
    """
    On-disk shape of the flat-file store.

    raw_snapshots defaults to an empty list so documents written before
    snapshot staging existed still load.
    """
    version: int = 1
    updated_at: str
    observations: List[Observation] = Field(default_factory=list)
    raw_snapshots: List[RawSnapshot] = Field(default_factory=list)
    sources: List[SourceCatalogItem] = Field(default_factory=list)
    source_cursors: List[SourceCursor] = Field(default_factory=list)
    ingestion_runs: List[IngestionRun] = Field(default_factory=list)
