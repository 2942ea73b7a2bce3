"""
SQLAlchemy ORM models for the relational store backend.

Models:
    base: Declarative base and shared enums (ObservationConfidence, RunStatus, SourceDomain)
    observation: Canonical observations, unique on (series_id, region_code, date, vintage)
    raw_snapshot: Raw provider payloads, unique on (source_id, checksum_sha256)
    source_cursor: One watermark row per source
    ingestion_run: Append-only job audit trail
    source: Source catalog

Usage:
    from models.observation import ObservationRecord
    from models.base import Base, RunStatus
"""

__all__ = [
    "Base",
    "ObservationConfidence",
    "RunStatus",
    "SourceDomain",
    "ObservationRecord",
    "RawSnapshotRecord",
    "SourceCursorRecord",
    "IngestionRunRecord",
    "SourceRecord",
]
