"""
Pydantic schemas shared across the pipeline.

Modules:
    observation: Canonical Observation and its composite identity key
    store: Raw snapshot, cursor, ingestion run, catalog and file-store document
    points: Typed provider points produced by the source clients
    snapshots: Source snapshots (raw payload plus typed points)
"""
