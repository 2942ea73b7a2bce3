"""
Canonical store backends.

Modules:
    base: ObservationStore contract and shared helpers (checksum, run ids)
    file_store: JSON flat-file backend, atomically rewritten on commit
    postgres_loader: SQLAlchemy async relational backend
    backend: Backend selector and open_store() context manager
    freshness: Observation date parsing and lag computation
    backfill: Copy a file store into the relational backend
"""
