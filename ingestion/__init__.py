"""
Ingestion pipeline: source clients, mapping, normalization and the canonical store.

Modules:
    base: SourceClient base class with transient/permanent error classification
    catalog: Known upstream providers
    fixtures: Built-in provider payloads for fixture-mode runs
    runner: IngestionJob skeleton (fetch, stage, map, upsert, derive, record)
    scheduler: Cron cadences, retry wrapper and APScheduler integration

Subpackages:
    extractors: One client per provider (AEMO, AER, ABS, RBA, EIA, ENTSO-E, Eurostat, World Bank)
    transformers: Mappers and the comparison normalizer
    loaders: Store contract with flat-file and relational backends
    jobs: The scheduled sync jobs

Architecture:
    Each job runs in a fixed order:

    1. Fetch - every snapshot is fetched and validated before the store is opened
    2. Stage - raw payloads are captured, deduplicated by content checksum
    3. Map - provider points become canonical observations
    4. Upsert - observations are written by (series_id, region_code, date, vintage)
    5. Derive - comparison jobs re-read the store and upsert FX/PPP-derived rows
    6. Record - source cursors advance and an ingestion run is appended

Usage:
    from ingestion.jobs import SyncEnergyWholesaleJob
    from ingestion.scheduler import run_job_with_retry

    job = SyncEnergyWholesaleJob(store_path="data/live-store.json")
    result = await run_job_with_retry(job.job_id, 3, job.run)

Error Handling:
    Source clients raise TransientSourceError or PermanentSourceError from
    core.exceptions. Jobs record a failed run and re-raise; the scheduler
    decides whether to retry and fires the alert on terminal failure.
"""

__all__ = [
    "SourceClient",
    "IngestionJob",
    "JobResult",
    "IngestionScheduler",
    "run_job_with_retry",
]
