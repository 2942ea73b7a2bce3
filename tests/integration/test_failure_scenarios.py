"""
Tests for failure scenarios and error handling
"""

import asyncio
import json
import httpx
import pytest
from core.exceptions import (
    PermanentSourceError,
    SchemaDriftError,
    TransientSourceError,
    UnsupportedBackendError,
)
from ingestion.fixtures import WORLD_BANK_FIXTURE
from ingestion.jobs import (
    JOB_REGISTRY,
    SyncEnergyNormalizationJob,
    SyncEnergyWholesaleGlobalJob,
    SyncEnergyWholesaleJob,
    SyncHousingAbsJob,
)
from ingestion.loaders.file_store import FileStore
from ingestion.scheduler import run_job_with_retry
from ingestion.transformers.mappers import WHOLESALE_USD_SERIES_ID

VINTAGE = "2026-02-28"


def _fixture_job(job_class, store_path):
    return job_class(store_path=store_path, backend="store", source_mode="fixture", vintage=VINTAGE)


def _live_job(job_class, store_path, fetch):
    return job_class(store_path=store_path, backend="store", source_mode="live", fetch_impl=fetch, vintage=VINTAGE)


@pytest.mark.asyncio
async def test_source_down_leaves_observations_unchanged(store_path, mock_fetch):
    """
    Test: provider returns 503, observations are untouched and a failed run is recorded
    """
    await _fixture_job(SyncHousingAbsJob, store_path).run()
    before = FileStore.load(store_path).document

    with pytest.raises(TransientSourceError):
        await _live_job(SyncHousingAbsJob, store_path, mock_fetch([(503, "unavailable")])).run()

    after = FileStore.load(store_path).document
    assert after.observations == before.observations
    assert after.raw_snapshots == before.raw_snapshots
    assert [run.status for run in after.ingestion_runs] == ["ok", "failed"]
    assert "TransientSourceError" in after.ingestion_runs[-1].error_summary
    assert (await FileStore.load(store_path).get_source_cursor("abs_housing")).cursor == "2025-Q4"


@pytest.mark.asyncio
async def test_network_failure_retried_then_alerted(store_path):
    """
    Test: connection errors are retried up to max_retries, one alert fires
    """
    async def failing_fetch(url, headers):
        raise httpx.ConnectError("Connection refused")

    job = _live_job(SyncHousingAbsJob, store_path, failing_fetch)
    alerts = []

    with pytest.raises(TransientSourceError):
        await run_job_with_retry(job.job_id, 3, job.run, on_alert=alerts.append)

    assert len(alerts) == 1
    runs = FileStore.load(store_path).document.ingestion_runs
    assert [run.status for run in runs] == ["failed", "failed", "failed"]


@pytest.mark.asyncio
async def test_schema_drift_is_permanent(store_path, mock_fetch):
    """
    Test: malformed payload fails once without retry
    """
    body = json.dumps({"observations": [{"series_id": "hvi.value.index", "region_code": "AU"}]})
    job = _live_job(SyncHousingAbsJob, store_path, mock_fetch([(200, body)]))
    alerts = []

    with pytest.raises(SchemaDriftError):
        await run_job_with_retry(job.job_id, 3, job.run, on_alert=alerts.append)

    assert alerts[0].attempt == 1
    document = FileStore.load(store_path).document
    assert document.observations == []
    assert len(document.ingestion_runs) == 1


@pytest.mark.asyncio
async def test_store_phase_failure_rolls_back(store_path, mock_fetch):
    """
    Test: a failure after staging discards the staged snapshot
    """
    job = _live_job(SyncEnergyWholesaleJob, store_path, mock_fetch([(200, "SETTLEMENTDATE,REGIONID,RRP,TOTALDEMAND")]))

    with pytest.raises(PermanentSourceError):
        await job.run()

    document = FileStore.load(store_path).document
    assert document.raw_snapshots == []
    assert document.observations == []
    assert document.ingestion_runs[-1].status == "failed"
    assert "no wholesale points" in document.ingestion_runs[-1].error_summary


@pytest.mark.asyncio
async def test_zero_fx_marks_run_degraded(store_path, mock_fetch):
    """
    Test: a non-positive FX factor skips the country and degrades the run
    """
    for job_id in JOB_REGISTRY:
        if job_id != SyncEnergyNormalizationJob.job_id:
            await _fixture_job(JOB_REGISTRY[job_id], store_path).run()

    factors = [
        dict(row, value=0) if row["country_code"] == "DEU" and row["indicator_code"] == "PA.NUS.FCRF" else row
        for row in WORLD_BANK_FIXTURE
    ]
    job = _live_job(SyncEnergyNormalizationJob, store_path, mock_fetch([(200, json.dumps({"data": factors}))]))

    result = await job.run()

    assert result.status == "degraded"
    assert {gap.country_code for gap in result.gaps} == {"DE"}
    document = FileStore.load(store_path).document
    run = document.ingestion_runs[-1]
    assert run.status == "degraded"
    assert "DE" in run.error_summary
    wholesale_countries = {
        o.country_code for o in document.observations
        if o.series_id == WHOLESALE_USD_SERIES_ID and o.methodology_version == "energy-comparison-v1"
    }
    assert wholesale_countries == {"AU"}


def test_unsupported_backend_rejected_before_fetch(store_path):
    with pytest.raises(UnsupportedBackendError):
        SyncHousingAbsJob(store_path=store_path, backend="sqlite")


@pytest.mark.asyncio
async def test_failed_fetch_cancels_sibling_fetches(store_path):
    """
    Test: when one source fails, the other fetches are cancelled before run() returns
    """
    cancelled = []

    async def fetch(url, headers):
        if "entsoe" in url:
            raise httpx.ConnectError("Connection refused")
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            cancelled.append(url)
            raise
        return httpx.Response(200, text="{}")

    job = _live_job(SyncEnergyWholesaleGlobalJob, store_path, fetch)

    with pytest.raises(TransientSourceError):
        await job.run()

    assert cancelled == ["https://api.eia.gov/v2/electricity/"]
    pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task() and not task.done()]
    assert pending == []
    assert FileStore.load(store_path).document.ingestion_runs[-1].status == "failed"
