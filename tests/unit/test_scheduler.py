import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
import pytest
from core.exceptions import PermanentSourceError, TransientSourceError
from ingestion.jobs import JOB_REGISTRY
from ingestion.scheduler import (
    DEFAULT_JOB_SCHEDULES,
    IngestionScheduler,
    JobAlert,
    backoff_delay,
    run_job_with_retry,
)


def _transient():
    return TransientSourceError("aemo_wholesale", "HTTP 503", status=503)


@pytest.mark.asyncio
async def test_transient_failure_exhausts_retries_then_alerts():
    run = AsyncMock(side_effect=_transient())
    alerts = []

    with pytest.raises(TransientSourceError):
        await run_job_with_retry("sync-energy-wholesale-5m", 3, run, on_alert=alerts.append)

    assert run.await_count == 3
    assert len(alerts) == 1
    assert isinstance(alerts[0], JobAlert)
    assert alerts[0].attempt == 3
    assert alerts[0].max_retries == 3


@pytest.mark.asyncio
async def test_permanent_failure_is_not_retried():
    run = AsyncMock(side_effect=PermanentSourceError("aer_prd", "HTTP 404", status=404))
    on_alert = MagicMock()

    with pytest.raises(PermanentSourceError):
        await run_job_with_retry("sync-energy-retail-prd-hourly", 3, run, on_alert=on_alert)

    assert run.await_count == 1
    on_alert.assert_called_once()
    assert on_alert.call_args[0][0].attempt == 1


@pytest.mark.asyncio
async def test_unexpected_error_is_not_retried():
    run = AsyncMock(side_effect=RuntimeError("bug"))

    with pytest.raises(RuntimeError):
        await run_job_with_retry("job", 5, run)

    assert run.await_count == 1


@pytest.mark.asyncio
async def test_recovers_after_transient_failure():
    run = AsyncMock(side_effect=[_transient(), "done"])
    on_alert = MagicMock()

    result = await run_job_with_retry("job", 3, run, on_alert=on_alert)

    assert result == "done"
    assert run.await_count == 2
    on_alert.assert_not_called()


@pytest.mark.asyncio
async def test_max_retries_floor_is_one():
    run = AsyncMock(side_effect=_transient())
    alerts = []

    with pytest.raises(TransientSourceError):
        await run_job_with_retry("job", 0, run, on_alert=alerts.append)

    assert run.await_count == 1
    assert alerts[0].max_retries == 1


@pytest.mark.asyncio
async def test_retry_delay_sleeps_between_attempts():
    run = AsyncMock(side_effect=[_transient(), "done"])

    with patch("ingestion.scheduler.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        await run_job_with_retry("job", 3, run, retry_delay=1.0)

    mock_sleep.assert_awaited_once()
    assert 0 <= mock_sleep.call_args[0][0] <= 1.0


def test_backoff_delay_bounds():
    for attempt in range(1, 5):
        assert 0 <= backoff_delay(2.0, attempt) <= 2.0 * (2 ** (attempt - 1))


def test_every_registered_job_has_a_schedule():
    assert set(DEFAULT_JOB_SCHEDULES) == set(JOB_REGISTRY)


def test_store_target_groups_jobs_by_store(store_path):
    scheduler = IngestionScheduler()
    first = JOB_REGISTRY["sync-housing-abs-daily"](store_path=store_path, backend="store")
    second = JOB_REGISTRY["sync-housing-rba-daily"](store_path=store_path, backend="store")
    third = JOB_REGISTRY["sync-housing-rba-daily"](backend="postgres")

    assert scheduler.store_target(first) == scheduler.store_target(second)
    assert scheduler.store_target(third).startswith("postgres:")
    assert scheduler.lock_for("a") is scheduler.lock_for("a")


@pytest.mark.asyncio
async def test_run_job_serialises_same_store(store_path):
    active = 0
    peak = 0

    async def slow_run():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return "ok"

    def factory(job_id):
        job = JOB_REGISTRY[job_id](store_path=store_path, backend="store")
        job.run = slow_run
        return job

    scheduler = IngestionScheduler(job_factory=factory, max_retries=1, retry_delay=0)

    results = await asyncio.gather(
        scheduler.run_job("sync-housing-abs-daily"),
        scheduler.run_job("sync-housing-rba-daily"),
    )

    assert results == ["ok", "ok"]
    assert peak == 1


@pytest.mark.asyncio
async def test_scheduled_run_logs_terminal_failure(store_path):
    def factory(job_id):
        job = JOB_REGISTRY[job_id](store_path=store_path, backend="store")
        job.run = AsyncMock(side_effect=PermanentSourceError("abs_housing", "HTTP 400", status=400))
        return job

    on_alert = MagicMock()
    scheduler = IngestionScheduler(job_factory=factory, on_alert=on_alert, max_retries=3, retry_delay=0)

    await scheduler._scheduled_run("sync-housing-abs-daily")

    on_alert.assert_called_once()


def test_start_registers_every_job():
    scheduler = IngestionScheduler()
    scheduler.scheduler = MagicMock()

    scheduler.start()

    registered = [call.kwargs["id"] for call in scheduler.scheduler.add_job.call_args_list]
    assert registered == list(DEFAULT_JOB_SCHEDULES)
    assert all(call.kwargs["max_instances"] == 1 for call in scheduler.scheduler.add_job.call_args_list)
    scheduler.scheduler.start.assert_called_once()
