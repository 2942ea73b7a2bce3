import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from pydantic import BaseModel
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from core.config import settings
from core.exceptions import is_transient_error
from ingestion.jobs import JOB_REGISTRY
from ingestion.loaders.file_store import resolve_store_path
from ingestion.runner import IngestionJob, JobResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_JOB_SCHEDULES: Dict[str, str] = {
    "sync-energy-wholesale-5m": "*/5 * * * *",
    "sync-energy-retail-prd-hourly": "0 * * * *",
    "sync-energy-wholesale-global-hourly": "10 * * * *",
    "sync-energy-retail-global-daily": "0 1 * * *",
    "sync-energy-normalization-daily": "30 1 * * *",
    "sync-housing-abs-daily": "0 2 * * *",
    "sync-housing-rba-daily": "30 2 * * *",
}


class JobAlert(BaseModel):
    """Terminal failure of a scheduled job"""
    job_id: str
    attempt: int
    max_retries: int
    error: Any


AlertSink = Callable[[JobAlert], None]


def log_alert(alert: JobAlert) -> None:
    logger.error(
        f"ingest.alert job={alert.job_id} attempt={alert.attempt}/{alert.max_retries} "
        f"error={alert.error}"
    )


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Exponential backoff with full jitter"""
    return random.uniform(0, base_delay * (2 ** (attempt - 1)))


async def run_job_with_retry(
    job_id: str,
    max_retries: int,
    run: Callable[[], Awaitable[T]],
    on_alert: Optional[AlertSink] = None,
    retry_delay: float = 0.0
) -> T:
    """
    Run a job, retrying transient failures.

    Attempts run() up to max_retries times (at least once). A transient
    error with attempts left is retried; any other failure fires on_alert
    exactly once and is re-raised.
    """
    max_retries = max(1, max_retries)

    attempt = 1
    while True:
        try:
            return await run()
        except Exception as e:
            if is_transient_error(e) and attempt < max_retries:
                logger.warning(f"{job_id}: transient failure on attempt {attempt}/{max_retries} - {e}")
                if retry_delay > 0:
                    await asyncio.sleep(backoff_delay(retry_delay, attempt))
                attempt += 1
                continue

            if on_alert is not None:
                on_alert(JobAlert(job_id=job_id, attempt=attempt, max_retries=max_retries, error=e))
            raise


class IngestionScheduler:
    """
    Triggers sync jobs on their cron cadence.

    Jobs writing the same physical store are serialised through one
    asyncio.Lock per store target; max_instances=1 keeps a slow job from
    overlapping its own next run.
    """

    def __init__(
        self,
        schedules: Optional[Dict[str, str]] = None,
        job_factory: Optional[Callable[[str], IngestionJob]] = None,
        on_alert: AlertSink = log_alert,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None
    ):
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.schedules = schedules if schedules is not None else dict(DEFAULT_JOB_SCHEDULES)
        self.job_factory = job_factory or self._default_job_factory
        self.on_alert = on_alert
        self.max_retries = settings.MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def _default_job_factory(job_id: str) -> IngestionJob:
        return JOB_REGISTRY[job_id]()

    @staticmethod
    def store_target(job: IngestionJob) -> str:
        if job.backend == "postgres":
            return f"postgres:{settings.DATABASE_URL}"
        return f"store:{resolve_store_path(job.store_path)}"

    def lock_for(self, target: str) -> asyncio.Lock:
        if target not in self._locks:
            self._locks[target] = asyncio.Lock()
        return self._locks[target]

    async def run_job(self, job_id: str) -> JobResult:
        """Run one job with retry, holding its store target's lock"""
        job = self.job_factory(job_id)
        async with self.lock_for(self.store_target(job)):
            return await run_job_with_retry(
                job_id,
                self.max_retries,
                job.run,
                on_alert=self.on_alert,
                retry_delay=self.retry_delay,
            )

    async def _scheduled_run(self, job_id: str):
        """Scheduler entry point; the alert has already fired for terminal failures"""
        try:
            await self.run_job(job_id)
        except Exception as e:
            logger.error(f"Scheduler: {job_id} failed - {e}")

    def start(self):
        """Register every job on its cadence and start the scheduler"""
        for job_id, cadence in self.schedules.items():
            self.scheduler.add_job(
                self._scheduled_run,
                trigger=CronTrigger.from_crontab(cadence, timezone="UTC"),
                args=[job_id],
                id=job_id,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self.scheduler.start()
        logger.info(f"Ingestion scheduler started with {len(self.schedules)} jobs")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Ingestion scheduler stopped")
