"""
Script to run every sync job once, with retry and alerting
"""

import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import dispose_engine
from core.logging import setup_logging
from ingestion.jobs import JOB_REGISTRY
from ingestion.scheduler import DEFAULT_JOB_SCHEDULES, IngestionScheduler

logger = logging.getLogger(__name__)


async def run_all_jobs() -> int:
    """
    Start every job concurrently.

    Jobs sharing a store target queue on its lock in registry order, so
    normalization sees the rows the other jobs wrote.
    """
    scheduler = IngestionScheduler()
    job_ids = list(JOB_REGISTRY)

    try:
        results = await asyncio.gather(
            *(scheduler.run_job(job_id) for job_id in job_ids),
            return_exceptions=True
        )
    finally:
        await dispose_engine()

    summary = []
    failed = 0
    for job_id, result in zip(job_ids, results):
        if isinstance(result, BaseException):
            failed += 1
            summary.append({"job": job_id, "status": "failed", "error": str(result)})
        else:
            summary.append(result.model_dump())

    logger.info(
        json.dumps(
            {
                "status": "ok" if failed == 0 else "failed",
                "schedules": DEFAULT_JOB_SCHEDULES,
                "jobs": summary,
            },
            indent=2,
        )
    )
    return 1 if failed else 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_all_jobs()))
