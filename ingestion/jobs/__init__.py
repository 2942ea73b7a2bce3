"""
Sync jobs, one class per scheduled job id.
"""

from typing import Dict, Type
from ingestion.jobs.energy_global import SyncEnergyRetailGlobalJob, SyncEnergyWholesaleGlobalJob
from ingestion.jobs.energy_normalization import SyncEnergyNormalizationJob
from ingestion.jobs.energy_retail_plans import SyncEnergyRetailPlansJob
from ingestion.jobs.energy_wholesale import SyncEnergyWholesaleJob
from ingestion.jobs.housing import SyncHousingAbsJob, SyncHousingRbaJob
from ingestion.runner import IngestionJob

# Registration order is run order; normalization reads what the others wrote
JOB_REGISTRY: Dict[str, Type[IngestionJob]] = {
    job.job_id: job
    for job in (
        SyncHousingAbsJob,
        SyncHousingRbaJob,
        SyncEnergyWholesaleJob,
        SyncEnergyWholesaleGlobalJob,
        SyncEnergyRetailPlansJob,
        SyncEnergyRetailGlobalJob,
        SyncEnergyNormalizationJob,
    )
}

__all__ = [
    "JOB_REGISTRY",
    "SyncEnergyNormalizationJob",
    "SyncEnergyRetailGlobalJob",
    "SyncEnergyRetailPlansJob",
    "SyncEnergyWholesaleGlobalJob",
    "SyncEnergyWholesaleJob",
    "SyncHousingAbsJob",
    "SyncHousingRbaJob",
]
