"""
sync-energy-retail-prd-hourly: AER residential plan bills
"""

from typing import Dict, List
from ingestion.base import SourceClient
from ingestion.extractors.api_extractor import AerRetailPlansClient
from ingestion.runner import IngestionJob, JobOutput
from ingestion.transformers.mappers import (
    MapperOptions,
    map_aer_retail_plans,
    select_residential_plans,
    summarize_annual_bills,
)
from schemas.snapshots import SourceSnapshot


class SyncEnergyRetailPlansJob(IngestionJob):
    job_id = "sync-energy-retail-prd-hourly"

    def create_clients(self) -> List[SourceClient]:
        return [AerRetailPlansClient(**self.client_kwargs(AerRetailPlansClient.source_id))]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        snapshot = snapshots[AerRetailPlansClient.source_id]
        annual_mean, annual_median = summarize_annual_bills(snapshot.plans)

        return JobOutput(
            observations=map_aer_retail_plans(snapshot.plans, options),
            cursors={snapshot.source_id: options.vintage},
            details={
                "total_plans_seen": len(snapshot.plans),
                "residential_plans_ingested": len(select_residential_plans(snapshot.plans)),
                "annual_bill_aud_mean": annual_mean,
                "annual_bill_aud_median": annual_median,
            },
        )
