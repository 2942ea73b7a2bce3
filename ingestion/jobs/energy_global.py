"""
Global energy jobs:
    sync-energy-wholesale-global-hourly: EIA wholesale + ENTSO-E day-ahead
    sync-energy-retail-global-daily: EIA retail + Eurostat household prices
"""

from typing import Dict, List
from ingestion.base import SourceClient
from ingestion.extractors.global_extractor import (
    EiaElectricityClient,
    EntsoeWholesaleClient,
    EurostatRetailClient,
)
from ingestion.runner import IngestionJob, JobOutput, latest_value
from ingestion.transformers.mappers import (
    MapperOptions,
    map_eia_retail_points,
    map_eia_wholesale_points,
    map_entsoe_wholesale_points,
    map_eurostat_retail_points,
)
from schemas.snapshots import SourceSnapshot


def _cursors(**latest_by_source) -> Dict[str, str]:
    return {source_id: cursor for source_id, cursor in latest_by_source.items() if cursor}


class SyncEnergyWholesaleGlobalJob(IngestionJob):
    job_id = "sync-energy-wholesale-global-hourly"

    def create_clients(self) -> List[SourceClient]:
        return [
            EiaElectricityClient(**self.client_kwargs(EiaElectricityClient.source_id)),
            EntsoeWholesaleClient(**self.client_kwargs(EntsoeWholesaleClient.source_id)),
        ]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        eia = snapshots[EiaElectricityClient.source_id]
        entsoe = snapshots[EntsoeWholesaleClient.source_id]

        eia_rows = map_eia_wholesale_points(eia.wholesale_points, options)
        entsoe_rows = map_entsoe_wholesale_points(entsoe.points, options)

        return JobOutput(
            observations=eia_rows + entsoe_rows,
            cursors=_cursors(
                eia_electricity=latest_value([p.interval_start_utc for p in eia.wholesale_points]),
                entsoe_wholesale=latest_value([p.interval_start_utc for p in entsoe.points]),
            ),
            details={"eia_points": len(eia_rows), "entsoe_points": len(entsoe_rows)},
        )


class SyncEnergyRetailGlobalJob(IngestionJob):
    job_id = "sync-energy-retail-global-daily"

    def create_clients(self) -> List[SourceClient]:
        return [
            EiaElectricityClient(**self.client_kwargs(EiaElectricityClient.source_id)),
            EurostatRetailClient(**self.client_kwargs(EurostatRetailClient.source_id)),
        ]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        eia = snapshots[EiaElectricityClient.source_id]
        eurostat = snapshots[EurostatRetailClient.source_id]

        eia_rows = map_eia_retail_points(eia.retail_points, options)
        eurostat_rows = map_eurostat_retail_points(eurostat.points, options)

        return JobOutput(
            observations=eia_rows + eurostat_rows,
            cursors=_cursors(
                eia_electricity=latest_value([p.period for p in eia.retail_points]),
                eurostat_retail=latest_value([p.period for p in eurostat.points]),
            ),
            details={"eia_points": len(eia_rows), "eurostat_points": len(eurostat_rows)},
        )
