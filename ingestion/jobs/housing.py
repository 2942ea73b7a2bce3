"""
Housing jobs:
    sync-housing-abs-daily: ABS housing indicators
    sync-housing-rba-daily: RBA owner-occupier lending rates
"""

from typing import Dict, List
from ingestion.base import SourceClient
from ingestion.extractors.api_extractor import AbsHousingClient
from ingestion.extractors.csv_extractor import RbaRatesClient
from ingestion.runner import IngestionJob, JobOutput, latest_value
from ingestion.transformers.mappers import MapperOptions, map_housing_points
from schemas.snapshots import SourceSnapshot


class HousingSeriesJob(IngestionJob):
    client_class = AbsHousingClient

    def create_clients(self) -> List[SourceClient]:
        return [self.client_class(**self.client_kwargs(self.client_class.source_id))]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        snapshot = snapshots[self.client_class.source_id]
        observations = map_housing_points(snapshot.observations, snapshot.source_id, options)
        cursor = latest_value([point.date for point in snapshot.observations])

        return JobOutput(
            observations=observations,
            cursors={snapshot.source_id: cursor} if cursor else {},
            details={"series": sorted({point.series_id for point in snapshot.observations})},
        )


class SyncHousingAbsJob(HousingSeriesJob):
    job_id = "sync-housing-abs-daily"
    client_class = AbsHousingClient


class SyncHousingRbaJob(HousingSeriesJob):
    job_id = "sync-housing-rba-daily"
    client_class = RbaRatesClient
