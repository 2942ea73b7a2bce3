"""
sync-energy-wholesale-5m: AEMO dispatch prices
"""

from typing import Dict, List
from core.exceptions import PermanentSourceError
from ingestion.base import SourceClient
from ingestion.extractors.csv_extractor import AemoWholesaleClient
from ingestion.runner import IngestionJob, JobOutput
from ingestion.transformers.mappers import (
    AEMO_WEIGHTED_SERIES_ID,
    MapperOptions,
    map_aemo_wholesale_points,
)
from schemas.snapshots import SourceSnapshot


class SyncEnergyWholesaleJob(IngestionJob):
    job_id = "sync-energy-wholesale-5m"

    def create_clients(self) -> List[SourceClient]:
        return [AemoWholesaleClient(**self.client_kwargs(AemoWholesaleClient.source_id))]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        snapshot = snapshots[AemoWholesaleClient.source_id]
        if not snapshot.points:
            raise PermanentSourceError(snapshot.source_id, "no wholesale points to ingest")

        observations = map_aemo_wholesale_points(snapshot.points, options)
        weighted = [o for o in observations if o.series_id == AEMO_WEIGHTED_SERIES_ID]
        latest = max(weighted, key=lambda o: o.date)

        return JobOutput(
            observations=observations,
            cursors={snapshot.source_id: latest.date},
            details={
                "series_id": AEMO_WEIGHTED_SERIES_ID,
                "intervals": len(weighted),
                "latest": {
                    "timestamp": latest.date,
                    "aud_mwh": latest.value,
                    "c_kwh": latest.value / 10,
                },
            },
        )
