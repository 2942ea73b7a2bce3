"""
sync-energy-normalization-daily: World Bank FX/PPP plus comparison derivation
"""

from typing import Dict, List, Optional
from core.config import settings
from ingestion.base import SourceClient
from ingestion.extractors.global_extractor import WorldBankNormalizationClient
from ingestion.runner import IngestionJob, JobOutput, latest_value
from ingestion.transformers.mappers import MapperOptions, map_world_bank_points
from ingestion.transformers.normalizer import ComparisonNormalizer
from schemas.snapshots import SourceSnapshot


class SyncEnergyNormalizationJob(IngestionJob):
    """
    Upserts the conversion factors, then derives comparison rows from
    everything the store holds (including rows written by other jobs).
    """

    job_id = "sync-energy-normalization-daily"

    def __init__(self, normalizer: Optional[ComparisonNormalizer] = None, **kwargs):
        if normalizer is None:
            normalizer = ComparisonNormalizer(
                target_countries=settings.comparison_countries,
                household_usage_kwh=settings.household_usage_kwh,
            )
        super().__init__(normalizer=normalizer, **kwargs)

    def create_clients(self) -> List[SourceClient]:
        return [WorldBankNormalizationClient(**self.client_kwargs(WorldBankNormalizationClient.source_id))]

    def build(self, snapshots: Dict[str, SourceSnapshot], options: MapperOptions) -> JobOutput:
        snapshot = snapshots[WorldBankNormalizationClient.source_id]
        latest_year = latest_value([point.year for point in snapshot.points])

        return JobOutput(
            observations=map_world_bank_points(snapshot.points, options),
            cursors={snapshot.source_id: latest_year} if latest_year else {},
        )
