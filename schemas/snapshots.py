"""
Source snapshots returned by the extractors.

raw_payload is the response body exactly as received; it is what gets
staged and checksummed, whatever number of points were extracted from it.
"""

from typing import List
from pydantic import BaseModel, Field
from schemas.points import (
    AemoWholesalePoint,
    AerRetailPlan,
    EiaRetailPricePoint,
    EiaWholesalePricePoint,
    EntsoeWholesalePoint,
    EurostatRetailPricePoint,
    HousingSeriesPoint,
    WorldBankNormalizationPoint,
)


class SourceSnapshot(BaseModel):
    source_id: str
    endpoint: str
    content_type: str = "application/json"
    raw_payload: str


class AemoWholesaleSnapshot(SourceSnapshot):
    content_type: str = "text/csv"
    points: List[AemoWholesalePoint] = Field(default_factory=list)


class AerRetailSnapshot(SourceSnapshot):
    plans: List[AerRetailPlan] = Field(default_factory=list)


class HousingSnapshot(SourceSnapshot):
    observations: List[HousingSeriesPoint] = Field(default_factory=list)


class EiaElectricitySnapshot(SourceSnapshot):
    retail_points: List[EiaRetailPricePoint] = Field(default_factory=list)
    wholesale_points: List[EiaWholesalePricePoint] = Field(default_factory=list)


class EntsoeWholesaleSnapshot(SourceSnapshot):
    points: List[EntsoeWholesalePoint] = Field(default_factory=list)


class EurostatRetailSnapshot(SourceSnapshot):
    points: List[EurostatRetailPricePoint] = Field(default_factory=list)


class WorldBankNormalizationSnapshot(SourceSnapshot):
    points: List[WorldBankNormalizationPoint] = Field(default_factory=list)
