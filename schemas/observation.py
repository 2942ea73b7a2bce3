"""
Pydantic schema for canonical observations with validation
"""

import math
from typing import NamedTuple, Optional
from pydantic import BaseModel, Field, validator
from pydantic.alias_generators import to_camel
from models.base import ObservationConfidence


class CanonicalModel(BaseModel):
    """Base for store-facing models: snake_case in Python, camelCase on disk."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True


class ObservationKey(NamedTuple):
    """Identity of an observation inside the store."""
    series_id: str
    region_code: str
    date: str
    vintage: str


class Observation(CanonicalModel):
    """
    One point of a named time series for one region at one date and vintage.

    Ensures:
    - Identity fields are present and non-empty
    - value is a finite number (NaN and infinities are rejected here, the
      store itself does not re-validate)
    """

    # Identity
    series_id: str = Field(..., min_length=1)
    region_code: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)  # ISO date, ISO datetime or YYYY-Qn
    vintage: str = Field(..., min_length=1)

    # Dimensions
    country_code: Optional[str] = None
    market: Optional[str] = None
    metric_family: Optional[str] = None
    interval_start_utc: Optional[str] = None
    interval_end_utc: Optional[str] = None
    currency: Optional[str] = None
    tax_status: Optional[str] = None
    consumption_band: Optional[str] = None

    # Measurement
    value: float
    unit: str = Field(..., min_length=1)

    # Provenance
    source_name: str = Field(..., min_length=1)
    source_url: str
    published_at: str
    ingested_at: str
    is_modeled: bool = False
    confidence: ObservationConfidence = ObservationConfidence.OFFICIAL
    methodology_version: Optional[str] = None

    @validator("value")
    def value_must_be_finite(cls, v):
        if not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v

    @validator("series_id", "region_code", "date", "vintage")
    def strip_identity(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("identity fields cannot be blank")
        return v

    @property
    def key(self) -> ObservationKey:
        return ObservationKey(self.series_id, self.region_code, self.date, self.vintage)
