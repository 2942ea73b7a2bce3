from sqlalchemy import Column, String, BigInteger, Text, Float, DateTime, Boolean, Enum, Index, UniqueConstraint
from models.base import Base, ObservationConfidence


class ObservationRecord(Base):
    """
    One canonical time-series point.

    Identity:
    - (series_id, region_code, date, vintage) is unique; a second write with
      the same tuple updates the row in place.
    - date is kept as text so ISO dates, ISO datetimes and YYYY-Qn quarter
      tokens share one column.
    """
    __tablename__ = "observations"

    id = Column(BigInteger, primary_key=True, autoincrement=True)

    # Identity
    series_id = Column(String(200), nullable=False)
    region_code = Column(String(50), nullable=False)
    date = Column(String(40), nullable=False)
    vintage = Column(String(40), nullable=False)

    # Dimensions
    country_code = Column(String(8), nullable=True, index=True)
    market = Column(String(50), nullable=True)
    metric_family = Column(String(50), nullable=True)
    interval_start_utc = Column(String(40), nullable=True)
    interval_end_utc = Column(String(40), nullable=True)
    currency = Column(String(16), nullable=True)
    tax_status = Column(String(32), nullable=True)
    consumption_band = Column(String(64), nullable=True)

    # Measurement
    value = Column(Float, nullable=False)
    unit = Column(String(32), nullable=False)

    # Provenance
    source_name = Column(String(200), nullable=False)
    source_url = Column(Text, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False)
    is_modeled = Column(Boolean, nullable=False, default=False)
    confidence = Column(Enum(ObservationConfidence), nullable=False, default=ObservationConfidence.OFFICIAL)
    methodology_version = Column(String(64), nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint(
            "series_id", "region_code", "date", "vintage",
            name="observations_series_region_date_vintage_unique"
        ),
        Index("observations_series_region_date_idx", "series_id", "region_code", "date"),
    )
