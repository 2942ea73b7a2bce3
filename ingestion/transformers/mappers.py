"""
Map provider points onto canonical observations.

Every mapper is a pure function of its points and MapperOptions: no I/O,
no store access. Provider rows come out official and unmodeled; derived
comparison rows are produced later by the normalizer.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple
from pydantic import BaseModel
from analytics.aggregation import compute_demand_weighted_rrp, mean, median
from ingestion.catalog import (
    ABS_URL,
    AEMO_URL,
    AER_URL,
    EIA_URL,
    EUROSTAT_URL,
    RBA_URL,
    WORLD_BANK_URL,
)
from ingestion.loaders.freshness import format_iso, to_timestamp
from models.base import ObservationConfidence
from schemas.observation import Observation
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

# Canonical series ids
AEMO_WEIGHTED_SERIES_ID = "energy.wholesale.rrp.au_weighted_aud_mwh"
AEMO_REGION_SERIES_ID = "energy.wholesale.rrp.region_aud_mwh"
AER_MEAN_SERIES_ID = "energy.retail.offer.annual_bill_aud.mean"
AER_MEDIAN_SERIES_ID = "energy.retail.offer.annual_bill_aud.median"
RETAIL_USD_NOMINAL_SERIES_ID = "energy.retail.price.country.usd_kwh_nominal"
RETAIL_USD_PPP_SERIES_ID = "energy.retail.price.country.usd_kwh_ppp"
RETAIL_LOCAL_SERIES_ID = "energy.retail.price.country.local_kwh"
WHOLESALE_USD_SERIES_ID = "energy.wholesale.spot.country.usd_mwh"
WHOLESALE_LOCAL_SERIES_ID = "energy.wholesale.spot.country.local_mwh"
FX_SERIES_ID = "macro.fx.local_per_usd"
PPP_SERIES_ID = "macro.ppp.local_per_usd"

ENTSOE_SOURCE_URL = "https://transparencyplatform.zendesk.com/hc/en-us/articles/12845911031188-How-to-get-security-token"

WORLD_BANK_INDICATORS = {
    "PA.NUS.FCRF": FX_SERIES_ID,
    "PA.NUS.PPP": PPP_SERIES_ID,
}

ISO3_TO_ISO2_COUNTRY = {
    "AUS": "AU",
    "USA": "US",
    "DEU": "DE",
    "FRA": "FR",
    "GBR": "GB",
    "JPN": "JP",
    "NZL": "NZ",
    "CAN": "CA",
}

HOUSING_SOURCES = {
    "abs_housing": ("ABS", ABS_URL),
    "rba_rates": ("RBA", RBA_URL),
}

_YEAR_PATTERN = re.compile(r"^\d{4}$")


class MapperOptions(BaseModel):
    """Batch stamps shared by every observation a job writes"""
    ingested_at: str
    vintage: str


def normalize_country_code(code: Optional[str]) -> str:
    """ISO-3 to ISO-2 through the lookup table; anything else passes through uppercased"""
    if not code:
        return ""
    upper = code.strip().upper()
    if len(upper) == 2:
        return upper
    return ISO3_TO_ISO2_COUNTRY.get(upper, upper)


def published_at_from_period(period: str, fallback: str) -> str:
    """Period placed on the timeline as an ISO timestamp, or fallback when it cannot be placed"""
    timestamp = to_timestamp(period)
    if timestamp is None:
        return fallback
    return format_iso(timestamp)


def published_at_from_year(year: str, fallback: str) -> str:
    if _YEAR_PATTERN.match(year):
        return f"{year}-01-01T00:00:00.000Z"
    return fallback


def map_aemo_wholesale_points(
    points: Sequence[AemoWholesalePoint],
    options: MapperOptions
) -> List[Observation]:
    """
    One demand-weighted AU row per settlement interval, plus a row per region.

    Raises:
        ValueError: An interval whose total demand is not positive
    """
    by_timestamp: Dict[str, List[AemoWholesalePoint]] = {}
    for point in points:
        by_timestamp.setdefault(point.timestamp, []).append(point)

    observations: List[Observation] = []
    for timestamp in sorted(by_timestamp):
        interval_points = by_timestamp[timestamp]
        weighted = compute_demand_weighted_rrp(interval_points)
        published_at = published_at_from_period(timestamp, options.ingested_at)

        observations.append(
            Observation(
                series_id=AEMO_WEIGHTED_SERIES_ID,
                region_code="AU",
                country_code="AU",
                market="NEM",
                metric_family="wholesale",
                date=timestamp,
                value=weighted.aud_mwh,
                unit="aud_mwh",
                currency="AUD",
                source_name="AEMO",
                source_url=AEMO_URL,
                published_at=published_at,
                ingested_at=options.ingested_at,
                vintage=options.vintage,
            )
        )

        for point in sorted(interval_points, key=lambda p: p.region_code):
            observations.append(
                Observation(
                    series_id=AEMO_REGION_SERIES_ID,
                    region_code=point.region_code,
                    country_code="AU",
                    market="NEM",
                    metric_family="wholesale",
                    date=timestamp,
                    value=point.rrp_aud_mwh,
                    unit="aud_mwh",
                    currency="AUD",
                    source_name="AEMO",
                    source_url=AEMO_URL,
                    published_at=published_at,
                    ingested_at=options.ingested_at,
                    vintage=options.vintage,
                )
            )

    return observations


def select_residential_plans(plans: Sequence[AerRetailPlan]) -> List[AerRetailPlan]:
    return [plan for plan in plans if plan.customer_type == "residential"]


def summarize_annual_bills(plans: Sequence[AerRetailPlan]) -> Tuple[float, float]:
    """(mean, median) annual bill over residential plans; zeros when there are none"""
    bills = [plan.annual_bill_aud for plan in select_residential_plans(plans)]
    return mean(bills), median(bills)


def map_aer_retail_plans(
    plans: Sequence[AerRetailPlan],
    options: MapperOptions
) -> List[Observation]:
    """
    Residential mean and median annual bill for AU, dated by the batch vintage.

    Without residential plans no rows are written, so the normalizer sees a
    gap rather than a zero bill.
    """
    if not select_residential_plans(plans):
        return []

    annual_mean, annual_median = summarize_annual_bills(plans)
    published_at = published_at_from_period(options.vintage, options.ingested_at)

    return [
        Observation(
            series_id=series_id,
            region_code="AU",
            country_code="AU",
            market="NEM",
            metric_family="retail",
            date=options.vintage,
            value=value,
            unit="aud",
            currency="AUD",
            source_name="AER",
            source_url=AER_URL,
            published_at=published_at,
            ingested_at=options.ingested_at,
            vintage=options.vintage,
        )
        for series_id, value in (
            (AER_MEAN_SERIES_ID, annual_mean),
            (AER_MEDIAN_SERIES_ID, annual_median),
        )
    ]


def map_housing_points(
    points: Sequence[HousingSeriesPoint],
    source_id: str,
    options: MapperOptions
) -> List[Observation]:
    """ABS and RBA rows keep the series id and unit the provider gave them"""
    source_name, source_url = HOUSING_SOURCES[source_id]
    return [
        Observation(
            series_id=point.series_id,
            region_code=point.region_code,
            country_code="AU",
            metric_family="housing",
            date=point.date,
            value=point.value,
            unit=point.unit,
            source_name=source_name,
            source_url=source_url,
            published_at=published_at_from_period(point.date, options.ingested_at),
            ingested_at=options.ingested_at,
            vintage=options.vintage,
        )
        for point in points
    ]


def map_eia_retail_points(
    points: Sequence[EiaRetailPricePoint],
    options: MapperOptions
) -> List[Observation]:
    return [
        Observation(
            series_id=RETAIL_USD_NOMINAL_SERIES_ID,
            region_code=point.region_code,
            country_code=normalize_country_code(point.country_code),
            market="US",
            metric_family="retail",
            date=point.period,
            value=point.price_usd_kwh,
            unit="usd_kwh",
            currency="USD",
            tax_status="mixed",
            consumption_band=(
                "household_mid" if point.customer_type == "residential" else "non_household_small"
            ),
            source_name="EIA",
            source_url=EIA_URL,
            published_at=published_at_from_period(point.period, options.ingested_at),
            ingested_at=options.ingested_at,
            vintage=options.vintage,
            confidence=ObservationConfidence.OFFICIAL,
            methodology_version="energy-global-eia-v1",
        )
        for point in points
    ]


def map_eia_wholesale_points(
    points: Sequence[EiaWholesalePricePoint],
    options: MapperOptions
) -> List[Observation]:
    return [
        Observation(
            series_id=WHOLESALE_USD_SERIES_ID,
            region_code=point.region_code,
            country_code=normalize_country_code(point.country_code),
            market="US",
            metric_family="wholesale",
            date=point.interval_start_utc,
            interval_start_utc=point.interval_start_utc,
            interval_end_utc=point.interval_end_utc,
            value=point.price_usd_mwh,
            unit="usd_mwh",
            currency="USD",
            source_name="EIA",
            source_url=EIA_URL,
            published_at=point.interval_end_utc,
            ingested_at=options.ingested_at,
            vintage=options.vintage,
            methodology_version="energy-global-eia-v1",
        )
        for point in points
    ]


def map_entsoe_wholesale_points(
    points: Sequence[EntsoeWholesalePoint],
    options: MapperOptions
) -> List[Observation]:
    return [
        Observation(
            series_id=WHOLESALE_LOCAL_SERIES_ID,
            region_code=point.bidding_zone,
            country_code=normalize_country_code(point.country_code),
            market="ENTSOE",
            metric_family="wholesale",
            date=point.interval_start_utc,
            interval_start_utc=point.interval_start_utc,
            interval_end_utc=point.interval_end_utc,
            value=point.price_eur_mwh,
            unit="eur_mwh",
            currency="EUR",
            source_name="ENTSO-E",
            source_url=ENTSOE_SOURCE_URL,
            published_at=point.interval_end_utc,
            ingested_at=options.ingested_at,
            vintage=options.vintage,
            methodology_version="energy-global-entsoe-v1",
        )
        for point in points
    ]


def map_eurostat_retail_points(
    points: Sequence[EurostatRetailPricePoint],
    options: MapperOptions
) -> List[Observation]:
    observations = []
    for point in points:
        country_code = normalize_country_code(point.country_code)
        observations.append(
            Observation(
                series_id=RETAIL_LOCAL_SERIES_ID,
                region_code=country_code,
                country_code=country_code,
                market="EUROSTAT",
                metric_family="retail",
                date=point.period,
                value=point.price_local_kwh,
                unit="local_kwh",
                currency=point.currency,
                tax_status=point.tax_status,
                consumption_band=point.consumption_band,
                source_name="Eurostat",
                source_url=EUROSTAT_URL,
                published_at=published_at_from_period(point.period, options.ingested_at),
                ingested_at=options.ingested_at,
                vintage=options.vintage,
                methodology_version="energy-global-eurostat-v1",
            )
        )
    return observations


def map_world_bank_points(
    points: Sequence[WorldBankNormalizationPoint],
    options: MapperOptions
) -> List[Observation]:
    """FX and PPP factors per country-year; other indicators are dropped"""
    observations = []
    for point in points:
        series_id = WORLD_BANK_INDICATORS.get(point.indicator_code)
        if series_id is None:
            continue

        country_code = normalize_country_code(point.country_code)
        observations.append(
            Observation(
                series_id=series_id,
                region_code=country_code,
                country_code=country_code,
                market="WORLD_BANK",
                metric_family="normalization",
                date=point.year,
                value=point.value,
                unit="local_per_usd",
                currency="LOCAL",
                source_name="World Bank",
                source_url=WORLD_BANK_URL,
                published_at=published_at_from_year(point.year, options.ingested_at),
                ingested_at=options.ingested_at,
                vintage=options.vintage,
                methodology_version="energy-global-world-bank-v1",
            )
        )
    return observations
