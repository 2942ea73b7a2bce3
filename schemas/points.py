"""
Typed provider points, one model per upstream source.

Source clients build these only after strict field checks, so every
numeric field here is already a finite float.
"""

from pydantic import BaseModel


class AemoWholesalePoint(BaseModel):
    region_code: str
    timestamp: str
    rrp_aud_mwh: float
    demand_mwh: float


class AerRetailPlan(BaseModel):
    plan_id: str
    region_code: str
    customer_type: str
    annual_bill_aud: float


class HousingSeriesPoint(BaseModel):
    """ABS and RBA rows already carry their canonical series id"""
    series_id: str
    region_code: str
    date: str
    value: float
    unit: str


class EiaRetailPricePoint(BaseModel):
    country_code: str
    region_code: str
    period: str
    customer_type: str
    price_usd_kwh: float


class EiaWholesalePricePoint(BaseModel):
    country_code: str
    region_code: str
    interval_start_utc: str
    interval_end_utc: str
    price_usd_mwh: float


class EntsoeWholesalePoint(BaseModel):
    country_code: str
    bidding_zone: str
    interval_start_utc: str
    interval_end_utc: str
    price_eur_mwh: float


class EurostatRetailPricePoint(BaseModel):
    country_code: str
    period: str
    customer_type: str
    consumption_band: str
    tax_status: str
    currency: str
    price_local_kwh: float


class WorldBankNormalizationPoint(BaseModel):
    country_code: str
    year: str
    indicator_code: str
    value: float
