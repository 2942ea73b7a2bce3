"""
Built-in provider payloads used when live ingestion is switched off.

Fixture runs go through the same source clients as live runs: the payloads
below are served by fixture_fetch() as HTTP 200 responses, so parsing,
validation, staging and checksum dedup behave identically in both modes.
"""

import json
from typing import Dict
import httpx
from ingestion.base import SourceFetch

AEMO_WHOLESALE_FIXTURE = [
    ("2026-02-27T01:55:00Z", "NSW", 118, 5000),
    ("2026-02-27T01:55:00Z", "VIC", 99, 3000),
    ("2026-02-27T01:55:00Z", "QLD", 132, 2700),
    ("2026-02-27T01:55:00Z", "SA", 136, 1200),
    ("2026-02-27T01:55:00Z", "TAS", 103, 620),
    ("2026-02-27T02:00:00Z", "NSW", 120, 5000),
    ("2026-02-27T02:00:00Z", "VIC", 100, 3000),
    ("2026-02-27T02:00:00Z", "QLD", 140, 2000),
    ("2026-02-27T02:00:00Z", "SA", 138, 1250),
    ("2026-02-27T02:00:00Z", "TAS", 104, 640),
]

AER_PLAN_FIXTURE = [
    {"id": "nsw-resi-1", "attributes": {"region_code": "NSW", "customer_type": "residential", "annual_bill_aud": 1910}},
    {"id": "nsw-resi-2", "attributes": {"region_code": "NSW", "customer_type": "residential", "annual_bill_aud": 2010}},
    {"id": "qld-smb-1", "attributes": {"region_code": "QLD", "customer_type": "small_business", "annual_bill_aud": 2380}},
    {"id": "vic-resi-1", "attributes": {"region_code": "VIC", "customer_type": "residential", "annual_bill_aud": 1825}},
]

ABS_HOUSING_FIXTURE = [
    {"series_id": "hvi.value.index", "region_code": "AU", "date": "2025-Q3", "value": 168.1, "unit": "index"},
    {"series_id": "hvi.value.index", "region_code": "AU", "date": "2025-Q4", "value": 169.4, "unit": "index"},
    {"series_id": "hvi.value.index", "region_code": "NSW", "date": "2025-Q4", "value": 181.2, "unit": "index"},
    {"series_id": "lending.oo.count", "region_code": "AU", "date": "2025-12", "value": 31842, "unit": "count"},
]

RBA_RATES_FIXTURE = [
    ("2025-12", "6.12", "5.89"),
    ("2026-01", "6.05", "5.84"),
]

EIA_RETAIL_FIXTURE = [
    {"country_code": "US", "region_code": "US", "period": "2026-01", "customer_type": "residential", "price_usd_kwh": 0.182},
]

EIA_WHOLESALE_FIXTURE = [
    {
        "country_code": "US",
        "region_code": "ERCOT",
        "interval_start_utc": "2026-02-28T00:00:00Z",
        "interval_end_utc": "2026-02-28T01:00:00Z",
        "price_usd_mwh": 67.3,
    },
]

ENTSOE_WHOLESALE_FIXTURE = [
    {
        "country_code": "DE",
        "bidding_zone": "DE_LU",
        "interval_start_utc": "2026-02-28T00:00:00Z",
        "interval_end_utc": "2026-02-28T01:00:00Z",
        "price_eur_mwh": 95.4,
    },
]

EUROSTAT_RETAIL_FIXTURE = [
    {
        "country_code": "DE",
        "period": "2025-S2",
        "customer_type": "household",
        "consumption_band": "household_mid",
        "tax_status": "incl_tax",
        "currency": "EUR",
        "price_local_kwh": 0.319,
    },
]

WORLD_BANK_FIXTURE = [
    {"country_code": "AUS", "year": "2025", "indicator_code": "PA.NUS.FCRF", "value": 1.53},
    {"country_code": "AUS", "year": "2025", "indicator_code": "PA.NUS.PPP", "value": 1.44},
    {"country_code": "USA", "year": "2025", "indicator_code": "PA.NUS.FCRF", "value": 1},
    {"country_code": "USA", "year": "2025", "indicator_code": "PA.NUS.PPP", "value": 1},
    {"country_code": "DEU", "year": "2025", "indicator_code": "PA.NUS.FCRF", "value": 0.92},
    {"country_code": "DEU", "year": "2025", "indicator_code": "PA.NUS.PPP", "value": 0.83},
]


def _csv(header: str, rows) -> str:
    return "\n".join([header] + [",".join(str(cell) for cell in row) for row in rows])


FIXTURE_PAYLOADS: Dict[str, str] = {
    "aemo_wholesale": _csv(
        "SETTLEMENTDATE,REGIONID,RRP,TOTALDEMAND",
        [(timestamp, f"{region}1", rrp, demand) for timestamp, region, rrp, demand in AEMO_WHOLESALE_FIXTURE],
    ),
    "aer_prd": json.dumps({"data": AER_PLAN_FIXTURE}),
    "abs_housing": json.dumps({"observations": ABS_HOUSING_FIXTURE}),
    "rba_rates": _csv("date,oo_variable_pct,oo_fixed_pct", RBA_RATES_FIXTURE),
    "eia_electricity": json.dumps({"retail": EIA_RETAIL_FIXTURE, "wholesale": EIA_WHOLESALE_FIXTURE}),
    "entsoe_wholesale": json.dumps({"data": ENTSOE_WHOLESALE_FIXTURE}),
    "eurostat_retail": json.dumps({"data": EUROSTAT_RETAIL_FIXTURE}),
    "world_bank_normalization": json.dumps({"data": WORLD_BANK_FIXTURE}),
}


def fixture_fetch(source_id: str) -> SourceFetch:
    """Fetch function that answers every request with the source's fixture payload"""
    payload = FIXTURE_PAYLOADS[source_id]

    async def fetch(url: str, headers: Dict[str, str]) -> httpx.Response:
        return httpx.Response(200, text=payload)

    return fetch
