"""
JSON provider clients for the cross-country comparison:
EIA (US retail + wholesale), ENTSO-E (EU wholesale), Eurostat (EU retail)
and World Bank (FX and PPP conversion factors).

Every row is checked for the presence of its text fields and for finite
numeric fields before a typed point is built.
"""

from typing import Any, Dict, List, Sequence
from ingestion.base import SourceClient, parse_finite_float, require_text
from schemas.points import (
    EiaRetailPricePoint,
    EiaWholesalePricePoint,
    EntsoeWholesalePoint,
    EurostatRetailPricePoint,
    WorldBankNormalizationPoint,
)
from schemas.snapshots import (
    EiaElectricitySnapshot,
    EntsoeWholesaleSnapshot,
    EurostatRetailSnapshot,
    WorldBankNormalizationSnapshot,
)
import logging

logger = logging.getLogger(__name__)


class GlobalSourceClient(SourceClient):
    """Shared row validation for the flat JSON feeds"""

    def read_rows(
        self,
        rows: List[Any],
        text_fields: Sequence[str],
        number_fields: Sequence[str],
        label: str
    ) -> List[Dict[str, Any]]:
        validated = []
        for index, raw_row in enumerate(rows):
            row = self.require_row(raw_row, index)
            values: Dict[str, Any] = {}

            for field_name in text_fields:
                text = require_text(row.get(field_name))
                if not text:
                    raise self.drift(f"schema drift in {label} row", row_index=index, field_name=field_name)
                values[field_name] = text

            for field_name in number_fields:
                number = parse_finite_float(row.get(field_name))
                if number is None:
                    raise self.drift(f"schema drift in {label} row", row_index=index, field_name=field_name)
                values[field_name] = number

            validated.append(values)
        return validated


class EiaElectricityClient(GlobalSourceClient):
    """US retail (monthly) and wholesale (hourly) prices in one document"""

    source_id = "eia_electricity"
    default_endpoint = "https://api.eia.gov/v2/electricity/"

    async def fetch_snapshot(self) -> EiaElectricitySnapshot:
        document, raw_payload = await self.read_json()

        retail_rows = self.read_rows(
            self.require_list(document, "retail"),
            ("country_code", "region_code", "period", "customer_type"),
            ("price_usd_kwh",),
            "EIA retail",
        )
        wholesale_rows = self.read_rows(
            self.require_list(document, "wholesale"),
            ("country_code", "region_code", "interval_start_utc", "interval_end_utc"),
            ("price_usd_mwh",),
            "EIA wholesale",
        )

        logger.info(f"Parsed EIA snapshot: {len(retail_rows)} retail, {len(wholesale_rows)} wholesale")
        return EiaElectricitySnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            retail_points=[EiaRetailPricePoint(**row) for row in retail_rows],
            wholesale_points=[EiaWholesalePricePoint(**row) for row in wholesale_rows],
        )


class EntsoeWholesaleClient(GlobalSourceClient):
    source_id = "entsoe_wholesale"
    default_endpoint = "https://web-api.tp.entsoe.eu/api"

    async def fetch_snapshot(self) -> EntsoeWholesaleSnapshot:
        document, raw_payload = await self.read_json()
        rows = self.read_rows(
            self.require_list(document, "data"),
            ("country_code", "bidding_zone", "interval_start_utc", "interval_end_utc"),
            ("price_eur_mwh",),
            "ENTSO-E",
        )
        return EntsoeWholesaleSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            points=[EntsoeWholesalePoint(**row) for row in rows],
        )


class EurostatRetailClient(GlobalSourceClient):
    source_id = "eurostat_retail"
    default_endpoint = "https://ec.europa.eu/eurostat/api/dissemination/statistics/1.0/data/nrg_pc_204"

    async def fetch_snapshot(self) -> EurostatRetailSnapshot:
        document, raw_payload = await self.read_json()
        rows = self.read_rows(
            self.require_list(document, "data"),
            ("country_code", "period", "customer_type", "consumption_band", "tax_status", "currency"),
            ("price_local_kwh",),
            "Eurostat",
        )
        return EurostatRetailSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            points=[EurostatRetailPricePoint(**row) for row in rows],
        )


class WorldBankNormalizationClient(GlobalSourceClient):
    """Official exchange rate (PA.NUS.FCRF) and PPP factor (PA.NUS.PPP) per country-year"""

    source_id = "world_bank_normalization"
    default_endpoint = "https://api.worldbank.org/v2/country/all/indicator/PA.NUS.FCRF;PA.NUS.PPP?format=json"

    async def fetch_snapshot(self) -> WorldBankNormalizationSnapshot:
        document, raw_payload = await self.read_json()
        rows = self.read_rows(
            self.require_list(document, "data"),
            ("country_code", "year", "indicator_code"),
            ("value",),
            "World Bank",
        )
        return WorldBankNormalizationSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            points=[WorldBankNormalizationPoint(**row) for row in rows],
        )
