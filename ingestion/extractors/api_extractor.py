"""
JSON provider clients for Australian sources: AER retail plans and ABS housing
"""

from typing import List
from ingestion.base import SourceClient, parse_finite_float, require_text
from schemas.points import AerRetailPlan, HousingSeriesPoint
from schemas.snapshots import AerRetailSnapshot, HousingSnapshot
import logging

logger = logging.getLogger(__name__)


class AerRetailPlansClient(SourceClient):
    """
    AER Product Reference Data.

    Payload shape: {"data": [{"id": ..., "attributes": {"region_code",
    "customer_type", "annual_bill_aud"}}]}
    """

    source_id = "aer_prd"
    default_endpoint = "https://www.aer.gov.au/energy-product-reference-data"

    async def fetch_snapshot(self) -> AerRetailSnapshot:
        document, raw_payload = await self.read_json()
        rows = self.require_list(document, "data")

        plans: List[AerRetailPlan] = []
        for index, raw_row in enumerate(rows):
            row = self.require_row(raw_row, index)
            attributes = row.get("attributes")
            if not isinstance(attributes, dict):
                attributes = {}

            plan_id = require_text(row.get("id"))
            region_code = require_text(attributes.get("region_code"))
            customer_type = require_text(attributes.get("customer_type"))
            annual_bill = parse_finite_float(attributes.get("annual_bill_aud"))

            if not plan_id or not region_code or not customer_type or annual_bill is None:
                raise self.drift("schema drift in AER plan row", row_index=index)

            plans.append(
                AerRetailPlan(
                    plan_id=plan_id,
                    region_code=region_code,
                    customer_type=customer_type,
                    annual_bill_aud=annual_bill,
                )
            )

        logger.info(f"Parsed {len(plans)} AER plans")
        return AerRetailSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            plans=plans,
        )


class AbsHousingClient(SourceClient):
    """ABS housing indicators; rows already name their canonical series"""

    source_id = "abs_housing"
    default_endpoint = "https://data.api.abs.gov.au/rest/data/ABS,HOUSING"

    async def fetch_snapshot(self) -> HousingSnapshot:
        document, raw_payload = await self.read_json()
        rows = self.require_list(document, "observations")

        observations: List[HousingSeriesPoint] = []
        for index, raw_row in enumerate(rows):
            row = self.require_row(raw_row, index)
            series_id = require_text(row.get("series_id"))
            region_code = require_text(row.get("region_code"))
            date = require_text(row.get("date"))
            unit = require_text(row.get("unit"))
            value = parse_finite_float(row.get("value"))

            if not series_id or not region_code or not date or not unit or value is None:
                raise self.drift("schema drift in ABS observation row", row_index=index)

            observations.append(
                HousingSeriesPoint(
                    series_id=series_id,
                    region_code=region_code,
                    date=date,
                    value=value,
                    unit=unit,
                )
            )

        return HousingSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            observations=observations,
        )
