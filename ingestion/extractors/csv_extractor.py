"""
CSV provider clients: AEMO wholesale dispatch and RBA lending rates
"""

from typing import List
from ingestion.base import CSV_ACCEPT, SourceClient, parse_finite_float
from schemas.points import AemoWholesalePoint, HousingSeriesPoint
from schemas.snapshots import AemoWholesaleSnapshot, HousingSnapshot
import logging

logger = logging.getLogger(__name__)

RBA_VARIABLE_SERIES_ID = "rates.oo.variable_pct"
RBA_FIXED_SERIES_ID = "rates.oo.fixed_pct"


def normalize_aemo_region(raw: str) -> str:
    """NSW1 -> NSW; AEMO suffixes region ids with the interconnector number"""
    upper = raw.upper()
    return upper[:-1] if upper.endswith("1") else upper


class AemoWholesaleClient(SourceClient):
    """
    NEM dispatch prices.

    Expects SETTLEMENTDATE, REGIONID, RRP and TOTALDEMAND columns. A body
    with no data rows is a valid (empty) snapshot.
    """

    source_id = "aemo_wholesale"
    default_endpoint = "https://www.nemweb.com.au/REPORTS/CURRENT/Dispatch_SCADA/"
    accept = CSV_ACCEPT

    async def fetch_snapshot(self) -> AemoWholesaleSnapshot:
        rows, raw_payload = await self.read_csv()

        points: List[AemoWholesalePoint] = []
        for index, row in enumerate(rows):
            timestamp = row.get("SETTLEMENTDATE", "")
            region_id = row.get("REGIONID", "")
            rrp = parse_finite_float(row.get("RRP"))
            demand = parse_finite_float(row.get("TOTALDEMAND"))

            if not timestamp or not region_id or rrp is None or demand is None:
                raise self.drift("schema drift in AEMO CSV", row_index=index)

            points.append(
                AemoWholesalePoint(
                    region_code=normalize_aemo_region(region_id),
                    timestamp=timestamp,
                    rrp_aud_mwh=rrp,
                    demand_mwh=demand,
                )
            )

        logger.info(f"Parsed {len(points)} AEMO dispatch rows")
        return AemoWholesaleSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            raw_payload=raw_payload,
            points=points,
        )


class RbaRatesClient(SourceClient):
    """Owner-occupier lending rates; each CSV row yields a variable and a fixed observation"""

    source_id = "rba_rates"
    default_endpoint = "https://www.rba.gov.au/statistics/csv/f06.csv"
    accept = CSV_ACCEPT

    async def fetch_snapshot(self) -> HousingSnapshot:
        rows, raw_payload = await self.read_csv()
        if not rows:
            raise self.drift("schema drift in RBA CSV")

        observations: List[HousingSeriesPoint] = []
        for index, row in enumerate(rows):
            date = row.get("date", "")
            variable = parse_finite_float(row.get("oo_variable_pct"))
            fixed = parse_finite_float(row.get("oo_fixed_pct"))
            if not date or variable is None or fixed is None:
                raise self.drift("schema drift in RBA rate row", row_index=index)

            observations.append(
                HousingSeriesPoint(
                    series_id=RBA_VARIABLE_SERIES_ID,
                    region_code="AU",
                    date=date,
                    value=variable,
                    unit="%",
                )
            )
            observations.append(
                HousingSeriesPoint(
                    series_id=RBA_FIXED_SERIES_ID,
                    region_code="AU",
                    date=date,
                    value=fixed,
                    unit="%",
                )
            )

        return HousingSnapshot(
            source_id=self.source_id,
            endpoint=self.endpoint,
            content_type="text/csv",
            raw_payload=raw_payload,
            observations=observations,
        )
