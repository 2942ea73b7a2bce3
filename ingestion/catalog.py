"""
Catalog of upstream providers known to the pipeline
"""

from typing import Dict, List
from models.base import SourceDomain
from schemas.store import SourceCatalogItem

ABS_URL = "https://www.abs.gov.au/about/data-services/application-programming-interfaces-apis/data-api-user-guide"
AEMO_URL = "https://www.aemo.com.au/energy-systems/electricity/national-electricity-market-nem/data-nem/data-dashboard-nem"
AER_URL = "https://www.aer.gov.au/energy-product-reference-data"
RBA_URL = "https://www.rba.gov.au/statistics/interest-rates/"
EIA_URL = "https://www.eia.gov/opendata/documentation.php"
ENTSOE_URL = "https://transparency.entsoe.eu/api"
EUROSTAT_URL = "https://ec.europa.eu/eurostat/cache/metadata/en/nrg_pc_204_sims.htm"
WORLD_BANK_URL = "https://datahelpdesk.worldbank.org/knowledgebase/articles/889392-about-the-indicators-api-documentation"

SOURCE_CATALOG: List[SourceCatalogItem] = [
    SourceCatalogItem(
        source_id="abs_housing",
        domain=SourceDomain.HOUSING,
        name="Australian Bureau of Statistics",
        url=ABS_URL,
        expected_cadence="monthly|quarterly",
    ),
    SourceCatalogItem(
        source_id="aemo_wholesale",
        domain=SourceDomain.ENERGY,
        name="AEMO NEM Wholesale",
        url=AEMO_URL,
        expected_cadence="5m",
    ),
    SourceCatalogItem(
        source_id="aer_prd",
        domain=SourceDomain.ENERGY,
        name="AER Product Reference Data",
        url=AER_URL,
        expected_cadence="daily",
    ),
    SourceCatalogItem(
        source_id="rba_rates",
        domain=SourceDomain.HOUSING,
        name="RBA Interest Rates",
        url=RBA_URL,
        expected_cadence="monthly",
    ),
    SourceCatalogItem(
        source_id="eia_electricity",
        domain=SourceDomain.ENERGY,
        name="US EIA Electricity",
        url=EIA_URL,
        expected_cadence="hourly|monthly",
    ),
    SourceCatalogItem(
        source_id="entsoe_wholesale",
        domain=SourceDomain.ENERGY,
        name="ENTSO-E Wholesale",
        url=ENTSOE_URL,
        expected_cadence="hourly",
    ),
    SourceCatalogItem(
        source_id="eurostat_retail",
        domain=SourceDomain.ENERGY,
        name="Eurostat Electricity Prices",
        url=EUROSTAT_URL,
        expected_cadence="semiannual",
    ),
    SourceCatalogItem(
        source_id="world_bank_normalization",
        domain=SourceDomain.MACRO,
        name="World Bank Indicators API",
        url=WORLD_BANK_URL,
        expected_cadence="annual",
    ),
]

CATALOG_BY_ID: Dict[str, SourceCatalogItem] = {item.source_id: item for item in SOURCE_CATALOG}
