"""
Derive cross-country comparison observations from stored base observations.

The normalizer is a second mapping pass over the store's own contents:
local-currency prices are converted with the latest FX rate per country,
USD-nominal retail prices are re-expressed in PPP terms, and AU annual
bills are turned into a per-kWh price.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence
from pydantic import BaseModel, Field
from ingestion.transformers.mappers import (
    AEMO_WEIGHTED_SERIES_ID,
    AER_MEAN_SERIES_ID,
    FX_SERIES_ID,
    PPP_SERIES_ID,
    RETAIL_LOCAL_SERIES_ID,
    RETAIL_USD_NOMINAL_SERIES_ID,
    RETAIL_USD_PPP_SERIES_ID,
    WHOLESALE_LOCAL_SERIES_ID,
    WHOLESALE_USD_SERIES_ID,
    normalize_country_code,
)
from models.base import ObservationConfidence
from schemas.observation import Observation
import logging

logger = logging.getLogger(__name__)

DEFAULT_HOUSEHOLD_USAGE_KWH = 6000.0
COMPARISON_METHODOLOGY_VERSION = "energy-comparison-v1"
COMPARISON_TAX_STATUS = "incl_tax"
COMPARISON_CONSUMPTION_BAND = "household_mid"


class DerivationGap(BaseModel):
    """A target country left out of one derivation, and why"""
    country_code: str
    series_id: str
    reason: str


class DerivationOutcome(BaseModel):
    observations: List[Observation] = Field(default_factory=list)
    gaps: List[DerivationGap] = Field(default_factory=list)


def _is_household_mid(observation: Observation) -> bool:
    return (observation.consumption_band or COMPARISON_CONSUMPTION_BAND) == COMPARISON_CONSUMPTION_BAND


def _latest(observations: Iterable[Observation]) -> Optional[Observation]:
    latest = None
    for observation in observations:
        if latest is None or observation.date > latest.date:
            latest = observation
    return latest


def collect_latest_by_country(
    observations: Iterable[Observation],
    predicate: Callable[[Observation], bool]
) -> Dict[str, Observation]:
    """
    Latest-dated matching observation per country.

    The country comes from country_code, falling back to region_code.
    "Latest" is the greatest date string, which orders ISO dates correctly.
    """
    latest_by_country: Dict[str, Observation] = {}
    for observation in observations:
        if not predicate(observation):
            continue

        country_code = normalize_country_code(observation.country_code or observation.region_code)
        if not country_code:
            continue

        existing = latest_by_country.get(country_code)
        if existing is None or observation.date > existing.date:
            latest_by_country[country_code] = observation

    return latest_by_country


class ComparisonNormalizer:
    """
    Builds FX- and PPP-harmonised comparison rows for a set of target countries.

    A country whose FX or PPP factor is missing or not positive is skipped
    for that derivation only; the skip is logged and returned as a
    DerivationGap so the run can be marked degraded.
    """

    def __init__(
        self,
        target_countries: Sequence[str],
        methodology_version: str = COMPARISON_METHODOLOGY_VERSION,
        household_usage_kwh: float = DEFAULT_HOUSEHOLD_USAGE_KWH
    ):
        self.target_countries = [normalize_country_code(code) for code in target_countries]
        self.methodology_version = methodology_version
        if household_usage_kwh <= 0:
            household_usage_kwh = DEFAULT_HOUSEHOLD_USAGE_KWH
        self.household_usage_kwh = household_usage_kwh

    def derive(
        self,
        observations: Sequence[Observation],
        ingested_at: str,
        vintage: str
    ) -> DerivationOutcome:
        outcome = DerivationOutcome()
        self._ingested_at = ingested_at
        self._vintage = vintage
        self._outcome = outcome

        self._fx = collect_latest_by_country(observations, lambda o: o.series_id == FX_SERIES_ID and o.value > 0)
        self._ppp = collect_latest_by_country(observations, lambda o: o.series_id == PPP_SERIES_ID and o.value > 0)

        self._pass_through_usd_retail(observations)
        self._convert_local_retail(observations)
        self._convert_au_annual_bill(observations)
        # PPP is computed from the nominal rows derived above, not from the store
        self._convert_ppp_retail(list(outcome.observations))
        self._convert_local_wholesale(observations)
        self._convert_au_weighted_wholesale(observations)

        logger.info(
            f"Derived {len(outcome.observations)} comparison observations "
            f"({len(outcome.gaps)} gaps)"
        )
        return outcome

    # ------------------------------------------------------------------
    # helpers

    def _targets(self, latest_by_country: Dict[str, Observation]):
        for country_code in sorted(latest_by_country):
            if country_code in self.target_countries:
                yield country_code, latest_by_country[country_code]

    def _rate(self, rates: Dict[str, Observation], country_code: str) -> Optional[float]:
        """Latest positive factor for the country, or None"""
        observation = rates.get(country_code)
        if observation is None or observation.value <= 0:
            return None
        return observation.value

    def _gap(self, country_code: str, series_id: str, reason: str):
        logger.warning(f"Skipping {series_id} for {country_code}: {reason}")
        self._outcome.gaps.append(
            DerivationGap(country_code=country_code, series_id=series_id, reason=reason)
        )

    def _emit(self, **fields) -> None:
        fields.setdefault("is_modeled", True)
        fields.setdefault("confidence", ObservationConfidence.DERIVED)
        self._outcome.observations.append(
            Observation(
                ingested_at=self._ingested_at,
                vintage=self._vintage,
                methodology_version=self.methodology_version,
                **fields
            )
        )

    # ------------------------------------------------------------------
    # derivations

    def _pass_through_usd_retail(self, observations: Sequence[Observation]):
        # Rows this normalizer wrote on an earlier run are re-derived, not passed through
        latest = collect_latest_by_country(
            observations,
            lambda o: (
                o.series_id == RETAIL_USD_NOMINAL_SERIES_ID
                and _is_household_mid(o)
                and o.methodology_version != self.methodology_version
            )
        )
        for country_code, observation in self._targets(latest):
            retagged = observation.tax_status != COMPARISON_TAX_STATUS
            fields = observation.model_dump(
                exclude={"ingested_at", "vintage", "methodology_version", "is_modeled", "confidence"}
            )
            fields.update(
                region_code=country_code,
                country_code=country_code,
                market=observation.market or country_code,
                metric_family="retail",
                unit="usd_kwh",
                currency="USD",
                tax_status=COMPARISON_TAX_STATUS,
                consumption_band=COMPARISON_CONSUMPTION_BAND,
                is_modeled=True if retagged else observation.is_modeled,
                confidence=ObservationConfidence.DERIVED if retagged else observation.confidence,
            )
            self._emit(**fields)

    def _convert_local_retail(self, observations: Sequence[Observation]):
        latest = collect_latest_by_country(
            observations,
            lambda o: o.series_id == RETAIL_LOCAL_SERIES_ID and _is_household_mid(o)
        )
        for country_code, observation in self._targets(latest):
            fx = self._rate(self._fx, country_code)
            if fx is None:
                self._gap(country_code, RETAIL_USD_NOMINAL_SERIES_ID, "no positive FX rate")
                continue

            self._emit(
                series_id=RETAIL_USD_NOMINAL_SERIES_ID,
                region_code=country_code,
                country_code=country_code,
                market=observation.market or "GLOBAL",
                metric_family="retail",
                date=observation.date,
                value=observation.value / fx,
                unit="usd_kwh",
                currency="USD",
                tax_status=observation.tax_status or COMPARISON_TAX_STATUS,
                consumption_band=observation.consumption_band or COMPARISON_CONSUMPTION_BAND,
                source_name=f"{observation.source_name} (FX normalized)",
                source_url=observation.source_url,
                published_at=observation.published_at,
            )

    def _convert_au_annual_bill(self, observations: Sequence[Observation]):
        latest = _latest(
            o for o in observations
            if o.series_id == AER_MEAN_SERIES_ID and (o.region_code == "AU" or o.country_code == "AU")
        )
        if latest is None or "AU" not in self.target_countries:
            return
        if latest.value <= 0:
            self._gap("AU", RETAIL_USD_NOMINAL_SERIES_ID, "no positive annual bill")
            return

        fx = self._rate(self._fx, "AU")
        if fx is None:
            self._gap("AU", RETAIL_USD_NOMINAL_SERIES_ID, "no positive FX rate")
            return

        aud_kwh = latest.value / self.household_usage_kwh
        self._emit(
            series_id=RETAIL_USD_NOMINAL_SERIES_ID,
            region_code="AU",
            country_code="AU",
            market="NEM",
            metric_family="retail",
            date=latest.date,
            value=aud_kwh / fx,
            unit="usd_kwh",
            currency="USD",
            tax_status=COMPARISON_TAX_STATUS,
            consumption_band=COMPARISON_CONSUMPTION_BAND,
            source_name="AER retail annual mean (modeled)",
            source_url=latest.source_url,
            published_at=latest.published_at,
        )

    def _convert_ppp_retail(self, derived: Sequence[Observation]):
        latest = collect_latest_by_country(
            derived,
            lambda o: o.series_id == RETAIL_USD_NOMINAL_SERIES_ID and _is_household_mid(o)
        )
        for country_code, observation in self._targets(latest):
            fx = self._rate(self._fx, country_code)
            ppp = self._rate(self._ppp, country_code)
            if fx is None or ppp is None:
                missing = "FX rate" if fx is None else "PPP factor"
                self._gap(country_code, RETAIL_USD_PPP_SERIES_ID, f"no positive {missing}")
                continue

            local_kwh = observation.value * fx
            fields = observation.model_dump(
                exclude={"ingested_at", "vintage", "methodology_version", "is_modeled", "confidence"}
            )
            fields.update(
                series_id=RETAIL_USD_PPP_SERIES_ID,
                value=local_kwh / ppp,
                unit="usd_kwh",
            )
            self._emit(**fields)

    def _convert_local_wholesale(self, observations: Sequence[Observation]):
        latest = collect_latest_by_country(
            observations,
            lambda o: o.series_id == WHOLESALE_LOCAL_SERIES_ID
        )
        for country_code, observation in self._targets(latest):
            fx = self._rate(self._fx, country_code)
            if fx is None:
                self._gap(country_code, WHOLESALE_USD_SERIES_ID, "no positive FX rate")
                continue

            self._emit(
                series_id=WHOLESALE_USD_SERIES_ID,
                region_code=country_code,
                country_code=country_code,
                market=observation.market or "GLOBAL",
                metric_family="wholesale",
                date=observation.date,
                interval_start_utc=observation.interval_start_utc,
                interval_end_utc=observation.interval_end_utc,
                value=observation.value / fx,
                unit="usd_mwh",
                currency="USD",
                source_name=f"{observation.source_name} (FX normalized)",
                source_url=observation.source_url,
                published_at=observation.published_at,
            )

    def _convert_au_weighted_wholesale(self, observations: Sequence[Observation]):
        latest = _latest(
            o for o in observations
            if o.series_id == AEMO_WEIGHTED_SERIES_ID and (o.region_code == "AU" or o.country_code == "AU")
        )
        if latest is None or "AU" not in self.target_countries:
            return

        fx = self._rate(self._fx, "AU")
        if fx is None:
            self._gap("AU", WHOLESALE_USD_SERIES_ID, "no positive FX rate")
            return

        self._emit(
            series_id=WHOLESALE_USD_SERIES_ID,
            region_code="AU",
            country_code="AU",
            market="NEM",
            metric_family="wholesale",
            date=latest.date,
            interval_start_utc=latest.interval_start_utc,
            interval_end_utc=latest.interval_end_utc,
            value=latest.value / fx,
            unit="usd_mwh",
            currency="USD",
            source_name="AEMO wholesale (FX normalized)",
            source_url=latest.source_url,
            published_at=latest.published_at,
        )
