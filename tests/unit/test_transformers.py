"""
Unit tests for mappers and the comparison normalizer
"""

import pytest
from ingestion.transformers.mappers import (
    AEMO_REGION_SERIES_ID,
    AEMO_WEIGHTED_SERIES_ID,
    AER_MEAN_SERIES_ID,
    AER_MEDIAN_SERIES_ID,
    FX_SERIES_ID,
    PPP_SERIES_ID,
    RETAIL_USD_NOMINAL_SERIES_ID,
    RETAIL_USD_PPP_SERIES_ID,
    WHOLESALE_USD_SERIES_ID,
    MapperOptions,
    map_aemo_wholesale_points,
    map_aer_retail_plans,
    map_eia_retail_points,
    map_entsoe_wholesale_points,
    map_eurostat_retail_points,
    map_housing_points,
    map_world_bank_points,
    normalize_country_code,
    published_at_from_period,
    summarize_annual_bills,
)
from ingestion.transformers.normalizer import ComparisonNormalizer
from schemas.points import (
    AemoWholesalePoint,
    AerRetailPlan,
    EiaRetailPricePoint,
    EntsoeWholesalePoint,
    EurostatRetailPricePoint,
    HousingSeriesPoint,
    WorldBankNormalizationPoint,
)

OPTIONS = MapperOptions(ingested_at="2026-02-28T00:00:00.000Z", vintage="2026-02-28")


def _aemo_points():
    return [
        AemoWholesalePoint(region_code="NSW", timestamp="2026-02-27T02:00:00Z", rrp_aud_mwh=120, demand_mwh=5000),
        AemoWholesalePoint(region_code="VIC", timestamp="2026-02-27T02:00:00Z", rrp_aud_mwh=100, demand_mwh=3000),
        AemoWholesalePoint(region_code="QLD", timestamp="2026-02-27T02:00:00Z", rrp_aud_mwh=140, demand_mwh=2000),
    ]


def _plans():
    return [
        AerRetailPlan(plan_id="a", region_code="NSW", customer_type="residential", annual_bill_aud=1910),
        AerRetailPlan(plan_id="b", region_code="NSW", customer_type="residential", annual_bill_aud=2010),
        AerRetailPlan(plan_id="c", region_code="QLD", customer_type="small_business", annual_bill_aud=2380),
        AerRetailPlan(plan_id="d", region_code="VIC", customer_type="residential", annual_bill_aud=1825),
    ]


def _factors(de_fx=0.92, au_ppp=1.44):
    rows = [
        ("AUS", "PA.NUS.FCRF", 1.53),
        ("AUS", "PA.NUS.PPP", au_ppp),
        ("USA", "PA.NUS.FCRF", 1.0),
        ("USA", "PA.NUS.PPP", 1.0),
        ("DEU", "PA.NUS.FCRF", de_fx),
        ("DEU", "PA.NUS.PPP", 0.83),
    ]
    points = [
        WorldBankNormalizationPoint(country_code=country, year="2025", indicator_code=indicator, value=value)
        for country, indicator, value in rows
        if value is not None
    ]
    return map_world_bank_points(points, OPTIONS)


def _base_observations(**factor_overrides):
    observations = []
    observations += map_aemo_wholesale_points(_aemo_points(), OPTIONS)
    observations += map_aer_retail_plans(_plans(), OPTIONS)
    observations += map_eia_retail_points(
        [EiaRetailPricePoint(country_code="US", region_code="US", period="2026-01",
                             customer_type="residential", price_usd_kwh=0.182)],
        OPTIONS,
    )
    observations += map_eurostat_retail_points(
        [EurostatRetailPricePoint(country_code="DE", period="2025-S2", customer_type="household",
                                  consumption_band="household_mid", tax_status="incl_tax",
                                  currency="EUR", price_local_kwh=0.319)],
        OPTIONS,
    )
    observations += map_entsoe_wholesale_points(
        [EntsoeWholesalePoint(country_code="DE", bidding_zone="DE_LU",
                              interval_start_utc="2026-02-28T00:00:00Z",
                              interval_end_utc="2026-02-28T01:00:00Z", price_eur_mwh=95.4)],
        OPTIONS,
    )
    observations += _factors(**factor_overrides)
    return observations


def _find(observations, series_id, country_code):
    matches = [o for o in observations if o.series_id == series_id and o.country_code == country_code]
    assert len(matches) == 1, f"expected one {series_id} row for {country_code}"
    return matches[0]


class TestMappers:
    """Test provider-to-observation mapping"""

    def test_aemo_weighted_and_regions(self):
        observations = map_aemo_wholesale_points(_aemo_points(), OPTIONS)

        weighted = [o for o in observations if o.series_id == AEMO_WEIGHTED_SERIES_ID]
        regions = [o for o in observations if o.series_id == AEMO_REGION_SERIES_ID]

        assert len(weighted) == 1
        assert weighted[0].value == pytest.approx(118.0)
        assert weighted[0].region_code == "AU"
        assert weighted[0].published_at == "2026-02-27T02:00:00.000Z"
        assert sorted(o.region_code for o in regions) == ["NSW", "QLD", "VIC"]
        assert all(o.vintage == "2026-02-28" and not o.is_modeled for o in observations)

    def test_aemo_zero_demand_raises(self):
        points = [AemoWholesalePoint(region_code="NSW", timestamp="t", rrp_aud_mwh=100, demand_mwh=0)]

        with pytest.raises(ValueError):
            map_aemo_wholesale_points(points, OPTIONS)

    def test_aer_summary_ignores_business_plans(self):
        assert summarize_annual_bills(_plans()) == (pytest.approx(1915.0), 1910.0)

    def test_aer_rows_dated_by_vintage(self):
        observations = map_aer_retail_plans(_plans(), OPTIONS)

        by_series = {o.series_id: o for o in observations}
        assert by_series[AER_MEAN_SERIES_ID].value == pytest.approx(1915.0)
        assert by_series[AER_MEDIAN_SERIES_ID].value == 1910.0
        assert all(o.date == "2026-02-28" and o.unit == "aud" for o in observations)

    def test_aer_without_residential_plans(self):
        business_only = [plan for plan in _plans() if plan.customer_type != "residential"]

        assert map_aer_retail_plans([], OPTIONS) == []
        assert map_aer_retail_plans(business_only, OPTIONS) == []

    def test_housing_quarter_published_at(self):
        points = [HousingSeriesPoint(series_id="hvi.value.index", region_code="AU",
                                     date="2025-Q4", value=169.4, unit="index")]

        observation = map_housing_points(points, "abs_housing", OPTIONS)[0]

        assert observation.published_at == "2025-12-01T00:00:00.000Z"
        assert observation.source_name == "ABS"
        assert observation.metric_family == "housing"

    def test_unplaceable_period_falls_back_to_ingested_at(self):
        assert published_at_from_period("2025-S2", OPTIONS.ingested_at) == OPTIONS.ingested_at

    def test_eia_retail_tagging(self):
        observation = map_eia_retail_points(
            [EiaRetailPricePoint(country_code="US", region_code="US", period="2026-01",
                                 customer_type="commercial", price_usd_kwh=0.14)],
            OPTIONS,
        )[0]

        assert observation.tax_status == "mixed"
        assert observation.consumption_band == "non_household_small"
        assert observation.methodology_version == "energy-global-eia-v1"

    def test_world_bank_iso3_and_unknown_indicator(self):
        points = [
            WorldBankNormalizationPoint(country_code="AUS", year="2025", indicator_code="PA.NUS.FCRF", value=1.53),
            WorldBankNormalizationPoint(country_code="AUS", year="2025", indicator_code="NY.GDP.MKTP.CD", value=1),
        ]

        observations = map_world_bank_points(points, OPTIONS)

        assert len(observations) == 1
        assert observations[0].series_id == FX_SERIES_ID
        assert observations[0].country_code == "AU"
        assert observations[0].published_at == "2025-01-01T00:00:00.000Z"

    def test_normalize_country_code(self):
        assert normalize_country_code("deu") == "DE"
        assert normalize_country_code("us") == "US"
        assert normalize_country_code("XYZ") == "XYZ"
        assert normalize_country_code(None) == ""


class TestComparisonNormalizer:
    """Test FX/PPP derivations"""

    def _derive(self, observations, countries=("AU", "US", "DE")):
        normalizer = ComparisonNormalizer(target_countries=list(countries))
        return normalizer.derive(observations, OPTIONS.ingested_at, OPTIONS.vintage)

    def test_retail_nominal_conversions(self):
        outcome = self._derive(_base_observations())

        assert outcome.gaps == []
        au = _find(outcome.observations, RETAIL_USD_NOMINAL_SERIES_ID, "AU")
        de = _find(outcome.observations, RETAIL_USD_NOMINAL_SERIES_ID, "DE")
        assert au.value == pytest.approx((1915 / 6000) / 1.53, abs=1e-6)
        assert de.value == pytest.approx(0.319 / 0.92, abs=1e-6)
        assert de.tax_status == "incl_tax"
        assert au.is_modeled is True
        assert au.confidence == "derived"

    def test_ppp_conversions(self):
        outcome = self._derive(_base_observations())

        au_nominal = (1915 / 6000) / 1.53
        de_nominal = 0.319 / 0.92
        au = _find(outcome.observations, RETAIL_USD_PPP_SERIES_ID, "AU")
        de = _find(outcome.observations, RETAIL_USD_PPP_SERIES_ID, "DE")
        us = _find(outcome.observations, RETAIL_USD_PPP_SERIES_ID, "US")
        assert au.value == pytest.approx(au_nominal * 1.53 / 1.44, abs=1e-6)
        assert de.value == pytest.approx(de_nominal * 0.92 / 0.83, abs=1e-6)
        assert us.value == pytest.approx(0.182, abs=1e-6)

    def test_usd_retail_pass_through_is_retagged(self):
        outcome = self._derive(_base_observations())

        us = _find(outcome.observations, RETAIL_USD_NOMINAL_SERIES_ID, "US")
        assert us.value == pytest.approx(0.182)
        assert us.tax_status == "incl_tax"
        assert us.consumption_band == "household_mid"
        assert us.confidence == "derived"

    def test_wholesale_conversions(self):
        outcome = self._derive(_base_observations())

        au = _find(outcome.observations, WHOLESALE_USD_SERIES_ID, "AU")
        de = _find(outcome.observations, WHOLESALE_USD_SERIES_ID, "DE")
        assert au.value == pytest.approx(118.0 / 1.53, abs=1e-6)
        assert de.value == pytest.approx(95.4 / 0.92, abs=1e-6)
        assert de.unit == "usd_mwh"
        assert de.interval_start_utc == "2026-02-28T00:00:00Z"

    def test_zero_fx_skips_country_and_records_gap(self):
        outcome = self._derive(_base_observations(de_fx=0))

        assert not [o for o in outcome.observations if o.country_code == "DE"]
        assert [(g.country_code, g.series_id) for g in outcome.gaps] == [
            ("DE", RETAIL_USD_NOMINAL_SERIES_ID),
            ("DE", WHOLESALE_USD_SERIES_ID),
        ]
        # Other countries are unaffected
        _find(outcome.observations, RETAIL_USD_PPP_SERIES_ID, "AU")

    def test_missing_fx_records_gap(self):
        observations = [o for o in _base_observations() if not (o.series_id == FX_SERIES_ID and o.country_code == "DE")]

        outcome = self._derive(observations)

        assert {g.country_code for g in outcome.gaps} == {"DE"}
        assert all(g.reason == "no positive FX rate" for g in outcome.gaps)

    def test_missing_ppp_skips_only_ppp(self):
        observations = [o for o in _base_observations() if not (o.series_id == PPP_SERIES_ID and o.country_code == "AU")]

        outcome = self._derive(observations)

        _find(outcome.observations, RETAIL_USD_NOMINAL_SERIES_ID, "AU")
        assert not [o for o in outcome.observations
                    if o.series_id == RETAIL_USD_PPP_SERIES_ID and o.country_code == "AU"]
        assert [(g.country_code, g.series_id, g.reason) for g in outcome.gaps] == [
            ("AU", RETAIL_USD_PPP_SERIES_ID, "no positive PPP factor"),
        ]

    def test_latest_fx_year_wins(self):
        observations = _base_observations()
        observations += map_world_bank_points(
            [WorldBankNormalizationPoint(country_code="DEU", year="2026", indicator_code="PA.NUS.FCRF", value=0.8)],
            OPTIONS,
        )

        outcome = self._derive(observations)

        de = _find(outcome.observations, WHOLESALE_USD_SERIES_ID, "DE")
        assert de.value == pytest.approx(95.4 / 0.8, abs=1e-6)

    def test_zero_latest_fx_falls_back_to_older_positive_year(self):
        observations = _base_observations(de_fx=0)
        observations += map_world_bank_points(
            [WorldBankNormalizationPoint(country_code="DEU", year="2024", indicator_code="PA.NUS.FCRF", value=0.92)],
            OPTIONS,
        )

        outcome = self._derive(observations)

        de = _find(outcome.observations, WHOLESALE_USD_SERIES_ID, "DE")
        assert de.value == pytest.approx(95.4 / 0.92, abs=1e-6)
        assert [g for g in outcome.gaps if g.country_code == "DE"] == []

    def test_zero_annual_bill_records_gap(self):
        observations = [
            o.model_copy(update={"value": 0.0}) if o.series_id == AER_MEAN_SERIES_ID else o
            for o in _base_observations()
        ]

        outcome = self._derive(observations)

        assert not [o for o in outcome.observations
                    if o.series_id == RETAIL_USD_NOMINAL_SERIES_ID and o.country_code == "AU"]
        assert [(g.country_code, g.series_id, g.reason) for g in outcome.gaps] == [
            ("AU", RETAIL_USD_NOMINAL_SERIES_ID, "no positive annual bill"),
        ]
        # Wholesale does not depend on the bill
        _find(outcome.observations, WHOLESALE_USD_SERIES_ID, "AU")

    def test_only_target_countries_derived(self):
        outcome = self._derive(_base_observations(), countries=("AU",))

        assert {o.country_code for o in outcome.observations} == {"AU"}

    def test_stamps_and_methodology(self):
        outcome = self._derive(_base_observations())

        assert outcome.observations
        assert all(o.vintage == "2026-02-28" for o in outcome.observations)
        assert all(o.methodology_version == "energy-comparison-v1" for o in outcome.observations)

    def test_non_positive_usage_falls_back(self):
        normalizer = ComparisonNormalizer(target_countries=["AU"], household_usage_kwh=0)
        assert normalizer.household_usage_kwh == 6000.0
