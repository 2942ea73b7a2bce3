"""
Unit tests for aggregation and ranking
"""

import pytest
from analytics.aggregation import compute_demand_weighted_rrp, mean, median
from analytics.ranking import (
    ComparableObservation,
    compute_peer_comparisons,
    compute_percentile,
    rank_comparable_observations,
    select_comparable_observations,
)
from schemas.points import AemoWholesalePoint


def _point(region, rrp, demand):
    return AemoWholesalePoint(region_code=region, timestamp="2026-02-27T02:00:00Z", rrp_aud_mwh=rrp, demand_mwh=demand)


def _row(country, value, date="2026-01"):
    return ComparableObservation(country_code=country, date=date, value=value)


class TestAggregation:
    """Test demand weighting and summary statistics"""

    def test_demand_weighted_price(self):
        result = compute_demand_weighted_rrp([_point("NSW", 120, 5000), _point("VIC", 100, 3000), _point("QLD", 140, 2000)])

        assert result.weighting == "demand_weighted"
        assert result.aud_mwh == pytest.approx(118.0)
        assert result.c_kwh == pytest.approx(11.8)

    def test_empty_points_rejected(self):
        with pytest.raises(ValueError):
            compute_demand_weighted_rrp([])

    def test_zero_demand_rejected(self):
        with pytest.raises(ValueError):
            compute_demand_weighted_rrp([_point("NSW", 120, 0), _point("VIC", 100, 0)])

    def test_mean_and_median(self):
        assert mean([1910, 2010, 1825]) == pytest.approx(1915.0)
        assert median([1910, 2010, 1825]) == 1910
        assert median([1, 2, 3, 4]) == 2.5
        assert mean([]) == 0.0
        assert median([]) == 0.0


class TestRanking:
    """Test ranking, percentiles and peer gaps"""

    def test_rank_orders_by_value(self):
        ranked = rank_comparable_observations([_row("AU", 120), _row("US", 70), _row("DE", 95)])

        assert [(r.country_code, r.rank) for r in ranked] == [("AU", 1), ("DE", 2), ("US", 3)]

    def test_rank_descending_with_ties(self):
        ranked = rank_comparable_observations([_row("DE", 100), _row("AU", 70), _row("US", 100)])

        assert [(r.country_code, r.rank) for r in ranked] == [("DE", 1), ("US", 1), ("AU", 3)]

    def test_rank_empty(self):
        assert rank_comparable_observations([]) == []

    def test_percentile(self):
        assert compute_percentile(1, 3) == 100.0
        assert compute_percentile(3, 3) == 0.0
        assert compute_percentile(2, 3) == 50.0
        assert compute_percentile(1, 1) == 100.0
        assert compute_percentile(2, 4) == 66.67

    def test_peer_comparisons(self):
        rows = [_row("AU", 0.35), _row("US", 0.182), _row("DE", 0.0)]

        comparisons = compute_peer_comparisons("AU", rows, ["US", "DE", "JP"])

        assert [c.peer_country_code for c in comparisons] == ["US", "DE"]
        assert comparisons[0].gap == pytest.approx(0.168)
        assert comparisons[0].gap_pct == 92.31
        assert comparisons[1].gap_pct == 0.0

    def test_peer_comparisons_without_primary(self):
        assert compute_peer_comparisons("AU", [_row("US", 1.0)], ["US"]) == []

    def test_select_latest_per_country(self, make_observation):
        observations = [
            make_observation(series_id="s", country_code="AU", region_code="AU", date="2025-12", value=1.0),
            make_observation(series_id="s", country_code="AU", region_code="AU", date="2026-01", value=2.0),
            make_observation(series_id="s", country_code="USA", region_code="US", date="2026-01", value=3.0),
            make_observation(series_id="other", country_code="DE", region_code="DE", date="2026-01", value=4.0),
        ]

        rows = select_comparable_observations(observations, "s")

        assert [(r.country_code, r.value) for r in rows] == [("AU", 2.0), ("US", 3.0)]

    def test_select_filters_dimensions(self, make_observation):
        observations = [
            make_observation(series_id="s", country_code="AU", tax_status="incl_tax", value=1.0),
            make_observation(series_id="s", country_code="DE", region_code="DE", tax_status="excl_tax", value=2.0),
        ]

        rows = select_comparable_observations(observations, "s", tax_status="incl_tax", countries=["AU", "DE"])

        assert [r.country_code for r in rows] == ["AU"]
