"""
Ranking engine for cross-country comparisons.

Pure functions; callers select one comparable value per country first
(see select_comparable_observations).
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence
from pydantic import BaseModel
from ingestion.transformers.mappers import normalize_country_code
from schemas.observation import Observation


class ComparableObservation(BaseModel):
    country_code: str
    date: str
    value: float
    methodology_version: Optional[str] = None


class RankedObservation(ComparableObservation):
    rank: int


class PeerComparison(BaseModel):
    peer_country_code: str
    peer_value: float
    gap: float
    gap_pct: float


def _round2(value: float) -> float:
    """Two decimals, halves rounded up"""
    return math.floor(value * 100 + 0.5) / 100


def rank_comparable_observations(rows: Iterable[ComparableObservation]) -> List[RankedObservation]:
    """
    Rank by value descending, ties broken by country code ascending.

    Equal values share the rank of their first occurrence; the next distinct
    value takes its 1-based sorted position, so [100, 100, 70] ranks 1, 1, 3.
    """
    ordered = sorted(rows, key=lambda row: (-row.value, row.country_code))

    ranked: List[RankedObservation] = []
    previous_value: Optional[float] = None
    previous_rank = 0
    for index, row in enumerate(ordered):
        if previous_value is not None and row.value == previous_value:
            rank = previous_rank
        else:
            rank = index + 1
        previous_value = row.value
        previous_rank = rank
        ranked.append(RankedObservation(**row.model_dump(), rank=rank))
    return ranked


def compute_percentile(rank: int, count: int) -> float:
    if count <= 1:
        return 100.0
    return _round2(((count - rank) / (count - 1)) * 100)


def compute_peer_comparisons(
    country_code: str,
    rows: Sequence[ComparableObservation],
    peers: Sequence[str]
) -> List[PeerComparison]:
    """Gap of the primary country's value against each peer that has a value"""
    by_country = {row.country_code: row for row in rows}
    primary = by_country.get(country_code)
    if primary is None:
        return []

    comparisons = []
    for peer_code in peers:
        peer = by_country.get(peer_code)
        if peer is None:
            continue
        gap = primary.value - peer.value
        gap_pct = 0.0 if peer.value == 0 else (gap / peer.value) * 100
        comparisons.append(
            PeerComparison(
                peer_country_code=peer_code,
                peer_value=peer.value,
                gap=gap,
                gap_pct=_round2(gap_pct),
            )
        )
    return comparisons


def select_comparable_observations(
    observations: Iterable[Observation],
    series_id: str,
    tax_status: Optional[str] = None,
    consumption_band: Optional[str] = None,
    methodology_version: Optional[str] = None,
    countries: Optional[Sequence[str]] = None
) -> List[ComparableObservation]:
    """Latest-dated row per country for one series and dimension filter"""
    latest: Dict[str, Observation] = {}
    for observation in observations:
        if observation.series_id != series_id:
            continue
        if tax_status is not None and observation.tax_status != tax_status:
            continue
        if consumption_band is not None and observation.consumption_band != consumption_band:
            continue
        if methodology_version is not None and observation.methodology_version != methodology_version:
            continue

        country_code = normalize_country_code(observation.country_code or observation.region_code)
        if not country_code:
            continue
        if countries is not None and country_code not in countries:
            continue

        existing = latest.get(country_code)
        if existing is None or observation.date > existing.date:
            latest[country_code] = observation

    return [
        ComparableObservation(
            country_code=country_code,
            date=observation.date,
            value=observation.value,
            methodology_version=observation.methodology_version,
        )
        for country_code, observation in sorted(latest.items())
    ]
