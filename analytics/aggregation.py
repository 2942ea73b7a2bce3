"""
Aggregations used by the wholesale and retail jobs
"""

from typing import Iterable, List, Sequence
from pydantic import BaseModel
from schemas.points import AemoWholesalePoint


class WeightedWholesalePrice(BaseModel):
    """Demand-weighted regional reference price"""
    weighting: str = "demand_weighted"
    aud_mwh: float
    c_kwh: float


def compute_demand_weighted_rrp(points: Sequence[AemoWholesalePoint]) -> WeightedWholesalePrice:
    """
    Weight each region's price by its demand.

    Raises:
        ValueError: No points, or total demand is not positive
    """
    if not points:
        raise ValueError("at least one point is required")

    total_demand = sum(point.demand_mwh for point in points)
    if total_demand <= 0:
        raise ValueError("total demand must be greater than 0")

    aud_mwh = sum(point.rrp_aud_mwh * point.demand_mwh for point in points) / total_demand
    # 1 AUD/MWh = 0.1 c/kWh
    return WeightedWholesalePrice(aud_mwh=aud_mwh, c_kwh=aud_mwh / 10)


def mean(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Iterable[float]) -> float:
    ordered: List[float] = sorted(values)
    if not ordered:
        return 0.0
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return ordered[middle]
