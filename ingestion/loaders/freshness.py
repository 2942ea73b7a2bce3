"""
Date handling for freshness and lag computation.

Observation dates come in several shapes (ISO date, ISO datetime, month,
year, YYYY-Qn). Anything that cannot be placed on the timeline resolves to
"unknown", which callers treat as infinitely stale rather than an error.
"""

import math
import re
from datetime import datetime, timezone
from typing import Optional

_QUARTER_PATTERN = re.compile(r"^(\d{4})-Q([1-4])$")
_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
_YEAR_PATTERN = re.compile(r"^(\d{4})$")

# Minutes of lag tolerated per cadence before a series counts as stale
_STALE_THRESHOLDS = {
    "5m": 20,
    "daily": 48 * 60,
    "monthly": 72 * 60,
}
_DEFAULT_STALE_THRESHOLD = 7 * 24 * 60


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO date or datetime; naive values are taken as UTC"""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_timestamp(date: str) -> Optional[datetime]:
    """
    Place an observation date on the timeline.

    A quarter token resolves to the first day of the quarter's closing month
    (2025-Q4 -> 2025-12-01T00:00:00Z).
    """
    if not date:
        return None

    quarter = _QUARTER_PATTERN.match(date)
    if quarter:
        year, q = int(quarter.group(1)), int(quarter.group(2))
        return datetime(year, q * 3, 1, tzinfo=timezone.utc)

    month = _MONTH_PATTERN.match(date)
    if month:
        year, mm = int(month.group(1)), int(month.group(2))
        if 1 <= mm <= 12:
            return datetime(year, mm, 1, tzinfo=timezone.utc)
        return None

    year_only = _YEAR_PATTERN.match(date)
    if year_only:
        return datetime(int(year_only.group(1)), 1, 1, tzinfo=timezone.utc)

    return parse_iso_datetime(date)


def lag_minutes(now: datetime, date: str) -> float:
    """Whole minutes between date and now; math.inf when date is unknown"""
    ts = to_timestamp(date)
    if ts is None:
        return math.inf
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return float(max(0, math.floor((now - ts).total_seconds() / 60)))


def freshness_status(cadence: str, lag: float) -> str:
    threshold = _STALE_THRESHOLDS.get(cadence, _DEFAULT_STALE_THRESHOLD)
    return "stale" if lag > threshold else "fresh"


def format_iso(value: datetime) -> str:
    """UTC ISO string with millisecond precision and a Z suffix"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
