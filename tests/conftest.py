"""
Pytest configuration and fixtures
"""

from typing import Callable, Dict, List
import httpx
import pytest
from schemas.observation import Observation

TEST_INGESTED_AT = "2026-02-28T00:00:00.000Z"
TEST_VINTAGE = "2026-02-28"


@pytest.fixture
def store_path(tmp_path):
    """Path of a not-yet-created JSON store inside the test's tmp dir"""
    return str(tmp_path / "live-store.json")


@pytest.fixture
def make_observation() -> Callable[..., Observation]:
    """Factory for valid observations; keyword arguments override defaults"""

    def factory(**overrides) -> Observation:
        fields = {
            "series_id": "hvi.value.index",
            "region_code": "AU",
            "country_code": "AU",
            "date": "2025-Q4",
            "vintage": TEST_VINTAGE,
            "value": 169.4,
            "unit": "index",
            "source_name": "ABS",
            "source_url": "https://www.abs.gov.au/",
            "published_at": "2025-12-01T00:00:00.000Z",
            "ingested_at": TEST_INGESTED_AT,
        }
        fields.update(overrides)
        return Observation(**fields)

    return factory


@pytest.fixture
def mock_fetch():
    """
    Build a fetch function answering with canned responses.

    Each call pops the next (status, body) pair, so a list of several
    responses simulates retries; the calls are recorded on fetch.calls.
    """

    def factory(responses: List[tuple]) -> Callable:
        queue = list(responses)
        calls: List[Dict] = []

        async def fetch(url: str, headers: Dict[str, str]) -> httpx.Response:
            calls.append({"url": url, "headers": headers})
            status, body = queue.pop(0) if len(queue) > 1 else queue[0]
            return httpx.Response(status, text=body)

        fetch.calls = calls
        return fetch

    return factory
