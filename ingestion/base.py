"""
Abstract base class for provider source clients
"""

import csv
import io
import json
import math
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
import httpx
import pandas as pd
from core.config import settings
from core.exceptions import (
    PermanentSourceError,
    SchemaDriftError,
    TransientSourceError,
)
from schemas.snapshots import SourceSnapshot
import logging

logger = logging.getLogger(__name__)

# (url, headers) -> response; injected in tests and fixture runs
SourceFetch = Callable[[str, Dict[str, str]], Awaitable[httpx.Response]]

JSON_ACCEPT = "application/json"
CSV_ACCEPT = "text/csv,text/plain"


def is_transient_status(status: int) -> bool:
    """Request timeout, rate limiting and server errors may succeed on retry"""
    return status == 408 or status == 429 or status >= 500


def csv_row_widths(text: str) -> List[int]:
    """Field count of every non-blank record, header first"""
    return [len(fields) for fields in csv.reader(io.StringIO(text), skipinitialspace=True) if fields]


def parse_csv_rows(content: str) -> List[Dict[str, str]]:
    """
    Parse a CSV body into header-keyed rows.

    Every cell is kept as a stripped string. A row whose field count differs
    from the header raises ValueError instead of being padded or shifted.
    A body with no data rows yields an empty list.
    """
    if not content or not content.strip():
        return []

    text = content.strip()
    widths = csv_row_widths(text)
    if not widths:
        return []
    for row_index, width in enumerate(widths[1:]):
        if width != widths[0]:
            raise ValueError(f"row {row_index} has {width} fields, header has {widths[0]}")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=True,
            index_col=False,
        )
    except pd.errors.EmptyDataError:
        return []

    df.columns = [str(column).strip() for column in df.columns]
    df = df.fillna("")
    return [
        {column: str(value).strip() for column, value in row.items()}
        for row in df.to_dict(orient="records")
    ]


def parse_finite_float(value: Any) -> Optional[float]:
    """Float conversion that rejects blanks, booleans, NaN and infinities"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def require_text(value: Any) -> str:
    """String form of a scalar field; "" when absent"""
    if value is None:
        return ""
    return str(value).strip()


class SourceClient(ABC):
    """
    Base class for all provider clients.

    Responsibilities:
    - Issue one GET per snapshot through the injectable fetch function
    - Classify failures into transient and permanent errors
    - Keep the raw body verbatim for staging

    Subclasses implement fetch_snapshot() and their own field checks.
    """

    source_id: str = ""
    default_endpoint: str = ""
    accept: str = JSON_ACCEPT

    def __init__(
        self,
        endpoint: Optional[str] = None,
        fetch_impl: Optional[SourceFetch] = None,
        timeout: Optional[float] = None
    ):
        self.endpoint = endpoint or self.default_endpoint
        self.fetch_impl = fetch_impl
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

    @abstractmethod
    async def fetch_snapshot(self) -> SourceSnapshot:
        """Fetch and validate one snapshot from the provider"""
        pass

    async def _default_fetch(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await client.get(url, headers=headers)
            await response.aread()
            return response

    async def _request(self) -> httpx.Response:
        headers = {"accept": self.accept}
        fetch = self.fetch_impl or self._default_fetch

        logger.debug(f"Fetching {self.source_id} from {self.endpoint}")
        try:
            response = await fetch(self.endpoint, headers)
        except (httpx.HTTPError, OSError) as e:
            raise TransientSourceError(
                self.source_id,
                "network failure",
                context={"endpoint": self.endpoint},
                original_exception=e
            )

        if not response.is_success:
            status = response.status_code
            error_class = TransientSourceError if is_transient_status(status) else PermanentSourceError
            raise error_class(
                self.source_id,
                f"HTTP {status}",
                status=status,
                context={"endpoint": self.endpoint}
            )

        return response

    async def read_text(self) -> str:
        response = await self._request()
        return response.text

    async def read_csv(self) -> Tuple[List[Dict[str, str]], str]:
        """
        Returns:
            (header-keyed rows, raw body text)
        """
        raw_payload = await self.read_text()
        try:
            return parse_csv_rows(raw_payload), raw_payload
        except ValueError as e:
            raise SchemaDriftError(
                self.source_id,
                "unparsable CSV payload",
                context={"endpoint": self.endpoint},
                original_exception=e
            )

    async def read_json(self) -> Tuple[Any, str]:
        """
        Returns:
            (parsed JSON document, raw body text)
        """
        response = await self._request()
        raw_payload = response.text
        try:
            return json.loads(raw_payload), raw_payload
        except ValueError as e:
            raise SchemaDriftError(
                self.source_id,
                "invalid JSON payload",
                context={"endpoint": self.endpoint},
                original_exception=e
            )

    def drift(self, message: str, row_index: Optional[int] = None, field_name: Optional[str] = None):
        """Build a SchemaDriftError for this source"""
        context: Dict[str, Any] = {"endpoint": self.endpoint}
        if row_index is not None:
            context["row_index"] = row_index
        if field_name is not None:
            context["field_name"] = field_name
        return SchemaDriftError(self.source_id, message, context=context)

    def require_list(self, document: Any, field_name: str) -> List[Any]:
        """The named top-level array, or drift when it is absent"""
        rows = document.get(field_name) if isinstance(document, dict) else None
        if not isinstance(rows, list):
            raise self.drift(f"schema drift in {self.source_id} payload", field_name=field_name)
        return rows

    def require_row(self, row: Any, row_index: int) -> Dict[str, Any]:
        if not isinstance(row, dict):
            raise self.drift(f"schema drift in {self.source_id} row", row_index=row_index)
        return row
