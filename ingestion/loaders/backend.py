"""
Store backend selection
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from core.database import get_session_maker
from core.exceptions import UnsupportedBackendError
from ingestion.loaders.base import ObservationStore
from ingestion.loaders.file_store import FileStore
from ingestion.loaders.postgres_loader import PostgresStore

STORE_BACKEND = "store"
POSTGRES_BACKEND = "postgres"


def resolve_ingest_backend(value: Optional[str]) -> str:
    """
    Validate the backend selector.

    An unset or empty value means the flat-file store; anything other than
    "store" or "postgres" is rejected instead of silently defaulting.
    """
    if value is None or value == "" or value == STORE_BACKEND:
        return STORE_BACKEND
    if value == POSTGRES_BACKEND:
        return POSTGRES_BACKEND
    raise UnsupportedBackendError(
        f"Unsupported ingest backend: {value}",
        context={"allowed": [STORE_BACKEND, POSTGRES_BACKEND]}
    )


@asynccontextmanager
async def open_store(
    backend: str,
    store_path: Optional[str] = None
) -> AsyncIterator[ObservationStore]:
    """Open the selected backend for the duration of one job"""
    backend = resolve_ingest_backend(backend)

    if backend == POSTGRES_BACKEND:
        session = get_session_maker()()
        store = PostgresStore(session)
        try:
            yield store
        finally:
            await store.close()
        return

    yield FileStore.load(store_path)
