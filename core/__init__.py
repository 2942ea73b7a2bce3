"""
Core utilities and configuration for the observation ingestion system.

Modules:
    config: Application configuration and environment variable management
    database: Lazily created async engine and session factory
    exceptions: Exception hierarchy with transient/permanent classification
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import get_session_maker
    from core.exceptions import TransientSourceError, SchemaDriftError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "get_session_maker",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "SourceClientError",
    "TransientSourceError",
    "PermanentSourceError",
    "SchemaDriftError",
    "LoadError",
    "StoreIntegrityError",
    "ConfigurationError",
    "UnsupportedBackendError",
    "RetryableError",
    "NonRetryableError",
    "is_transient_error",
]
