"""
Custom exceptions for the ingestion pipeline with structured error context.

Each exception carries a context dictionary for debugging and alerting.
Retry decisions are made by the scheduler from the RetryableError /
NonRetryableError mixins, never from message text.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   └── SourceClientError
    │       ├── TransientSourceError   (RetryableError)
    │       └── PermanentSourceError   (NonRetryableError)
    │           └── SchemaDriftError
    ├── LoadError
    │   └── StoreIntegrityError        (NonRetryableError)
    ├── ConfigurationError
    │   └── UnsupportedBackendError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, status, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network failures and timeouts
    - Rate limiting (HTTP 429), request timeout (HTTP 408)
    - Server errors (HTTP 5xx)
    """
    pass


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Client errors (HTTP 4xx other than 408/429)
    - Payloads that fail schema validation
    - Store integrity violations
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class SourceClientError(ExtractionError):
    """
    Failure raised by a provider source client.

    Attributes:
        source_id: Identifier of the provider (e.g. "aemo_wholesale")
        transient: Whether the scheduler may retry the job
        status: HTTP status code, when the failure came from a response
    """

    transient = False

    def __init__(
        self,
        source_id: str,
        message: str,
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context["source_id"] = source_id
        if status is not None:
            context["status_code"] = status
        super().__init__(message, context, original_exception)
        self.source_id = source_id
        self.status = status


class TransientSourceError(RetryableError, SourceClientError):
    """Network failure or HTTP 408/429/5xx."""

    transient = True


class PermanentSourceError(NonRetryableError, SourceClientError):
    """Non-retryable HTTP status or unusable payload."""

    transient = False


class SchemaDriftError(PermanentSourceError):
    """
    Payload arrived but failed strict field-presence/type validation.

    Context should include:
        - row_index: Index of the offending row (if applicable)
        - field_name: Field that was missing or mistyped (if applicable)
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for store failures."""
    pass


class StoreIntegrityError(NonRetryableError, LoadError):
    """
    Store contract violated (e.g. an unvalidated non-finite value).

    Context should include:
        - operation: Store operation that detected the violation
        - key: Identity key of the offending record (if applicable)
    """
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """Invalid runtime configuration."""
    pass


class UnsupportedBackendError(ConfigurationError):
    """Store backend selector holds a value other than "store" or "postgres"."""
    pass


def is_transient_error(error: BaseException) -> bool:
    """True when the scheduler may retry after this error."""
    return isinstance(error, RetryableError)
