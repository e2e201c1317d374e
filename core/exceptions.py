"""
Custom exceptions for the tidal ingestion pipeline with structured error context.

This module provides the exception hierarchy used throughout ingestion.
Each exception carries context information for debugging and logging.

Exception Hierarchy:
    TidalIngestionError (base)
    ├── ExtractionError
    │   └── TidalAPIError
    │       ├── APIResponseError
    │       ├── AuthenticationError
    │       ├── ResourceNotFoundError
    │       ├── RateLimitError
    │       └── NetworkError
    ├── TransformationError
    │   └── DataFormatError
    ├── LoadError
    │   └── UpsertError
    ├── SelectionError
    └── FetchStateError
"""

from typing import Optional, Dict, Any
from core.timeutils import utcnow


class TidalIngestionError(Exception):
    """
    Base exception for all ingestion-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (station, url, status, etc.)
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
        self.timestamp = utcnow()

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


def describe_error(exc: BaseException) -> str:
    """Short message for an exception, suitable for storing on a fetch record."""
    if isinstance(exc, TidalIngestionError):
        if exc.original_exception:
            return f"{exc.message}: {exc.original_exception}"
        return exc.message
    return str(exc) or type(exc).__name__


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(TidalIngestionError):
    """Base exception for data extraction failures."""
    pass


class TidalAPIError(ExtractionError):
    """
    Failure talking to the tidal API.

    Context should include:
        - api_url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class APIResponseError(TidalAPIError):
    """Non-2xx response or an unreadable body."""
    pass


class AuthenticationError(TidalAPIError):
    """Authentication failures (HTTP 401, 403), usually a missing or bad subscription key."""
    pass


class ResourceNotFoundError(TidalAPIError):
    """Resource not found (HTTP 404), e.g. an unknown station."""
    pass


class RateLimitError(TidalAPIError):
    """Rate limiting errors (HTTP 429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds the remote asked us to wait
        if retry_after:
            self.context["retry_after"] = retry_after


class NetworkError(TidalAPIError):
    """Transport-level failures: timeouts, refused connections, DNS errors."""
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(TidalIngestionError):
    """Base exception for payload transformation failures."""
    pass


class DataFormatError(TransformationError):
    """
    Exception raised when an upstream record cannot be turned into a row.

    Context should include:
        - station_id: Station the record belongs to (if known)
        - field_name: The offending field
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(TidalIngestionError):
    """Base exception for data loading failures."""
    pass


class UpsertError(LoadError):
    """
    Exception raised when an upsert block fails and is rolled back.

    Context should include:
        - station_id: Station whose rows were being written
        - table_name: Name of the table
    """
    pass


# ============================================================================
# Selection / Fetch-state Errors
# ============================================================================

class SelectionError(TidalIngestionError):
    """
    Exception raised when the station selection query fails.

    Context should include:
        - explicit_ids: Station ids the caller asked for (if any)
        - batch_size: Requested batch size
    """
    pass


class FetchStateError(TidalIngestionError):
    """
    Exception raised when a fetch record cannot be written.

    Context should include:
        - station_id: Station whose record failed
    """
    pass
