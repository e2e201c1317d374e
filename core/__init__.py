"""
Core utilities and configuration for the tidal ingestion backend.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    timeutils: Naive-UTC time helpers

Usage:
    from core.config import settings
    from core.database import get_session_maker
    from core.exceptions import TidalAPIError, UpsertError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with get_session_maker()() as session:
        # Perform database operations
        pass
"""

from core.config import settings
from core.database import get_session_maker
from core.logging import setup_logging
from core.exceptions import (
    TidalIngestionError,
    ExtractionError,
    TidalAPIError,
    APIResponseError,
    AuthenticationError,
    ResourceNotFoundError,
    RateLimitError,
    NetworkError,
    TransformationError,
    DataFormatError,
    LoadError,
    UpsertError,
    SelectionError,
    FetchStateError,
)

__all__ = [
    "settings",
    "get_session_maker",
    "setup_logging",
    # Exceptions
    "TidalIngestionError",
    "ExtractionError",
    "TidalAPIError",
    "APIResponseError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "RateLimitError",
    "NetworkError",
    "TransformationError",
    "DataFormatError",
    "LoadError",
    "UpsertError",
    "SelectionError",
    "FetchStateError",
]
