"""
Pydantic schemas for validation and serialization.

Schemas:
    tidal: Validated station and tidal event records ready for upsert
    results: Per-station outcomes and sync run summaries
    api: API endpoint request/response schemas

Usage:
    from schemas.tidal import StationCreate, TidalEventCreate
    from schemas.results import StationSyncSummary, EventSyncSummary
    from schemas.api import FetchEventsRequest, HealthCheckResponse

Example:
    event = TidalEventCreate(
        station_id="0001",
        event_type=EventType.HIGH_WATER,
        event_datetime=datetime(2025, 5, 1, 3, 15),
        height=4.5
    )
"""

from schemas.tidal import StationCreate, TidalEventCreate
from schemas.results import (
    FeatureOutcome,
    StationFetchOutcome,
    StationSyncSummary,
    EventSyncSummary,
)
from schemas.api import (
    HealthCheckResponse,
    StationListResponse,
    StationEventsResponse,
    FetchEventsRequest,
)

__all__ = [
    "StationCreate",
    "TidalEventCreate",
    "StationSyncSummary",
    "EventSyncSummary",
    "StationFetchOutcome",
    "FeatureOutcome",
    "HealthCheckResponse",
    "StationListResponse",
    "StationEventsResponse",
    "FetchEventsRequest",
]
