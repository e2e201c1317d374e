"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from core.timeutils import utcnow
from models.base import EventType


# ============================================================================
# Health Check Schemas
# ============================================================================

class FetchStateCounters(BaseModel):
    """Fetch-state counters for health check"""
    total_stations: int = 0
    fetched_stations: int = 0
    errored_stations: int = 0
    never_fetched_stations: int = 0


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    fetch_state: FetchStateCounters = Field(default_factory=FetchStateCounters)

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        counters = self.fetch_state
        if not self.database_connected:
            self.status = "unhealthy"
        elif counters.fetched_stations and counters.errored_stations >= counters.fetched_stations:
            self.status = "unhealthy"
        elif counters.errored_stations:
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "status": "degraded",
            "timestamp": "2025-05-01T10:30:00",
            "database_connected": True,
            "fetch_state": {
                "total_stations": 607,
                "fetched_stations": 120,
                "errored_stations": 3,
                "never_fetched_stations": 487
            }
        }
    })


# ============================================================================
# Station Schemas
# ============================================================================

class StationResponse(BaseModel):
    """Response model for a tidal station"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    country: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    location: Optional[List[float]] = Field(None, description="[lon, lat]")
    continuous_heights_available: bool = False
    footnote: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class StationListResponse(BaseModel):
    """Paginated station list"""
    items: List[StationResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


class GeoJSONPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]


class StationFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    id: str
    geometry: GeoJSONPoint
    properties: Dict[str, Any]


class StationFeatureCollection(BaseModel):
    """Stations as GeoJSON, coordinates in [lon, lat] order"""
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[StationFeature]


# ============================================================================
# Event / Fetch-state Schemas
# ============================================================================

class TidalEventResponse(BaseModel):
    """Response model for one tidal event"""
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    event_type: EventType
    event_datetime: datetime
    height: Optional[float] = None
    is_approximate_time: bool = False
    is_approximate_height: bool = False
    filtered: bool = False


class StationEventsResponse(BaseModel):
    """Events for one station over a time window"""
    station: StationResponse
    start: datetime
    end: datetime
    events: List[TidalEventResponse]


class FetchStateResponse(BaseModel):
    """Last fetch attempt for one station"""
    model_config = ConfigDict(from_attributes=True)

    station_id: str
    last_fetch_at: Optional[datetime] = None
    fetch_error: bool = False
    error_message: Optional[str] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Admin Schemas
# ============================================================================

class FetchEventsRequest(BaseModel):
    """Body of an admin event fetch"""
    duration: int = Field(7, description="Days to request (1-7)")
    station_ids: List[str] = Field(default_factory=list)
    batch_size: Optional[int] = Field(None, ge=1, le=50)
    request_delay_ms: Optional[int] = Field(None, ge=0)
    force_refresh: bool = False
