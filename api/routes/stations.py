"""
Station, event and fetch-state read endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_api_client
from schemas.api import (
    FetchStateResponse,
    PaginationMetadata,
    StationEventsResponse,
    StationFeature,
    StationFeatureCollection,
    StationListResponse,
    StationResponse,
    TidalEventResponse,
    GeoJSONPoint,
)
from ingestion.loaders.tidal_loader import TidalLoader
from ingestion.fetch_state import FetchStateStore
from ingestion.events import EventFetchConfig, FetchTidalEventsAction
from ingestion.extractors.tidal_api import TidalAPIClient
from core.timeutils import utcnow, to_naive_utc
from typing import Optional
from datetime import datetime, timedelta
import time
import uuid
import math
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/stations", tags=["Stations"])

DEFAULT_EVENT_WINDOW_DAYS = 7


@router.get("", response_model=StationListResponse)
async def list_stations(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=500, description="Items per page"),
    country: Optional[str] = Query(None, description="Filter by country"),
    search: Optional[str] = Query(None, description="Search in station name"),
    db: AsyncSession = Depends(get_db)
):
    """
    Retrieve stations ordered by name.

    Features:
    - Pagination
    - Country filter and name search
    """
    start_time = time.time()
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    logger.info(
        f"[{request_id}] GET /stations - page={page}, page_size={page_size}, "
        f"filters: country={country}, search={search}"
    )

    loader = TidalLoader(db)
    stations, total_items = await loader.list_stations(
        country=country,
        search=search,
        offset=(page - 1) * page_size,
        limit=page_size
    )

    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0
    items = [StationResponse.model_validate(station) for station in stations]

    logger.info(
        f"[{request_id}] Returned {len(items)} stations "
        f"(total: {(time.time() - start_time) * 1000:.2f}ms)"
    )

    return StationListResponse(
        items=items,
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied={k: v for k, v in {
            "country": country,
            "search": search,
        }.items() if v is not None}
    )


@router.get("/geojson", response_model=StationFeatureCollection)
async def stations_geojson(
    country: Optional[str] = Query(None, description="Filter by country"),
    search: Optional[str] = Query(None, description="Search in station name"),
    db: AsyncSession = Depends(get_db)
):
    """Stations with coordinates as a GeoJSON FeatureCollection"""
    stations, _ = await TidalLoader(db).list_stations(
        country=country,
        search=search,
        with_coordinates=True
    )

    return StationFeatureCollection(features=[
        StationFeature(
            id=station.id,
            geometry=GeoJSONPoint(coordinates=station.location),
            properties={
                "name": station.name,
                "country": station.country,
                "continuous_heights_available": station.continuous_heights_available,
            }
        )
        for station in stations
    ])


@router.get("/{station_id}", response_model=StationResponse)
async def get_station(station_id: str, db: AsyncSession = Depends(get_db)):
    station = await TidalLoader(db).get_station(station_id)
    if station is None:
        raise HTTPException(status_code=404, detail=f"Station {station_id} not found")
    return StationResponse.model_validate(station)


@router.get("/{station_id}/events", response_model=StationEventsResponse)
async def get_station_events(
    station_id: str,
    start: Optional[datetime] = Query(None, description="Window start (default: now)"),
    end: Optional[datetime] = Query(None, description="Window end (default: now + 7 days)"),
    fetch_if_empty: bool = Query(False, description="Fetch from the API when the window is empty"),
    db: AsyncSession = Depends(get_db),
    client: TidalAPIClient = Depends(get_api_client)
):
    """
    Tidal events for a station in a time window, ordered by time.

    With fetch_if_empty the station is refreshed from the API once when
    nothing is stored for the window yet.
    """
    loader = TidalLoader(db)
    station = await loader.get_station(station_id)
    if station is None:
        raise HTTPException(status_code=404, detail=f"Station {station_id} not found")
    station_response = StationResponse.model_validate(station)

    now = utcnow()
    start = to_naive_utc(start) if start else now
    end = to_naive_utc(end) if end else now + timedelta(days=DEFAULT_EVENT_WINDOW_DAYS)
    if end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")

    events = await loader.get_events(station_id, start, end)

    if not events and fetch_if_empty:
        logger.info(f"No stored events for station {station_id}, fetching on demand")
        action = FetchTidalEventsAction(db, client, EventFetchConfig(batch_size=1, request_delay_ms=0))
        await action.execute(station_ids=[station_id], force_refresh=True)
        events = await loader.get_events(station_id, start, end)

    return StationEventsResponse(
        station=station_response,
        start=start,
        end=end,
        events=[TidalEventResponse.model_validate(event) for event in events]
    )


@router.get("/{station_id}/fetch-state", response_model=FetchStateResponse)
async def get_fetch_state(station_id: str, db: AsyncSession = Depends(get_db)):
    """Last event fetch attempt for a station"""
    state = await FetchStateStore(db).get(station_id)
    if state is None:
        raise HTTPException(
            status_code=404,
            detail=f"No fetch recorded for station {station_id}"
        )
    return FetchStateResponse.model_validate(state)
