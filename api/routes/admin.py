"""
Admin endpoints that trigger ingestion runs
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_api_client
from schemas.api import FetchEventsRequest
from schemas.results import EventSyncSummary, StationSyncSummary
from ingestion.events import EventFetchConfig, FetchTidalEventsAction
from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.stations import FetchTidalStationsAction
from typing import Optional
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/fetch-stations", response_model=StationSyncSummary)
async def fetch_stations(
    db: AsyncSession = Depends(get_db),
    client: TidalAPIClient = Depends(get_api_client)
):
    """Refresh the whole station catalog"""
    logger.info("Admin: station catalog fetch requested")
    return await FetchTidalStationsAction(db, client).execute()


@router.post("/fetch-events", response_model=EventSyncSummary)
async def fetch_events(
    body: Optional[FetchEventsRequest] = None,
    db: AsyncSession = Depends(get_db),
    client: TidalAPIClient = Depends(get_api_client)
):
    """
    Fetch tidal events for a batch of stations.

    The summary is returned as-is; ``success`` is false for an invalid
    duration or when none of the requested stations exist.
    """
    body = body or FetchEventsRequest()
    overrides = {
        key: value for key, value in {
            "batch_size": body.batch_size,
            "request_delay_ms": body.request_delay_ms,
        }.items() if value is not None
    }

    logger.info(
        f"Admin: event fetch requested - duration={body.duration}, "
        f"stations={body.station_ids or 'auto'}, force={body.force_refresh}"
    )

    action = FetchTidalEventsAction(db, client, EventFetchConfig(**overrides))
    return await action.execute(
        duration=body.duration,
        station_ids=body.station_ids,
        force_refresh=body.force_refresh
    )
