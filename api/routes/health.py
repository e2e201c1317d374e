"""
Health check endpoint with database and fetch-state status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text, func
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, FetchStateCounters
from models import TidalStation, TidalStationFetch
from core.timeutils import utcnow
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - How many stations have been fetched, errored or never fetched
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    counters = FetchStateCounters()

    if db_connected:
        try:
            total = await db.scalar(select(func.count()).select_from(TidalStation)) or 0
            fetched = await db.scalar(
                select(func.count()).select_from(TidalStationFetch).where(
                    TidalStationFetch.last_fetch_at.is_not(None)
                )
            ) or 0
            errored = await db.scalar(
                select(func.count()).select_from(TidalStationFetch).where(
                    TidalStationFetch.fetch_error.is_(True)
                )
            ) or 0
            counters = FetchStateCounters(
                total_stations=total,
                fetched_stations=fetched,
                errored_stations=errored,
                never_fetched_stations=max(total - fetched, 0)
            )
        except Exception as e:
            logger.error(f"Failed to count fetch states: {str(e)}")

    # Status is derived by the HealthCheckResponse validator
    return HealthCheckResponse(
        timestamp=utcnow(),
        database_connected=db_connected,
        fetch_state=counters
    )
