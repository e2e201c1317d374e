"""
Per-station fetch-state tracking
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models import TidalStation, TidalStationFetch
from core.config import settings
from core.exceptions import FetchStateError
from core.timeutils import utcnow
import logging

logger = logging.getLogger(__name__)


def truncate_error(message: Optional[str], limit: Optional[int] = None) -> Optional[str]:
    """Cut an error message down to the storable length"""
    if message is None:
        return None
    limit = limit if limit is not None else settings.FETCH_ERROR_MESSAGE_MAX_LENGTH
    return message[:limit]


class FetchStateStore:
    """
    Record the outcome of the latest event fetch attempt for each station.

    One row per station, created on the first attempt and overwritten on
    every later one (last writer wins). Each record commits on its own so a
    failure here never takes the caller's batch down with it.
    """

    def __init__(self, db_session: AsyncSession, error_message_max_length: Optional[int] = None):
        self.db = db_session
        self.error_message_max_length = (
            error_message_max_length
            if error_message_max_length is not None
            else settings.FETCH_ERROR_MESSAGE_MAX_LENGTH
        )

    async def get(self, station_id: str) -> Optional[TidalStationFetch]:
        """Retrieve fetch-state for a station"""
        return await self.db.get(TidalStationFetch, station_id)

    async def record(
        self,
        station_id: str,
        has_error: bool,
        error_message: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Create or update the fetch-state row for a station.

        Args:
            station_id: Station the attempt was made for
            has_error: Whether the attempt failed
            error_message: Failure description (ignored on success)
            now: Attempt time, defaults to the current UTC time

        Returns:
            True when the row was written, False when the station is unknown
            or the write failed
        """
        try:
            exists = await self.db.scalar(
                select(TidalStation.id).where(TidalStation.id == station_id)
            )
            if exists is None:
                logger.error(f"Cannot record fetch state: station {station_id} does not exist")
                return False

            now = now or utcnow()
            message = truncate_error(error_message, self.error_message_max_length) if has_error else None

            state = await self.get(station_id)
            if state is None:
                state = TidalStationFetch(station_id=station_id)
                self.db.add(state)

            state.last_fetch_at = now
            state.fetch_error = has_error
            state.error_message = message
            state.updated_at = now

            await self.db.commit()
            return True

        except Exception as e:
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            error = FetchStateError(
                f"Failed to record fetch state for station {station_id}",
                context={"station_id": station_id, "has_error": has_error},
                original_exception=e
            )
            logger.error(str(error), extra={"error_context": error.to_dict()})
            return False

    truncate_error = staticmethod(truncate_error)
