"""
Decide which stations the next event fetch should cover
"""

from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, case
from models import TidalStation, TidalStationFetch
from core.config import settings
from core.exceptions import SelectionError
from core.timeutils import utcnow
import enum
import logging

logger = logging.getLogger(__name__)


class SelectionReason(str, enum.Enum):
    """Why a selection came out the way it did"""
    EXPLICIT = "explicit"
    PRIORITY = "priority"
    NO_VALID_IDS = "no_valid_ids"
    EMPTY_STORE = "empty_store"


class SelectionResult(NamedTuple):
    stations: List[TidalStation]
    missing_ids: List[str]
    reason: SelectionReason


class StationSelector:
    """
    Station selection policy.

    With explicit ids the caller's stations are returned in the caller's
    order, unknown ids are reported back. Without them stations that were
    never fetched come first, then stations whose last attempt failed, then
    stations whose data is older than the stale window; oldest attempt first
    within each group, station id as the tie-breaker.
    """

    def __init__(self, db_session: AsyncSession, stale_hours: Optional[int] = None):
        self.db = db_session
        self.stale_hours = stale_hours if stale_hours is not None else settings.FETCH_STALE_HOURS

    async def select(
        self,
        explicit_ids: Optional[Sequence[str]] = None,
        batch_size: int = 10,
        force_refresh: bool = False,
        now: Optional[datetime] = None
    ) -> SelectionResult:
        try:
            return await self._select(explicit_ids, batch_size, force_refresh, now)
        except Exception as e:
            raise SelectionError(
                "Station selection query failed",
                context={
                    "explicit_ids": list(explicit_ids or []),
                    "batch_size": batch_size,
                    "force_refresh": force_refresh,
                },
                original_exception=e
            )

    async def _select(
        self,
        explicit_ids: Optional[Sequence[str]],
        batch_size: int,
        force_refresh: bool,
        now: Optional[datetime]
    ) -> SelectionResult:
        if explicit_ids:
            return await self._select_explicit(explicit_ids)

        has_stations = await self.db.scalar(select(TidalStation.id).limit(1))
        if has_stations is None:
            logger.warning("No tidal stations in the database; fetch the station catalog first")
            return SelectionResult([], [], SelectionReason.EMPTY_STORE)

        stations = await self._select_by_priority(batch_size, force_refresh, now or utcnow())
        return SelectionResult(stations, [], SelectionReason.PRIORITY)

    async def _select_explicit(self, explicit_ids: Sequence[str]) -> SelectionResult:
        requested = list(dict.fromkeys(str(station_id) for station_id in explicit_ids))

        result = await self.db.execute(
            select(TidalStation).where(TidalStation.id.in_(requested))
        )
        found = {station.id: station for station in result.scalars().all()}

        missing = [station_id for station_id in requested if station_id not in found]
        if missing:
            logger.warning(f"Unknown station IDs ignored: {', '.join(missing)}")

        if not found:
            return SelectionResult([], missing, SelectionReason.NO_VALID_IDS)

        stations = [found[station_id] for station_id in requested if station_id in found]
        return SelectionResult(stations, missing, SelectionReason.EXPLICIT)

    async def _select_by_priority(
        self,
        batch_size: int,
        force_refresh: bool,
        now: datetime
    ) -> List[TidalStation]:
        never_fetched = or_(
            TidalStationFetch.station_id.is_(None),
            TidalStationFetch.last_fetch_at.is_(None)
        )
        errored = TidalStationFetch.fetch_error.is_(True)

        query = select(TidalStation).outerjoin(
            TidalStationFetch,
            TidalStationFetch.station_id == TidalStation.id
        )

        if not force_refresh:
            cutoff = now - timedelta(hours=self.stale_hours)
            query = query.where(
                or_(
                    never_fetched,
                    errored,
                    TidalStationFetch.last_fetch_at < cutoff
                )
            )

        query = query.order_by(
            case((never_fetched, 0), (errored, 1), else_=2),
            TidalStationFetch.last_fetch_at.asc(),
            TidalStation.id.asc()
        ).limit(batch_size)

        result = await self.db.execute(query)
        return list(result.scalars().all())
