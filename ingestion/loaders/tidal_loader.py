"""
Load normalized stations and tidal events with upsert logic (idempotency)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models import TidalStation, TidalEvent
from schemas.tidal import StationCreate, TidalEventCreate
from schemas.results import StationChange
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)


class TidalLoader:
    """
    Load data with idempotent upsert operations.

    Ensures:
    - No duplicate rows on repeated runs
    - Updates existing records if source data changes
    - Atomic transactions (the station catalog commits once, events once per station)
    - Added, updated and unchanged rows are told apart
    """

    STATION_FIELDS = (
        "name",
        "country",
        "longitude",
        "latitude",
        "continuous_heights_available",
        "footnote",
        "raw_data",
    )
    EVENT_FIELDS = (
        "height",
        "is_approximate_time",
        "is_approximate_height",
        "filtered",
        "raw_data",
    )

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        # Stations added in the open transaction (autoflush is off)
        self._pending_stations: Dict[str, TidalStation] = {}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_station(self, item: StationCreate) -> StationChange:
        """
        Insert or update one station by its identifier.

        Nothing is committed here.

        Returns:
            ADDED for a new row, UPDATED when any stored attribute changed,
            UNCHANGED otherwise
        """
        values = item.model_dump(exclude={"id"})

        station = self._pending_stations.get(item.id)
        if station is None:
            station = await self.db.get(TidalStation, item.id)

        if station is None:
            station = TidalStation(id=item.id, **values)
            self.db.add(station)
            self._pending_stations[item.id] = station
            return StationChange.ADDED

        if self._apply(station, values, self.STATION_FIELDS):
            return StationChange.UPDATED
        return StationChange.UNCHANGED

    async def upsert_events(
        self,
        station_id: str,
        items: Sequence[TidalEventCreate]
    ) -> Tuple[int, int]:
        """
        Insert or update events for one station. Nothing is committed here.

        Duplicate keys inside ``items`` collapse onto a single row, last one wins.

        Returns:
            (added, updated) counts
        """
        if not items:
            return 0, 0

        existing = await self._existing_events(station_id, items)
        seen: Dict[Tuple[Any, datetime], TidalEvent] = {}
        added = 0
        updated = 0

        for item in items:
            key = (item.event_type, item.event_datetime)
            values = item.model_dump(include=set(self.EVENT_FIELDS))

            if key in seen:
                self._apply(seen[key], values, self.EVENT_FIELDS)
                continue

            event = existing.get(key)
            if event is None:
                event = TidalEvent(
                    station_id=station_id,
                    event_type=item.event_type,
                    event_datetime=item.event_datetime,
                    **values
                )
                self.db.add(event)
                added += 1
            else:
                self._apply(event, values, self.EVENT_FIELDS)
                updated += 1
            seen[key] = event

        return added, updated

    async def load_station_events(
        self,
        station_id: str,
        items: Sequence[TidalEventCreate]
    ) -> Tuple[int, int]:
        """
        Upsert all events for a station in one transaction.

        Raises:
            UpsertError: After rolling back, when the write fails
        """
        try:
            added, updated = await self.upsert_events(station_id, items)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise UpsertError(
                f"Failed to store tidal events for station {station_id}",
                context={
                    "station_id": station_id,
                    "table_name": TidalEvent.__tablename__,
                    "events": len(items),
                },
                original_exception=e
            )

        logger.info(
            f"Station {station_id}: stored {added} new and {updated} updated tidal events"
        )
        return added, updated

    async def commit(self) -> None:
        await self.db.commit()
        self._pending_stations.clear()

    async def rollback(self) -> None:
        await self.db.rollback()
        self._pending_stations.clear()

    async def discard(self) -> None:
        """Rollback after a failed run; a rollback error is logged, not raised"""
        try:
            await self.rollback()
        except Exception as e:
            self._pending_stations.clear()
            logger.error(f"Rollback failed: {e}")

    async def _existing_events(
        self,
        station_id: str,
        items: Sequence[TidalEventCreate]
    ) -> Dict[Tuple[Any, datetime], TidalEvent]:
        datetimes = list({item.event_datetime for item in items})
        result = await self.db.execute(
            select(TidalEvent).where(
                TidalEvent.station_id == station_id,
                TidalEvent.event_datetime.in_(datetimes)
            )
        )
        return {
            (event.event_type, event.event_datetime): event
            for event in result.scalars().all()
        }

    @staticmethod
    def _apply(obj: Any, values: Dict[str, Any], fields: Sequence[str]) -> bool:
        """Copy differing values onto obj; True when anything changed"""
        changed = False
        for field in fields:
            if field in values and getattr(obj, field) != values[field]:
                setattr(obj, field, values[field])
                changed = True
        return changed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_station(self, station_id: str) -> Optional[TidalStation]:
        return await self.db.get(TidalStation, station_id)

    async def count_stations(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(TidalStation)) or 0

    async def list_stations(
        self,
        country: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        with_coordinates: bool = False
    ) -> Tuple[List[TidalStation], int]:
        """
        List stations ordered by name.

        Args:
            country: Exact country filter
            search: Case-insensitive substring of the station name
            offset: Rows to skip
            limit: Maximum rows (None for all)
            with_coordinates: Only stations with both coordinates

        Returns:
            (stations, total matching count)
        """
        query = select(TidalStation)

        if country:
            query = query.where(TidalStation.country == country)
        if search:
            query = query.where(TidalStation.name.ilike(f"%{search}%"))
        if with_coordinates:
            query = query.where(
                TidalStation.longitude.is_not(None),
                TidalStation.latitude.is_not(None)
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        query = query.order_by(TidalStation.name, TidalStation.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_events(
        self,
        station_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[TidalEvent]:
        """Events for a station between start and end (inclusive), by time"""
        query = select(TidalEvent).where(TidalEvent.station_id == station_id)
        if start is not None:
            query = query.where(TidalEvent.event_datetime >= start)
        if end is not None:
            query = query.where(TidalEvent.event_datetime <= end)
        query = query.order_by(TidalEvent.event_datetime, TidalEvent.event_type)

        result = await self.db.execute(query)
        return list(result.scalars().all())
