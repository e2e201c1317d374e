"""
Tidal event ingestion.

Fetches predicted high and low waters for a batch of stations, one station
at a time with a fixed delay between requests, and upserts them by
(station, event type, time). Every attempt is written to the fetch-state
store so the next run can prioritize stations that were never fetched,
failed, or went stale.
"""

import asyncio
import time
from typing import Any, List, Optional, Sequence, Tuple
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.transformers.normalizer import TidalNormalizer
from ingestion.loaders.tidal_loader import TidalLoader
from ingestion.fetch_state import FetchStateStore
from ingestion.selection import SelectionReason, StationSelector
from schemas.tidal import TidalEventCreate
from schemas.results import EventSyncSummary, OutcomeStatus, StationFetchOutcome
from core.config import settings
from core.exceptions import TidalIngestionError, describe_error
import logging

logger = logging.getLogger(__name__)

MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 7

INVALID_DURATION_MESSAGE = "Duration must be between 1 and 7 days."
NO_VALID_IDS_MESSAGE = "None of the specified station IDs exist in the database"
NOTHING_TO_DO_MESSAGE = "No stations to process at this time"
INVALID_DATA_MESSAGE = "API returned invalid data"


class EventFetchConfig(BaseModel):
    """Runtime parameters for an event fetch run"""
    batch_size: int = Field(default_factory=lambda: settings.EVENTS_BATCH_SIZE, ge=1)
    request_delay_ms: int = Field(default_factory=lambda: settings.EVENTS_REQUEST_DELAY_MS, ge=0)
    stale_hours: int = Field(default_factory=lambda: settings.FETCH_STALE_HOURS, ge=0)
    error_message_max_length: int = Field(
        default_factory=lambda: settings.FETCH_ERROR_MESSAGE_MAX_LENGTH, ge=1
    )


class FetchTidalEventsAction:
    """
    Fetch and store tidal events for a batch of stations.

    Responsibilities:
    - Resolve the station batch through the selection policy
    - Pace requests to the API
    - Upsert each station's events in its own transaction
    - Record every attempt in the fetch-state store
    """

    def __init__(
        self,
        db_session: AsyncSession,
        api_client: TidalAPIClient,
        config: Optional[EventFetchConfig] = None
    ):
        self.db = db_session
        self.client = api_client
        self.config = config or EventFetchConfig()
        self.normalizer = TidalNormalizer()
        self.loader = TidalLoader(db_session)
        self.fetch_state = FetchStateStore(db_session, self.config.error_message_max_length)
        self.selector = StationSelector(db_session, self.config.stale_hours)

    async def execute(
        self,
        duration: int = 7,
        station_ids: Optional[Sequence[str]] = None,
        force_refresh: bool = False
    ) -> EventSyncSummary:
        """
        Execute the action to fetch and store tidal events

        Args:
            duration: Number of days to request (1-7)
            station_ids: Stations to fetch; empty means use the selection policy
            force_refresh: Ignore the stale window when selecting stations

        Returns:
            EventSyncSummary with counts and per-station outcomes
        """
        start_time = time.perf_counter()

        if not MIN_DURATION_DAYS <= duration <= MAX_DURATION_DAYS:
            logger.error(f"{INVALID_DURATION_MESSAGE} Got {duration}")
            return EventSyncSummary(
                success=False,
                message=INVALID_DURATION_MESSAGE,
                execution_time=time.perf_counter() - start_time
            )

        summary = EventSyncSummary(success=True)

        try:
            selection = await self.selector.select(
                explicit_ids=station_ids,
                batch_size=self.config.batch_size,
                force_refresh=force_refresh
            )
            summary.missing_station_ids = selection.missing_ids

            if selection.reason == SelectionReason.NO_VALID_IDS:
                summary.success = False
                summary.message = NO_VALID_IDS_MESSAGE
                summary.execution_time = time.perf_counter() - start_time
                return summary

            # Plain ids: a rollback expires the ORM objects
            ids_to_fetch = [station.id for station in selection.stations]

            if not ids_to_fetch:
                summary.message = NOTHING_TO_DO_MESSAGE
                summary.execution_time = time.perf_counter() - start_time
                return summary

            logger.info(
                f"Fetching {duration}-day tidal events for up to {self.config.batch_size} "
                f"of {len(ids_to_fetch)} stations ({selection.reason.value})"
            )

            for station_id in ids_to_fetch:
                if summary.stations_processed > 0 and self.config.request_delay_ms:
                    await asyncio.sleep(self.config.request_delay_ms / 1000)

                summary.stations_processed += 1
                summary.record(await self._process_station(station_id, duration))

                if summary.stations_processed >= self.config.batch_size:
                    break

        except Exception as e:
            logger.exception(
                "Exception in FetchTidalEventsAction",
                extra={"error_context": e.to_dict()} if isinstance(e, TidalIngestionError) else None
            )
            await self.loader.discard()
            summary.success = False
            summary.message = f"Exception in FetchTidalEventsAction: {describe_error(e)}"

        summary.execution_time = time.perf_counter() - start_time
        logger.info(
            f"Event fetch complete: {summary.stations_processed} processed, "
            f"{summary.stations_succeeded} succeeded, {summary.stations_failed} failed, "
            f"{summary.events_added} events added, {summary.events_updated} updated, "
            f"{summary.events_skipped} skipped in {summary.execution_time:.2f}s"
        )
        return summary

    async def _process_station(self, station_id: str, duration: int) -> StationFetchOutcome:
        """Fetch, store and record one station; failures become error outcomes"""
        try:
            records = await self.client.get_tidal_events(station_id, duration)

            if not isinstance(records, list):
                logger.warning(f"Station {station_id}: {INVALID_DATA_MESSAGE}")
                await self.fetch_state.record(station_id, True, INVALID_DATA_MESSAGE)
                return StationFetchOutcome(
                    station_id=station_id,
                    status=OutcomeStatus.ERROR,
                    error=INVALID_DATA_MESSAGE
                )

            items, skipped = self._normalize_events(station_id, records)
            added, updated = await self.loader.load_station_events(station_id, items)

            await self.fetch_state.record(station_id, False)
            return StationFetchOutcome(
                station_id=station_id,
                status=OutcomeStatus.SUCCESS,
                events_added=added,
                events_updated=updated,
                events_skipped=skipped
            )

        except Exception as e:
            logger.error(
                f"Error fetching events for station {station_id}: {e}",
                exc_info=True
            )
            message = FetchStateStore.truncate_error(
                describe_error(e), self.config.error_message_max_length
            )
            await self.fetch_state.record(station_id, True, message)
            return StationFetchOutcome(
                station_id=station_id,
                status=OutcomeStatus.ERROR,
                error=message
            )

    def _normalize_events(
        self,
        station_id: str,
        records: List[Any]
    ) -> Tuple[List[TidalEventCreate], int]:
        """Validate records; incomplete ones are counted as skipped"""
        items: List[TidalEventCreate] = []
        skipped = 0
        for record in records:
            item = self.normalizer.normalize_event(station_id, record)
            if item is None:
                skipped += 1
                continue
            items.append(item)

        if skipped:
            logger.debug(f"Station {station_id}: skipped {skipped} incomplete tidal events")
        return items, skipped
