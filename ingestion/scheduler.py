import logging
from typing import Callable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from core.database import get_session_maker
from ingestion.events import EventFetchConfig, FetchTidalEventsAction
from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.stations import FetchTidalStationsAction
from schemas.results import EventSyncSummary, StationSyncSummary

logger = logging.getLogger(__name__)


class TidalScheduler:
    def __init__(
        self,
        session_maker: Optional[async_sessionmaker] = None,
        api_client_factory: Callable[[], TidalAPIClient] = TidalAPIClient
    ):
        self.scheduler = AsyncIOScheduler()
        self.SessionLocal = session_maker
        self.api_client_factory = api_client_factory

    def _sessions(self) -> async_sessionmaker:
        if self.SessionLocal is None:
            self.SessionLocal = get_session_maker()
        return self.SessionLocal

    async def run_events_job(self) -> Optional[EventSyncSummary]:
        """Job to fetch tidal events for the next batch of stations"""
        logger.info("Scheduler: Starting tidal events job")
        async with self._sessions()() as session:
            try:
                action = FetchTidalEventsAction(
                    session,
                    self.api_client_factory(),
                    EventFetchConfig()
                )
                summary = await action.execute(duration=settings.EVENTS_DURATION_DAYS)
                if not summary.success:
                    logger.warning(f"Scheduler: Tidal events job reported failure - {summary.message}")
                return summary
            except Exception as e:
                logger.error(f"Scheduler: Tidal events job failed - {e}", exc_info=True)
                return None

    async def run_stations_job(self) -> Optional[StationSyncSummary]:
        """Job to refresh the station catalog"""
        logger.info("Scheduler: Starting tidal stations job")
        async with self._sessions()() as session:
            try:
                action = FetchTidalStationsAction(session, self.api_client_factory())
                summary = await action.execute()
                if not summary.success:
                    logger.warning(f"Scheduler: Tidal stations job reported failure - {summary.message}")
                return summary
            except Exception as e:
                logger.error(f"Scheduler: Tidal stations job failed - {e}", exc_info=True)
                return None

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_events_job,
            trigger=IntervalTrigger(minutes=settings.EVENTS_SCHEDULE_MINUTES),
            id="tidal_events_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.add_job(
            self.run_stations_job,
            trigger=IntervalTrigger(hours=settings.STATIONS_SCHEDULE_HOURS),
            id="tidal_stations_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info("Tidal Scheduler started")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Tidal Scheduler stopped")
