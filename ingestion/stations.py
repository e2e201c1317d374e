"""
Station catalog ingestion: fetch every station and upsert it by identifier.
"""

import time
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.transformers.normalizer import TidalNormalizer
from ingestion.loaders.tidal_loader import TidalLoader
from schemas.results import (
    FeatureOutcome,
    OutcomeStatus,
    StationSyncSummary,
)
from core.exceptions import DataFormatError, describe_error
import logging

logger = logging.getLogger(__name__)

INVALID_CATALOG_MESSAGE = "Failed to fetch tidal stations or invalid response format"


class FetchTidalStationsAction:
    """
    Fetch and store all tidal stations.

    The whole catalog is written in one transaction. A malformed feature is
    logged and skipped; anything that breaks the transaction itself rolls
    everything back and is reported as a failure summary.
    """

    def __init__(self, db_session: AsyncSession, api_client: TidalAPIClient):
        self.db = db_session
        self.client = api_client
        self.normalizer = TidalNormalizer()
        self.loader = TidalLoader(db_session)

    async def execute(self) -> StationSyncSummary:
        """
        Execute the action to fetch and store all tidal stations

        Returns:
            StationSyncSummary with counts and per-feature outcomes
        """
        start_time = time.perf_counter()
        catalog = await self.client.get_all_stations()

        features = catalog.get("features") if isinstance(catalog, dict) else None
        if not isinstance(features, list):
            logger.error(INVALID_CATALOG_MESSAGE)
            return StationSyncSummary(
                success=False,
                message=INVALID_CATALOG_MESSAGE,
                execution_time=time.perf_counter() - start_time
            )

        summary = StationSyncSummary(success=True, stations_processed=len(features))

        try:
            for feature in features:
                summary.record(await self._process_feature(feature))

            await self.loader.commit()

        except Exception as e:
            await self.loader.discard()
            logger.exception("Exception while processing tidal stations")
            return StationSyncSummary(
                success=False,
                message=f"Exception while processing tidal stations: {describe_error(e)}",
                execution_time=time.perf_counter() - start_time
            )

        summary.execution_time = time.perf_counter() - start_time
        logger.info(
            f"Station sync complete: {summary.stations_processed} processed, "
            f"{summary.stations_added} added, {summary.stations_updated} updated, "
            f"{summary.stations_unchanged} unchanged, {summary.stations_skipped} skipped "
            f"in {summary.execution_time:.2f}s"
        )
        return summary

    async def refresh_station(self, station_id: str) -> StationSyncSummary:
        """
        Fetch one station from the API and upsert it in its own transaction.

        Args:
            station_id: Station identifier, e.g. "0001"
        """
        start_time = time.perf_counter()
        feature = await self.client.get_station(station_id)

        if not isinstance(feature, dict):
            message = f"Failed to fetch tidal station {station_id} or invalid response format"
            logger.error(message)
            return StationSyncSummary(
                success=False,
                message=message,
                execution_time=time.perf_counter() - start_time
            )

        summary = StationSyncSummary(success=True, stations_processed=1)

        try:
            outcome = await self._process_feature(feature)
            summary.record(outcome)
            await self.loader.commit()

        except Exception as e:
            await self.loader.discard()
            logger.exception(f"Exception while processing tidal station {station_id}")
            return StationSyncSummary(
                success=False,
                message=f"Exception while processing tidal station {station_id}: {describe_error(e)}",
                execution_time=time.perf_counter() - start_time
            )

        if outcome.status != OutcomeStatus.SUCCESS:
            summary.success = False
            summary.message = outcome.error

        summary.execution_time = time.perf_counter() - start_time
        return summary

    async def _process_feature(self, feature: Any) -> FeatureOutcome:
        """Normalize and upsert one feature; malformed features become skipped outcomes"""
        station_id = (
            self.normalizer.station_id_for(feature) if isinstance(feature, dict) else None
        )

        try:
            item = self.normalizer.normalize_station(feature)
            change = await self.loader.upsert_station(item)
            return FeatureOutcome(
                station_id=item.id,
                status=OutcomeStatus.SUCCESS,
                change=change
            )

        except DataFormatError as e:
            logger.warning(
                f"Skipping station feature: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return FeatureOutcome(
                station_id=station_id,
                status=OutcomeStatus.SKIPPED,
                error=e.message
            )

        except Exception as e:
            logger.error(
                f"Error processing station {station_id}: {e}",
                exc_info=True
            )
            return FeatureOutcome(
                station_id=station_id,
                status=OutcomeStatus.ERROR,
                error=describe_error(e)
            )
