"""
Tidal ingestion pipeline components.

This package contains everything that moves data from the Admiralty UK
Tidal API into the database:

Modules:
    stations: Station catalogue sync (FetchTidalStationsAction)
    events: Batched, paced tidal event sync (FetchTidalEventsAction)
    selection: Picks which stations to fetch events for next
    fetch_state: Per-station fetch bookkeeping
    scheduler: APScheduler integration for recurring syncs

Subpackages:
    extractors: Tidal API HTTP client
    transformers: GeoJSON feature and event normalization
    loaders: Idempotent station and event upserts

Architecture:
    Each sync follows the same three phases:

    1. Extract - Fetch the catalogue or one station's events
    2. Transform - Normalize records, skipping incomplete ones
    3. Load - Upsert on natural keys so re-runs never duplicate

    A failure for one station is recorded against that station and the
    batch carries on with the next one.

Usage:
    from ingestion.extractors.tidal_api import TidalAPIClient
    from ingestion.stations import FetchTidalStationsAction
    from ingestion.events import FetchTidalEventsAction, EventFetchConfig

Example:
    async with get_session_maker()() as session:
        action = FetchTidalEventsAction(session, TidalAPIClient())
        summary = await action.execute(duration=3)

    print(f"Added {summary.events_added} events")
"""

from ingestion.extractors.tidal_api import TidalAPIClient
from ingestion.transformers.normalizer import TidalNormalizer
from ingestion.loaders.tidal_loader import TidalLoader
from ingestion.fetch_state import FetchStateStore
from ingestion.selection import StationSelector
from ingestion.stations import FetchTidalStationsAction
from ingestion.events import FetchTidalEventsAction, EventFetchConfig
from ingestion.scheduler import TidalScheduler

__all__ = [
    "TidalAPIClient",
    "TidalNormalizer",
    "TidalLoader",
    "FetchStateStore",
    "StationSelector",
    "FetchTidalStationsAction",
    "FetchTidalEventsAction",
    "EventFetchConfig",
    "TidalScheduler",
]
