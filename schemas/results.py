"""
Result types returned by the ingestion jobs.

Jobs never raise to their callers; the CLI, the admin endpoints and the
scheduler read ``success`` and present the counts.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
import enum


class OutcomeStatus(str, enum.Enum):
    """Per-unit result"""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class StationChange(str, enum.Enum):
    """What an upsert did to a station row"""
    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class FeatureOutcome(BaseModel):
    """Result of processing one feature from the station catalog"""
    station_id: Optional[str] = None
    status: OutcomeStatus
    change: Optional[StationChange] = None
    error: Optional[str] = None


class StationFetchOutcome(BaseModel):
    """Result of fetching and storing events for one station"""
    station_id: str
    status: OutcomeStatus
    events_added: int = 0
    events_updated: int = 0
    events_skipped: int = 0
    error: Optional[str] = None


class StationSyncSummary(BaseModel):
    """Summary of a station catalog sync"""
    success: bool
    message: Optional[str] = None
    stations_processed: int = 0
    stations_added: int = 0
    stations_updated: int = 0
    stations_unchanged: int = 0
    stations_skipped: int = 0
    execution_time: float = 0.0
    outcomes: List[FeatureOutcome] = Field(default_factory=list)

    def record(self, outcome: FeatureOutcome) -> None:
        """Accumulate a feature outcome into the counters"""
        self.outcomes.append(outcome)
        if outcome.status != OutcomeStatus.SUCCESS:
            self.stations_skipped += 1
        elif outcome.change == StationChange.ADDED:
            self.stations_added += 1
        elif outcome.change == StationChange.UPDATED:
            self.stations_updated += 1
        else:
            self.stations_unchanged += 1


class EventSyncSummary(BaseModel):
    """Summary of a tidal event fetch run"""
    success: bool
    message: Optional[str] = None
    stations_processed: int = 0
    stations_succeeded: int = 0
    stations_failed: int = 0
    events_added: int = 0
    events_updated: int = 0
    events_skipped: int = 0
    execution_time: float = 0.0
    missing_station_ids: List[str] = Field(default_factory=list)
    outcomes: List[StationFetchOutcome] = Field(default_factory=list)

    def record(self, outcome: StationFetchOutcome) -> None:
        """Accumulate a station outcome into the counters"""
        self.outcomes.append(outcome)
        if outcome.status == OutcomeStatus.SUCCESS:
            self.stations_succeeded += 1
        else:
            self.stations_failed += 1
        self.events_added += outcome.events_added
        self.events_updated += outcome.events_updated
        self.events_skipped += outcome.events_skipped
