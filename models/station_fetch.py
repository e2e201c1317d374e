from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from core.timeutils import utcnow
from models.base import Base


class TidalStationFetch(Base):
    """
    Tracks the last event fetch attempt per station.

    Purpose:
    - Prioritize never-fetched, errored and stale stations
    - Keep the last error for debugging

    Design:
    - One row per station (station_id is the primary key)
    - last_fetch_at NULL means never attempted
    - error_message is truncated before it is stored
    """
    __tablename__ = "tidal_station_fetches"

    station_id = Column(
        String(32),
        ForeignKey("tidal_stations.id", ondelete="CASCADE"),
        primary_key=True,
    )

    last_fetch_at = Column(DateTime, nullable=True)
    fetch_error = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    station = relationship("TidalStation", back_populates="fetch_state")

    __table_args__ = (
        Index("idx_station_fetch_priority", "fetch_error", "last_fetch_at"),
    )
