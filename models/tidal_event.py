from sqlalchemy import (
    Column, BigInteger, Integer, String, Enum, DateTime, Float, Boolean,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from core.timeutils import utcnow
from models.base import Base, EventType, JSONPayload


class TidalEvent(Base):
    """
    One predicted high or low water at a station.

    Dedup key: (station_id, event_type, event_datetime). Refetching an
    overlapping range updates the existing row in place.
    """
    __tablename__ = "tidal_events"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    station_id = Column(
        String(32),
        ForeignKey("tidal_stations.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type = Column(
        Enum(
            EventType,
            name="tidal_event_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    event_datetime = Column(DateTime, nullable=False)  # UTC

    height = Column(Float, nullable=True)  # Metres
    is_approximate_time = Column(Boolean, nullable=False, default=False)
    is_approximate_height = Column(Boolean, nullable=False, default=False)
    filtered = Column(Boolean, nullable=False, default=False)
    raw_data = Column(JSONPayload, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    station = relationship("TidalStation", back_populates="events")

    __table_args__ = (
        UniqueConstraint(
            "station_id", "event_type", "event_datetime",
            name="uq_tidal_event_station_type_datetime",
        ),
        Index("idx_tidal_event_station_datetime", "station_id", "event_datetime"),
    )

    def __repr__(self) -> str:
        return f"<TidalEvent {self.station_id} {self.event_type} {self.event_datetime}>"
