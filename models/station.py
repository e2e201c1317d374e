from typing import List, Optional
from sqlalchemy import Column, String, Float, Boolean, Text, DateTime
from sqlalchemy.orm import relationship
from core.timeutils import utcnow
from models.base import Base, JSONPayload


class TidalStation(Base):
    """
    A tide gauge location from the Admiralty station catalog.

    Design:
    - Primary key is the external station identifier ("0001", "0113A", ...)
    - Coordinates are WGS84 degrees, kept in GeoJSON order [lon, lat]
    - raw_data keeps the full feature for forward compatibility
    """
    __tablename__ = "tidal_stations"

    id = Column(String(32), primary_key=True)

    name = Column(String(255), nullable=False, default="", index=True)
    country = Column(String(100), nullable=True, index=True)
    longitude = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)
    continuous_heights_available = Column(Boolean, nullable=False, default=False)
    footnote = Column(Text, nullable=True)
    raw_data = Column(JSONPayload, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships (deletion is an admin concern; children go with the station)
    events = relationship(
        "TidalEvent",
        back_populates="station",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    fetch_state = relationship(
        "TidalStationFetch",
        back_populates="station",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def location(self) -> Optional[List[float]]:
        """[lon, lat] or None when either coordinate is missing"""
        if self.longitude is None or self.latitude is None:
            return None
        return [self.longitude, self.latitude]

    def __repr__(self) -> str:
        return f"<TidalStation {self.id} {self.name!r}>"
