"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class, shared JSON column type and EventType enum
    station: Tidal stations keyed by their external identifier
    tidal_event: Predicted high/low water events per station
    station_fetch: Per-station event fetch bookkeeping

Database Schema:
    All models inherit from the Base declarative class. JSON payloads use
    JSONB on PostgreSQL and plain JSON elsewhere.

Usage:
    from models import TidalStation, TidalEvent, TidalStationFetch
    from models.base import EventType

Relationships:
    - TidalStation → TidalEvent (one-to-many, keyed on station id)
    - TidalStation → TidalStationFetch (one-to-zero-or-one)
"""

from models.base import Base, EventType
from models.station import TidalStation
from models.tidal_event import TidalEvent
from models.station_fetch import TidalStationFetch

__all__ = [
    "Base",
    "EventType",
    "TidalStation",
    "TidalEvent",
    "TidalStationFetch",
]
