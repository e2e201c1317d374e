from sqlalchemy import JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class EventType(str, enum.Enum):
    """Predicted tidal event kinds as named by the Admiralty API"""
    HIGH_WATER = "HighWater"
    LOW_WATER = "LowWater"
