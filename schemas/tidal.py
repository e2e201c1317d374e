"""
Pydantic schemas for validated tidal rows built from API payloads
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime
from core.timeutils import to_naive_utc
from models.base import EventType


class StationCreate(BaseModel):
    """
    Schema for upserting a station.

    Ensures:
    - Identifier is present and non-blank
    - Coordinates are floats or None
    - Flags are real booleans (None becomes False)
    """

    id: str = Field(..., min_length=1, max_length=32)
    name: str = Field("", max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    continuous_heights_available: bool = False
    footnote: Optional[str] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def clean_id(cls, v):
        """Station ids arrive as strings but tolerate numbers"""
        if v is None:
            return v
        return str(v).strip()

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("continuous_heights_available", mode="before")
    @classmethod
    def none_is_false(cls, v):
        return False if v is None else v


class TidalEventCreate(BaseModel):
    """
    Schema for upserting one tidal event.

    event_datetime is normalized to naive UTC so the unique key compares
    equal across refetches.
    """

    model_config = ConfigDict(use_enum_values=False)

    station_id: str = Field(..., min_length=1, max_length=32)
    event_type: EventType
    event_datetime: datetime
    height: Optional[float] = None
    is_approximate_time: bool = False
    is_approximate_height: bool = False
    filtered: bool = False
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_datetime")
    @classmethod
    def normalize_datetime(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("is_approximate_time", "is_approximate_height", "filtered", mode="before")
    @classmethod
    def none_is_false(cls, v):
        return False if v is None else v
