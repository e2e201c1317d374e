"""
Transform Admiralty API payloads into validated station and event rows
"""

from typing import Dict, Any, Optional, Tuple
from pydantic import ValidationError
from schemas.tidal import StationCreate, TidalEventCreate
from core.exceptions import DataFormatError
import logging

logger = logging.getLogger(__name__)


class TidalNormalizer:
    """
    Normalize station features and tidal event records.

    Handles:
    - GeoJSON feature unpacking (id, properties, Point geometry)
    - Field mapping from the API's PascalCase names
    - Validation through the Pydantic create schemas
    """

    EVENT_REQUIRED_FIELDS = ("EventType", "DateTime")

    def normalize_station(self, feature: Any) -> StationCreate:
        """
        Normalize one feature of the station FeatureCollection.

        Raises:
            DataFormatError: When the feature lacks properties, geometry or an id,
                or when its values fail validation
        """
        if not isinstance(feature, dict):
            raise DataFormatError(
                "Station feature is not an object",
                context={"field_name": "feature"}
            )

        properties = feature.get("properties")
        geometry = feature.get("geometry")
        if not isinstance(properties, dict) or geometry is None:
            raise DataFormatError(
                "Station feature is missing properties or geometry",
                context={"field_name": "properties" if not isinstance(properties, dict) else "geometry"}
            )

        station_id = self.station_id_for(feature)
        if not station_id:
            raise DataFormatError(
                "Station feature has no id",
                context={"field_name": "id"}
            )

        coordinates = self._extract_coordinates(geometry)

        try:
            return StationCreate(
                id=station_id,
                name=properties.get("Name"),
                country=properties.get("Country"),
                longitude=coordinates[0] if coordinates else None,
                latitude=coordinates[1] if coordinates else None,
                continuous_heights_available=properties.get("ContinuousHeightsAvailable"),
                footnote=properties.get("Footnote"),
                raw_data=feature,
            )
        except ValidationError as e:
            raise DataFormatError(
                "Station feature failed validation",
                context={"station_id": station_id, "errors": e.error_count()},
                original_exception=e
            )

    def normalize_event(self, station_id: str, record: Any) -> Optional[TidalEventCreate]:
        """
        Normalize one tidal event record.

        Returns:
            None when the record lacks EventType or DateTime (silently skipped)

        Raises:
            DataFormatError: When present values cannot be parsed (unknown
                event type, bad datetime, non-numeric height)
        """
        if not isinstance(record, dict):
            return None
        if any(record.get(field) in (None, "") for field in self.EVENT_REQUIRED_FIELDS):
            return None

        try:
            return TidalEventCreate(
                station_id=station_id,
                event_type=record["EventType"],
                event_datetime=record["DateTime"],
                height=record.get("Height"),
                is_approximate_time=record.get("IsApproximateTime"),
                is_approximate_height=record.get("IsApproximateHeight"),
                filtered=record.get("Filtered"),
                raw_data=record,
            )
        except ValidationError as e:
            raise DataFormatError(
                "Tidal event failed validation",
                context={
                    "station_id": station_id,
                    "event_type": record.get("EventType"),
                    "datetime": record.get("DateTime"),
                    "errors": e.error_count(),
                },
                original_exception=e
            )

    @staticmethod
    def station_id_for(feature: Dict[str, Any]) -> Optional[str]:
        """The id can be either the feature id or properties.Id"""
        station_id = feature.get("id")
        if station_id in (None, ""):
            properties = feature.get("properties") or {}
            station_id = properties.get("Id") if isinstance(properties, dict) else None
        if station_id in (None, ""):
            return None
        return str(station_id).strip() or None

    @classmethod
    def _extract_coordinates(cls, geometry: Any) -> Optional[Tuple[float, float]]:
        """[lon, lat] from a GeoJSON Point, None when absent or malformed"""
        if not isinstance(geometry, dict):
            return None
        if geometry.get("type") not in (None, "Point"):
            return None

        coordinates = geometry.get("coordinates")
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
            return None

        longitude = cls._parse_float(coordinates[0])
        latitude = cls._parse_float(coordinates[1])
        if longitude is None or latitude is None:
            return None
        return longitude, latitude

    @staticmethod
    def _parse_float(value: Any) -> Optional[float]:
        """Safely parse float value"""
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (ValueError, TypeError):
            return None
