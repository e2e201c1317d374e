"""
Admiralty UK Tidal API client.

This module wraps the three read-only endpoints used by ingestion:
- list all stations (GeoJSON FeatureCollection)
- get one station
- get tidal events for a station over 1-7 days

Failures never propagate: transport errors, non-2xx responses and
unreadable bodies are logged with their context, kept on ``last_error``
and reported to the caller as ``None``. Retry policy belongs to the caller.
"""

import httpx
from typing import Any, Dict, Optional
from core.config import settings
from core.exceptions import (
    TidalAPIError,
    APIResponseError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
)
import logging

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


class TidalAPIClient:
    """
    Thin async client for the Admiralty tidal API.

    Attributes:
        base_url: API root, e.g. https://admiraltyapi.azure-api.net/uktidalapi
        api_key: Subscription key sent on every request
        timeout: Request timeout in seconds
        last_error: Structured description of the most recent failure
    """

    STATIONS_PATH = "/api/V1/Stations"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.TIDAL_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.TIDAL_API_KEY
        self.timeout = timeout if timeout is not None else settings.TIDAL_API_TIMEOUT
        self.transport = transport
        self.last_error: Optional[TidalAPIError] = None

    @property
    def headers(self) -> Dict[str, str]:
        # A missing key is sent empty so the remote answers 401
        return {
            SUBSCRIPTION_KEY_HEADER: self.api_key or "",
            "Accept": "application/json",
        }

    async def get_all_stations(self) -> Optional[Dict[str, Any]]:
        """Fetch the full station catalog as a GeoJSON FeatureCollection"""
        return await self._get_json(self.STATIONS_PATH, description="UK tidal stations")

    async def get_station(self, station_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single station feature"""
        return await self._get_json(
            f"{self.STATIONS_PATH}/{station_id}",
            description=f"UK tidal station: {station_id}"
        )

    async def get_tidal_events(self, station_id: str, duration: int = 7) -> Optional[Any]:
        """
        Fetch predicted tidal events for a station.

        Args:
            station_id: Station identifier
            duration: Number of days to request (1-7)

        Returns:
            List of event records, or None on failure
        """
        return await self._get_json(
            f"{self.STATIONS_PATH}/{station_id}/TidalEvents",
            params={"duration": duration},
            description=f"tidal events for station: {station_id}"
        )

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        description: str = ""
    ) -> Optional[Any]:
        url = f"{self.base_url}{path}"
        context = {"api_url": url, "params": params or {}}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers, params=params)

        except httpx.TimeoutException as e:
            return self._fail(NetworkError(
                f"Request timeout while fetching {description}",
                context={**context, "timeout": self.timeout},
                original_exception=e
            ))

        except httpx.HTTPError as e:
            return self._fail(NetworkError(
                f"Network error while fetching {description}",
                context=context,
                original_exception=e
            ))

        except Exception as e:
            return self._fail(APIResponseError(
                f"Exception while fetching {description}",
                context=context,
                original_exception=e
            ))

        if not response.is_success:
            return self._fail(self._error_for_response(response, context, description))

        try:
            data = response.json()
        except ValueError as e:
            return self._fail(APIResponseError(
                f"Failed to parse JSON response for {description}",
                context={
                    **context,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                },
                original_exception=e
            ))

        self.last_error = None
        return data

    @staticmethod
    def _error_for_response(
        response: httpx.Response,
        context: Dict[str, Any],
        description: str
    ) -> TidalAPIError:
        """Map a non-2xx response onto the error hierarchy"""
        context = {
            **context,
            "status_code": response.status_code,
            "response_body": response.text[:500]  # Truncate
        }
        message = f"Failed to fetch {description}"

        if response.status_code in (401, 403):
            return AuthenticationError(message, context=context)
        if response.status_code == 404:
            return ResourceNotFoundError(message, context=context)
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            return RateLimitError(
                message,
                context=context,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        return APIResponseError(message, context=context)

    def _fail(self, error: TidalAPIError) -> None:
        self.last_error = error
        logger.error(str(error), extra={"error_context": error.to_dict()})
        return None
