"""
Unit tests for the tidal API client
"""

import json
import pytest
import httpx
from ingestion.extractors.tidal_api import TidalAPIClient, SUBSCRIPTION_KEY_HEADER
from core.exceptions import (
    APIResponseError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
)

BASE_URL = "https://tides.example.com/uktidalapi"


def make_client(handler, api_key="test_key"):
    return TidalAPIClient(
        base_url=BASE_URL,
        api_key=api_key,
        timeout=5.0,
        transport=httpx.MockTransport(handler)
    )


class TestTidalAPIClient:
    """Test API client requests and failure mapping"""

    @pytest.mark.asyncio
    async def test_get_all_stations_success(self, station_catalog):
        """Test successful station catalog fetch"""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get(SUBSCRIPTION_KEY_HEADER)
            return httpx.Response(200, json=station_catalog)

        client = make_client(handler)
        result = await client.get_all_stations()

        assert result == station_catalog
        assert seen["url"] == f"{BASE_URL}/api/V1/Stations"
        assert seen["key"] == "test_key"
        assert client.last_error is None

    @pytest.mark.asyncio
    async def test_get_station(self, feature_factory):
        feature = feature_factory("0113A")

        def handler(request):
            assert request.url.path == "/uktidalapi/api/V1/Stations/0113A"
            return httpx.Response(200, json=feature)

        result = await make_client(handler).get_station("0113A")

        assert result["id"] == "0113A"

    @pytest.mark.asyncio
    async def test_get_tidal_events_sends_duration(self, tidal_events):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["duration"] = request.url.params.get("duration")
            return httpx.Response(200, json=tidal_events)

        result = await make_client(handler).get_tidal_events("0001", duration=3)

        assert result == tidal_events
        assert seen["path"] == "/uktidalapi/api/V1/Stations/0001/TidalEvents"
        assert seen["duration"] == "3"

    @pytest.mark.asyncio
    async def test_missing_key_sends_empty_header(self):
        seen = {}

        def handler(request):
            seen["key"] = request.headers.get(SUBSCRIPTION_KEY_HEADER)
            return httpx.Response(401, json={"statusCode": 401, "message": "Access denied"})

        client = TidalAPIClient(
            base_url=BASE_URL,
            api_key="",
            transport=httpx.MockTransport(handler)
        )
        result = await client.get_all_stations()

        assert result is None
        assert seen["key"] == ""
        assert isinstance(client.last_error, AuthenticationError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code, error_cls", [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (404, ResourceNotFoundError),
        (500, APIResponseError),
        (503, APIResponseError),
    ])
    async def test_error_status_returns_none(self, status_code, error_cls):
        client = make_client(lambda request: httpx.Response(status_code, text="nope"))

        result = await client.get_tidal_events("0001")

        assert result is None
        assert isinstance(client.last_error, error_cls)
        assert client.last_error.context["status_code"] == status_code
        assert client.last_error.context["response_body"] == "nope"

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_retry_after(self):
        client = make_client(
            lambda request: httpx.Response(429, headers={"Retry-After": "30"}, text="slow down")
        )

        assert await client.get_all_stations() is None
        assert isinstance(client.last_error, RateLimitError)
        assert client.last_error.retry_after == 30

    @pytest.mark.asyncio
    async def test_invalid_json_returns_none(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        assert await client.get_all_stations() is None
        assert isinstance(client.last_error, APIResponseError)

    @pytest.mark.asyncio
    async def test_connection_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(handler)

        assert await client.get_tidal_events("0001") is None
        assert isinstance(client.last_error, NetworkError)
        assert "Connection refused" in str(client.last_error)

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)

        assert await client.get_tidal_events("0001") is None
        assert isinstance(client.last_error, NetworkError)
        assert client.last_error.context["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self):
        responses = iter([
            httpx.Response(500, text="boom"),
            httpx.Response(200, content=json.dumps([]).encode()),
        ])
        client = make_client(lambda request: next(responses))

        assert await client.get_tidal_events("0001") is None
        assert client.last_error is not None

        assert await client.get_tidal_events("0001") == []
        assert client.last_error is None
