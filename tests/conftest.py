"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import create_engine, init_models, make_session_maker
from ingestion.extractors.tidal_api import TidalAPIClient
from models import TidalStation
from typing import AsyncGenerator


def make_feature(station_id, name="Station", country="England", lon=-1.5, lat=50.5, **properties):
    """GeoJSON feature shaped like the Admiralty station catalog"""
    return {
        "type": "Feature",
        "id": station_id,
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": {
            "Id": station_id,
            "Name": name,
            "Country": country,
            "ContinuousHeightsAvailable": False,
            "Footnote": None,
            **properties,
        },
    }


def make_event(event_type="HighWater", when="2025-05-01T03:15:00", height=4.5, **extra):
    """Tidal event record shaped like the Admiralty TidalEvents response"""
    return {
        "EventType": event_type,
        "DateTime": when,
        "IsApproximateTime": False,
        "Height": height,
        "IsApproximateHeight": False,
        "Filtered": False,
        "Date": when[:10] + "T00:00:00",
        **extra,
    }


@pytest.fixture
def feature_factory():
    return make_feature


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def station_catalog():
    """Station catalog response with three stations"""
    return {
        "type": "FeatureCollection",
        "features": [
            make_feature("0001", "Aberdeen", "Scotland", -2.08, 57.14),
            make_feature("0113A", "Newlyn", "England", -5.54, 50.10),
            make_feature("0240", "Dover", "England", 1.32, 51.11),
        ],
    }


@pytest.fixture
def tidal_events():
    """Four days' worth of highs and lows for one station"""
    return [
        make_event("HighWater", "2025-05-01T03:15:00", 4.5),
        make_event("LowWater", "2025-05-01T09:30:00", 0.8),
        make_event("HighWater", "2025-05-01T15:40:00", 4.7),
        make_event("LowWater", "2025-05-01T21:55:00", 0.6),
    ]


@pytest.fixture
def fake_client():
    """API client double; each call is an AsyncMock returning None by default"""
    client = MagicMock(spec=TidalAPIClient)
    client.get_all_stations = AsyncMock(return_value=None)
    client.get_station = AsyncMock(return_value=None)
    client.get_tidal_events = AsyncMock(return_value=None)
    client.last_error = None
    return client


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'tidal_test.db'}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(database_url):
    """Create test database engine with all tables"""
    engine = create_engine(database_url)
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return make_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed_stations(db_session):
    """Insert bare stations by id"""

    async def _seed(*station_ids):
        for station_id in station_ids:
            db_session.add(TidalStation(id=station_id, name=f"Station {station_id}"))
        await db_session.commit()

    return _seed
