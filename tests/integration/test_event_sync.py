"""
Integration tests for the tidal event fetch: idempotency, selection,
batching, pacing and per-station failure isolation
"""

import logging
import pytest
from unittest.mock import AsyncMock, call, patch
from sqlalchemy import select, func
from ingestion.events import (
    EventFetchConfig,
    FetchTidalEventsAction,
    INVALID_DATA_MESSAGE,
    INVALID_DURATION_MESSAGE,
    NO_VALID_IDS_MESSAGE,
    NOTHING_TO_DO_MESSAGE,
)
from ingestion.fetch_state import FetchStateStore
from models import TidalEvent
from schemas.results import OutcomeStatus


def make_action(db_session, client, **config):
    config.setdefault("request_delay_ms", 0)
    return FetchTidalEventsAction(db_session, client, EventFetchConfig(**config))


async def count_events(db_session):
    return await db_session.scalar(select(func.count()).select_from(TidalEvent))


@pytest.mark.asyncio
async def test_refetch_is_idempotent(db_session, seed_stations, fake_client, tidal_events, event_factory):
    """Second fetch of the same window adds nothing and updates values"""
    await seed_stations("0001")
    fake_client.get_tidal_events.return_value = tidal_events
    action = make_action(db_session, fake_client)

    first = await action.execute(duration=2, station_ids=["0001"])

    assert first.success is True
    assert first.events_added == 4
    assert first.events_updated == 0

    fake_client.get_tidal_events.return_value = [
        {**record, "Height": record["Height"] + 0.1, "IsApproximateHeight": True}
        for record in tidal_events
    ]
    second = await action.execute(duration=2, station_ids=["0001"])

    assert second.events_added == 0
    assert second.events_updated == 4
    assert await count_events(db_session) == 4

    stored = (await db_session.execute(select(TidalEvent).order_by(TidalEvent.event_datetime))).scalars().all()
    assert stored[0].height == pytest.approx(4.6)
    assert all(e.is_approximate_height for e in stored)
    fake_client.get_tidal_events.assert_awaited_with("0001", 2)


@pytest.mark.asyncio
async def test_incomplete_events_are_skipped(db_session, seed_stations, fake_client, event_factory):
    await seed_stations("0001")
    no_type = event_factory()
    del no_type["EventType"]
    no_time = event_factory("LowWater")
    del no_time["DateTime"]

    fake_client.get_tidal_events.return_value = [
        event_factory("HighWater", "2025-05-01T03:15:00"),
        no_type,
        no_time,
        None,
        event_factory("LowWater", "2025-05-01T09:30:00"),
    ]

    summary = await make_action(db_session, fake_client).execute(station_ids=["0001"])

    assert summary.success is True
    assert summary.stations_succeeded == 1
    assert summary.events_added == 2
    assert summary.events_updated == 0
    assert summary.events_skipped == 3

    state = await FetchStateStore(db_session).get("0001")
    assert state.fetch_error is False


@pytest.mark.asyncio
async def test_empty_event_list_is_success(db_session, seed_stations, fake_client):
    await seed_stations("0001")
    fake_client.get_tidal_events.return_value = []

    summary = await make_action(db_session, fake_client).execute(station_ids=["0001"])

    assert summary.stations_succeeded == 1
    assert summary.events_added == 0


@pytest.mark.asyncio
async def test_valid_and_unknown_ids(db_session, seed_stations, fake_client, tidal_events):
    await seed_stations("0001")
    fake_client.get_tidal_events.return_value = tidal_events

    summary = await make_action(db_session, fake_client).execute(station_ids=["0001", "9999"])

    assert summary.success is True
    assert summary.stations_processed == 1
    assert summary.missing_station_ids == ["9999"]
    fake_client.get_tidal_events.assert_awaited_once_with("0001", 7)


@pytest.mark.asyncio
async def test_all_ids_unknown_makes_no_request(db_session, seed_stations, fake_client):
    await seed_stations("0001")

    summary = await make_action(db_session, fake_client).execute(station_ids=["X1", "X2"])

    assert summary.success is False
    assert summary.message == NO_VALID_IDS_MESSAGE
    assert summary.stations_processed == 0
    assert summary.missing_station_ids == ["X1", "X2"]
    fake_client.get_tidal_events.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0, 8, -1])
async def test_invalid_duration(db_session, seed_stations, fake_client, duration):
    await seed_stations("0001")

    summary = await make_action(db_session, fake_client).execute(duration=duration)

    assert summary.success is False
    assert summary.message == INVALID_DURATION_MESSAGE
    fake_client.get_tidal_events.assert_not_awaited()


@pytest.mark.asyncio
async def test_empty_store_has_nothing_to_do(db_session, fake_client):
    summary = await make_action(db_session, fake_client).execute()

    assert summary.success is True
    assert summary.message == NOTHING_TO_DO_MESSAGE
    assert summary.stations_processed == 0


@pytest.mark.asyncio
async def test_batch_size_caps_attempts(db_session, seed_stations, fake_client, tidal_events):
    await seed_stations("S1", "S2", "S3", "S4", "S5")
    fake_client.get_tidal_events.return_value = tidal_events

    summary = await make_action(db_session, fake_client, batch_size=2).execute()

    assert summary.stations_processed == 2
    assert fake_client.get_tidal_events.await_count == 2
    assert [o.station_id for o in summary.outcomes] == ["S1", "S2"]


@pytest.mark.asyncio
async def test_batch_size_caps_explicit_ids(db_session, seed_stations, fake_client):
    await seed_stations("S1", "S2", "S3")
    fake_client.get_tidal_events.return_value = []

    summary = await make_action(db_session, fake_client, batch_size=2).execute(
        station_ids=["S3", "S1", "S2"]
    )

    assert [o.station_id for o in summary.outcomes] == ["S3", "S1"]


@pytest.mark.asyncio
async def test_fresh_stations_are_not_refetched(db_session, seed_stations, fake_client, tidal_events):
    await seed_stations("S1", "S2")
    fake_client.get_tidal_events.return_value = tidal_events
    action = make_action(db_session, fake_client)

    await action.execute()
    summary = await action.execute()

    assert summary.message == NOTHING_TO_DO_MESSAGE
    assert fake_client.get_tidal_events.await_count == 2

    forced = await action.execute(force_refresh=True)
    assert forced.stations_processed == 2


@pytest.mark.asyncio
async def test_one_station_failing_does_not_stop_the_batch(db_session, seed_stations, fake_client, tidal_events):
    """X blows up, Y and Z still succeed; X's error is stored truncated"""
    await seed_stations("X", "Y", "Z")

    async def get_events(station_id, duration):
        if station_id == "X":
            raise RuntimeError("remote exploded " * 40)
        return tidal_events

    fake_client.get_tidal_events.side_effect = get_events

    summary = await make_action(db_session, fake_client).execute(station_ids=["X", "Y", "Z"])

    assert summary.success is True
    assert summary.stations_processed == 3
    assert summary.stations_succeeded == 2
    assert summary.stations_failed == 1
    assert summary.events_added == 8

    store = FetchStateStore(db_session)
    failed = await store.get("X")
    assert failed.fetch_error is True
    assert failed.error_message.startswith("remote exploded")
    assert len(failed.error_message) == 255
    assert (await store.get("Y")).fetch_error is False
    assert (await store.get("Z")).fetch_error is False

    outcome = summary.outcomes[0]
    assert outcome.status == OutcomeStatus.ERROR
    assert len(outcome.error) == 255


@pytest.mark.asyncio
async def test_invalid_response_records_error(db_session, seed_stations, fake_client):
    await seed_stations("0001")
    fake_client.get_tidal_events.return_value = {"error": "unexpected"}

    summary = await make_action(db_session, fake_client).execute(station_ids=["0001"])

    assert summary.success is True
    assert summary.stations_failed == 1
    state = await FetchStateStore(db_session).get("0001")
    assert state.fetch_error is True
    assert state.error_message == INVALID_DATA_MESSAGE


@pytest.mark.asyncio
async def test_bad_event_fails_the_whole_station(db_session, seed_stations, fake_client, event_factory):
    await seed_stations("0001")
    fake_client.get_tidal_events.return_value = [
        event_factory("HighWater", "2025-05-01T03:15:00"),
        event_factory("MidWater", "2025-05-01T06:00:00"),
    ]

    summary = await make_action(db_session, fake_client).execute(station_ids=["0001"])

    assert summary.stations_failed == 1
    assert summary.events_added == 0
    assert await count_events(db_session) == 0
    state = await FetchStateStore(db_session).get("0001")
    assert "Tidal event failed validation" in state.error_message


@pytest.mark.asyncio
async def test_requests_are_paced(db_session, seed_stations, fake_client):
    """Delay before every request except the first"""
    await seed_stations("S1", "S2", "S3")
    fake_client.get_tidal_events.return_value = []

    with patch("ingestion.events.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        await make_action(db_session, fake_client, request_delay_ms=250).execute()

    assert mock_sleep.await_args_list == [call(0.25), call(0.25)]


@pytest.mark.asyncio
async def test_unexpected_error_aborts_run(db_session, seed_stations, fake_client, caplog):
    """A broken selection query becomes a SelectionError and a failure summary"""
    await seed_stations("0001")
    action = make_action(db_session, fake_client)

    with caplog.at_level(logging.ERROR, logger="ingestion.events"), \
            patch.object(action.selector, "_select_by_priority", AsyncMock(side_effect=RuntimeError("selector broke"))):
        summary = await action.execute()

    assert summary.success is False
    assert summary.message == "Exception in FetchTidalEventsAction: Station selection query failed: selector broke"
    assert summary.stations_processed == 0
    fake_client.get_tidal_events.assert_not_awaited()

    failure = [r for r in caplog.records if r.name == "ingestion.events" and r.levelno == logging.ERROR][-1]
    assert failure.error_context["error_type"] == "SelectionError"
    assert failure.error_context["context"]["batch_size"] == 10


@pytest.mark.asyncio
async def test_failed_rollback_still_returns_failure_summary(db_session, seed_stations, fake_client):
    await seed_stations("0001")
    action = make_action(db_session, fake_client)

    with patch.object(action.selector, "select", AsyncMock(side_effect=RuntimeError("selector broke"))), \
            patch.object(action.db, "rollback", AsyncMock(side_effect=RuntimeError("connection lost"))):
        summary = await action.execute()

    assert summary.success is False
    assert summary.message == "Exception in FetchTidalEventsAction: selector broke"


def test_config_validation():
    with pytest.raises(ValueError):
        EventFetchConfig(batch_size=0)
    with pytest.raises(ValueError):
        EventFetchConfig(request_delay_ms=-1)

    config = EventFetchConfig()
    assert config.batch_size == 10
    assert config.request_delay_ms == 500
