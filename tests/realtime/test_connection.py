"""Tests for Connection queueing, pumping and expiry."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from huddle.db.time import utcnow
from huddle.realtime import Connection
from huddle.realtime import events


@pytest.mark.asyncio
async def test_deliver_queues_events_in_order():
    connection = Connection("U1")

    assert connection.deliver(events.ping(utcnow()))
    assert connection.deliver(events.pong(utcnow()))

    assert [event.event for event in connection.drain()] == [events.PING, events.PONG]
    assert connection.drain() == []


@pytest.mark.asyncio
async def test_full_queue_drops_new_events():
    connection = Connection("U1", max_pending=2)

    results = [connection.deliver(events.ping(utcnow())) for _ in range(4)]

    assert results == [True, True, False, False]
    assert connection.dropped == 2
    assert len(connection.drain()) == 2


@pytest.mark.asyncio
async def test_closed_connection_rejects_events():
    connection = Connection("U1")
    connection.close()

    assert not connection.deliver(events.ping(utcnow()))
    assert connection.drain() == []


@pytest.mark.asyncio
async def test_pump_sends_json_frames_until_closed():
    connection = Connection("U1")
    send = AsyncMock()
    sent_at = utcnow()

    connection.deliver(events.typing(events.TYPING_START, "U1#U2", "U2"))
    connection.deliver(events.pong(sent_at))
    connection.close()
    await asyncio.wait_for(connection.pump(send), timeout=1)

    frames = [call.args[0] for call in send.await_args_list]
    assert frames[0] == {
        "event": "typing:start",
        "data": {"conversationId": "U1#U2", "userId": "U2"},
    }
    assert frames[1]["event"] == "pong"
    assert isinstance(frames[1]["data"]["timestamp"], str)


@pytest.mark.asyncio
async def test_close_on_full_queue_still_stops_pump():
    connection = Connection("U1", max_pending=1)
    connection.deliver(events.ping(utcnow()))

    connection.close()
    send = AsyncMock()
    await asyncio.wait_for(connection.pump(send), timeout=1)

    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_pump_stops_when_transport_fails():
    connection = Connection("U1")
    send = AsyncMock(side_effect=RuntimeError("socket gone"))
    connection.deliver(events.ping(utcnow()))

    await asyncio.wait_for(connection.pump(send), timeout=1)

    assert connection.closed
    assert not connection.deliver(events.ping(utcnow()))


@pytest.mark.asyncio
async def test_expire_calls_closer_once():
    closer = AsyncMock()
    connection = Connection("U1", closer=closer)

    await connection.expire()
    await connection.expire()

    closer.assert_awaited_once()


def test_idle_time_tracks_touch():
    connection = Connection("U1")
    connection._last_activity = 10.0

    assert connection.idle_for(now=25.0) == 15.0
    connection.touch()
    assert connection.idle_for() < 1.0


def test_connection_ids_are_unique():
    assert Connection("U1").id != Connection("U1").id
    assert Connection("U1", connection_id="abc").id == "abc"
