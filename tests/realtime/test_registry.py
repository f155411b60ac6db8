"""Tests for the connection registry."""

from __future__ import annotations

import pytest

from huddle.realtime import Connection, ConnectionRegistry


@pytest.mark.asyncio
async def test_bind_counts_connections_per_user():
    registry = ConnectionRegistry()

    assert await registry.bind(Connection("U1")) == 1
    assert await registry.bind(Connection("U1")) == 2
    assert await registry.bind(Connection("U2")) == 1
    assert len(registry) == 3


@pytest.mark.asyncio
async def test_unbind_reports_remaining_and_forgets_user():
    registry = ConnectionRegistry()
    first, second = Connection("U1"), Connection("U1")
    await registry.bind(first)
    await registry.bind(second)

    assert await registry.unbind(first) == 1
    assert await registry.is_online("U1")
    assert await registry.unbind(second) == 0
    assert not await registry.is_online("U1")
    assert await registry.online_users() == []


@pytest.mark.asyncio
async def test_unbind_unknown_connection_returns_none():
    registry = ConnectionRegistry()
    connection = Connection("U1")

    assert await registry.unbind(connection) is None
    await registry.bind(connection)
    await registry.unbind(connection)
    assert await registry.unbind(connection) is None


@pytest.mark.asyncio
async def test_user_for_only_answers_bound_connections():
    registry = ConnectionRegistry()
    connection = Connection("U1")

    assert await registry.user_for(connection) is None
    await registry.bind(connection)
    assert await registry.user_for(connection) == "U1"


@pytest.mark.asyncio
async def test_connections_for_deduplicates_users():
    registry = ConnectionRegistry()
    a1, a2, b1, c1 = Connection("A"), Connection("A"), Connection("B"), Connection("C")
    for connection in (a1, a2, b1, c1):
        await registry.bind(connection)

    found = await registry.connections_for("A", "B", "A", "missing")

    assert {connection.id for connection in found} == {a1.id, a2.id, b1.id}
    assert len(found) == 3


@pytest.mark.asyncio
async def test_online_users_sorted():
    registry = ConnectionRegistry()
    for user_id in ("zed", "amy", "amy"):
        await registry.bind(Connection(user_id))

    assert await registry.online_users() == ["amy", "zed"]
    assert len(await registry.all_connections()) == 3
