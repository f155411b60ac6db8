"""Connection registry: which users are reachable and through which connections."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from huddle.realtime.connection import Connection


class ConnectionRegistry:
    """Owned table of live connections keyed by connection id and by user id.

    All mutations and the snapshots used for fan-out take the same lock, so a
    fan-out never sees a half-registered or half-removed connection.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._connections: dict[str, Connection] = {}
        self._by_user: defaultdict[str, dict[str, Connection]] = defaultdict(dict)

    async def bind(self, connection: Connection) -> int:
        """Register a connection. Returns the user's live connection count."""
        async with self._lock:
            self._connections[connection.id] = connection
            sessions = self._by_user[connection.user_id]
            sessions[connection.id] = connection
            return len(sessions)

    async def unbind(self, connection: Connection) -> int | None:
        """Remove a connection.

        Returns the user's remaining connection count, or None if the
        connection was not registered.
        """
        async with self._lock:
            if self._connections.pop(connection.id, None) is None:
                return None
            sessions = self._by_user.get(connection.user_id)
            if sessions is None:
                return 0
            sessions.pop(connection.id, None)
            remaining = len(sessions)
            if not remaining:
                del self._by_user[connection.user_id]
            return remaining

    async def user_for(self, connection: Connection) -> str | None:
        """Return the user bound to ``connection`` if it is still registered."""
        async with self._lock:
            bound = self._connections.get(connection.id)
            return bound.user_id if bound is not None else None

    async def connections_for(self, *user_ids: str) -> list[Connection]:
        """Snapshot of every connection belonging to any of ``user_ids``."""
        async with self._lock:
            found: list[Connection] = []
            for user_id in dict.fromkeys(user_ids):
                sessions = self._by_user.get(user_id)
                if sessions:
                    found.extend(sessions.values())
            return found

    async def all_connections(self) -> list[Connection]:
        async with self._lock:
            return list(self._connections.values())

    async def online_users(self) -> list[str]:
        async with self._lock:
            return sorted(self._by_user)

    async def is_online(self, user_id: str) -> bool:
        async with self._lock:
            return bool(self._by_user.get(user_id))

    def __len__(self) -> int:
        return len(self._connections)
