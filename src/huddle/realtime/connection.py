"""A single live client connection and its outbound queue."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from huddle.db.time import utcnow
from huddle.schemas.realtime import WsOutbound

logger = logging.getLogger(__name__)

SendFn = Callable[[dict[str, Any]], Awaitable[None]]
CloseFn = Callable[[], Awaitable[None]]

_CLOSED = object()


class Connection:
    """One authenticated session bound to a user.

    Outbound events go through a bounded queue so a slow client can never
    stall the code that fans events out. When the queue is full new events
    for this connection are dropped and logged.
    """

    def __init__(
        self,
        user_id: str,
        *,
        max_pending: int = 256,
        closer: CloseFn | None = None,
        connection_id: str | None = None,
    ) -> None:
        self.id = connection_id or uuid.uuid4().hex
        self.user_id = user_id
        self.joined_at: datetime = utcnow()
        self.dropped = 0
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_pending)
        self._closer = closer
        self._closed = False
        self._expired = False
        self._last_activity = time.monotonic()

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id!r})"

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: WsOutbound) -> bool:
        """Queue an event without blocking. Returns False if it was not queued."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Dropping %s for connection %s (user %s): outbound queue full",
                event.event,
                self.id,
                self.user_id,
            )
            return False
        return True

    def drain(self) -> list[WsOutbound]:
        """Remove and return every queued event."""
        events: list[WsOutbound] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return events
            if item is not _CLOSED:
                events.append(item)

    async def pump(self, send: SendFn) -> None:
        """Write queued events to the transport until the connection closes."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            try:
                await send(item.model_dump(mode="json"))
            except Exception as exc:
                # The socket is gone; the receive loop will run the disconnect.
                logger.debug("Send to connection %s failed: %s", self.id, exc)
                self._closed = True
                return

    def touch(self) -> None:
        """Record inbound activity from the client."""
        self._last_activity = time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        """Seconds since the client last sent anything."""
        return (now if now is not None else time.monotonic()) - self._last_activity

    async def expire(self) -> None:
        """Ask the transport to close this connection (at most once)."""
        if self._expired:
            return
        self._expired = True
        if self._closer is not None:
            await self._closer()

    def close(self) -> None:
        """Stop accepting events and let the pump finish."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Make room for the sentinel; undelivered events are discarded.
            self.drain()
            self._queue.put_nowait(_CLOSED)
