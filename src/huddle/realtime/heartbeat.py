"""Liveness checks for half-open connections."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from huddle.db.time import utcnow
from huddle.realtime import events
from huddle.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Periodically pings idle connections and expires silent ones.

    A connection idle for ``interval`` seconds receives a ``ping`` event; one
    idle for ``timeout`` seconds is closed through its transport, which runs
    the usual disconnect path.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        interval: float,
        timeout: float,
    ) -> None:
        if timeout <= interval:
            raise ValueError("Heartbeat timeout must be longer than the interval")
        self.registry = registry
        self.interval = interval
        self.timeout = timeout
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        period = max(0.1, self.interval / 2)
        while not self._stopping.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=period)
            if self._stopping.is_set():
                return
            try:
                await self.sweep()
            except Exception:
                logger.error("HeartbeatMonitor sweep failed", exc_info=True)

    async def sweep(self, now: float | None = None) -> tuple[int, int]:
        """Run one liveness pass. Returns (pinged, expired) counts."""
        now = time.monotonic() if now is None else now
        pinged = expired = 0
        for connection in await self.registry.all_connections():
            idle = connection.idle_for(now)
            if idle >= self.timeout:
                logger.warning(
                    "Expiring connection %s for user %s after %.1fs of silence",
                    connection.id,
                    connection.user_id,
                    idle,
                )
                try:
                    await connection.expire()
                except Exception as exc:
                    logger.warning("Closing connection %s failed: %s", connection.id, exc)
                expired += 1
            elif idle >= self.interval and connection.deliver(events.ping(utcnow())):
                pinged += 1
        return pinged, expired
