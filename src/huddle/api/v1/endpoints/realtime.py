# src/huddle/api/v1/endpoints/realtime.py
"""WebSocket gateway and presence endpoints."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict, Field

from huddle.api.v1.dependencies import CurrentUserDep, PresenceRouterDep
from huddle.realtime import AuthenticationFailure, ErrorKind, events
from huddle.services.identity import bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


class OnlineUsers(BaseModel):
    """Users with at least one live connection."""

    user_ids: list[str] = Field(..., alias="userIds")

    model_config = ConfigDict(populate_by_name=True)


@router.get("/presence/online", response_model=OnlineUsers)
async def get_online_users(
    current_user: CurrentUserDep,
    presence: PresenceRouterDep,
) -> OnlineUsers:
    """Return the ids of users that are currently connected."""
    return OnlineUsers(user_ids=await presence.online_users())


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    presence: PresenceRouterDep,
    token: str | None = Query(None),
) -> None:
    """Authenticate the handshake, then relay frames until the socket closes.

    The credential comes from the ``Authorization: Bearer`` header or the
    ``token`` query parameter. Rejected handshakes are closed before accept.
    """
    credential = bearer_token(websocket.headers.get("authorization")) or token
    try:
        identity = await presence.authenticate(credential)
    except AuthenticationFailure as exc:
        logger.warning("Rejected realtime handshake: %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def _close() -> None:
        await websocket.close(code=status.WS_1001_GOING_AWAY)

    try:
        connection = await presence.register(identity, closer=_close)
    except Exception:
        logger.error("Failed to register realtime connection for %s", identity.user_id, exc_info=True)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    pump = asyncio.create_task(connection.pump(websocket.send_json))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            text = message.get("text")
            try:
                frame: Any = json.loads(text) if text is not None else None
            except ValueError:
                frame = None
            if not isinstance(frame, dict):
                connection.deliver(events.error(ErrorKind.INVALID_REQUEST, "Malformed frame"))
                continue
            await presence.dispatch(connection, frame)
    except WebSocketDisconnect:
        pass
    except RuntimeError as exc:
        # Socket already closed from our side by the heartbeat.
        logger.info("Closing realtime connection %s: %s", connection.id, exc)
    finally:
        await presence.disconnect(connection)
        with contextlib.suppress(asyncio.CancelledError):
            await pump
