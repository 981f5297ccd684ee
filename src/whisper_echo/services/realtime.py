"""In-process realtime hub delivering push events to per-user rooms.

Each connected client joins the room named after its own user id. Events are
fire-and-forget: a failed delivery is logged, the connection is dropped from
the room, and nothing is retried. Clients recover by refetching.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CHAT_NEW_MESSAGE = "chat:new-message"
CHAT_MESSAGE_UPDATED = "chat:message-updated"
CHAT_MESSAGE_DELETED = "chat:message-deleted"
CHAT_MESSAGE_REACTED = "chat:message-reacted"
NOTIFICATION_NEW = "notification:new"


class Connection(Protocol):
    """Anything that can receive a JSON frame (a Starlette WebSocket qualifies)."""

    async def send_json(self, data: Any) -> None: ...


def room_for(user_id: int) -> str:
    """Return the room name a user joins."""
    return str(user_id)


class RealtimeHub:
    """Room registry built once at startup and shared through app state."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[Connection]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def join(self, room: str, connection: Connection) -> None:
        async with self._lock:
            self._rooms[room].add(connection)
        logger.debug("Connection joined room %s", room)

    async def leave(self, room: str, connection: Connection) -> None:
        async with self._lock:
            members = self._rooms.get(room)
            if members is None:
                return
            members.discard(connection)
            if not members:
                del self._rooms[room]
        logger.debug("Connection left room %s", room)

    def connection_count(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """Send ``event`` to every connection in ``room``.

        Returns:
            Number of connections that accepted the frame.
        """
        async with self._lock:
            members = list(self._rooms.get(room, ()))
        if not members:
            return 0

        frame = {"event": event, "data": payload}
        delivered = 0
        for connection in members:
            try:
                await connection.send_json(frame)
            except Exception as exc:  # noqa: BLE001 - push delivery is best effort
                logger.warning("Dropping connection in room %s after failed %s push: %s", room, event, exc)
                await self.leave(room, connection)
                continue
            delivered += 1
        return delivered

    async def emit_to_user(self, user_id: int, event: str, payload: dict[str, Any]) -> int:
        return await self.emit(room_for(user_id), event, payload)

    async def close(self) -> None:
        async with self._lock:
            self._rooms.clear()
