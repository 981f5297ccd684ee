# src/whisper_echo/api/endpoints/realtime.py
"""WebSocket endpoint joining the caller to their own push room."""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session, sessionmaker

from whisper_echo.core.security import decode_subject
from whisper_echo.models import User
from whisper_echo.services.realtime import RealtimeHub, room_for

from ..dependencies import SessionFactoryDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


def _resolve_user_id(session_factory: sessionmaker[Session], token: str) -> int | None:
    """Look the caller up on a short-lived session.

    The session is closed before the socket is accepted so an idle connection
    never keeps a pooled database connection checked out.
    """
    user_id = decode_subject(token)
    if user_id is None:
        return None
    with session_factory() as db:
        user = db.get(User, user_id)
        return user.id if user is not None else None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    session_factory: SessionFactoryDep,
    token: str = Query(...),
) -> None:
    """Authenticate with ``?token=`` and receive push events until disconnect.

    Clients may send the text frame ``ping`` to receive a ``pong`` event.
    """
    user_id = _resolve_user_id(session_factory, token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub: RealtimeHub = websocket.app.state.realtime
    room = room_for(user_id)
    await websocket.accept()
    await hub.join(room, websocket)
    await websocket.send_json({"event": "connected", "data": {"room": room}})
    try:
        while True:
            frame = await websocket.receive_text()
            if frame.strip() == "ping":
                await websocket.send_json({"event": "pong", "data": {}})
    except WebSocketDisconnect:
        logger.debug("User %s disconnected from realtime", user_id)
    finally:
        await hub.leave(room, websocket)
