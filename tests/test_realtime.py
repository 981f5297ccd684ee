# mypy: ignore-errors
# tests/test_realtime.py
"""Tests for the realtime WebSocket endpoint."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.websockets import WebSocketDisconnect

from whisper_echo.core.security import create_access_token
from whisper_echo.db.session import Base, get_db, get_session_factory
from whisper_echo.models import User


def test_rejects_bad_token(client) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/realtime/ws?token=not-a-jwt") as websocket:
            websocket.receive_json()


def test_rejects_unknown_user(client) -> None:
    token = create_access_token(424242)
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
            websocket.receive_json()


def test_ping_pong(client, test_user) -> None:
    token = create_access_token(test_user.id)
    with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
        assert websocket.receive_json() == {"event": "connected", "data": {"room": str(test_user.id)}}
        websocket.send_text("ping")
        assert websocket.receive_json() == {"event": "pong", "data": {}}


def test_peer_receives_chat_and_notification(client, auth_token, test_user, other_user) -> None:
    """Sending a message pushes the message and the notification to the peer."""
    token = create_access_token(other_user.id)
    with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
        websocket.receive_json()

        response = client.post(f"/api/chat/messages/{other_user.id}", json={"text": "yo"}, headers=auth_token)
        assert response.status_code == 201

        message_frame = websocket.receive_json()
        assert message_frame["event"] == "chat:new-message"
        assert message_frame["data"]["text"] == "yo"
        assert message_frame["data"]["sender_id"] == test_user.id

        notification_frame = websocket.receive_json()
        assert notification_frame["event"] == "notification:new"
        assert notification_frame["data"]["type"] == "message"
        assert notification_frame["data"]["unread_count"] == 1
        assert notification_frame["data"]["actor"]["username"] == "test_user"


def test_reaction_pushes_notification(client, auth_token, test_post, other_user) -> None:
    token = create_access_token(other_user.id)
    with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
        websocket.receive_json()
        client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=auth_token)

        frame = websocket.receive_json()
        assert frame["event"] == "notification:new"
        assert frame["data"]["reaction_type"] == "love"
        assert frame["data"]["post_id"] == test_post.id



def test_anonymous_comment_push_hides_actor(client, auth_token, test_post, other_user) -> None:
    token = create_access_token(other_user.id)
    with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
        websocket.receive_json()
        client.post(
            f"/api/posts/{test_post.id}/comments",
            json={"content": "guess who", "is_anonymous": True},
            headers=auth_token,
        )

        frame = websocket.receive_json()
        assert frame["event"] == "notification:new"
        assert frame["data"]["type"] == "comment"
        assert frame["data"]["actor"] is None

@pytest.fixture()
def single_connection_engine(tmp_path):
    """A file database whose pool holds exactly one connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'realtime.db'}",
        connect_args={"check_same_thread": False},
        pool_size=1,
        max_overflow=0,
        pool_timeout=1,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


def test_open_socket_releases_its_connection(app, client, single_connection_engine) -> None:
    """An idle socket must leave the pool free for regular requests."""
    factory = sessionmaker(bind=single_connection_engine, autoflush=False, expire_on_commit=False)
    with factory() as db:
        listener = User(username="listener")
        db.add(listener)
        db.commit()
        listener_id = listener.id

    def _get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: factory

    token = create_access_token(listener_id)
    with client.websocket_connect(f"/api/realtime/ws?token={token}") as websocket:
        assert websocket.receive_json()["event"] == "connected"
        assert single_connection_engine.pool.checkedout() == 0

        response = client.get("/api/user/profile/listener")
        assert response.status_code == 200
        assert response.json()["username"] == "listener"

        websocket.send_text("ping")
        assert websocket.receive_json()["event"] == "pong"
