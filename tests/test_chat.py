# mypy: ignore-errors
# tests/test_chat.py
"""Tests for direct chat endpoints and read receipts."""

from fastapi import status
from sqlalchemy import insert

from whisper_echo.db.time import utcnow
from whisper_echo.models import Conversation, MessageRead
from whisper_echo.services import chat as chat_service


def _send(client, headers, peer_id, text="hi"):
    return client.post(f"/api/chat/messages/{peer_id}", json={"text": text}, headers=headers)


def test_send_message(client, auth_token, test_user, other_user) -> None:
    response = _send(client, auth_token, other_user.id, "hello there")
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["sender_id"] == test_user.id
    assert body["text"] == "hello there"
    assert body["read_by"] == [test_user.id]
    assert body["deleted"] is False


def test_send_message_requires_content(client, auth_token, other_user) -> None:
    response = _send(client, auth_token, other_user.id, "   ")
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_message_to_unknown_user(client, auth_token) -> None:
    response = _send(client, auth_token, 99999)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_cannot_chat_with_self(client, auth_token, test_user) -> None:
    response = _send(client, auth_token, test_user.id)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_reversed_pair_shares_conversation(db_session, test_user, other_user) -> None:
    first = chat_service.get_or_create_between(db_session, test_user.id, other_user.id)
    second = chat_service.get_or_create_between(db_session, other_user.id, test_user.id)
    assert first.id == second.id
    assert db_session.query(Conversation).count() == 1
    assert (first.user_low_id, first.user_high_id) == tuple(sorted((test_user.id, other_user.id)))


def test_both_directions_land_in_one_thread(client, auth_token, other_auth_token, test_user, other_user) -> None:
    _send(client, auth_token, other_user.id, "ping")
    _send(client, other_auth_token, test_user.id, "pong")

    messages = client.get(f"/api/chat/messages/{other_user.id}", headers=auth_token).json()["messages"]
    assert [message["text"] for message in messages] == ["ping", "pong"]


def test_mark_read_counts_once(client, auth_token, other_auth_token, test_user, other_user) -> None:
    """Three unread peer messages are marked on the first call and none on the second."""
    for text in ("a", "b", "c"):
        _send(client, auth_token, other_user.id, text)

    response = client.post(f"/api/chat/read/{test_user.id}", headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"updated": 3}

    response = client.post(f"/api/chat/read/{test_user.id}", headers=other_auth_token)
    assert response.json() == {"updated": 0}

    messages = client.get(f"/api/chat/messages/{other_user.id}", headers=auth_token).json()["messages"]
    for message in messages:
        assert sorted(message["read_by"]) == sorted([test_user.id, other_user.id])


def test_mark_read_skips_own_messages(client, auth_token, test_user, other_user) -> None:
    _send(client, auth_token, other_user.id)
    response = client.post(f"/api/chat/read/{other_user.id}", headers=auth_token)
    assert response.json() == {"updated": 0}


def test_edit_before_and_after_read(client, auth_token, other_auth_token, test_user, other_user) -> None:
    message_id = _send(client, auth_token, other_user.id, "draft").json()["id"]
    url = f"/api/chat/messages/{other_user.id}/{message_id}"

    response = client.patch(url, json={"text": "final"}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["text"] == "final"
    assert response.json()["edited_at"] is not None

    client.post(f"/api/chat/read/{test_user.id}", headers=other_auth_token)

    response = client.patch(url, json={"text": "too late"}, headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    messages = client.get(f"/api/chat/messages/{other_user.id}", headers=auth_token).json()["messages"]
    assert messages[0]["text"] == "final"


def test_only_sender_can_edit(client, auth_token, other_auth_token, test_user, other_user) -> None:
    message_id = _send(client, auth_token, other_user.id).json()["id"]
    response = client.patch(
        f"/api/chat/messages/{test_user.id}/{message_id}",
        json={"text": "hijack"},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_message_is_soft(client, auth_token, other_auth_token, test_user, other_user) -> None:
    message_id = _send(client, auth_token, other_user.id, "oops").json()["id"]

    response = client.delete(f"/api/chat/messages/{other_user.id}/{message_id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["deleted"] is True
    assert response.json()["text"] == ""

    messages = client.get(f"/api/chat/messages/{test_user.id}", headers=other_auth_token).json()["messages"]
    assert len(messages) == 1
    assert messages[0]["deleted"] is True

    # Deleted messages never count as unread.
    assert client.post(f"/api/chat/read/{test_user.id}", headers=other_auth_token).json() == {"updated": 0}


def test_message_pagination(client, auth_token, other_user) -> None:
    """Pages count back from the newest message and are returned oldest first."""
    for index in range(5):
        _send(client, auth_token, other_user.id, f"m{index}")

    url = f"/api/chat/messages/{other_user.id}"
    first = client.get(url, params={"page": 1, "limit": 2}, headers=auth_token).json()
    assert [message["text"] for message in first["messages"]] == ["m3", "m4"]
    assert first["pagination"]["has_more"] is True

    last = client.get(url, params={"page": 3, "limit": 2}, headers=auth_token).json()
    assert [message["text"] for message in last["messages"]] == ["m0"]
    assert last["pagination"]["has_more"] is False


def test_message_reactions(client, auth_token, other_auth_token, test_user, other_user) -> None:
    message_id = _send(client, auth_token, other_user.id).json()["id"]
    url = f"/api/chat/messages/{test_user.id}/{message_id}/react"

    response = client.post(url, json={"reaction_type": "love"}, headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reactions"] == [{"user_id": other_user.id, "type": "love"}]

    response = client.post(url, json={"reaction_type": "funny"}, headers=other_auth_token)
    assert response.json()["reactions"] == [{"user_id": other_user.id, "type": "funny"}]

    response = client.delete(url, headers=other_auth_token)
    assert response.json()["reactions"] == []

    response = client.post(url, json={"reaction_type": "meh"}, headers=other_auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_conversations(client, auth_token, other_auth_token, third_auth_token, test_user, other_user, third_user) -> None:
    _send(client, other_auth_token, test_user.id, "from other")
    _send(client, third_auth_token, test_user.id, "from third")
    _send(client, third_auth_token, test_user.id, "again")

    response = client.get("/api/chat/conversations", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    conversations = response.json()["conversations"]
    assert [item["peer"]["username"] for item in conversations] == ["third_user", "other_user"]
    assert conversations[0]["unread_count"] == 2
    assert conversations[0]["last_message"]["text"] == "again"
    assert conversations[1]["unread_count"] == 1


def test_sender_is_reader_from_the_start(db_session, test_user, other_user) -> None:
    view, notification = chat_service.send_message(db_session, test_user, other_user.id, "hey")
    assert view.read_by == [test_user.id]
    assert notification is not None
    assert notification.type == "message"
    assert db_session.query(MessageRead).count() == 1


def test_message_notification_respects_setting(db_session, test_user, other_user) -> None:
    other_user.notify_messages = False
    db_session.flush()
    _, notification = chat_service.send_message(db_session, test_user, other_user.id, "hey")
    assert notification is None


def test_concurrent_mark_read_counts_each_message_once(db_session, monkeypatch, test_user, other_user) -> None:
    """When a racing call stores the receipts first, the slower call marks nothing."""
    for text in ("a", "b"):
        chat_service.send_message(db_session, test_user, other_user.id, text)
    conversation = chat_service.find_between(db_session, test_user.id, other_user.id)
    snapshot = chat_service.unread_message_ids(db_session, conversation.id, other_user.id)
    assert len(snapshot) == 2

    db_session.execute(
        insert(MessageRead),
        [{"message_id": message_id, "user_id": other_user.id, "read_at": utcnow()} for message_id in snapshot],
    )

    stored_lookup = chat_service.unread_message_ids
    calls = []

    def unread_before_race(db, conversation_id, reader_id):
        calls.append(reader_id)
        if len(calls) == 1:
            return list(snapshot)
        return stored_lookup(db, conversation_id, reader_id)

    monkeypatch.setattr(chat_service, "unread_message_ids", unread_before_race)

    assert chat_service.mark_read(db_session, other_user, test_user.id) == 0
    assert db_session.query(MessageRead).filter(MessageRead.user_id == other_user.id).count() == 2
