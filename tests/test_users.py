# mypy: ignore-errors
# tests/test_users.py
"""Tests for profile, echo, discovery and notification endpoints."""

from datetime import timedelta

from fastapi import status

from whisper_echo.db.time import utcnow
from whisper_echo.models import Follow, User


def test_get_profile(client, test_user) -> None:
    response = client.get(f"/api/user/profile/{test_user.username}")
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["username"] == "test_user"
    assert body["stats"]["karma_score"] == 0
    assert body["is_echoing"] is None
    assert body["notification_settings"] is None


def test_get_own_profile_includes_settings(client, auth_token, test_user) -> None:
    response = client.get(f"/api/user/profile/{test_user.username}", headers=auth_token)
    assert response.json()["notification_settings"] == {
        "reactions": True,
        "comments": True,
        "followers": True,
        "messages": True,
    }


def test_get_profile_not_found(client) -> None:
    response = client.get("/api/user/profile/ghost")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_profile(client, auth_token) -> None:
    response = client.put(
        "/api/user/profile",
        json={"bio": "  hello  ", "preferences": ["Music", "Art", "Music"], "notify_reactions": False},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["bio"] == "hello"
    assert body["preferences"] == ["Music", "Art"]
    assert body["notification_settings"]["reactions"] is False


def test_update_profile_rejects_unknown_preference(client, auth_token) -> None:
    response = client.put("/api/user/profile", json={"preferences": ["Knitting"]}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_echo_and_unecho(client, auth_token, other_auth_token, test_user, other_user, db_session) -> None:
    response = client.post(f"/api/user/echo/{other_user.id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"user_id": other_user.id, "is_echoing": True, "followers_count": 1}

    db_session.refresh(test_user)
    assert test_user.following_count == 1

    profile = client.get(f"/api/user/profile/{other_user.username}", headers=auth_token).json()
    assert profile["is_echoing"] is True

    notifications = client.get("/api/user/notifications", headers=other_auth_token).json()
    assert notifications["notifications"][0]["type"] == "track"

    response = client.post(f"/api/user/echo/{other_user.id}", headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.delete(f"/api/user/echo/{other_user.id}", headers=auth_token)
    assert response.json()["followers_count"] == 0
    assert response.json()["is_echoing"] is False

    response = client.delete(f"/api/user/echo/{other_user.id}", headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_cannot_echo_self(client, auth_token, test_user) -> None:
    response = client.post(f"/api/user/echo/{test_user.id}", headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_mark_notifications_read(client, auth_token, other_auth_token, third_auth_token, test_post) -> None:
    client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=auth_token)
    client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=third_auth_token)

    listing = client.get("/api/user/notifications", headers=other_auth_token).json()
    assert listing["unread_count"] == 2
    first_id = listing["notifications"][0]["id"]

    response = client.post("/api/user/notifications/read", json={"ids": [first_id]}, headers=other_auth_token)
    assert response.json() == {"updated": 1}

    response = client.post("/api/user/notifications/read", headers=other_auth_token)
    assert response.json() == {"updated": 1}
    assert client.get("/api/user/notifications", headers=other_auth_token).json()["unread_count"] == 0


def test_disabled_reaction_notifications(client, auth_token, other_auth_token, test_post) -> None:
    client.put("/api/user/profile", json={"notify_reactions": False}, headers=other_auth_token)
    client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=auth_token)

    listing = client.get("/api/user/notifications", headers=other_auth_token).json()
    assert listing["unread_count"] == 0
    assert listing["notifications"] == []


def make_user(db_session, username, **fields):
    user = User(username=username, **fields)
    db_session.add(user)
    db_session.flush()
    return user


def test_discover_users_by_shared_preference(client, auth_token, db_session, test_user) -> None:
    """Suggestions share a category, skip echoed users and respect the opt-out."""
    test_user.preferences = ["Music", "Art"]
    match = make_user(db_session, "music_fan", preferences=["Music"])
    make_user(db_session, "artist", preferences=["Art", "Food"], allow_discovery=False)
    make_user(db_session, "chef", preferences=["Food"])
    echoed = make_user(db_session, "echoed", preferences=["Art"])
    db_session.add(Follow(follower_id=test_user.id, followee_id=echoed.id))
    db_session.flush()

    response = client.get("/api/user/discover", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    users = response.json()["users"]
    assert [user["username"] for user in users] == ["music_fan"]
    assert users[0]["id"] == match.id
    assert users[0]["preferences"] == ["Music"]
    assert users[0]["stats"]["karma_score"] == 0


def test_discover_limit_and_empty_preferences(client, auth_token, db_session, test_user) -> None:
    for index in range(4):
        make_user(db_session, f"gamer_{index}", preferences=["Gaming"])

    assert client.get("/api/user/discover", headers=auth_token).json()["users"] == []

    test_user.preferences = ["Gaming"]
    db_session.flush()
    users = client.get("/api/user/discover", params={"limit": 2}, headers=auth_token).json()["users"]
    assert len(users) == 2
    assert {user["username"] for user in users} <= {f"gamer_{index}" for index in range(4)}


def test_discover_requires_auth(client) -> None:
    response = client.get("/api/user/discover")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_discovery_opt_out_is_a_profile_setting(client, auth_token) -> None:
    response = client.put("/api/user/profile", json={"allow_discovery": False}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["allow_discovery"] is False

    public = client.get("/api/user/profile/test_user").json()
    assert public["allow_discovery"] is None


def test_echo_trails_are_anonymized(client, auth_token, db_session, test_user, other_user, third_user) -> None:
    other_user.bio = "hello there"
    other_user.avatar = "/uploads/me.png"
    other_user.preferences = ["Books"]
    third_user.created_at = utcnow() - timedelta(days=90)
    db_session.add(Follow(follower_id=test_user.id, followee_id=other_user.id))
    db_session.add(Follow(follower_id=test_user.id, followee_id=third_user.id))
    db_session.flush()

    response = client.get(f"/api/user/echo-trails/{test_user.id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] == 2
    by_id = {trail["id"]: trail for trail in body["trails"]}
    trail = by_id[other_user.id]
    assert trail["preferences"] == ["Books"]
    assert trail["has_avatar"] is True
    assert trail["bio_length"] == len("hello there")
    assert trail["joined_recently"] is True
    assert trail["stats"]["followers_count"] == 0
    assert by_id[third_user.id]["joined_recently"] is False
    assert "username" not in trail
    assert "bio" not in trail


def test_echo_trails_unknown_user(client, auth_token) -> None:
    response = client.get("/api/user/echo-trails/999999", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND
