# mypy: ignore-errors
# tests/test_posts.py
"""Tests for post, comment and profile post listing endpoints."""

from datetime import timedelta

from fastapi import status

from whisper_echo.db.time import utcnow
from whisper_echo.models import Comment, HiddenPost, Notification, Post, PostReaction
from whisper_echo.services import posts as post_service


def _create(client, headers, **overrides):
    payload = {"text": "Hello world", "category": "Technology", "tags": ["intro"]}
    payload.update(overrides)
    return client.post("/api/posts/", json=payload, headers=headers)


def test_create_post(client, auth_token, db_session, test_user) -> None:
    """Creating a post bumps posts_count and starts a streak."""
    response = _create(client, auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["text"] == "Hello world"
    assert body["author"]["username"] == "test_user"
    assert body["reactions"]["total"] == 0
    assert body["user_reaction"] is None

    db_session.refresh(test_user)
    assert test_user.posts_count == 1
    assert test_user.current_streak == 1
    assert test_user.longest_streak == 1
    assert test_user.last_post_date == utcnow().date()


def test_second_post_same_day_keeps_streak(client, auth_token, db_session, test_user) -> None:
    _create(client, auth_token)
    _create(client, auth_token, text="again")
    db_session.refresh(test_user)
    assert test_user.posts_count == 2
    assert test_user.current_streak == 1


def test_create_post_requires_text_or_media(client, auth_token) -> None:
    response = _create(client, auth_token, text="   ")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Post must have text or media"


def test_create_media_only_post(client, auth_token) -> None:
    response = _create(
        client,
        auth_token,
        text="",
        media=[{"url": "/uploads/cat.png", "type": "image", "size": 1024}],
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["media"][0]["url"] == "/uploads/cat.png"


def test_create_post_invalid_category(client, auth_token) -> None:
    response = _create(client, auth_token, category="Knitting")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Invalid category"


def test_create_post_text_too_long(client, auth_token) -> None:
    response = _create(client, auth_token, text="x" * 2001)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vanish_post_sets_deadline(client, auth_token) -> None:
    response = _create(client, auth_token, vanish_enabled=True, vanish_duration="1hour")
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["vanish_at"] is not None


def test_vanish_requires_duration(client, auth_token) -> None:
    response = _create(client, auth_token, vanish_enabled=True)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Invalid vanish duration"


def test_get_post_with_user_reaction(client, auth_token, test_post) -> None:
    client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=auth_token)

    response = client.get(f"/api/posts/{test_post.id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["user_reaction"] == "love"
    assert body["user_has_reacted"] is True
    assert body["reactions"]["love"] == 1


def test_get_post_anonymous_viewer(client, test_post) -> None:
    response = client.get(f"/api/posts/{test_post.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user_reaction"] is None


def test_vanished_post_is_not_found(client, test_post, db_session) -> None:
    test_post.vanish_enabled = True
    test_post.vanish_duration = "1day"
    test_post.vanish_at = utcnow() - timedelta(seconds=1)
    db_session.flush()

    response = client.get(f"/api/posts/{test_post.id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_hidden_post_is_not_found(client, test_post, db_session) -> None:
    test_post.is_hidden = True
    db_session.flush()

    response = client.get(f"/api/posts/{test_post.id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_disguised_post_hides_author_from_others(client, auth_token, other_auth_token) -> None:
    response = _create(client, auth_token, visibility="disguise", disguise_avatar="mask.png")
    post_id = response.json()["id"]
    assert response.json()["author"]["username"] == "test_user"

    response = client.get(f"/api/posts/{post_id}", headers=other_auth_token)
    body = response.json()
    assert body["author"] is None
    assert body["disguise_avatar"] == "mask.png"


def test_update_post(client, auth_token) -> None:
    post_id = _create(client, auth_token).json()["id"]

    response = client.put(f"/api/posts/{post_id}", json={"text": "Edited", "tags": ["a", " "]}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["text"] == "Edited"
    assert response.json()["tags"] == ["a"]
    assert response.json()["category"] == "Technology"


def test_update_post_not_owner(client, auth_token, test_post) -> None:
    response = client.put(f"/api/posts/{test_post.id}", json={"text": "mine now"}, headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_post(client, auth_token, third_auth_token, db_session, test_user) -> None:
    """Deleting a post removes it and its reaction ledger."""
    post_id = _create(client, auth_token).json()["id"]
    client.post(f"/api/reactions/{post_id}", json={"reaction_type": "love"}, headers=third_auth_token)

    response = client.delete(f"/api/posts/{post_id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "success"

    assert db_session.get(Post, post_id) is None
    assert db_session.query(PostReaction).filter(PostReaction.post_id == post_id).count() == 0
    db_session.refresh(test_user)
    assert test_user.posts_count == 0
    assert client.get(f"/api/posts/{post_id}").status_code == status.HTTP_404_NOT_FOUND


def test_delete_post_not_owner(client, auth_token, test_post) -> None:
    response = client.delete(f"/api/posts/{test_post.id}", headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_add_and_list_comments(client, auth_token, other_auth_token, test_post, db_session) -> None:
    response = client.post(
        f"/api/posts/{test_post.id}/comments",
        json={"content": "Great post"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["author"]["username"] == "test_user"

    client.post(
        f"/api/posts/{test_post.id}/comments",
        json={"content": "secret", "is_anonymous": True},
        headers=auth_token,
    )

    response = client.get(f"/api/posts/{test_post.id}/comments")
    comments = response.json()
    assert [comment["content"] for comment in comments] == ["Great post", "secret"]
    assert comments[1]["author"] is None
    assert comments[0]["reactions"] == {"funny": 0, "love": 0}

    db_session.refresh(test_post)
    assert test_post.comment_count == 2
    assert test_post.trending_score > 0

    notifications = client.get("/api/user/notifications", headers=other_auth_token).json()
    assert notifications["unread_count"] == 2
    assert notifications["notifications"][0]["type"] == "comment"

    # The newest notification is for the anonymous comment and names nobody.
    assert notifications["notifications"][0]["actor"] is None
    assert notifications["notifications"][1]["actor"]["username"] == "test_user"


def test_empty_comment_rejected(client, auth_token, test_post) -> None:
    response = client.post(f"/api/posts/{test_post.id}/comments", json={"content": ""}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_user_posts(client, auth_token, other_auth_token) -> None:
    for index in range(3):
        _create(client, auth_token, text=f"post {index}")

    response = client.get("/api/posts/user/test_user", params={"limit": 2}, headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [post["text"] for post in body["posts"]] == ["post 2", "post 1"]
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["has_more"] is True


def test_list_posts_unknown_user(client) -> None:
    response = client.get("/api/posts/user/nobody")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_anonymous_comment_notification_has_no_actor(db_session, test_user, other_user, test_post) -> None:
    _, notification = post_service.add_comment(
        db_session, test_post.id, test_user, "who am I", is_anonymous=True
    )
    assert notification is not None
    assert notification.actor_id is None
    assert notification.user_id == other_user.id


def _comment(client, headers, post_id, content="top level"):
    return client.post(f"/api/posts/{post_id}/comments", json={"content": content}, headers=headers)


def test_reply_to_comment(client, auth_token, other_auth_token, third_auth_token, test_post, db_session) -> None:
    """Replies thread under their comment and notify the comment's author."""
    comment_id = _comment(client, auth_token, test_post.id).json()["id"]
    url = f"/api/posts/{test_post.id}/comments/{comment_id}/replies"

    response = client.post(url, json={"content": "good point"}, headers=third_auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["parent_id"] == comment_id
    assert body["author"]["username"] == "third_user"

    replies = client.get(url).json()
    assert [reply["content"] for reply in replies] == ["good point"]

    comments = client.get(f"/api/posts/{test_post.id}/comments").json()
    assert [comment["id"] for comment in comments] == [comment_id]
    assert comments[0]["reply_count"] == 1

    db_session.refresh(test_post)
    assert test_post.comment_count == 1

    notifications = client.get("/api/user/notifications", headers=auth_token).json()["notifications"]
    assert notifications[0]["type"] == "reply"
    assert notifications[0]["comment_id"] == comment_id
    assert notifications[0]["actor"]["username"] == "third_user"


def test_reply_to_own_comment_does_not_notify(client, auth_token, test_post, db_session, test_user) -> None:
    comment_id = _comment(client, auth_token, test_post.id).json()["id"]
    client.post(
        f"/api/posts/{test_post.id}/comments/{comment_id}/replies",
        json={"content": "and another thing"},
        headers=auth_token,
    )
    assert db_session.query(Notification).filter(Notification.user_id == test_user.id).count() == 0


def test_replies_are_one_level_deep(client, auth_token, other_auth_token, test_post) -> None:
    comment_id = _comment(client, auth_token, test_post.id).json()["id"]
    reply_id = client.post(
        f"/api/posts/{test_post.id}/comments/{comment_id}/replies",
        json={"content": "reply"},
        headers=other_auth_token,
    ).json()["id"]

    response = client.post(
        f"/api/posts/{test_post.id}/comments/{reply_id}/replies",
        json={"content": "nested"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Comment not found"


def test_reply_validation_and_missing_comment(client, auth_token, test_post) -> None:
    comment_id = _comment(client, auth_token, test_post.id).json()["id"]
    url = f"/api/posts/{test_post.id}/comments/{comment_id}/replies"
    assert client.post(url, json={"content": "x" * 501}, headers=auth_token).status_code == status.HTTP_400_BAD_REQUEST

    response = client.get(f"/api/posts/{test_post.id}/comments/999999/replies")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_delete_post_removes_replies(client, auth_token, other_auth_token, db_session) -> None:
    post_id = _create(client, auth_token).json()["id"]
    comment_id = _comment(client, other_auth_token, post_id).json()["id"]
    client.post(
        f"/api/posts/{post_id}/comments/{comment_id}/replies",
        json={"content": "reply"},
        headers=auth_token,
    )
    client.post(f"/api/posts/{post_id}/hide", headers=other_auth_token)

    assert client.delete(f"/api/posts/{post_id}", headers=auth_token).status_code == status.HTTP_200_OK
    db_session.expunge_all()
    assert db_session.query(Comment).filter(Comment.post_id == post_id).count() == 0
    assert db_session.query(HiddenPost).filter(HiddenPost.post_id == post_id).count() == 0


def test_hide_and_unhide_post(client, auth_token, test_post, db_session, test_user) -> None:
    url = f"/api/posts/{test_post.id}/hide"

    response = client.post(url, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"post_id": test_post.id, "hidden": True}
    assert db_session.get(HiddenPost, (test_user.id, test_post.id)) is not None

    response = client.post(url, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Post already hidden"

    # Hiding is personal; the post itself stays readable.
    assert client.get(f"/api/posts/{test_post.id}", headers=auth_token).status_code == status.HTTP_200_OK

    response = client.delete(url, headers=auth_token)
    assert response.json() == {"post_id": test_post.id, "hidden": False}

    response = client.delete(url, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Post is not hidden"


def test_hide_unknown_post(client, auth_token) -> None:
    response = client.post("/api/posts/999999/hide", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def _seed_post(db_session, author, *, text, category="Technology", minutes_ago=0, trending=0.0, total=0):
    created = utcnow() - timedelta(minutes=minutes_ago)
    post = Post(
        author_id=author.id,
        text=text,
        media=[],
        category=category,
        tags=[],
        created_at=created,
        updated_at=created,
        trending_score=trending,
    )
    post.set_reaction_counts({"love": total})
    db_session.add(post)
    db_session.flush()
    return post


def test_explore_orderings(client, db_session, other_user) -> None:
    _seed_post(db_session, other_user, text="old but hot", minutes_ago=30, trending=9.0, total=1)
    _seed_post(db_session, other_user, text="loved", minutes_ago=20, trending=1.0, total=5)
    _seed_post(db_session, other_user, text="fresh", minutes_ago=1)

    def texts(**params):
        response = client.get("/api/posts/explore", params=params)
        assert response.status_code == status.HTTP_200_OK
        return [post["text"] for post in response.json()["posts"]]

    assert texts() == ["old but hot", "loved", "fresh"]
    assert texts(filter="recent") == ["fresh", "loved", "old but hot"]
    assert texts(filter="popular") == ["loved", "old but hot", "fresh"]


def test_explore_category_and_pagination(client, db_session, other_user) -> None:
    _seed_post(db_session, other_user, text="tune", category="Music", minutes_ago=2)
    _seed_post(db_session, other_user, text="song", category="Music", minutes_ago=1)
    _seed_post(db_session, other_user, text="code", category="Technology")

    body = client.get("/api/posts/explore", params={"filter": "recent", "category": "Music", "limit": 1}).json()
    assert [post["text"] for post in body["posts"]] == ["song"]
    assert body["pagination"]["has_more"] is True

    assert client.get("/api/posts/explore", params={"category": "Knitting"}).status_code == status.HTTP_400_BAD_REQUEST
    assert client.get("/api/posts/explore", params={"filter": "loudest"}).status_code == status.HTTP_400_BAD_REQUEST


def test_explore_viewer_state(client, auth_token, test_post, db_session, other_user) -> None:
    """Explore carries the viewer's reaction and skips posts they hid or that vanished."""
    hidden = _seed_post(db_session, other_user, text="hide me")
    _seed_post(db_session, other_user, text="hide me")
    vanished = _seed_post(db_session, other_user, text="gone")
    vanished.vanish_enabled = True
    vanished.vanish_at = utcnow() - timedelta(minutes=1)
    db_session.flush()

    client.post(f"/api/reactions/{test_post.id}", json={"reaction_type": "love"}, headers=auth_token)
    client.post(f"/api/posts/{hidden.id}/hide", headers=auth_token)

    posts = client.get("/api/posts/explore", params={"filter": "recent"}, headers=auth_token).json()["posts"]
    ids = [post["id"] for post in posts]
    assert hidden.id not in ids
    assert vanished.id not in ids
    assert len(ids) == 2
    by_id = {post["id"]: post for post in posts}
    assert by_id[test_post.id]["user_reaction"] == "love"
    assert by_id[test_post.id]["user_has_reacted"] is True

    anonymous = client.get("/api/posts/explore", params={"filter": "recent"}).json()["posts"]
    assert hidden.id in [post["id"] for post in anonymous]
