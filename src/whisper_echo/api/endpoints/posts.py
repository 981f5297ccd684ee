# src/whisper_echo/api/endpoints/posts.py
"""Post, comment, explore and home feed endpoints."""

from fastapi import APIRouter, Query, status

from whisper_echo.core.settings import settings
from whisper_echo.schemas.common import Pagination, StatusResponse
from whisper_echo.schemas.feed import FeedResponse
from whisper_echo.schemas.post import (
    CommentCreate,
    CommentResponse,
    HiddenPostResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from whisper_echo.schemas.whisper import WhisperResponse
from whisper_echo.services import feed as feed_service
from whisper_echo.services import posts as post_service
from whisper_echo.services.notifications import push_notifications
from whisper_echo.services.reactions import comment_reaction_counts_for, current_reaction, viewer_reactions

from ..dependencies import CurrentUserDep, OptionalUserDep, RealtimeDep, SessionDep

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Create a post and advance the author's posting streak."""
    post = post_service.create_post(
        db,
        current_user,
        text=post_data.text,
        media=[item.model_dump() for item in post_data.media],
        category=post_data.category,
        tags=post_data.tags,
        visibility=post_data.visibility,
        disguise_avatar=post_data.disguise_avatar,
        vanish_enabled=post_data.vanish_enabled,
        vanish_duration=post_data.vanish_duration,
    )
    return PostResponse.build(post, author=current_user, viewer_id=current_user.id)


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> FeedResponse:
    """Home feed: own, echoed and preferred-category posts mixed with live whispers."""
    feed_page = feed_service.compose_feed(db, current_user, page=page, limit=limit)
    items: list[PostResponse | WhisperResponse] = []
    for entry in feed_page.entries:
        if entry.is_whisper:
            items.append(WhisperResponse.build(entry.item))
        else:
            items.append(
                PostResponse.build(
                    entry.item,
                    author=entry.author,
                    user_reaction=entry.user_reaction,
                    viewer_id=current_user.id,
                    is_outside_preferences=entry.is_outside_preferences,
                )
            )
    return FeedResponse(
        posts=items,
        pagination=Pagination(page=page, limit=limit, has_more=feed_page.has_more),
    )


@router.get("/explore", response_model=PostListResponse)
async def explore_posts(
    db: SessionDep,
    viewer: OptionalUserDep,
    filter: str = Query("trending", description="trending, recent or popular"),
    category: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PostListResponse:
    """Every visible post ranked by trending score, recency or reaction total."""
    viewer_id = viewer.id if viewer else None
    posts = post_service.explore_posts(
        db,
        viewer_id,
        order=filter,
        category=category,
        page=page,
        limit=limit,
    )
    reactions = viewer_reactions(db, [post.id for post in posts], viewer_id)
    authors = post_service.authors_by_id(db, posts)
    return PostListResponse(
        posts=[
            PostResponse.build(
                post,
                author=authors.get(post.author_id),
                user_reaction=reactions.get(post.id),
                viewer_id=viewer_id,
            )
            for post in posts
        ],
        pagination=Pagination(page=page, limit=limit, has_more=len(posts) == limit),
    )


@router.get("/user/{username}", response_model=PostListResponse)
async def list_user_posts(
    username: str,
    db: SessionDep,
    viewer: OptionalUserDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PostListResponse:
    author, posts, total = post_service.list_user_posts(db, username, page=page, limit=limit)
    viewer_id = viewer.id if viewer else None
    reactions = viewer_reactions(db, [post.id for post in posts], viewer_id)
    return PostListResponse(
        posts=[
            PostResponse.build(
                post,
                author=author,
                user_reaction=reactions.get(post.id),
                viewer_id=viewer_id,
            )
            for post in posts
        ],
        pagination=Pagination(page=page, limit=limit, total=total, has_more=page * limit < total),
    )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: SessionDep, viewer: OptionalUserDep) -> PostResponse:
    """Get a single visible post annotated with the caller's reaction."""
    post = post_service.get_post(db, post_id)
    author = post_service.authors_by_id(db, [post]).get(post.author_id)
    viewer_id = viewer.id if viewer else None
    user_reaction = current_reaction(db, post.id, viewer_id) if viewer_id is not None else None
    return PostResponse.build(post, author=author, user_reaction=user_reaction, viewer_id=viewer_id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    changes: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    post = post_service.update_post(db, post_id, current_user, changes.model_dump(exclude_unset=True))
    return PostResponse.build(
        post,
        author=current_user,
        user_reaction=current_reaction(db, post.id, current_user.id),
        viewer_id=current_user.id,
    )


@router.delete("/{post_id}", response_model=StatusResponse)
async def delete_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> StatusResponse:
    post_service.delete_post(db, post_id, current_user)
    return StatusResponse(message="Post deleted")


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> CommentResponse:
    comment, notification = post_service.add_comment(
        db,
        post_id,
        current_user,
        comment_data.content,
        is_anonymous=comment_data.is_anonymous,
    )
    await push_notifications(hub, db, [notification])
    return CommentResponse.build(comment, current_user)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: int, db: SessionDep) -> list[CommentResponse]:
    """Top-level comments with their reaction counts and number of replies."""
    rows = post_service.list_comments(db, post_id)
    comment_ids = [comment.id for comment, _ in rows]
    counts = comment_reaction_counts_for(db, comment_ids)
    replies = post_service.reply_counts(db, comment_ids)
    return [
        CommentResponse.build(comment, author, counts.get(comment.id), replies.get(comment.id, 0))
        for comment, author in rows
    ]


@router.post(
    "/{post_id}/comments/{comment_id}/replies",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_reply(
    post_id: int,
    comment_id: int,
    reply_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    hub: RealtimeDep,
) -> CommentResponse:
    """Reply to a top-level comment; the comment's author is notified."""
    reply, notification = post_service.add_reply(
        db,
        post_id,
        comment_id,
        current_user,
        reply_data.content,
        is_anonymous=reply_data.is_anonymous,
    )
    await push_notifications(hub, db, [notification])
    return CommentResponse.build(reply, current_user)


@router.get("/{post_id}/comments/{comment_id}/replies", response_model=list[CommentResponse])
async def list_replies(post_id: int, comment_id: int, db: SessionDep) -> list[CommentResponse]:
    rows = post_service.list_replies(db, post_id, comment_id)
    counts = comment_reaction_counts_for(db, [reply.id for reply, _ in rows])
    return [CommentResponse.build(reply, author, counts.get(reply.id)) for reply, author in rows]


@router.post("/{post_id}/hide", response_model=HiddenPostResponse)
async def hide_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> HiddenPostResponse:
    """Hide a post from the caller's feed and explore listings."""
    post_service.hide_post(db, post_id, current_user)
    return HiddenPostResponse(post_id=post_id, hidden=True)


@router.delete("/{post_id}/hide", response_model=HiddenPostResponse)
async def unhide_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> HiddenPostResponse:
    post_service.unhide_post(db, post_id, current_user)
    return HiddenPostResponse(post_id=post_id, hidden=False)
