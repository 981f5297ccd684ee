# src/whisper_echo/api/endpoints/users.py
"""Profile, echo (follow), discovery and notification endpoints."""

from fastapi import APIRouter, Query

from whisper_echo.models import User
from whisper_echo.schemas.common import MarkReadResponse, UserSummary
from whisper_echo.schemas.notification import (
    NotificationListResponse,
    NotificationMarkRead,
    NotificationResponse,
)
from whisper_echo.schemas.user import (
    DiscoverResponse,
    DiscoverUser,
    EchoResponse,
    EchoTrailEntry,
    EchoTrailResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    UserStats,
)
from whisper_echo.services import notifications as notification_service
from whisper_echo.services import users as user_service
from whisper_echo.services.notifications import push_notifications

from ..dependencies import CurrentUserDep, OptionalUserDep, RealtimeDep, SessionDep

router = APIRouter(prefix="/user", tags=["users"])


@router.get("/profile/{username}", response_model=ProfileResponse)
async def get_profile(username: str, db: SessionDep, viewer: OptionalUserDep) -> ProfileResponse:
    user = user_service.get_profile(db, username)
    is_self = viewer is not None and viewer.id == user.id
    is_echoing = None
    if viewer is not None and not is_self:
        is_echoing = user_service.is_echoing(db, viewer.id, user.id)
    return ProfileResponse.build(user, is_echoing=is_echoing, is_self=is_self)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    profile_data: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ProfileResponse:
    """Update the caller's bio, avatar, preferences, notification and discovery settings."""
    user = user_service.update_profile(db, current_user, profile_data.model_dump(exclude_unset=True))
    return ProfileResponse.build(user, is_self=True)


@router.post("/echo/{user_id}", response_model=EchoResponse)
async def echo_user(user_id: int, current_user: CurrentUserDep, db: SessionDep, hub: RealtimeDep) -> EchoResponse:
    """Start echoing (following) a user."""
    target, notification = user_service.echo(db, current_user, user_id)
    await push_notifications(hub, db, [notification])
    return EchoResponse(user_id=target.id, is_echoing=True, followers_count=target.followers_count)


@router.delete("/echo/{user_id}", response_model=EchoResponse)
async def unecho_user(user_id: int, current_user: CurrentUserDep, db: SessionDep) -> EchoResponse:
    target = user_service.unecho(db, current_user, user_id)
    return EchoResponse(user_id=target.id, is_echoing=False, followers_count=target.followers_count)


@router.get("/discover", response_model=DiscoverResponse)
async def discover_users(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(10, ge=1, le=50),
) -> DiscoverResponse:
    """Suggest users who share a preferred category and are not echoed yet."""
    users = user_service.discover_users(db, current_user, limit=limit)
    return DiscoverResponse(users=[DiscoverUser.build(user) for user in users])


@router.get("/echo-trails/{user_id}", response_model=EchoTrailResponse)
async def get_echo_trails(user_id: int, current_user: CurrentUserDep, db: SessionDep) -> EchoTrailResponse:
    """Anonymized view of who a user echoes."""
    trails = [
        EchoTrailEntry(
            id=user.id,
            preferences=list(user.preferences or []),
            stats=UserStats.model_validate(user),
            has_avatar=bool(user.avatar),
            bio_length=len(user.bio or ""),
            joined_recently=user_service.joined_recently(user),
        )
        for user in user_service.echo_trail(db, user_id)
    ]
    return EchoTrailResponse(trails=trails, count=len(trails))


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(current_user: CurrentUserDep, db: SessionDep) -> NotificationListResponse:
    items, unread = notification_service.list_notifications(db, current_user.id)
    actor_ids = {item.actor_id for item in items if item.actor_id is not None}
    actors = {user.id: user for user in db.query(User).filter(User.id.in_(actor_ids)).all()} if actor_ids else {}
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                id=item.id,
                type=item.type,
                actor=UserSummary.model_validate(actors[item.actor_id]) if item.actor_id in actors else None,
                post_id=item.post_id,
                comment_id=item.comment_id,
                message_id=item.message_id,
                reaction_type=item.reaction_type,
                excerpt=item.excerpt,
                read=item.read,
                created_at=item.created_at,
            )
            for item in items
        ],
        unread_count=unread,
    )


@router.post("/notifications/read", response_model=MarkReadResponse)
async def mark_notifications_read(
    current_user: CurrentUserDep,
    db: SessionDep,
    body: NotificationMarkRead | None = None,
) -> MarkReadResponse:
    ids = body.ids if body is not None else None
    return MarkReadResponse(updated=notification_service.mark_notifications_read(db, current_user.id, ids))
