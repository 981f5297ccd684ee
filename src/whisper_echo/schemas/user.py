"""User-related Pydantic schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from whisper_echo.models import User


class UserStats(BaseModel):
    """Derived counters shown on a profile."""

    karma_score: int = 0
    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_post_date: date | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationSettings(BaseModel):
    reactions: bool = True
    comments: bool = True
    followers: bool = True
    messages: bool = True


class ProfileResponse(BaseModel):
    """Public profile. Notification settings are only included for the owner."""

    id: int
    username: str
    avatar: str | None
    bio: str
    preferences: list[str]
    stats: UserStats
    created_at: datetime
    is_echoing: bool | None = None
    notification_settings: NotificationSettings | None = None
    allow_discovery: bool | None = None

    @classmethod
    def build(cls, user: User, *, is_echoing: bool | None = None, is_self: bool = False) -> "ProfileResponse":
        settings_block = None
        if is_self:
            settings_block = NotificationSettings(
                reactions=user.notify_reactions,
                comments=user.notify_comments,
                followers=user.notify_followers,
                messages=user.notify_messages,
            )
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            bio=user.bio or "",
            preferences=list(user.preferences or []),
            stats=UserStats.model_validate(user),
            created_at=user.created_at,
            is_echoing=is_echoing,
            notification_settings=settings_block,
            allow_discovery=user.allow_discovery if is_self else None,
        )


class ProfileUpdateRequest(BaseModel):
    """Schema for updating profile information. Omitted fields are left unchanged."""

    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=2048)
    preferences: list[str] | None = None
    notify_reactions: bool | None = None
    notify_comments: bool | None = None
    notify_followers: bool | None = None
    notify_messages: bool | None = None
    allow_discovery: bool | None = None


class EchoResponse(BaseModel):
    user_id: int
    is_echoing: bool
    followers_count: int


class DiscoverUser(BaseModel):
    """A suggested user with a shared category preference."""

    id: int
    username: str
    avatar: str | None
    bio: str
    preferences: list[str]
    stats: UserStats

    @classmethod
    def build(cls, user: User) -> "DiscoverUser":
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            bio=user.bio or "",
            preferences=list(user.preferences or []),
            stats=UserStats.model_validate(user),
        )


class DiscoverResponse(BaseModel):
    users: list[DiscoverUser]


class EchoTrailEntry(BaseModel):
    """Someone a user echoes, stripped of username, avatar and bio text."""

    id: int
    preferences: list[str]
    stats: UserStats
    has_avatar: bool
    bio_length: int
    joined_recently: bool


class EchoTrailResponse(BaseModel):
    trails: list[EchoTrailEntry]
    count: int
