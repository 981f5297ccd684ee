# src/whisper_echo/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import MessageCreate, MessageEdit, MessageResponse
from .common import MediaItem, Pagination, ReactionCounts, UserSummary
from .feed import FeedResponse
from .notification import NotificationListResponse, NotificationResponse
from .post import CommentCreate, CommentResponse, PostCreate, PostResponse, PostUpdate
from .reaction import ReactionCreate, ReactionResponse
from .user import ProfileResponse, ProfileUpdateRequest
from .whisper import WhisperCreate, WhisperResponse

__all__ = [
    "MessageCreate", "MessageEdit", "MessageResponse",
    "MediaItem", "Pagination", "ReactionCounts", "UserSummary",
    "FeedResponse",
    "NotificationListResponse", "NotificationResponse",
    "CommentCreate", "CommentResponse", "PostCreate", "PostResponse", "PostUpdate",
    "ReactionCreate", "ReactionResponse",
    "ProfileResponse", "ProfileUpdateRequest",
    "WhisperCreate", "WhisperResponse",
]
