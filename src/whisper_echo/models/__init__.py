# src/whisper_echo/models/__init__.py
"""SQLAlchemy models for the whisper-echo application."""

from .conversation import ChatMessage, Conversation, MessageReaction, MessageRead
from .notification import Notification
from .post import Comment, HiddenPost, Post
from .reaction import CommentReaction, PostReaction
from .user import Follow, User
from .whisper import WhisperComment, WhisperPost, WhisperReaction

__all__ = [
    "ChatMessage", "Conversation", "MessageReaction", "MessageRead",
    "Notification",
    "Comment", "HiddenPost", "Post",
    "CommentReaction", "PostReaction",
    "Follow", "User",
    "WhisperComment", "WhisperPost", "WhisperReaction",
]
