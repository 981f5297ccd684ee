# src/whisper_echo/api/endpoints/__init__.py
"""API endpoint modules."""

from .chat import router as chat_router
from .posts import router as posts_router
from .reactions import router as reactions_router
from .realtime import router as realtime_router
from .users import router as users_router
from .whisperwall import router as whisperwall_router

__all__ = [
    "chat_router",
    "posts_router",
    "reactions_router",
    "realtime_router",
    "users_router",
    "whisperwall_router",
]
