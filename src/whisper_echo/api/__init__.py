# src/whisper_echo/api/__init__.py
"""HTTP and WebSocket API for whisper-echo."""

from .endpoints import (
    chat_router,
    posts_router,
    reactions_router,
    realtime_router,
    users_router,
    whisperwall_router,
)

__all__ = [
    "chat_router",
    "posts_router",
    "reactions_router",
    "realtime_router",
    "users_router",
    "whisperwall_router",
]
