# src/whisper_echo/schemas/feed.py
"""Home feed Pydantic schemas."""

from pydantic import BaseModel

from .common import Pagination
from .post import PostResponse
from .whisper import WhisperResponse


class FeedResponse(BaseModel):
    """Regular and whisper posts merged newest first."""

    posts: list[PostResponse | WhisperResponse]
    pagination: Pagination
