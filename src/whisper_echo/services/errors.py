"""Domain errors raised by the service layer.

The API layer maps each subclass to an HTTP status; services never import
FastAPI themselves.
"""
from __future__ import annotations


class DomainError(Exception):
    """Base class for errors that carry a client-facing message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(DomainError):
    """Input was missing or outside an accepted range."""

    status_code = 400


class NotFound(DomainError):
    """A referenced post, user, comment or message does not exist."""

    status_code = 404


class Forbidden(DomainError):
    """The caller may not act on another user's resource."""

    status_code = 403
