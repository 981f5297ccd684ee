"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from whisper_echo.core.security import decode_subject
from whisper_echo.db.session import get_db, get_session_factory
from whisper_echo.models import User
from whisper_echo.services.realtime import RealtimeHub
from whisper_echo.services.whispers import whisper_session_id

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    user_id = decode_subject(credentials.credentials)
    if user_id is None:
        raise _credentials_error()
    user = db.get(User, user_id)
    if user is None:
        raise _credentials_error("User not found")
    return user


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Return the caller when a valid token is supplied, otherwise None."""
    if credentials is None:
        return None
    user_id = decode_subject(credentials.credentials)
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_realtime_hub(request: Request) -> RealtimeHub:
    """Return the hub constructed at application startup."""
    return request.app.state.realtime


def get_whisper_session(
    request: Request,
    x_whisper_session: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the anonymous session id used for whisper reactions and comments."""
    client_host = request.client.host if request.client else None
    return whisper_session_id(x_whisper_session, client_host, request.headers.get("user-agent"))


# Type aliases for dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
RealtimeDep = Annotated[RealtimeHub, Depends(get_realtime_hub)]
WhisperSessionDep = Annotated[str, Depends(get_whisper_session)]
