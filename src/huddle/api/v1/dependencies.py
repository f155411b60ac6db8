"""Shared API dependencies for authentication and the realtime router."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from huddle.core.security import decode_access_token
from huddle.core.settings import settings
from huddle.db.session import SessionLocal, get_db
from huddle.models import User
from huddle.realtime import PresenceRouter
from huddle.services import (
    ConversationPeersAudience,
    JwtIdentityVerifier,
    SqlMembershipResolver,
    SqlMessageStore,
)

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


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
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.query(User).filter(User.id == subject, User.is_active.is_(True)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def build_presence_router() -> PresenceRouter:
    """Assemble the realtime router from the configured collaborators."""
    presence_audience = (
        ConversationPeersAudience(SessionLocal) if settings.presence_scope == "scoped" else None
    )
    return PresenceRouter(
        JwtIdentityVerifier(),
        SqlMessageStore(SessionLocal),
        membership=SqlMembershipResolver(SessionLocal),
        presence_audience=presence_audience,
        presence_scope=settings.presence_scope,
        read_receipt_scope=settings.read_receipt_scope,
        handshake_timeout=settings.handshake_timeout_seconds,
        max_pending=settings.outbound_queue_size,
    )


def get_presence_router(connection: HTTPConnection) -> PresenceRouter:
    """Return the router created at application startup."""
    router: PresenceRouter | None = getattr(connection.app.state, "presence_router", None)
    if router is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime gateway is not running",
        )
    return router


PresenceRouterDep = Annotated[PresenceRouter, Depends(get_presence_router)]
