"""API Dependencies for dependency injection."""

from collections.abc import Generator
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storyloom.core.config import settings
from storyloom.core.exceptions import AuthenticationError
from storyloom.core.rate_limit import FixedWindowRateLimiter
from storyloom.db.base import SessionLocal
from storyloom.db.types import as_uuid
from storyloom.models.user import User
from storyloom.services.auth import AuthService
from storyloom.services.generation_client import GenerationClient


# auto_error=False so a missing header is reported through our own 401 envelope
security = HTTPBearer(auto_error=False)

auth_rate_limiter = FixedWindowRateLimiter(
    "auth",
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many authentication attempts. Please try again later.",
)
ai_rate_limiter = FixedWindowRateLimiter(
    "ai",
    max_requests=settings.AI_RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.AI_RATE_LIMIT_WINDOW_SECONDS,
    message="Too many AI requests. Please try again later.",
)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def client_ip(request: Request) -> str:
    """Peer address of the connection.

    Forwarded headers are not read here; behind a proxy, run uvicorn with
    ``--proxy-headers`` and ``--forwarded-allow-ips`` so the peer is the real client.
    """
    return request.client.host if request.client else "unknown"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user."""
    if not credentials:
        raise AuthenticationError("Access denied. No token provided.")

    token = credentials.credentials
    if not token or token in ("undefined", "null"):
        raise AuthenticationError("Invalid token format")

    token_data = AuthService.verify_token(token)
    if not token_data:
        raise AuthenticationError("Invalid or expired token")

    user = db.query(User).filter(User.id == as_uuid(token_data.user_id)).first()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid token or user not found")

    return user


def get_generation_client(request: Request) -> GenerationClient:
    """The client built at start-up and kept on ``app.state``."""
    return request.app.state.generation_client


def limit_auth_attempts(request: Request) -> None:
    """Per-IP limit on register and login."""
    auth_rate_limiter.hit(client_ip(request))


async def limit_ai_requests(
    current_user: User = Depends(get_current_user),
) -> User:
    """Per-user limit on generation endpoints; returns the authenticated user."""
    ai_rate_limiter.hit(str(current_user.id))
    return current_user
