"""
FastAPI dependency injection.

Provides reusable dependencies for routes:
- Database sessions
- Redis connections (optional)
- Authentication into an Identity
- Per-role rate limiting
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from coastwatch.api.ratelimit import enforce_rate_limit
from coastwatch.config import bind_context, get_settings
from coastwatch.db import get_session
from coastwatch.db.queries import get_user_by_id
from coastwatch.db.session import translate_storage_errors
from coastwatch.exceptions import AuthenticationError
from coastwatch.schemas.base import OperationResult
from coastwatch.services.auth import identity_from_token
from coastwatch.services.policy import Identity

security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields an async database session.

    Handles rollback on error; routes commit explicitly after a successful
    write.

    Yields:
        AsyncSession instance.
    """
    async with get_session() as session:
        yield session


async def get_redis(request: Request) -> Redis | None:
    """
    Dependency that returns the Redis connection from app state.

    Returns:
        Redis client instance, or None when Redis is not configured.
    """
    return getattr(request.app.state, "redis", None)


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Identity:
    """
    Dependency that resolves the bearer token into an Identity.

    The role is taken from the stored user rather than the token, so role
    changes apply without re-issuing tokens.

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            no longer exists or is not active.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    token_identity = identity_from_token(credentials.credentials)

    user = await get_user_by_id(db, token_identity.subject_id)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError(
            "Account is not active",
            details={"status": user.status.value},
        )

    bind_context(subject_id=str(user.id), role=user.role.value)
    return Identity(subject_id=user.id, role=user.role)


async def get_rate_limited_identity(
    identity: Annotated[Identity, Depends(get_current_identity)],
    redis: Annotated[Redis | None, Depends(get_redis)],
) -> Identity:
    """
    Dependency that authenticates and then counts the request against the
    caller's role budget.

    Raises:
        RateLimitExceededError: If the budget for the current window is used up.
    """
    await enforce_rate_limit(redis, identity, get_settings().role_rate_limits)
    return identity


async def commit_on_success(db: AsyncSession, result: OperationResult[Any]) -> None:
    """Commit the request's session if the operation succeeded."""
    if result.success:
        with translate_storage_errors():
            await db.commit()


# Type aliases for cleaner route signatures
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentIdentity = Annotated[Identity, Depends(get_rate_limited_identity)]
