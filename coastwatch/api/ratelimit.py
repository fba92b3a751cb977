"""
Per-role request rate limiting.

Fixed-window counters in Redis keyed by role, subject and window index.
When no Redis client is configured the limiter is a no-op.
"""

import time
from dataclasses import dataclass

from redis.asyncio import Redis

from coastwatch.config import RateLimitRule, get_logger
from coastwatch.db.models import UserRole
from coastwatch.exceptions import CoastwatchError
from coastwatch.services.policy import Identity

logger = get_logger(__name__)

# Redis key prefix for per-role request counters
RATE_LIMIT_PREFIX = "rate:role:"


class RateLimitExceededError(CoastwatchError):
    """Raised when a caller has used up the budget of the current window."""

    code = "rate_limited"

    def __init__(self, limit: int, retry_after: int) -> None:
        super().__init__(
            "Too many requests. Try again later.",
            details={"limit": limit, "retry_after": retry_after},
        )
        self.limit = limit
        self.retry_after = retry_after


@dataclass(frozen=True)
class RateLimitStatus:
    """Counter state after recording one request."""

    limit: int
    count: int
    retry_after: int

    @property
    def allowed(self) -> bool:
        return self.count <= self.limit

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


def rate_limit_key(identity: Identity, window_seconds: int, now: float) -> str:
    """Counter key for the window containing ``now``."""
    role = identity.role.value if isinstance(identity.role, UserRole) else identity.role
    window_index = int(now // window_seconds)
    return f"{RATE_LIMIT_PREFIX}{role}:{identity.subject_id}:{window_index}"


async def record_request(
    redis: Redis | None,
    identity: Identity,
    rules: dict[str, RateLimitRule],
    *,
    now: float | None = None,
) -> RateLimitStatus | None:
    """
    Count one request against the caller's role budget.

    Args:
        redis: Async Redis client, or None to skip limiting.
        identity: Authenticated caller.
        rules: Role name -> window rule.
        now: Unix time override (tests).

    Returns:
        RateLimitStatus, or None if limiting does not apply.
    """
    if redis is None:
        return None

    role = identity.role.value if isinstance(identity.role, UserRole) else identity.role
    rule = rules.get(role)
    if rule is None:
        return None

    ts = time.time() if now is None else now
    key = rate_limit_key(identity, rule.window_seconds, ts)

    pipe = redis.pipeline()
    pipe.incr(key)
    pipe.expire(key, rule.window_seconds)
    count, _ = await pipe.execute()

    return RateLimitStatus(
        limit=rule.max_requests,
        count=int(count),
        retry_after=rule.window_seconds - int(ts % rule.window_seconds),
    )


async def enforce_rate_limit(
    redis: Redis | None,
    identity: Identity,
    rules: dict[str, RateLimitRule],
    *,
    now: float | None = None,
) -> RateLimitStatus | None:
    """
    Record a request and raise once the window budget is exceeded.

    Raises:
        RateLimitExceededError: If the caller is over budget.
    """
    status = await record_request(redis, identity, rules, now=now)
    if status is not None and not status.allowed:
        logger.warning(
            "Rate limit exceeded",
            subject_id=str(identity.subject_id),
            role=getattr(identity.role, "value", identity.role),
            limit=status.limit,
        )
        raise RateLimitExceededError(status.limit, status.retry_after)
    return status
