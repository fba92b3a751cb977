"""
Unit tests for per-role rate limiting.

Redis is replaced by a mock pipeline; no server is needed.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from coastwatch.api.ratelimit import (
    RATE_LIMIT_PREFIX,
    RateLimitExceededError,
    enforce_rate_limit,
    rate_limit_key,
    record_request,
)
from coastwatch.config import RateLimitRule
from coastwatch.db.models import UserRole
from coastwatch.services.policy import Identity

RULES = {
    "citizen": RateLimitRule(window_seconds=900, max_requests=50),
    "admin": RateLimitRule(window_seconds=900, max_requests=500),
}


def _redis_returning(count: int) -> MagicMock:
    """Mock Redis whose pipeline reports ``count`` after INCR."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


class TestRateLimitKey:
    """Tests for rate_limit_key()."""

    def test_key_includes_role_subject_and_window(self, citizen):
        key = rate_limit_key(citizen, 900, now=1800.0)
        assert key == f"{RATE_LIMIT_PREFIX}citizen:{citizen.subject_id}:2"

    def test_same_window_same_key(self, citizen):
        assert rate_limit_key(citizen, 900, 1800.0) == rate_limit_key(citizen, 900, 2699.9)

    def test_next_window_new_key(self, citizen):
        assert rate_limit_key(citizen, 900, 1800.0) != rate_limit_key(citizen, 900, 2700.0)


class TestRecordRequest:
    """Tests for record_request()."""

    @pytest.mark.asyncio
    async def test_no_redis_is_noop(self, citizen):
        assert await record_request(None, citizen, RULES) is None

    @pytest.mark.asyncio
    async def test_role_without_rule_is_noop(self, verifier):
        redis = _redis_returning(1)
        assert await record_request(redis, verifier, RULES) is None
        redis.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_counts_and_sets_expiry(self, citizen):
        redis = _redis_returning(3)

        status = await record_request(redis, citizen, RULES, now=1000.0)

        pipe = redis.pipeline.return_value
        key = rate_limit_key(citizen, 900, 1000.0)
        pipe.incr.assert_called_once_with(key)
        pipe.expire.assert_called_once_with(key, 900)
        assert status.count == 3
        assert status.remaining == 47
        assert status.allowed
        assert status.retry_after == 900 - 100


class TestEnforceRateLimit:
    """Tests for enforce_rate_limit()."""

    @pytest.mark.asyncio
    async def test_last_request_in_budget_passes(self, citizen):
        status = await enforce_rate_limit(_redis_returning(50), citizen, RULES)
        assert status.allowed
        assert status.remaining == 0

    @pytest.mark.asyncio
    async def test_over_budget_raises(self, citizen):
        with pytest.raises(RateLimitExceededError) as exc_info:
            await enforce_rate_limit(_redis_returning(51), citizen, RULES, now=1000.0)

        err = exc_info.value
        assert err.code == "rate_limited"
        assert err.limit == 50
        assert err.retry_after == 800

    @pytest.mark.asyncio
    async def test_budget_depends_on_role(self):
        admin = Identity(subject_id=uuid.uuid4(), role=UserRole.admin)
        status = await enforce_rate_limit(_redis_returning(51), admin, RULES)
        assert status.allowed
