"""
Shared pytest configuration for CoastWatch.

Environment variables are set BEFORE any coastwatch.* import so the cached
settings pick them up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-that-is-at-least-32-chars!!")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.pop("REDIS_URL", None)

# Clear lru_cache so settings picks up test env vars
from coastwatch.config.settings import get_settings  # noqa: E402

get_settings.cache_clear()
