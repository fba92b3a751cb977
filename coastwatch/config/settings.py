"""
Application settings loaded from environment variables.

Uses Pydantic Settings for validation and type coercion.
Never log or expose sensitive values.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitRule(BaseModel):
    """Fixed-window request budget for one role."""

    window_seconds: int = Field(..., gt=0)
    max_requests: int = Field(..., gt=0)


def _default_role_rate_limits() -> dict[str, RateLimitRule]:
    window = 15 * 60
    return {
        "citizen": RateLimitRule(window_seconds=window, max_requests=50),
        "verifier": RateLimitRule(window_seconds=window, max_requests=100),
        "analyst": RateLimitRule(window_seconds=window, max_requests=200),
        "admin": RateLimitRule(window_seconds=window, max_requests=500),
    }


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "CoastWatch"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database
    database_url: SecretStr = Field(
        ...,
        description="SQLAlchemy async connection string (asyncpg in deployment)",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure PostgreSQL URLs use the asyncpg driver."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Redis (rate limiting only; disabled when unset)
    redis_url: SecretStr | None = Field(
        default=None,
        description="Redis connection string",
    )

    # Security
    jwt_secret: SecretStr = Field(
        ...,
        description="256-bit secret for JWT signing",
        min_length=32,
    )
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24 * 7

    # Query limits
    default_page_size: int = Field(10, ge=1)
    max_page_size: int = Field(500, ge=1)
    map_result_limit: int = Field(500, ge=1)
    max_radius_km: float = Field(100.0, gt=0)

    # Rate Limiting (role -> window/budget)
    role_rate_limits: dict[str, RateLimitRule] = Field(
        default_factory=_default_role_rate_limits,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    workers: int = 4
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8081"],
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings()
