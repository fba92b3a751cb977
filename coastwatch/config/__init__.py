"""CoastWatch configuration module."""

from coastwatch.config.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from coastwatch.config.settings import RateLimitRule, Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "RateLimitRule",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
