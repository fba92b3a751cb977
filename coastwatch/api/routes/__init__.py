"""CoastWatch API routes."""

from coastwatch.api.routes import analytics, auth, maps, reports, users

__all__ = [
    "analytics",
    "auth",
    "maps",
    "reports",
    "users",
]
