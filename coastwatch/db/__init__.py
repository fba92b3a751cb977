"""CoastWatch database module."""

from coastwatch.db.models import (
    Base,
    HazardType,
    Report,
    ReportStatus,
    Severity,
    User,
    UserRole,
    UserStatus,
)
from coastwatch.db.session import (
    close_db,
    get_session,
    health_check,
    init_db,
)

__all__ = [
    # Base
    "Base",
    # Models
    "Report",
    "User",
    # Enums
    "HazardType",
    "Severity",
    "ReportStatus",
    "UserRole",
    "UserStatus",
    # Session
    "init_db",
    "close_db",
    "get_session",
    "health_check",
]
