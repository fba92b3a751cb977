"""CoastWatch schemas."""

from coastwatch.schemas.analytics import DailyCount, DashboardStats
from coastwatch.schemas.base import (
    CamelCaseModel,
    ErrorDetail,
    GeoPoint,
    IDMixin,
    OperationResult,
    PaginatedResponse,
    TimestampMixin,
)
from coastwatch.schemas.geo import BoundingBox, MapReport, RadiusSearch, SpatialSpec
from coastwatch.schemas.reports import (
    ReportDraft,
    ReportPage,
    ReportResponse,
    VerificationRequest,
)
from coastwatch.schemas.users import (
    LoginRequest,
    TokenResponse,
    UserPage,
    UserRegistration,
    UserResponse,
)

__all__ = [
    # Base
    "CamelCaseModel",
    "ErrorDetail",
    "GeoPoint",
    "IDMixin",
    "OperationResult",
    "PaginatedResponse",
    "TimestampMixin",
    # Reports
    "ReportDraft",
    "ReportPage",
    "ReportResponse",
    "VerificationRequest",
    # Geo
    "BoundingBox",
    "MapReport",
    "RadiusSearch",
    "SpatialSpec",
    # Analytics
    "DailyCount",
    "DashboardStats",
    # Users
    "LoginRequest",
    "TokenResponse",
    "UserPage",
    "UserRegistration",
    "UserResponse",
]
