"""
Pydantic schemas for hazard reports.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from coastwatch.db.models import HazardType, Report, ReportStatus, Severity
from coastwatch.schemas.base import (
    CamelCaseModel,
    GeoPoint,
    IDMixin,
    PaginatedResponse,
    TimestampMixin,
)

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000


class ReportDraft(CamelCaseModel):
    """A report as submitted, before the store assigns identity and status."""

    hazard_type: HazardType
    severity: Severity
    description: str = Field(
        ...,
        min_length=DESCRIPTION_MIN_LENGTH,
        max_length=DESCRIPTION_MAX_LENGTH,
    )
    location: GeoPoint
    media_reference: str | None = Field(None, max_length=500)

    model_config = CamelCaseModel.model_config | {
        "str_strip_whitespace": True,
        "extra": "ignore",
    }


class VerificationRequest(CamelCaseModel):
    """Optional body for verify/reject."""

    reason: str | None = Field(None, max_length=500)

    model_config = CamelCaseModel.model_config | {"str_strip_whitespace": True}


class ReportResponse(IDMixin, TimestampMixin):
    """Full report."""

    reporter_id: UUID
    hazard_type: HazardType
    severity: Severity
    description: str
    location: GeoPoint
    media_reference: str | None = None
    status: ReportStatus
    verifier_id: UUID | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None

    @classmethod
    def from_model(cls, report: Report) -> "ReportResponse":
        return cls(
            id=report.id,
            reporter_id=report.reporter_id,
            hazard_type=report.hazard_type,
            severity=report.severity,
            description=report.description,
            location=GeoPoint.of(report.longitude, report.latitude),
            media_reference=report.media_reference,
            status=report.status,
            verifier_id=report.verifier_id,
            verified_at=report.verified_at,
            rejection_reason=report.rejection_reason,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )


class ReportPage(PaginatedResponse[ReportResponse]):
    """Paginated list of reports."""

    pass
