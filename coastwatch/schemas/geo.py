"""
Pydantic schemas for spatial search.
"""

from uuid import UUID

from pydantic import Field, model_validator

from coastwatch.db.models import HazardType, ReportStatus, Severity
from coastwatch.schemas.base import CamelCaseModel, GeoPoint, Latitude, Longitude


class BoundingBox(CamelCaseModel):
    """Axis-aligned lng/lat rectangle, inclusive on every edge."""

    sw_lng: Longitude
    sw_lat: Latitude
    ne_lng: Longitude
    ne_lat: Latitude

    @model_validator(mode="after")
    def check_corners(self) -> "BoundingBox":
        if self.sw_lat > self.ne_lat:
            raise ValueError("south-west latitude must not exceed north-east one")
        if self.sw_lng > self.ne_lng:
            raise ValueError("south-west longitude must not exceed north-east one")
        return self

    def contains(self, longitude: float, latitude: float) -> bool:
        return (
            self.sw_lng <= longitude <= self.ne_lng
            and self.sw_lat <= latitude <= self.ne_lat
        )


class RadiusSearch(CamelCaseModel):
    """Center point plus great-circle radius in kilometers."""

    longitude: Longitude
    latitude: Latitude
    radius_km: float = Field(..., gt=0, allow_inf_nan=False)


SpatialSpec = BoundingBox | RadiusSearch | None


class MapReport(CamelCaseModel):
    """Slim projection used by map views."""

    id: UUID
    location: GeoPoint
    severity: Severity
    status: ReportStatus
    hazard_type: HazardType
