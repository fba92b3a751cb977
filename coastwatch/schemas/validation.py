"""
Explicit input validation.

Every write and query path runs its input through one of these functions
before touching storage. Pydantic performs the enum, range and length checks;
failures are re-raised as the core's ValidationError with one entry per field.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from coastwatch.exceptions import NotFoundError, ValidationError
from coastwatch.schemas.geo import BoundingBox, RadiusSearch, SpatialSpec
from coastwatch.schemas.reports import ReportDraft

ModelT = TypeVar("ModelT", bound=BaseModel)
EnumT = TypeVar("EnumT", bound=Enum)


def field_errors_from_pydantic(exc: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{"field", "message"}`` entries."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        errors.append({"field": field, "message": err.get("msg", "Invalid value")})
    return errors


def validate_model(
    model_cls: type[ModelT],
    data: ModelT | Mapping[str, Any],
    *,
    message: str = "Validation failed",
) -> ModelT:
    """Validate ``data`` as ``model_cls``; pass through already-built instances."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(message, field_errors_from_pydantic(e)) from e


def validate_report_draft(data: ReportDraft | Mapping[str, Any]) -> ReportDraft:
    """
    Validate a report submission.

    Checks the hazard type and severity against their closed sets, the
    description length after trimming, and the coordinate ranges.

    Raises:
        ValidationError: With one entry per offending field.
    """
    return validate_model(ReportDraft, data, message="Invalid report")


def parse_entity_id(entity_id: UUID | str, entity: str) -> UUID:
    """
    Coerce a path identifier into a UUID.

    Malformed identifiers cannot name any row, so they surface as
    NotFoundError rather than a validation failure.
    """
    if isinstance(entity_id, UUID):
        return entity_id
    try:
        return UUID(str(entity_id))
    except ValueError:
        raise NotFoundError(entity, entity_id) from None


def parse_report_id(report_id: UUID | str) -> UUID:
    return parse_entity_id(report_id, "Report")


def parse_bounds(text: str) -> BoundingBox:
    """
    Parse ``"swLng,swLat,neLng,neLat"`` into a BoundingBox.

    Raises:
        ValidationError: If the string is malformed or out of range.
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise ValidationError.for_field(
            "bounds", "Bounds must be four comma-separated numbers"
        )
    try:
        sw_lng, sw_lat, ne_lng, ne_lat = (float(p) for p in parts)
    except ValueError:
        raise ValidationError.for_field(
            "bounds", "Bounds must be four comma-separated numbers"
        ) from None
    return validate_model(
        BoundingBox,
        {"sw_lng": sw_lng, "sw_lat": sw_lat, "ne_lng": ne_lng, "ne_lat": ne_lat},
        message="Invalid bounds",
    )


def build_spatial_spec(
    *,
    bounds: str | BoundingBox | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float | None = None,
    max_radius_km: float | None = None,
) -> SpatialSpec:
    """
    Resolve map query parameters into exactly one spatial filter (or none).

    A bounding box and a radius search cannot be combined, and a radius search
    needs all of latitude, longitude and radius.
    """
    radius_parts = {"lat": latitude, "lng": longitude, "radius": radius_km}
    given = {k for k, v in radius_parts.items() if v is not None}

    if bounds is not None and given:
        raise ValidationError.for_field(
            "bounds", "Use either bounds or lat/lng/radius, not both"
        )

    if bounds is not None:
        if isinstance(bounds, BoundingBox):
            return bounds
        return parse_bounds(bounds)

    if not given:
        return None

    missing = sorted(set(radius_parts) - given)
    if missing:
        raise ValidationError(
            "Radius search needs lat, lng and radius",
            [{"field": f, "message": "Required for radius search"} for f in missing],
        )

    spec = validate_model(
        RadiusSearch,
        {"longitude": longitude, "latitude": latitude, "radius_km": radius_km},
        message="Invalid radius search",
    )
    if max_radius_km is not None and spec.radius_km > max_radius_km:
        raise ValidationError.for_field(
            "radius", f"Radius must not exceed {max_radius_km:g} km"
        )
    return spec


def validate_pagination(page: int, limit: int, *, max_limit: int) -> tuple[int, int]:
    """
    Check page/limit and clamp limit to the server cap.

    Returns:
        Tuple of (page, effective_limit).
    """
    errors = []
    if page < 1:
        errors.append({"field": "page", "message": "Page must be at least 1"})
    if limit < 1:
        errors.append({"field": "limit", "message": "Limit must be at least 1"})
    if errors:
        raise ValidationError("Invalid pagination", errors)
    return page, min(limit, max_limit)


def parse_enum(
    enum_cls: type[EnumT],
    value: EnumT | str | None,
    field: str,
) -> EnumT | None:
    """
    Coerce an optional filter value into ``enum_cls``.

    Raises:
        ValidationError: If ``value`` is not a member of the closed set.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError.for_field(
            field, f"Unknown {field} '{value}' (expected one of {allowed})"
        ) from None
