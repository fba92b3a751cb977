"""
Shared schema building blocks: camelCase base model, coordinates, result
envelope and pagination.
"""

from datetime import datetime
from typing import Annotated, Any, Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

T = TypeVar("T")


def _not_bool(value: Any) -> Any:
    # JSON true/false would otherwise coerce to 1.0/0.0
    if isinstance(value, bool):
        raise ValueError("Coordinate must be a number")
    return value


Longitude = Annotated[
    float, BeforeValidator(_not_bool), Field(ge=-180, le=180, allow_inf_nan=False)
]
Latitude = Annotated[
    float, BeforeValidator(_not_bool), Field(ge=-90, le=90, allow_inf_nan=False)
]


class CamelCaseModel(BaseModel):
    """Base model with camelCase serialization for API responses."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=lambda s: "".join(
            word.capitalize() if i else word for i, word in enumerate(s.split("_"))
        ),
    )


class PaginatedResponse(CamelCaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T]
    total: int
    page: int
    limit: int
    pages: int


class GeoPoint(CamelCaseModel):
    """GeoJSON point; coordinates are ``[longitude, latitude]``."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[Longitude, Latitude]

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

    @classmethod
    def of(cls, longitude: float, latitude: float) -> "GeoPoint":
        return cls(coordinates=(longitude, latitude))


class ErrorDetail(CamelCaseModel):
    """One entry of a failed result envelope."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class OperationResult(CamelCaseModel, Generic[T]):
    """Structured result returned by every core operation."""

    success: bool
    data: T | None = None
    errors: list[ErrorDetail] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready camelCase dict: ``{success, data}`` or ``{success, errors}``."""
        if self.success:
            return self.model_dump(
                mode="json", by_alias=True, include={"success", "data"}
            )
        return self.model_dump(
            mode="json", by_alias=True, exclude={"data"}, exclude_none=True
        )


class TimestampMixin(CamelCaseModel):
    """Mixin for created_at and updated_at fields."""

    created_at: datetime
    updated_at: datetime | None = None


class IDMixin(CamelCaseModel):
    """Mixin for UUID id field."""

    id: UUID
