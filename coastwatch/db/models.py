"""
SQLAlchemy 2.0 async models for the CoastWatch database.

Uses mapped_column syntax with full type hints. Report locations are kept as
two double-precision columns under a composite B-tree index, which serves
bounding-box range scans and the candidate scan for radius searches on both
PostgreSQL and SQLite.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Double,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)


# =============================================================================
# Enum Types
# =============================================================================


class HazardType(str, PyEnum):
    """Closed set of coastal and ocean hazard kinds."""

    flood = "flood"
    high_waves = "high-waves"
    coastal_erosion = "coastal-erosion"
    storm_surge = "storm-surge"
    tsunami = "tsunami"
    oil_spill = "oil-spill"
    marine_debris = "marine-debris"
    red_tide = "red-tide"
    infrastructure_damage = "infrastructure-damage"
    other = "other"


class Severity(str, PyEnum):
    """Severity levels for triage."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class ReportStatus(str, PyEnum):
    """Report verification status."""

    pending = "pending"
    verified = "verified"
    rejected = "rejected"


class UserRole(str, PyEnum):
    """Roles consumed by the policy engine."""

    citizen = "citizen"
    verifier = "verifier"
    analyst = "analyst"
    admin = "admin"


class UserStatus(str, PyEnum):
    """Account status."""

    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    pending = "pending"


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    # Stored as VARCHAR holding the enum *values* ("high-waves"), not names.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda e: [x.value for x in e],
    )


# =============================================================================
# Column Types
# =============================================================================


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """
    DateTime that always comes back timezone-aware in UTC.

    SQLite drops tzinfo on round-trip; values are normalized to UTC on the way
    in and re-tagged on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


# =============================================================================
# Base Model
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Registered accounts: citizens, verifiers, analysts and admins."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        _enum_column(UserRole, "user_role"),
        default=UserRole.citizen,
        nullable=False,
    )
    status: Mapped[UserStatus] = mapped_column(
        _enum_column(UserStatus, "user_status"),
        default=UserStatus.active,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active


class Report(Base):
    """Geotagged hazard reports submitted by field observers."""

    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint(
            "longitude >= -180 AND longitude <= 180",
            name="valid_longitude",
        ),
        CheckConstraint(
            "latitude >= -90 AND latitude <= 90",
            name="valid_latitude",
        ),
        CheckConstraint(
            "(status = 'pending' AND verifier_id IS NULL AND verified_at IS NULL)"
            " OR (status <> 'pending' AND verifier_id IS NOT NULL"
            " AND verified_at IS NOT NULL)",
            name="verification_consistency",
        ),
        Index("idx_reports_location", "longitude", "latitude"),
        Index("idx_reports_status_created", "status", "created_at"),
        Index("idx_reports_hazard_created", "hazard_type", "created_at"),
        Index("idx_reports_created", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    reporter_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    hazard_type: Mapped[HazardType] = mapped_column(
        _enum_column(HazardType, "hazard_type"),
        nullable=False,
    )
    severity: Mapped[Severity] = mapped_column(
        _enum_column(Severity, "severity_level"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Location (WGS84 degrees)
    longitude: Mapped[float] = mapped_column(Double, nullable=False)
    latitude: Mapped[float] = mapped_column(Double, nullable=False)

    media_reference: Mapped[str | None] = mapped_column(String(500), default=None)

    # Verification
    status: Mapped[ReportStatus] = mapped_column(
        _enum_column(ReportStatus, "report_status"),
        default=ReportStatus.pending,
        nullable=False,
    )
    verifier_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        default=None,
    )
    verified_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=None)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
