"""
Geo query planner.

Turns a spatial filter (bounding box, radius, or none) plus status/severity
filters into one query over the ``(longitude, latitude)`` index.

Radius searches run in two steps: an index range scan over the lat/lng box
enclosing the circle, then exact great-circle filtering and nearest-first
ordering of the candidates. Results are capped so map payloads stay bounded.
"""

import math
from dataclasses import dataclass

from sqlalchemy import and_, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coastwatch.config import get_logger
from coastwatch.db.models import Report, ReportStatus, Severity
from coastwatch.exceptions import ValidationError
from coastwatch.schemas.base import GeoPoint
from coastwatch.schemas.geo import BoundingBox, MapReport, RadiusSearch, SpatialSpec

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_KM / 180.0
DEFAULT_RESULT_LIMIT = 500

STATUS_ALL = "all"


def haversine_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance between two lng/lat points, in kilometers."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class CandidateWindow:
    """
    Lat/lng ranges that enclose a search circle.

    ``lng_ranges`` holds one range normally, two when the circle crosses the
    antimeridian, and a single full range near the poles.
    """

    min_lat: float
    max_lat: float
    lng_ranges: tuple[tuple[float, float], ...]


def candidate_window(spec: RadiusSearch) -> CandidateWindow:
    """Compute the index ranges that can contain matches for ``spec``."""
    dlat = spec.radius_km / KM_PER_DEGREE_LAT
    min_lat = spec.latitude - dlat
    max_lat = spec.latitude + dlat

    if min_lat <= -90.0 or max_lat >= 90.0:
        # Circle contains a pole: every longitude is reachable.
        return CandidateWindow(
            max(min_lat, -90.0), min(max_lat, 90.0), ((-180.0, 180.0),)
        )

    # Widest longitude span of the circle, reached at its tangent latitude.
    angular = spec.radius_km / EARTH_RADIUS_KM
    ratio = math.sin(angular) / math.cos(math.radians(spec.latitude))
    if ratio >= 1.0:
        return CandidateWindow(min_lat, max_lat, ((-180.0, 180.0),))
    dlng = math.degrees(math.asin(ratio))

    west = spec.longitude - dlng
    east = spec.longitude + dlng
    if west < -180.0:
        ranges = ((west + 360.0, 180.0), (-180.0, east))
    elif east > 180.0:
        ranges = ((west, 180.0), (-180.0, east - 360.0))
    else:
        ranges = ((west, east),)
    return CandidateWindow(min_lat, max_lat, ranges)


def _filter_conditions(
    status: ReportStatus | str | None,
    severity: Severity | None,
) -> list:
    conditions: list = []
    if status is not None and status != STATUS_ALL:
        try:
            status = ReportStatus(status)
        except ValueError:
            raise ValidationError.for_field(
                "status", f"Unknown status '{status}'"
            ) from None
        conditions.append(Report.status == status)
    if severity is not None:
        conditions.append(Report.severity == severity)
    return conditions


def _to_map_report(row) -> MapReport:
    return MapReport(
        id=row.id,
        location=GeoPoint.of(row.longitude, row.latitude),
        severity=row.severity,
        status=row.status,
        hazard_type=row.hazard_type,
    )


_MAP_COLUMNS = (
    Report.id,
    Report.longitude,
    Report.latitude,
    Report.severity,
    Report.status,
    Report.hazard_type,
    Report.created_at,
)


async def query_reports_by_location(
    session: AsyncSession,
    spatial: SpatialSpec,
    *,
    status: ReportStatus | str | None = None,
    severity: Severity | None = None,
    limit: int = DEFAULT_RESULT_LIMIT,
) -> list[MapReport]:
    """
    Find reports for map display.

    Args:
        session: Async database session
        spatial: BoundingBox, RadiusSearch, or None for no spatial restriction
        status: Status filter; "all" or None disables it
        severity: Severity filter
        limit: Result cap

    Returns:
        MapReport projections. Radius searches are ordered nearest-first;
        other searches newest-first.
    """
    conditions = _filter_conditions(status, severity)

    if isinstance(spatial, RadiusSearch):
        return await _radius_query(session, spatial, conditions, limit)

    if isinstance(spatial, BoundingBox):
        conditions.extend(
            [
                Report.longitude.between(spatial.sw_lng, spatial.ne_lng),
                Report.latitude.between(spatial.sw_lat, spatial.ne_lat),
            ]
        )

    query = select(*_MAP_COLUMNS)
    if conditions:
        query = query.where(and_(*conditions))
    result = await session.execute(
        query.order_by(desc(Report.created_at), desc(Report.id)).limit(limit)
    )
    return [_to_map_report(row) for row in result.all()]


async def _radius_query(
    session: AsyncSession,
    spec: RadiusSearch,
    conditions: list,
    limit: int,
) -> list[MapReport]:
    window = candidate_window(spec)
    lng_clauses = [
        Report.longitude.between(low, high) for low, high in window.lng_ranges
    ]
    query = select(*_MAP_COLUMNS).where(
        and_(
            Report.latitude.between(window.min_lat, window.max_lat),
            or_(*lng_clauses),
            *conditions,
        )
    )
    result = await session.execute(query)

    matches = []
    scanned = 0
    for row in result.all():
        scanned += 1
        distance = haversine_km(
            spec.longitude, spec.latitude, row.longitude, row.latitude
        )
        if distance <= spec.radius_km:
            matches.append((distance, row))

    matches.sort(key=lambda pair: (pair[0], str(pair[1].id)))
    logger.debug(
        "Radius query planned",
        radius_km=spec.radius_km,
        lng_ranges=len(window.lng_ranges),
        candidates=scanned,
        matches=len(matches),
    )
    return [_to_map_report(row) for _, row in matches[:limit]]
