"""
Map API endpoints.

Slim report projections inside a bounding box or within a radius of a point.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from coastwatch.api.deps import DB, CurrentIdentity
from coastwatch.api.responses import envelope_response
from coastwatch.services import operations

router = APIRouter()


@router.get("/reports")
async def map_reports(
    identity: CurrentIdentity,
    db: DB,
    lat: float | None = None,
    lng: float | None = None,
    radius: float | None = Query(None, description="Search radius in kilometers"),
    bounds: str | None = Query(None, description="swLng,swLat,neLng,neLat"),
    status: str | None = Query(None, description="Report status, or 'all'"),
    severity: str | None = None,
) -> JSONResponse:
    """
    Reports for map display.

    Pass either ``bounds`` or all of ``lat``, ``lng`` and ``radius``. Radius
    results come back nearest-first, others newest-first.
    """
    result = await operations.query_by_location(
        db,
        identity,
        bounds=bounds,
        latitude=lat,
        longitude=lng,
        radius_km=radius,
        status=status,
        severity=severity,
    )
    return envelope_response(result)
