"""
Analytics API endpoints.

Dashboard facets over a relative time window.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from coastwatch.api.deps import DB, CurrentIdentity
from coastwatch.api.responses import envelope_response
from coastwatch.services import operations

router = APIRouter()


@router.get("/dashboard")
async def dashboard(
    identity: CurrentIdentity,
    db: DB,
    date_range: str | None = Query(
        None, alias="dateRange", description="7d, 30d, 90d or 1y"
    ),
    hazard_type: str | None = Query(None, alias="hazardType"),
) -> JSONResponse:
    """Totals, status and severity breakdowns, and daily counts."""
    result = await operations.dashboard_stats(
        db,
        identity,
        date_range=date_range,
        hazard_type=hazard_type,
    )
    return envelope_response(result)
