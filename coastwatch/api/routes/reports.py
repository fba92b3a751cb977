"""
Reports API endpoints.

Submission, listing, detail and the verify/reject transitions.
"""

from typing import Any

from fastapi import APIRouter, Body, Query, status
from fastapi.responses import JSONResponse

from coastwatch.api.deps import DB, CurrentIdentity, commit_on_success
from coastwatch.api.responses import envelope_response
from coastwatch.config import get_logger
from coastwatch.schemas.reports import ReportDraft
from coastwatch.services import operations

router = APIRouter()
logger = get_logger(__name__)


@router.post("")
async def create_report(
    draft: ReportDraft,
    identity: CurrentIdentity,
    db: DB,
) -> JSONResponse:
    """Submit a hazard report. It starts out pending verification."""
    result = await operations.create_report(db, identity, draft)
    await commit_on_success(db, result)
    return envelope_response(result, status.HTTP_201_CREATED)


@router.get("")
async def list_reports(
    identity: CurrentIdentity,
    db: DB,
    status_filter: str | None = Query(None, alias="status"),
    hazard_type: str | None = Query(None, alias="hazardType"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = "desc",
    page: int = 1,
    limit: int | None = None,
) -> JSONResponse:
    """
    List reports with optional filtering, sorting and pagination.

    ``limit`` defaults to the configured page size and is capped server-side.
    """
    result = await operations.list_reports(
        db,
        identity,
        status=status_filter,
        hazard_type=hazard_type,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return envelope_response(result)


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    identity: CurrentIdentity,
    db: DB,
) -> JSONResponse:
    """Get one report by id."""
    result = await operations.get_report(db, identity, report_id)
    return envelope_response(result)


@router.post("/{report_id}/verify")
async def verify_report(
    report_id: str,
    identity: CurrentIdentity,
    db: DB,
) -> JSONResponse:
    """Mark a pending report as verified."""
    result = await operations.verify_report(db, identity, report_id)
    await commit_on_success(db, result)
    return envelope_response(result)


@router.post("/{report_id}/reject")
async def reject_report(
    report_id: str,
    identity: CurrentIdentity,
    db: DB,
    body: dict[str, Any] | None = Body(None),
) -> JSONResponse:
    """
    Mark a pending report as rejected, with an optional reason.

    The body is ``{"reason": ...}``; the reason is validated after the role
    check.
    """
    reason = body.get("reason") if body else None
    result = await operations.reject_report(db, identity, report_id, reason)
    await commit_on_success(db, result)
    return envelope_response(result)
