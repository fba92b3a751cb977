"""
User directory API endpoints (admin).
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from coastwatch.api.deps import DB, CurrentIdentity
from coastwatch.api.responses import envelope_response
from coastwatch.services import operations

router = APIRouter()


@router.get("")
async def list_users(
    identity: CurrentIdentity,
    db: DB,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> JSONResponse:
    """List users with filters and pagination."""
    result = await operations.list_users(
        db,
        identity,
        role=role,
        status=status,
        search=search,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return envelope_response(result)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    identity: CurrentIdentity,
    db: DB,
) -> JSONResponse:
    """Get one user profile."""
    result = await operations.get_user(db, identity, user_id)
    return envelope_response(result)
