"""
Operations facade.

The single entry point for callers holding an Identity. Every operation
checks the policy before any domain logic runs, then returns an
OperationResult: ``success=True`` with data, or ``success=False`` with error
entries. Failures roll the session back so denied or rejected calls leave no
writes behind. Committing on success is left to the owner of the session.
"""

import math
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coastwatch.config import get_logger, get_settings
from coastwatch.db import queries
from coastwatch.db.models import (
    HazardType,
    ReportStatus,
    Severity,
    UserRole,
    UserStatus,
)
from coastwatch.db.session import STORAGE_ERRORS, translate_storage_errors
from coastwatch.exceptions import (
    AuthorizationError,
    CoastwatchError,
    ConflictError,
    NotFoundError,
    StorageUnavailableError,
)
from coastwatch.schemas.analytics import DashboardStats
from coastwatch.schemas.base import ErrorDetail, OperationResult
from coastwatch.schemas.geo import MapReport
from coastwatch.schemas.reports import (
    ReportDraft,
    ReportPage,
    ReportResponse,
    VerificationRequest,
)
from coastwatch.schemas.users import UserPage, UserResponse
from coastwatch.schemas.validation import (
    build_spatial_spec,
    parse_entity_id,
    parse_enum,
    parse_report_id,
    validate_model,
    validate_pagination,
)
from coastwatch.services import analytics, geo
from coastwatch.services.policy import Action, Identity, require
from coastwatch.services.verification import VerificationOutcome

logger = get_logger(__name__)

T = TypeVar("T")


def _pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


def failure(error: CoastwatchError) -> OperationResult[Any]:
    """Build a failed result from a core error."""
    return OperationResult(
        success=False,
        errors=[ErrorDetail(**entry) for entry in error.to_errors()],
    )


async def _rollback(session: AsyncSession, log) -> None:
    try:
        await session.rollback()
    except STORAGE_ERRORS as e:
        log.error("Rollback failed", error=str(e), error_type=type(e).__name__)


async def _run(
    session: AsyncSession,
    identity: Identity,
    operation: str,
    func: Callable[[], Awaitable[T]],
    **context: Any,
) -> OperationResult[T]:
    """
    Execute ``func`` and fold its outcome into an OperationResult.

    Args:
        session: Session the operation runs in; rolled back on failure.
        identity: Acting caller, bound into every log line.
        operation: Operation name for logs.
        func: Zero-argument coroutine function doing the work.
        **context: Extra log fields (report_id, ...).
    """
    log = logger.bind(
        operation=operation,
        subject_id=str(identity.subject_id),
        role=getattr(identity.role, "value", identity.role),
        **context,
    )
    try:
        with translate_storage_errors():
            data = await func()
    except AuthorizationError as e:
        await _rollback(session, log)
        log.warning(
            "Operation denied",
            action=e.action,
            required_roles=e.required_roles,
        )
        return failure(e)
    except StorageUnavailableError as e:
        await _rollback(session, log)
        log.error("Operation failed: storage unavailable", **e.details)
        return failure(e)
    except CoastwatchError as e:
        await _rollback(session, log)
        log.info("Operation rejected", error_code=e.code, error=e.message)
        return failure(e)
    except IntegrityError as e:
        await _rollback(session, log)
        log.warning("Operation hit a constraint", error=str(e.orig))
        return failure(ConflictError("Request conflicts with stored data"))

    log.info("Operation succeeded")
    return OperationResult(success=True, data=data)


# =============================================================================
# Reports
# =============================================================================


async def create_report(
    session: AsyncSession,
    identity: Identity,
    draft: ReportDraft | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> OperationResult[ReportResponse]:
    """Submit a new report as ``identity``; it starts out pending."""

    async def run() -> ReportResponse:
        require(identity, Action.create_report)
        report = await queries.create_report(
            session, draft, reporter_id=identity.subject_id, now=now
        )
        return ReportResponse.from_model(report)

    return await _run(session, identity, "create_report", run)


async def get_report(
    session: AsyncSession,
    identity: Identity,
    report_id: UUID | str,
) -> OperationResult[ReportResponse]:
    """Fetch one report by id."""

    async def run() -> ReportResponse:
        require(identity, Action.view_reports)
        rid = parse_report_id(report_id)
        report = await queries.get_report_by_id(session, rid)
        if report is None:
            raise NotFoundError("Report", rid)
        return ReportResponse.from_model(report)

    return await _run(session, identity, "get_report", run, report_id=str(report_id))


async def list_reports(
    session: AsyncSession,
    identity: Identity,
    *,
    status: ReportStatus | str | None = None,
    hazard_type: HazardType | str | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int | None = None,
) -> OperationResult[ReportPage]:
    """
    List reports with optional status and hazard filters.

    ``limit`` defaults to the configured page size and is clamped to the
    configured maximum.
    """

    async def run() -> ReportPage:
        require(identity, Action.view_reports)
        settings = get_settings()
        page_no, page_size = validate_pagination(
            page,
            settings.default_page_size if limit is None else limit,
            max_limit=settings.max_page_size,
        )
        reports, total = await queries.list_reports_paginated(
            session,
            status=parse_enum(ReportStatus, status, "status"),
            hazard_type=parse_enum(HazardType, hazard_type, "hazardType"),
            sort_by=sort_by,
            order=order,
            page=page_no,
            limit=page_size,
            max_limit=settings.max_page_size,
        )
        return ReportPage(
            items=[ReportResponse.from_model(r) for r in reports],
            total=total,
            page=page_no,
            limit=page_size,
            pages=_pages(total, page_size),
        )

    return await _run(session, identity, "list_reports", run)


async def _transition(
    session: AsyncSession,
    identity: Identity,
    report_id: UUID | str,
    outcome: VerificationOutcome,
    reason: str | None,
    now: datetime | None,
) -> OperationResult[ReportResponse]:
    async def run() -> ReportResponse:
        require(identity, Action.verify_report)
        rid = parse_report_id(report_id)
        request = validate_model(
            VerificationRequest, {"reason": reason}, message="Invalid reason"
        )
        report = await queries.transition_report_verification(
            session,
            rid,
            verifier_id=identity.subject_id,
            outcome=outcome,
            reason=request.reason,
            now=now,
        )
        return ReportResponse.from_model(report)

    return await _run(
        session,
        identity,
        f"{outcome.value}_report",
        run,
        report_id=str(report_id),
    )


async def verify_report(
    session: AsyncSession,
    identity: Identity,
    report_id: UUID | str,
    *,
    now: datetime | None = None,
) -> OperationResult[ReportResponse]:
    """Mark a pending report as verified."""
    return await _transition(
        session, identity, report_id, VerificationOutcome.verified, None, now
    )


async def reject_report(
    session: AsyncSession,
    identity: Identity,
    report_id: UUID | str,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> OperationResult[ReportResponse]:
    """Mark a pending report as rejected, with an optional reason."""
    return await _transition(
        session, identity, report_id, VerificationOutcome.rejected, reason, now
    )


# =============================================================================
# Map & Analytics
# =============================================================================


async def query_by_location(
    session: AsyncSession,
    identity: Identity,
    *,
    bounds: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float | None = None,
    status: ReportStatus | str | None = None,
    severity: Severity | str | None = None,
) -> OperationResult[list[MapReport]]:
    """
    Reports for the map, inside ``bounds`` or within ``radius_km`` of a point.

    With no spatial parameters every report matching the filters is a
    candidate; results are capped at the configured map limit.
    """

    async def run() -> list[MapReport]:
        require(identity, Action.view_reports)
        settings = get_settings()
        spatial = build_spatial_spec(
            bounds=bounds,
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            max_radius_km=settings.max_radius_km,
        )
        return await geo.query_reports_by_location(
            session,
            spatial,
            status=status,
            severity=parse_enum(Severity, severity, "severity"),
            limit=settings.map_result_limit,
        )

    return await _run(session, identity, "query_by_location", run)


async def dashboard_stats(
    session: AsyncSession,
    identity: Identity,
    *,
    date_range: str | None = None,
    hazard_type: HazardType | str | None = None,
    now: datetime | None = None,
) -> OperationResult[DashboardStats]:
    """Dashboard facets for the requested window (default 30 days)."""

    async def run() -> DashboardStats:
        require(identity, Action.view_analytics)
        return await analytics.get_dashboard_stats(
            session,
            date_range,
            hazard_type=parse_enum(HazardType, hazard_type, "hazardType"),
            now=now,
        )

    return await _run(session, identity, "dashboard_stats", run)


# =============================================================================
# Users
# =============================================================================


async def list_users(
    session: AsyncSession,
    identity: Identity,
    *,
    role: UserRole | str | None = None,
    status: UserStatus | str | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> OperationResult[UserPage]:
    """List user accounts (admin only)."""

    async def run() -> UserPage:
        require(identity, Action.list_users)
        settings = get_settings()
        page_no, page_size = validate_pagination(
            page, limit, max_limit=settings.max_page_size
        )
        users, total = await queries.list_users_paginated(
            session,
            role=parse_enum(UserRole, role, "role"),
            status=parse_enum(UserStatus, status, "status"),
            search=search,
            sort_by=sort_by,
            order=order,
            page=page_no,
            limit=page_size,
            max_limit=settings.max_page_size,
        )
        return UserPage(
            items=[UserResponse.from_model(u) for u in users],
            total=total,
            page=page_no,
            limit=page_size,
            pages=_pages(total, page_size),
        )

    return await _run(session, identity, "list_users", run)


async def get_user(
    session: AsyncSession,
    identity: Identity,
    user_id: UUID | str,
) -> OperationResult[UserResponse]:
    """
    Fetch one user profile.

    Admins may read any profile; everyone else only their own.
    """

    async def run() -> UserResponse:
        try:
            uid = parse_entity_id(user_id, "User")
        except NotFoundError:
            uid = None
        if uid is not None and uid == identity.subject_id:
            require(identity, Action.access_own_resource, owner_id=uid)
        else:
            require(identity, Action.get_user)
        if uid is None:
            raise NotFoundError("User", user_id)
        user = await queries.get_user_by_id(session, uid)
        if user is None:
            raise NotFoundError("User", uid)
        return UserResponse.from_model(user)

    return await _run(session, identity, "get_user", run, user_id=str(user_id))
