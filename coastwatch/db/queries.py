"""
Database queries for CoastWatch.

The report store (create, fetch, paginated listing and the verification
compare-and-swap) plus user directory lookups. All queries use async
SQLAlchemy patterns; callers own the transaction boundary.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, asc, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from coastwatch.db.models import (
    HazardType,
    Report,
    ReportStatus,
    User,
    UserRole,
    UserStatus,
    utcnow,
)
from coastwatch.exceptions import InvalidStateError, NotFoundError, ValidationError
from coastwatch.schemas.reports import ReportDraft
from coastwatch.schemas.validation import validate_pagination, validate_report_draft
from coastwatch.services.verification import (
    VerificationOutcome,
    ensure_transition,
    source_states,
)

DEFAULT_MAX_PAGE_SIZE = 500


# =============================================================================
# Sorting
# =============================================================================


REPORT_SORT_FIELDS: dict[str, InstrumentedAttribute] = {
    "id": Report.id,
    "reporterId": Report.reporter_id,
    "hazardType": Report.hazard_type,
    "severity": Report.severity,
    "description": Report.description,
    "longitude": Report.longitude,
    "latitude": Report.latitude,
    "mediaReference": Report.media_reference,
    "status": Report.status,
    "verifierId": Report.verifier_id,
    "verifiedAt": Report.verified_at,
    "rejectionReason": Report.rejection_reason,
    "createdAt": Report.created_at,
    "updatedAt": Report.updated_at,
}

USER_SORT_FIELDS: dict[str, InstrumentedAttribute] = {
    "id": User.id,
    "firstName": User.first_name,
    "lastName": User.last_name,
    "email": User.email,
    "role": User.role,
    "status": User.status,
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
}


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(word.capitalize() for word in rest)


def _order_by(
    fields: dict[str, InstrumentedAttribute],
    tie_breaker: InstrumentedAttribute,
    sort_by: str,
    order: str,
) -> list:
    """Resolve a client sort request; accepts camelCase or snake_case names."""
    column = fields.get(sort_by) or fields.get(_snake_to_camel(sort_by))
    errors = []
    if column is None:
        errors.append({"field": "sortBy", "message": f"Cannot sort by '{sort_by}'"})
    if order not in ("asc", "desc"):
        errors.append({"field": "order", "message": "Order must be 'asc' or 'desc'"})
    if errors:
        raise ValidationError("Invalid sort", errors)

    direction = asc if order == "asc" else desc
    return [direction(column), direction(tie_breaker)]


# =============================================================================
# Report Queries
# =============================================================================


async def create_report(
    session: AsyncSession,
    draft: ReportDraft | Mapping[str, Any],
    *,
    reporter_id: UUID,
    now: datetime | None = None,
) -> Report:
    """
    Validate and persist a new report.

    Args:
        session: Async database session
        draft: Submitted fields (validated here before anything is written)
        reporter_id: Submitting user
        now: Creation timestamp override (tests)

    Returns:
        The stored Report, status pending

    Raises:
        ValidationError: If any field violates its constraint.
        NotFoundError: If the reporter is not a stored user.
    """
    draft = validate_report_draft(draft)
    created_at = now or utcnow()

    report = Report(
        id=uuid4(),
        reporter_id=reporter_id,
        hazard_type=draft.hazard_type,
        severity=draft.severity,
        description=draft.description,
        longitude=draft.location.longitude,
        latitude=draft.location.latitude,
        media_reference=draft.media_reference,
        status=ReportStatus.pending,
        verifier_id=None,
        verified_at=None,
        rejection_reason=None,
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(report)
    try:
        await session.flush()
    except IntegrityError as e:
        raise NotFoundError("User", reporter_id) from e
    return report


async def get_report_by_id(
    session: AsyncSession,
    report_id: UUID,
) -> Report | None:
    """Get a report by ID."""
    result = await session.execute(
        select(Report)
        .where(Report.id == report_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_reports_paginated(
    session: AsyncSession,
    *,
    status: ReportStatus | None = None,
    hazard_type: HazardType | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int = 10,
    max_limit: int = DEFAULT_MAX_PAGE_SIZE,
) -> tuple[list[Report], int]:
    """
    List reports with filters, sorting and offset pagination.

    Returns a tuple of (reports, total_count) for building paginated responses.

    Args:
        session: Async database session.
        status: Filter by verification status.
        hazard_type: Filter by hazard type.
        sort_by: Any stored field, camelCase or snake_case.
        order: "asc" or "desc".
        page: Page number (1-indexed).
        limit: Page size; clamped to ``max_limit``.
        max_limit: Server-side cap on page size.

    Returns:
        Tuple of (list of Report objects, total matching count).
    """
    page, limit = validate_pagination(page, limit, max_limit=max_limit)
    ordering = _order_by(REPORT_SORT_FIELDS, Report.id, sort_by, order)

    conditions: list = []
    if status is not None:
        conditions.append(Report.status == status)
    if hazard_type is not None:
        conditions.append(Report.hazard_type == hazard_type)

    where_clause = and_(*conditions) if conditions else True

    count_result = await session.execute(
        select(func.count(Report.id)).where(where_clause)
    )
    total = count_result.scalar_one()

    offset = (page - 1) * limit
    result = await session.execute(
        select(Report)
        .where(where_clause)
        .order_by(*ordering)
        .limit(limit)
        .offset(offset)
    )
    reports = list(result.scalars().all())

    return reports, total


async def transition_report_verification(
    session: AsyncSession,
    report_id: UUID,
    *,
    verifier_id: UUID,
    outcome: VerificationOutcome,
    reason: str | None = None,
    now: datetime | None = None,
) -> Report:
    """
    Move a pending report to verified or rejected.

    Implemented as one conditional UPDATE guarded by the current status, so
    of two concurrent attempts on the same report exactly one matches a row.
    Unrelated reports never contend.

    Args:
        session: Async database session
        report_id: Report to transition
        verifier_id: Acting reviewer
        outcome: verified or rejected
        reason: Rejection reason (ignored when verifying)
        now: Transition timestamp override (tests)

    Returns:
        The updated Report

    Raises:
        NotFoundError: If no report has this id, or the verifier is not a
            stored user.
        InvalidStateError: If the report is no longer pending.
    """
    target = outcome.status
    stamp = now or utcnow()

    statement = (
        update(Report)
        .where(
            and_(
                Report.id == report_id,
                Report.status.in_(source_states(target)),
            )
        )
        .values(
            status=target,
            verifier_id=verifier_id,
            verified_at=stamp,
            updated_at=stamp,
            rejection_reason=reason if target == ReportStatus.rejected else None,
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(statement)
    except IntegrityError as e:
        raise NotFoundError("User", verifier_id) from e

    if result.rowcount != 1:
        current = (
            await session.execute(select(Report.status).where(Report.id == report_id))
        ).scalar_one_or_none()
        if current is None:
            raise NotFoundError("Report", report_id)
        ensure_transition(current, target)
        # Status was pending at re-read but not at UPDATE time.
        raise InvalidStateError(
            "Report was modified concurrently",
            current_status=current.value,
            target_status=target.value,
        )

    report = await get_report_by_id(session, report_id)
    if report is None:
        raise NotFoundError("Report", report_id)
    return report


# =============================================================================
# User Queries
# =============================================================================


async def get_user_by_email(
    session: AsyncSession,
    email: str,
) -> User | None:
    """Get a user by email (case-insensitive)."""
    result = await session.execute(
        select(User).where(User.email == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def get_user_by_id(
    session: AsyncSession,
    user_id: UUID,
) -> User | None:
    """Get a user by ID."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password_hash: str,
    role: UserRole = UserRole.citizen,
    status: UserStatus = UserStatus.active,
) -> User:
    """
    Persist a user. ``password_hash`` must already be hashed by the caller.
    """
    now = utcnow()
    user = User(
        id=uuid4(),
        first_name=first_name,
        last_name=last_name,
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        status=status,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    await session.flush()
    return user


async def list_users_paginated(
    session: AsyncSession,
    *,
    role: UserRole | None = None,
    status: UserStatus | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int = 20,
    max_limit: int = DEFAULT_MAX_PAGE_SIZE,
) -> tuple[list[User], int]:
    """
    List users with filters and pagination.

    ``search`` matches first name, last name or email, case-insensitively.
    """
    page, limit = validate_pagination(page, limit, max_limit=max_limit)
    ordering = _order_by(USER_SORT_FIELDS, User.id, sort_by, order)

    conditions: list = []
    if role is not None:
        conditions.append(User.role == role)
    if status is not None:
        conditions.append(User.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    where_clause = and_(*conditions) if conditions else True

    count_result = await session.execute(
        select(func.count(User.id)).where(where_clause)
    )
    total = count_result.scalar_one()

    result = await session.execute(
        select(User)
        .where(where_clause)
        .order_by(*ordering)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total
