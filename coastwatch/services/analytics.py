"""
Dashboard aggregation.

All four facets (total, by status, by severity, by UTC day) come from a single
SELECT over the reports in the window, folded in one pass, so they always
agree with each other.
"""

from collections import Counter
from datetime import UTC, datetime, timedelta
from enum import Enum

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coastwatch.db.models import HazardType, Report, utcnow
from coastwatch.exceptions import ValidationError
from coastwatch.schemas.analytics import DailyCount, DashboardStats


class DateRange(str, Enum):
    """Relative windows measured back from the time of the call."""

    last_7_days = "7d"
    last_30_days = "30d"
    last_90_days = "90d"
    last_year = "1y"

    @classmethod
    def _missing_(cls, value: object) -> "DateRange | None":
        if value == "365d":
            return cls.last_year
        return None

    @property
    def days(self) -> int:
        return WINDOW_DAYS[self]


WINDOW_DAYS: dict[DateRange, int] = {
    DateRange.last_7_days: 7,
    DateRange.last_30_days: 30,
    DateRange.last_90_days: 90,
    DateRange.last_year: 365,
}

DEFAULT_DATE_RANGE = DateRange.last_30_days


def parse_date_range(value: DateRange | str | None) -> DateRange:
    """Resolve a window name; ``None`` means the default 30 days."""
    if value is None:
        return DEFAULT_DATE_RANGE
    try:
        return DateRange(value)
    except ValueError:
        allowed = ", ".join(r.value for r in DateRange)
        raise ValidationError.for_field(
            "dateRange", f"Unknown date range '{value}' (expected one of {allowed})"
        ) from None


def resolve_window(
    date_range: DateRange, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Absolute ``(start, end)`` for a relative window ending at ``now``."""
    end = now or utcnow()
    if end.tzinfo is None:
        end = end.replace(tzinfo=UTC)
    return end - timedelta(days=date_range.days), end


def _day_key(moment: datetime) -> str:
    return moment.astimezone(UTC).date().isoformat()


async def get_dashboard_stats(
    session: AsyncSession,
    date_range: DateRange | str | None = None,
    *,
    hazard_type: HazardType | None = None,
    now: datetime | None = None,
) -> DashboardStats:
    """
    Compute dashboard facets over reports created inside the window.

    Args:
        session: Async database session
        date_range: 7d, 30d, 90d or 1y (default 30d)
        hazard_type: Optional hazard filter
        now: End of window override (tests)

    Returns:
        DashboardStats with total, status and severity breakdowns, and
        ascending daily counts. Empty groups are omitted.
    """
    window = parse_date_range(date_range)
    start, end = resolve_window(window, now)

    conditions = [Report.created_at >= start, Report.created_at <= end]
    if hazard_type is not None:
        conditions.append(Report.hazard_type == hazard_type)

    result = await session.execute(
        select(Report.status, Report.severity, Report.created_at).where(
            and_(*conditions)
        )
    )

    total = 0
    by_status: Counter[str] = Counter()
    by_severity: Counter[str] = Counter()
    by_day: Counter[str] = Counter()
    for status, severity, created_at in result.all():
        total += 1
        by_status[status.value] += 1
        by_severity[severity.value] += 1
        by_day[_day_key(created_at)] += 1

    return DashboardStats(
        date_range=window.value,
        window_start=start,
        window_end=end,
        total_count=total,
        status_breakdown=dict(by_status),
        severity_breakdown=dict(by_severity),
        daily_counts=[
            DailyCount(date=day, count=count) for day, count in sorted(by_day.items())
        ],
    )
