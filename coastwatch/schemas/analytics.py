"""
Pydantic schemas for dashboard analytics.
"""

from datetime import datetime

from pydantic import Field

from coastwatch.schemas.base import CamelCaseModel


class DailyCount(CamelCaseModel):
    """Reports created on one UTC calendar day."""

    date: str  # YYYY-MM-DD
    count: int


class DashboardStats(CamelCaseModel):
    """
    Four facets computed from one read pass.

    Empty groups are omitted from the breakdowns; absence means zero.
    """

    date_range: str
    window_start: datetime
    window_end: datetime
    total_count: int
    status_breakdown: dict[str, int] = Field(default_factory=dict)
    severity_breakdown: dict[str, int] = Field(default_factory=dict)
    daily_counts: list[DailyCount] = Field(default_factory=list)
