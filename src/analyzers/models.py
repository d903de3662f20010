"""
Contribution Statistics Data Models.

Defines the persisted summary document produced by the aggregator and the
filter and result models of the query engine.
Uses Pydantic for validation and serialization; attribute names are snake_case
while the persisted JSON keeps its camelCase keys through aliases.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL = "all"
MONTH_KEYS = [f"{month:02d}" for month in range(1, 13)]
MONTH_LABELS = [
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
]

_YEAR_PATTERN = re.compile(r"^\d{4}$")


class MetricKind(str, Enum):
    """
    The tracked contribution types. Values are the persisted keys.

    Attributes:
        COMMITS: Authored commits
        PULL_REQUESTS: Opened pull requests
        CODE_REVIEWS: Submitted reviews on other users' pull requests
    """

    COMMITS = "commits"
    PULL_REQUESTS = "pullRequests"
    CODE_REVIEWS = "codeReviews"


class PeriodBucket(BaseModel):
    """Counts of one user, metric and year. ``total`` equals the sum of ``months``."""

    total: int = 0
    months: Dict[str, int] = Field(default_factory=dict)

    def increment(self, month: str, count: int = 1) -> None:
        """Add ``count`` events to ``month``, keeping ``total`` in step."""
        self.months[month] = self.months.get(month, 0) + count
        self.total += count

    def value(self, month: str = ALL) -> int:
        if month == ALL:
            return self.total
        return self.months.get(month, 0)


MetricSeries = Dict[str, PeriodBucket]


class UserSummary(BaseModel):
    """Avatar and the three metric series of one user."""

    model_config = ConfigDict(populate_by_name=True)

    avatar: Optional[str] = None
    commits: MetricSeries = Field(default_factory=dict)
    pull_requests: MetricSeries = Field(default_factory=dict, alias="pullRequests")
    # Absent in documents written before reviews were tracked
    code_reviews: MetricSeries = Field(default_factory=dict, alias="codeReviews")

    def series(self, metric: MetricKind) -> MetricSeries:
        """Return the year buckets of ``metric``."""
        if metric == MetricKind.COMMITS:
            return self.commits
        if metric == MetricKind.PULL_REQUESTS:
            return self.pull_requests
        return self.code_reviews

    def metric_value(
        self, metric: MetricKind, year: str = ALL, month: str = ALL
    ) -> int:
        """
        Count events of ``metric`` in the given period.

        Args:
            metric (MetricKind): Metric to count
            year (str): Four-digit year or "all"
            month (str): Two-digit month or "all"

        Returns:
            int: Event count, 0 when the period has no bucket
        """
        series = self.series(metric)
        if year == ALL:
            return sum(bucket.value(month) for bucket in series.values())
        bucket = series.get(year)
        return bucket.value(month) if bucket else 0


class SummaryDocument(BaseModel):
    """Root of the persisted statistics, produced wholesale by one run."""

    model_config = ConfigDict(populate_by_name=True)

    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="lastUpdated"
    )
    organizations: List[str] = Field(default_factory=list)
    users: Dict[str, UserSummary] = Field(default_factory=dict)


def _check_year(value: str) -> str:
    if value != ALL and not _YEAR_PATTERN.match(value):
        raise ValueError(f"year must be 'all' or a four-digit year, got {value!r}")
    return value


class RankFilters(BaseModel):
    """Filters of the leaderboard and totals queries."""

    year: str = ALL
    month: str = ALL
    metric: MetricKind = MetricKind.COMMITS
    excluded_users: Set[str] = Field(default_factory=set)

    @field_validator("year")
    def validate_year(cls, v: str) -> str:
        return _check_year(v)

    @field_validator("month")
    def validate_month(cls, v: str) -> str:
        if v != ALL and v not in MONTH_KEYS:
            raise ValueError(f"month must be 'all' or '01'..'12', got {v!r}")
        return v


class TrendFilters(BaseModel):
    """Filters of the trend query."""

    year: str = ALL
    metric: MetricKind = MetricKind.COMMITS
    top_n: int = Field(default=10, gt=0)
    excluded_users: Set[str] = Field(default_factory=set)

    @field_validator("year")
    def validate_year(cls, v: str) -> str:
        return _check_year(v)


class UserRow(BaseModel):
    """One leaderboard row: the ranked value plus every metric for the same period."""

    username: str
    avatar: Optional[str] = None
    value: int
    commits: int
    pull_requests: int
    code_reviews: int


class AggregateTotals(BaseModel):
    """Sums over all leaderboard rows of a filter."""

    commits: int = 0
    pull_requests: int = 0
    code_reviews: int = 0
    contributors: int = 0


class TrendSeries(BaseModel):
    """Points of one user, aligned with ``TrendData.labels``."""

    label: str
    points: List[int]


class TrendData(BaseModel):
    labels: List[str]
    series: List[TrendSeries]
