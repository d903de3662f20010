"""
Contribution Statistics Query Module.

Answers leaderboard questions against a loaded summary document:
- Ranked user rows for a year/month/metric filter
- Aggregate totals consistent with the ranking
- Per-user trend series for the top contributors
- Available years, usernames and organizations

The engine never mutates the document; every query builds new result models.
"""

from datetime import datetime, timezone
from typing import List, Optional, Union

from analyzers.models import (
    ALL,
    MONTH_KEYS,
    MONTH_LABELS,
    AggregateTotals,
    MetricKind,
    RankFilters,
    SummaryDocument,
    TrendData,
    TrendFilters,
    TrendSeries,
    UserRow,
)


class DocumentNotLoadedError(RuntimeError):
    """Raised when a query runs before a summary document is loaded."""

    def __init__(self, message: str = "No statistics data loaded"):
        super().__init__(message)


class StatsQueryEngine:
    """
    Read-only query layer over a summary document.

    Attributes:
        document (Optional[SummaryDocument]): The loaded document, if any.
    """

    def __init__(self, document: Optional[SummaryDocument] = None):
        self.document = document

    @property
    def is_loaded(self) -> bool:
        return self.document is not None

    def load(self, document: SummaryDocument) -> None:
        """Replace the queried document."""
        self.document = document

    def _require_document(self) -> SummaryDocument:
        if self.document is None:
            raise DocumentNotLoadedError()
        return self.document

    def last_updated(self) -> str:
        """Generation time of the document as ``YYYY-MM-DD HH:MM`` (UTC)."""
        document = self._require_document()
        last_updated = document.last_updated
        if last_updated.tzinfo is not None:
            last_updated = last_updated.astimezone(timezone.utc)
        return last_updated.strftime("%Y-%m-%d %H:%M")

    def organizations(self) -> List[str]:
        return list(self._require_document().organizations)

    def all_usernames(self) -> List[str]:
        return sorted(self._require_document().users)

    def available_years(self) -> List[str]:
        """
        Collect the years with commit or pull request activity.

        Review-only years are not listed.

        Returns:
            List[str]: Year keys, most recent first
        """
        years = set()
        for user in self._require_document().users.values():
            years.update(user.commits)
            years.update(user.pull_requests)
        return sorted(years, reverse=True)

    def document_years(self) -> List[str]:
        """Every year with activity of any metric kind, oldest first."""
        years = set()
        for user in self._require_document().users.values():
            for metric in MetricKind:
                years.update(user.series(metric))
        return sorted(years)

    def rank(
        self, filters: Optional[Union[RankFilters, dict]] = None
    ) -> List[UserRow]:
        """
        Rank users by the selected metric within the filtered period.

        Users without activity in the period are left out. Rows with the same
        value are ordered by username.

        Args:
            filters (Optional[Union[RankFilters, dict]]): Year, month, metric
                and excluded users; defaults to all time commits

        Returns:
            List[UserRow]: Rows sorted by value, highest first

        Raises:
            DocumentNotLoadedError: If no document is loaded
            ValidationError: If the filters are invalid
        """
        document = self._require_document()
        filters = _coerce(filters, RankFilters)

        rows = []
        for username, user in document.users.items():
            if username in filters.excluded_users:
                continue
            value = user.metric_value(filters.metric, filters.year, filters.month)
            if value <= 0:
                continue
            rows.append(
                UserRow(
                    username=username,
                    avatar=user.avatar,
                    value=value,
                    commits=user.metric_value(
                        MetricKind.COMMITS, filters.year, filters.month
                    ),
                    pull_requests=user.metric_value(
                        MetricKind.PULL_REQUESTS, filters.year, filters.month
                    ),
                    code_reviews=user.metric_value(
                        MetricKind.CODE_REVIEWS, filters.year, filters.month
                    ),
                )
            )

        rows.sort(key=lambda row: (-row.value, row.username))
        return rows

    def aggregate_totals(
        self, filters: Optional[Union[RankFilters, dict]] = None
    ) -> AggregateTotals:
        """
        Sum every metric over the rows ``rank`` returns for the same filters.

        Args:
            filters (Optional[Union[RankFilters, dict]]): Same as ``rank``

        Returns:
            AggregateTotals: Metric sums and the number of contributors
        """
        totals = AggregateTotals()
        for row in self.rank(filters):
            totals.commits += row.commits
            totals.pull_requests += row.pull_requests
            totals.code_reviews += row.code_reviews
            totals.contributors += 1
        return totals

    def trend(
        self,
        filters: Optional[Union[TrendFilters, dict]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[TrendData]:
        """
        Build per-user series for the top contributors.

        For all time, there is one point per year of the document, oldest first.
        For a specific year, there is one point per month, cut at the current
        month when the year is the current one.

        Args:
            filters (Optional[Union[TrendFilters, dict]]): Year, metric, number
                of users and excluded users
            now (Optional[datetime]): Reference time, current UTC time by default

        Returns:
            Optional[TrendData]: Labels and series, or None when no user
                qualifies and there is nothing to plot

        Raises:
            DocumentNotLoadedError: If no document is loaded
        """
        document = self._require_document()
        filters = _coerce(filters, TrendFilters)

        top_rows = self.rank(
            RankFilters(
                year=filters.year,
                month=ALL,
                metric=filters.metric,
                excluded_users=filters.excluded_users,
            )
        )[: filters.top_n]
        if not top_rows:
            return None

        if filters.year == ALL:
            labels = self.document_years()
            series = []
            for row in top_rows:
                metric_series = document.users[row.username].series(filters.metric)
                points = [
                    metric_series[year].total if year in metric_series else 0
                    for year in labels
                ]
                series.append(TrendSeries(label=row.username, points=points))
            return TrendData(labels=labels, series=series)

        months = MONTH_KEYS
        labels = MONTH_LABELS
        now = now or datetime.now(timezone.utc)
        if filters.year == str(now.year):
            months = months[: now.month]
            labels = labels[: now.month]

        series = []
        for row in top_rows:
            bucket = document.users[row.username].series(filters.metric).get(
                filters.year
            )
            points = [bucket.value(month) if bucket else 0 for month in months]
            series.append(TrendSeries(label=row.username, points=points))
        return TrendData(labels=list(labels), series=series)


def _coerce(filters, model):
    if filters is None:
        return model()
    if isinstance(filters, model):
        return filters
    return model.model_validate(filters)
