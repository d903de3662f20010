"""
Contribution Statistics Aggregation Module.

Folds raw commit, pull request and review events into per-user, per-year,
per-month counts. One aggregator instance owns the accumulator of a run, so
events from many repositories and organizations can be folded one repository
at a time before the summary document is built.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pandas as pd

from config import logger
from miners.models import (
    ActivityEvent,
    CommitEvent,
    PullRequestEvent,
    ReviewEvent,
)
from analyzers.models import MetricKind, PeriodBucket, SummaryDocument, UserSummary

EVENT_COLUMNS = ["login", "avatar_url", "timestamp"]


class StatsAggregator:
    """
    Accumulates contribution counts keyed by username.

    The aggregator performs no I/O and raises no domain errors: events without
    an actor are dropped, everything else is counted.

    Attributes:
        users (Dict[str, UserSummary]): The accumulator, shared with the caller
            when one is supplied.
    """

    def __init__(self, accumulator: Optional[Dict[str, UserSummary]] = None):
        """
        Args:
            accumulator (Optional[Dict[str, UserSummary]]): Existing accumulator
                to extend; a new one is created when omitted.
        """
        self.users = accumulator if accumulator is not None else {}

    def _ensure_user(self, login: str) -> UserSummary:
        user = self.users.get(login)
        if user is None:
            user = UserSummary()
            self.users[login] = user
        return user

    def _events_frame(self, events: Iterable[ActivityEvent]) -> pd.DataFrame:
        """
        Tabulate usable events with their UTC year and month keys.

        Args:
            events (Iterable[ActivityEvent]): Raw events of one metric kind

        Returns:
            pd.DataFrame: Columns login, avatar_url, timestamp, year, month
        """
        rows = [event.model_dump(include=set(EVENT_COLUMNS)) for event in events]
        df = pd.DataFrame(rows, columns=EVENT_COLUMNS)

        malformed = df["login"].isna() | (df["login"] == "")
        if malformed.any():
            logger.debug(
                {
                    "message": "Skipping events without an actor",
                    "skipped": int(malformed.sum()),
                }
            )
        df = df[~malformed]
        if df.empty:
            return df

        timestamps = pd.to_datetime(df["timestamp"], utc=True)
        return df.assign(
            year=timestamps.dt.strftime("%Y"), month=timestamps.dt.strftime("%m")
        )

    def _fold(self, metric: MetricKind, events: Iterable[ActivityEvent]) -> int:
        """
        Add the events of one metric kind to the accumulator.

        Args:
            metric (MetricKind): Series receiving the counts
            events (Iterable[ActivityEvent]): Events of that kind

        Returns:
            int: Number of events counted
        """
        df = self._events_frame(events)
        # Without usable rows the frame has no year/month columns
        if df.empty:
            return 0

        counts = df.groupby(["login", "year", "month"], sort=True).size()
        for (login, year, month), count in counts.items():
            series = self._ensure_user(login).series(metric)
            bucket = series.get(year)
            if bucket is None:
                bucket = PeriodBucket()
                series[year] = bucket
            bucket.increment(month, int(count))

        # Most recently seen avatar wins
        avatars = df.dropna(subset=["avatar_url"]).groupby("login", sort=False)[
            "avatar_url"
        ].last()
        for login, avatar in avatars.items():
            self.users[login].avatar = avatar

        return int(counts.sum())

    def aggregate(
        self,
        commits: List[CommitEvent],
        pull_requests: List[PullRequestEvent],
        reviews: List[ReviewEvent],
    ) -> Dict[str, UserSummary]:
        """
        Fold one batch of events into the accumulator.

        Reviews are expected to be filtered already: no self-reviews and no
        pending reviews.

        Args:
            commits (List[CommitEvent]): Commit events
            pull_requests (List[PullRequestEvent]): Pull request events
            reviews (List[ReviewEvent]): Submitted review events

        Returns:
            Dict[str, UserSummary]: The updated accumulator
        """
        counted = {
            MetricKind.COMMITS.value: self._fold(MetricKind.COMMITS, commits),
            MetricKind.PULL_REQUESTS.value: self._fold(
                MetricKind.PULL_REQUESTS, pull_requests
            ),
            MetricKind.CODE_REVIEWS.value: self._fold(MetricKind.CODE_REVIEWS, reviews),
        }
        logger.debug({"message": "Aggregated events", **counted})
        return self.users

    def build_document(
        self, organizations: List[str], last_updated: Optional[datetime] = None
    ) -> SummaryDocument:
        """
        Build the summary document from the accumulator.

        Users are ordered by username, years and months ascending, so the
        serialized document does not depend on the order events arrived in.

        Args:
            organizations (List[str]): Organizations covered by the run
            last_updated (Optional[datetime]): Generation time, now by default

        Returns:
            SummaryDocument: A new document; the accumulator is not shared
        """
        users = {}
        for login in sorted(self.users):
            user = self.users[login]
            users[login] = UserSummary(
                avatar=user.avatar,
                commits=_sorted_series(user.commits),
                pull_requests=_sorted_series(user.pull_requests),
                code_reviews=_sorted_series(user.code_reviews),
            )

        document = SummaryDocument(
            last_updated=last_updated or datetime.now(timezone.utc),
            organizations=list(organizations),
            users=users,
        )
        logger.info(
            {
                "message": "Built summary document",
                "organizations": document.organizations,
                "users": len(document.users),
            }
        )
        return document


def _sorted_series(series: Dict[str, PeriodBucket]) -> Dict[str, PeriodBucket]:
    return {
        year: PeriodBucket(
            total=series[year].total,
            months={
                month: series[year].months[month]
                for month in sorted(series[year].months)
            },
        )
        for year in sorted(series)
    }
