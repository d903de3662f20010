"""
Activity Mining Data Models.

Defines the raw contribution event records produced by repository miners and
consumed by the statistics aggregator.
Uses Pydantic for validation and serialization.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class EventSource(str, Enum):
    """Kind of contribution an event records."""

    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    REVIEW = "review"


class ActivityEvent(BaseModel):
    """
    A single contribution by one actor at one point in time.

    ``login`` is None when the provider could not resolve the actor, for
    example commits whose author email is not linked to an account.
    """

    login: Optional[str]
    avatar_url: Optional[str] = None
    timestamp: datetime
    source: EventSource


class CommitEvent(ActivityEvent):
    """Commit attributed to its author, timestamped by the authored date."""

    sha: Optional[str] = None
    source: EventSource = EventSource.COMMIT


class PullRequestEvent(ActivityEvent):
    """Pull request attributed to the user who opened it, at creation time."""

    number: Optional[int] = None
    source: EventSource = EventSource.PULL_REQUEST


class ReviewEvent(ActivityEvent):
    """Submitted review attributed to the reviewer, at submission time."""

    pr_number: Optional[int] = None
    pr_author: Optional[str] = None
    state: str = "COMMENTED"
    source: EventSource = EventSource.REVIEW


class RepositoryActivity(BaseModel):
    """Container for all events mined from one repository."""

    repository_name: str
    collection_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    commits: List[CommitEvent] = Field(default_factory=list)
    pull_requests: List[PullRequestEvent] = Field(default_factory=list)
    reviews: List[ReviewEvent] = Field(default_factory=list)
