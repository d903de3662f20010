"""
GitHub Activity Mining Module.

This module handles the extraction of raw contribution events from GitHub
organizations: commits, pull requests and submitted code reviews. It resolves
pagination and date-range windowing so that only events inside the configured
window reach the aggregator.
"""

from datetime import datetime, timezone
from itertools import islice
from typing import List, Optional

from github import Auth, Github, GithubException
from github.Commit import Commit
from github.PullRequest import PullRequest
from github.PullRequestReview import PullRequestReview
from github.RateLimit import RateLimit
from github.Repository import Repository
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config import logger
from miners.base import ActivityMiner
from miners.models import (
    CommitEvent,
    PullRequestEvent,
    RepositoryActivity,
    ReviewEvent,
)

PENDING_REVIEW_STATE = "PENDING"
LOW_RATE_LIMIT_RATIO = 0.1


class RateLimitExhaustedError(RuntimeError):
    """Raised when the GitHub core rate limit has no request left."""

    def __init__(self, reset_time: datetime):
        self.reset_time = reset_time
        minutes = (reset_time - datetime.now(timezone.utc)).total_seconds() / 60
        super().__init__(
            f"GitHub API rate limit exhausted, resets in {minutes:.1f} minutes"
        )


def _is_server_error(error: BaseException) -> bool:
    """Only GitHub 5xx responses are worth retrying."""
    return (
        isinstance(error, GithubException)
        and error.status is not None
        and error.status >= 500
    )


github_retry = retry(
    retry=retry_if_exception(_is_server_error),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_countable_review(
    state: Optional[str], reviewer: Optional[str], pr_author: Optional[str]
) -> bool:
    """
    Decide whether a review counts towards its reviewer's statistics.

    Pending (not yet submitted) reviews and reviews by the pull request's own
    author are never counted.

    Args:
        state (Optional[str]): Review state as reported by GitHub
        reviewer (Optional[str]): Reviewer login
        pr_author (Optional[str]): Pull request author login

    Returns:
        bool: True if the review should be aggregated
    """
    if not reviewer:
        return False
    if (state or "").upper() == PENDING_REVIEW_STATE:
        return False
    return reviewer != pr_author


class GitHubMiner(ActivityMiner):
    """
    GitHubMiner is responsible for mining contribution events from GitHub.
    It extracts commits, pull requests and reviews, transforming them into
    Pydantic models.
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        years_to_fetch: int = 3,
        max_pages: int = 10,
        per_page: int = 100,
        client: Optional[Github] = None,
    ):
        """Initialize GitHub miner with authentication and configuration.

        Args:
            github_token (Optional[str]): GitHub API token for authentication.
            years_to_fetch (int): Number of past years to collect.
            max_pages (int): Maximum pages per repository and record type.
            per_page (int): Page size used for API listings.
            client (Optional[Github]): Preconfigured client, mainly for tests.
        """
        if client is None:
            auth = Auth.Token(github_token) if github_token else None
            client = Github(auth=auth, per_page=per_page)
        self.github = client
        self.years_to_fetch = years_to_fetch
        self.max_items = max_pages * per_page

    def _since(self, now: Optional[datetime] = None) -> datetime:
        """Start of the fetch window, the same calendar day N years ago."""
        now = now or datetime.now(timezone.utc)
        try:
            return now.replace(year=now.year - self.years_to_fetch)
        except ValueError:
            # 29 February
            return now.replace(year=now.year - self.years_to_fetch, day=28)

    def _check_rate_limit(self, stage: Optional[str] = None) -> int:
        """
        Make sure the core API budget allows the next mining stage.

        The budget is logged at every stage, as a warning once it drops below
        ``LOW_RATE_LIMIT_RATIO`` of the hourly limit. An empty budget stops the
        repository; ``mine_repository`` logs the failure.

        Args:
            stage (Optional[str]): Mining stage about to start.

        Returns:
            int: Requests left before the reset.

        Raises:
            RateLimitExhaustedError: If no request is left.
        """
        core: RateLimit = self.github.get_rate_limit().core
        reset_time = _as_utc(core.reset)
        if core.remaining == 0:
            raise RateLimitExhaustedError(reset_time)

        running_low = core.remaining < core.limit * LOW_RATE_LIMIT_RATIO
        log = logger.warning if running_low else logger.info
        log(
            {
                "message": "GitHub rate limit running low"
                if running_low
                else "GitHub rate limit status",
                "stage": stage,
                "remaining": core.remaining,
                "limit": core.limit,
                "reset_time": reset_time.isoformat(),
            }
        )
        return core.remaining

    def _get_commit_event(self, commit: Commit) -> CommitEvent:
        """Convert a GitHub Commit object to a Pydantic model.

        The GitHub user may be missing when the author email is not linked to
        an account; the event then carries no login and is dropped later.

        Args:
            commit (Commit): The GitHub Commit object.

        Returns:
            CommitEvent: A Pydantic model representing the commit.
        """
        author = commit.author
        return CommitEvent(
            login=author.login if author else None,
            avatar_url=author.avatar_url if author else None,
            timestamp=commit.commit.author.date,
            sha=commit.sha,
        )

    def _get_pull_request_event(self, pr: PullRequest) -> PullRequestEvent:
        """Convert a GitHub PullRequest object to a Pydantic model.

        Args:
            pr (PullRequest): The GitHub PullRequest object.

        Returns:
            PullRequestEvent: A Pydantic model representing the pull request.
        """
        return PullRequestEvent(
            login=pr.user.login if pr.user else None,
            avatar_url=pr.user.avatar_url if pr.user else None,
            timestamp=pr.created_at,
            number=pr.number,
        )

    def _get_review_event(
        self, review: PullRequestReview, pr: PullRequest
    ) -> ReviewEvent:
        """Convert a GitHub PullRequestReview object to a Pydantic model.

        Args:
            review (PullRequestReview): The GitHub review object.
            pr (PullRequest): The reviewed pull request.

        Returns:
            ReviewEvent: A Pydantic model representing the review.
        """
        return ReviewEvent(
            login=review.user.login,
            avatar_url=review.user.avatar_url,
            timestamp=review.submitted_at,
            pr_number=pr.number,
            pr_author=pr.user.login if pr.user else None,
            state=review.state,
        )

    @github_retry
    def _fetch_commits(self, repo: Repository, since: datetime) -> List[CommitEvent]:
        """Fetch commits authored in the window, capped at ``max_items``."""
        try:
            commits = repo.get_commits(since=since)
            return [
                self._get_commit_event(commit)
                for commit in islice(commits, self.max_items)
            ]
        except GithubException as e:
            # 409 means the repository is empty
            if e.status == 409:
                return []
            raise

    @github_retry
    def _fetch_pull_requests(
        self, repo: Repository, since: datetime
    ) -> List[PullRequest]:
        """Fetch pull requests created in the window, newest first."""
        pulls = repo.get_pulls(state="all", sort="created", direction="desc")
        prs_list = []
        for pr in islice(pulls, self.max_items):
            if _as_utc(pr.created_at) < since:
                break
            prs_list.append(pr)
        return prs_list

    @github_retry
    def _fetch_reviews(self, pr: PullRequest) -> List[ReviewEvent]:
        """Fetch the countable reviews of one pull request."""
        pr_author = pr.user.login if pr.user else None
        reviews = []
        for review in pr.get_reviews():
            reviewer = review.user.login if review.user else None
            if review.submitted_at is None:
                continue
            if not is_countable_review(review.state, reviewer, pr_author):
                continue
            reviews.append(self._get_review_event(review, pr))
        return reviews

    @github_retry
    async def list_repositories(self, organization: str) -> List[str]:
        """
        List the public repositories of an organization.

        Args:
            organization (str): Organization login.

        Returns:
            List[str]: Repository names.
        """
        org = self.github.get_organization(organization)
        repos = [repo.name for repo in org.get_repos(type="public")]
        logger.info(
            {
                "message": "Found organization repositories",
                "organization": organization,
                "repositories": len(repos),
            }
        )
        return repos

    async def mine_repository(
        self, organization: str, repo_name: str
    ) -> RepositoryActivity:
        """
        Extract contribution events from a GitHub repository.

        Args:
            organization (str): Owning organization.
            repo_name (str): The repository name.

        Returns:
            RepositoryActivity: A Pydantic model containing the mined events.

        Raises:
            RateLimitExhaustedError: Raised when the API budget runs out.
            Exception: Raised if the mining process fails.
        """
        full_name = f"{organization}/{repo_name}"
        logger.info({"message": "Starting repository mining", "repository": full_name})

        try:
            repo: Repository = self.github.get_repo(full_name)
            since = self._since()

            self._check_rate_limit("commits and pull requests")

            commits = self._fetch_commits(repo, since)
            pulls = self._fetch_pull_requests(repo, since)

            self._check_rate_limit("reviews")

            reviews = []
            for pr in pulls:
                reviews.extend(self._fetch_reviews(pr))

            activity = RepositoryActivity(
                repository_name=full_name,
                commits=commits,
                pull_requests=[self._get_pull_request_event(pr) for pr in pulls],
                reviews=reviews,
            )
            logger.info(
                {
                    "message": "Repository mining completed",
                    "repository": full_name,
                    "commits": len(activity.commits),
                    "pull_requests": len(activity.pull_requests),
                    "reviews": len(activity.reviews),
                }
            )
            return activity

        except RateLimitExhaustedError as e:
            logger.critical(
                {
                    "message": "Repository mining stopped by rate limit",
                    "repository": full_name,
                    "reset_time": e.reset_time.isoformat(),
                    "error": str(e),
                }
            )
            raise
        except Exception as e:
            logger.error(
                {
                    "message": "Repository mining failed",
                    "repository": full_name,
                    "error": str(e),
                }
            )
            raise
