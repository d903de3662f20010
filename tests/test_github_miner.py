"""
GitHub Miner Test Suite.

This module contains tests for the GitHubMiner class, covering:
- Commit, pull request and review extraction
- Review filtering (pending and self-reviews)
- Fetch window and empty repositories
- Rate limit handling
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from github import GithubException
from tenacity import wait_none

from miners.github_miner import (
    GitHubMiner,
    RateLimitExhaustedError,
    is_countable_review,
)
from miners.models import RepositoryActivity


NOW = datetime.now(timezone.utc)


def make_user(login):
    return Mock(login=login, avatar_url=f"https://avatars.example.com/{login}.png")


def make_commit(login, when, sha="abc"):
    commit = Mock(sha=sha)
    commit.author = make_user(login) if login else None
    commit.commit.author.date = when
    return commit


def make_review(login, state="APPROVED", submitted_at=NOW - timedelta(days=1)):
    return Mock(user=make_user(login), state=state, submitted_at=submitted_at)


def make_pull(number, login, created_at, reviews=()):
    pr = Mock(number=number, created_at=created_at)
    pr.user = make_user(login)
    pr.get_reviews.return_value = list(reviews)
    return pr


@pytest.fixture
def mock_repo():
    """Mock repository with commits, pull requests and reviews."""
    repo = Mock()
    repo.get_commits.return_value = [
        make_commit("alice", NOW - timedelta(days=3), "a1"),
        make_commit(None, NOW - timedelta(days=4), "x1"),
    ]
    repo.get_pulls.return_value = [
        make_pull(
            2,
            "alice",
            NOW - timedelta(days=2),
            reviews=[
                make_review("bob"),
                make_review("alice", state="COMMENTED"),
                make_review("carol", state="PENDING", submitted_at=None),
                make_review("dave", state="CHANGES_REQUESTED"),
            ],
        ),
        make_pull(1, "bob", NOW - timedelta(days=30)),
        make_pull(0, "carol", NOW - timedelta(days=5 * 365)),
    ]
    return repo


@pytest.fixture
def mock_github(mock_repo):
    """Mock GitHub client with a healthy rate limit."""
    client = Mock()
    client.get_repo.return_value = mock_repo
    core = Mock(remaining=5000, limit=5000, reset=NOW + timedelta(minutes=30))
    client.get_rate_limit.return_value.core = core
    return client


@pytest.fixture
def miner(mock_github):
    """Create GitHubMiner instance for testing."""
    return GitHubMiner(years_to_fetch=3, max_pages=10, per_page=100, client=mock_github)


@pytest.mark.parametrize(
    "state,reviewer,author,expected",
    [
        ("APPROVED", "bob", "alice", True),
        ("COMMENTED", "bob", "alice", True),
        ("CHANGES_REQUESTED", "bob", "alice", True),
        ("PENDING", "bob", "alice", False),
        ("pending", "bob", "alice", False),
        ("APPROVED", "alice", "alice", False),
        ("APPROVED", None, "alice", False),
        ("APPROVED", "bob", None, True),
    ],
)
def test_is_countable_review(state, reviewer, author, expected):
    """Test pending and self-reviews are not counted."""
    assert is_countable_review(state, reviewer, author) is expected


@pytest.mark.asyncio
async def test_mine_repository(miner, mock_github, mock_repo):
    """Test successful repository mining."""
    activity = await miner.mine_repository("acme", "api")

    assert isinstance(activity, RepositoryActivity)
    assert activity.repository_name == "acme/api"
    mock_github.get_repo.assert_called_once_with("acme/api")
    mock_repo.get_pulls.assert_called_once_with(
        state="all", sort="created", direction="desc"
    )

    assert [c.login for c in activity.commits] == ["alice", None]
    assert activity.commits[0].avatar_url == "https://avatars.example.com/alice.png"

    # The pull request older than the window stops the listing
    assert [pr.number for pr in activity.pull_requests] == [2, 1]
    assert [pr.login for pr in activity.pull_requests] == ["alice", "bob"]


@pytest.mark.asyncio
async def test_mine_repository_reviews_filtered(miner):
    """Test self-reviews and pending reviews are dropped."""
    activity = await miner.mine_repository("acme", "api")

    assert [(r.login, r.pr_author, r.pr_number) for r in activity.reviews] == [
        ("bob", "alice", 2),
        ("dave", "alice", 2),
    ]
    assert all(r.login != r.pr_author for r in activity.reviews)


@pytest.mark.asyncio
async def test_mine_empty_repository(miner, mock_repo):
    """Test an empty repository (HTTP 409) has no commits."""
    mock_repo.get_commits.side_effect = GithubException(
        409, {"message": "Git Repository is empty."}, None
    )
    mock_repo.get_pulls.return_value = []

    activity = await miner.mine_repository("acme", "empty")

    assert activity.commits == []
    assert activity.pull_requests == []
    assert activity.reviews == []


@pytest.mark.asyncio
async def test_mine_repository_caps_items(mock_github, mock_repo):
    """Test at most max_pages * per_page records are fetched."""
    mock_repo.get_commits.return_value = [
        make_commit("alice", NOW - timedelta(days=1), str(i)) for i in range(5)
    ]
    miner = GitHubMiner(max_pages=1, per_page=3, client=mock_github)

    activity = await miner.mine_repository("acme", "api")

    assert len(activity.commits) == 3


@pytest.mark.asyncio
async def test_mine_repository_rate_limit_exhausted(miner, mock_github):
    """Test mining stops when the rate limit is exhausted."""
    mock_github.get_rate_limit.return_value.core = Mock(
        remaining=0, limit=5000, reset=NOW + timedelta(minutes=10)
    )

    with patch("miners.github_miner.logger") as mock_logger:
        with pytest.raises(RateLimitExhaustedError, match="rate limit exhausted"):
            await miner.mine_repository("acme", "api")

    mock_github.get_repo.return_value.get_commits.assert_not_called()
    logged = mock_logger.critical.call_args.args[0]
    assert logged["repository"] == "acme/api"
    assert "reset_time" in logged


def test_check_rate_limit_warns_when_running_low(miner, mock_github):
    """Test a budget under a tenth of the limit is logged as a warning."""
    mock_github.get_rate_limit.return_value.core = Mock(
        remaining=120, limit=5000, reset=NOW + timedelta(minutes=10)
    )

    with patch("miners.github_miner.logger") as mock_logger:
        remaining = miner._check_rate_limit("reviews")

    assert remaining == 120
    mock_logger.info.assert_not_called()
    logged = mock_logger.warning.call_args.args[0]
    assert logged["stage"] == "reviews"
    assert logged["remaining"] == 120


def test_check_rate_limit_healthy_budget_is_info(miner):
    """Test a healthy budget is logged at info level."""
    with patch("miners.github_miner.logger") as mock_logger:
        assert miner._check_rate_limit() == 5000

    mock_logger.warning.assert_not_called()
    mock_logger.info.assert_called_once()


def test_fetch_commits_retries_server_errors(miner, mock_repo):
    """Test transient GitHub errors are retried."""
    commits = [make_commit("alice", NOW - timedelta(days=1))]
    mock_repo.get_commits.side_effect = [
        GithubException(502, {"message": "Bad Gateway"}, None),
        commits,
    ]
    fetch = GitHubMiner._fetch_commits.retry_with(wait=wait_none())

    result = fetch(miner, mock_repo, NOW - timedelta(days=10))

    assert [c.login for c in result] == ["alice"]
    assert mock_repo.get_commits.call_count == 2


def test_fetch_commits_does_not_retry_client_errors(miner, mock_repo):
    """Test non-transient GitHub errors are raised immediately."""
    mock_repo.get_commits.side_effect = GithubException(
        403, {"message": "Forbidden"}, None
    )

    with pytest.raises(GithubException):
        miner._fetch_commits(mock_repo, NOW - timedelta(days=10))
    assert mock_repo.get_commits.call_count == 1


@pytest.mark.asyncio
async def test_list_repositories(miner, mock_github):
    """Test repository names of an organization are listed."""
    repo_api, repo_web = Mock(), Mock()
    repo_api.name = "api"
    repo_web.name = "web"
    mock_github.get_organization.return_value.get_repos.return_value = [
        repo_api,
        repo_web,
    ]

    repos = await miner.list_repositories("acme")

    assert repos == ["api", "web"]
    mock_github.get_organization.assert_called_once_with("acme")
    mock_github.get_organization.return_value.get_repos.assert_called_once_with(
        type="public"
    )


def test_fetch_window_start(miner):
    """Test the window starts the same day N years earlier."""
    now = datetime(2024, 2, 29, 10, 0, tzinfo=timezone.utc)

    assert miner._since(now) == datetime(2021, 2, 28, 10, 0, tzinfo=timezone.utc)
    assert miner._since(datetime(2024, 5, 1, tzinfo=timezone.utc)) == datetime(
        2021, 5, 1, tzinfo=timezone.utc
    )
