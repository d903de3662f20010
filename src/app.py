"""
Main Application Entry Point.

This module serves as the primary entry point for the contribution statistics
system. It orchestrates the collection workflow, including:
- Configuration validation
- Organization mining and aggregation
- Summary document persistence
- Leaderboard summary logging

The application can be run directly to refresh the statistics of the
configured organizations.
"""

import asyncio
from datetime import datetime, timezone

from config import settings, logger
from analyzers.aggregator import StatsAggregator
from analyzers.models import ALL, MetricKind, RankFilters, SummaryDocument
from analyzers.multi_organization import MultiOrganizationAggregator
from analyzers.query import StatsQueryEngine
from miners.base import ActivityMiner
from miners.github_miner import GitHubMiner
from storage.stats_store import StatsStore


def log_leaderboard_summary(document: SummaryDocument, top_n: int = 10) -> None:
    """
    Log totals and top contributors of the freshly built document.

    Uses the current year when it has activity, all time otherwise.

    Args:
        document (SummaryDocument): Document to summarize
        top_n (int): Number of contributors to list per metric
    """
    engine = StatsQueryEngine(document)
    current_year = str(datetime.now(timezone.utc).year)
    year = current_year if current_year in engine.available_years() else ALL

    totals = engine.aggregate_totals(RankFilters(year=year))
    logger.info({"message": "Leaderboard totals", "year": year, **totals.model_dump()})

    for metric in MetricKind:
        rows = engine.rank(RankFilters(year=year, metric=metric))[:top_n]
        logger.info(
            {
                "message": "Top contributors",
                "year": year,
                "metric": metric.value,
                "users": [f"{row.username} ({row.value})" for row in rows],
            }
        )


async def main() -> None:
    """
    Execute the main application workflow.

    Performs the following steps:
    1. Validates that organizations and a GitHub token are configured
    2. Mines and aggregates every repository of every organization
    3. Saves the summary document
    4. Logs a leaderboard summary

    Raises:
        ValueError: If no organization or no token is configured
        Exception: If the summary document cannot be stored

    Note:
        - Organizations and the fetch window are read from settings
        - Failed repositories are logged but don't stop execution
    """
    organizations = settings.organizations
    if not organizations:
        raise ValueError(
            "No organizations specified. Set GH_ORGS with comma-separated "
            'organization names, e.g. GH_ORGS="org1,org2"'
        )
    if settings.github_token is None:
        raise ValueError("No GitHub token specified. Set GH_TOKEN or GITHUB_TOKEN.")

    logger.info(
        {
            "message": "Starting contribution statistics collection",
            "organizations": organizations,
            "years_to_fetch": settings.years_to_fetch,
        }
    )

    logger.debug("initializing github miner...")
    github_miner: ActivityMiner = GitHubMiner(
        settings.github_token.get_secret_value(),
        years_to_fetch=settings.years_to_fetch,
        max_pages=settings.max_pages,
        per_page=settings.per_page,
    )

    aggregator = StatsAggregator()
    multi_aggregator = MultiOrganizationAggregator(
        github_miner, aggregator, organizations
    )

    logger.info("aggregating organizations...")
    document = await multi_aggregator.collect()

    store = StatsStore(settings.data_dir, settings.stats_file)
    store.save_document(document)

    log_leaderboard_summary(document, settings.trend_top_n)

    logger.info("application finished")


if __name__ == "__main__":
    logger.info("Starting application ...")
    asyncio.run(main())
