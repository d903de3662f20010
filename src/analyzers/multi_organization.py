"""
Multi-Organization Aggregation Module.

This module coordinates mining and aggregation across several GitHub
organizations. Every repository of every configured organization is mined and
folded into one aggregator, and a single summary document is built at the end.

- Sequential organization and repository processing
- Per-repository error isolation
- Summary document generation
"""

from typing import List

from config import logger
from analyzers.aggregator import StatsAggregator
from analyzers.models import SummaryDocument
from miners.base import ActivityMiner


class MultiOrganizationAggregator:
    """
    Coordinates the aggregation of contribution events over organizations.

    Attributes:
        miner (ActivityMiner): Instance for mining repository events.
        aggregator (StatsAggregator): Accumulator of the run.
        organizations (List[str]): Organizations to process, in order.
    """

    def __init__(
        self,
        miner: ActivityMiner,
        aggregator: StatsAggregator,
        organizations: List[str],
    ):
        """Initialize the multi-organization aggregator.

        Args:
            miner (ActivityMiner): Instance for mining repository events.
            aggregator (StatsAggregator): Accumulator of the run.
            organizations (List[str]): Organizations to process.
        """
        self.miner = miner
        self.aggregator = aggregator
        self.organizations = organizations

    async def aggregate_organization(self, organization: str) -> int:
        """
        Mine and aggregate every repository of one organization.

        Args:
            organization (str): Organization name.

        Returns:
            int: Number of repositories aggregated successfully.

        Note:
            A repository that fails to mine is logged and skipped.
        """
        logger.info(
            {"message": "Processing organization", "organization": organization}
        )
        try:
            repositories = await self.miner.list_repositories(organization)
        except Exception as e:
            logger.error(
                {
                    "message": "Failed to list organization repositories",
                    "organization": organization,
                    "error": str(e),
                }
            )
            return 0

        aggregated = 0
        for repo_name in repositories:
            try:
                activity = await self.miner.mine_repository(organization, repo_name)
                self.aggregator.aggregate(
                    activity.commits, activity.pull_requests, activity.reviews
                )
                aggregated += 1
            except Exception as e:
                logger.error(
                    {
                        "message": "Failed to aggregate repository",
                        "organization": organization,
                        "repository": repo_name,
                        "error": str(e),
                    }
                )

        return aggregated

    async def collect(self) -> SummaryDocument:
        """
        Aggregate all configured organizations into a summary document.

        Returns:
            SummaryDocument: Statistics of every user seen in any organization.
        """
        for organization in self.organizations:
            aggregated = await self.aggregate_organization(organization)
            logger.info(
                {
                    "message": "Organization processed",
                    "organization": organization,
                    "repositories": aggregated,
                }
            )

        return self.aggregator.build_document(self.organizations)
