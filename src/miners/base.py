"""
Abstract Base Class for Activity Miners.

Defines the interface for contribution data mining implementations.
All activity miners (GitHub, GitLab, etc.) should implement this interface.
"""

from abc import ABC, abstractmethod
from typing import List

from miners.models import RepositoryActivity


class ActivityMiner(ABC):
    """
    Abstract base class for activity miners.

    Defines the contract for mining contribution events from different sources.
    Implementations should handle:
    - Authentication with the repository service
    - Pagination and date-range windowing
    - Transformation to the common event models
    """

    @abstractmethod
    async def list_repositories(self, organization: str) -> List[str]:
        """
        List the repositories of an organization.

        Args:
            organization (str): Organization name

        Returns:
            List[str]: Repository names (without the organization prefix)
        """
        pass

    @abstractmethod
    async def mine_repository(
        self, organization: str, repo_name: str
    ) -> RepositoryActivity:
        """
        Extract all contribution events of a repository within the fetch window.

        Args:
            organization (str): Owning organization
            repo_name (str): Repository name

        Returns:
            RepositoryActivity: Collected commit, pull request and review events

        Raises:
            Exception: If mining fails
        """
        pass
