"""
Application Configuration Module.

Manages application settings and environment variables using Pydantic for validation.
Provides centralized configuration management with type safety and validation.

Features:
- Environment variable loading and validation
- Secure credential management
- Organization list parsing
- Path normalization for data directories
"""

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
import os
from logger import LogManager


class Settings(BaseSettings):
    """
    Application configuration settings with validation.

    Manages and validates all application settings including:
    - Application identification
    - GitHub authentication
    - Organization configuration and fetch window
    - Logging settings
    - Data output configuration

    Attributes:
        app_name (str): Name of the application
        dev (bool): Debug mode flag
        log_dir (str): Directory for log files
        log_level (int): Logging level (default: info)
        github_token (SecretStr): GitHub API authentication token
        github_orgs (str): Comma-separated organization names
        years_to_fetch (int): Number of past years of activity to collect
        max_pages (int): Maximum pages fetched per repository and record type
        per_page (int): Page size for GitHub API listings
        data_dir (str): Directory holding the summary document
        stats_file (str): File name of the summary document
        trend_top_n (int): Number of contributors charted in trend series
    """

    # Application settings
    app_name: str = Field(default="OrgStats", description="Application name")
    dev: bool = Field(default=False, description="Debug mode")
    log_dir: str = Field(default="logs", description="Logging directory")
    log_level: int = Field(default=20, description="Logging level, default info")

    # GitHub configuration
    github_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("gh_token", "github_token"),
        description="GitHub token",
    )
    github_orgs: str = Field(
        default="",
        validation_alias=AliasChoices("gh_orgs", "github_orgs"),
        description="Comma-separated GitHub organizations to analyze",
    )
    years_to_fetch: int = Field(
        default=3,
        ge=1,
        validation_alias=AliasChoices("gh_years", "years_to_fetch"),
        description="Years of activity to fetch",
    )
    max_pages: int = Field(
        default=10, ge=1, description="Max pages per repository and record type"
    )
    per_page: int = Field(default=100, ge=1, le=100, description="GitHub page size")

    # Output configuration
    data_dir: str = Field(default="data", description="Data output directory")
    stats_file: str = Field(default="stats.json", description="Summary file name")

    # Query configuration
    trend_top_n: int = Field(default=10, ge=1, description="Top users in trends")

    @property
    def organizations(self) -> List[str]:
        """
        Get list of organizations from configuration.

        Splits and cleans the comma-separated organizations string.

        Returns:
            List[str]: List of organization names, empty entries dropped
        """
        return [org.strip() for org in self.github_orgs.split(",") if org.strip()]

    @field_validator("data_dir")
    def ensure_absolute_path(cls, v: str) -> str:
        """
        Ensure data directory path is absolute.

        Converts relative paths to absolute paths based on current working directory.

        Args:
            v (str): Directory path to validate

        Returns:
            str: Absolute path to data directory
        """
        if not os.path.isabs(v):
            return os.path.abspath(v)
        return v

    # Configure env file loading
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",  # Ignore extra fields in .env file
    )


# Create global settings instance
settings = Settings()

# Initialize logging configuration
logger = LogManager(
    app_name=settings.app_name.lower(),
    log_dir=settings.log_dir,
    development=settings.dev,
    level=settings.log_level,
).logger
