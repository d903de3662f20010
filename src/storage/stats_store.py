"""
Statistics Storage Module.

This module handles the persistent storage and retrieval of the contribution
summary document. The document is written as JSON in the layout the
leaderboard front end reads, and validated back into Pydantic models on load.
"""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from config import logger
from analyzers.models import SummaryDocument


class StatsStore:
    """
    Manages persistent storage of the summary document.
    Each run replaces the previous document; no history is kept.
    """

    def __init__(self, data_dir: str, file_name: str = "stats.json"):
        """Initialize the statistics storage.

        Args:
            data_dir (str): Directory holding the summary document.
            file_name (str): Name of the summary document file.
        """
        self.storage_dir = Path(data_dir)
        self.file_name = file_name

    @property
    def file_path(self) -> str:
        """Complete file path of the summary document."""
        return os.path.join(self.storage_dir, self.file_name)

    def save_document(self, document: SummaryDocument) -> str:
        """Write the summary document, replacing any previous one.

        Args:
            document (SummaryDocument): Document to store.

        Returns:
            str: Path of the written file.

        Raises:
            Exception: If storage operation fails.
        """
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            data = document.model_dump(mode="json", by_alias=True)

            with open(self.file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)

            logger.info(
                {
                    "message": "Stored summary document",
                    "file_path": self.file_path,
                    "users": len(document.users),
                    "organizations": document.organizations,
                }
            )
            return self.file_path

        except Exception as e:
            logger.error(
                {
                    "message": "Failed to store summary document",
                    "file_path": self.file_path,
                    "error": str(e),
                }
            )
            raise

    def load_document(self) -> Optional[SummaryDocument]:
        """Load the summary document.

        Documents written before reviews were tracked load with empty
        ``codeReviews`` series.

        Returns:
            Optional[SummaryDocument]: The document, None if no file exists.

        Raises:
            Exception: If the file cannot be read or is not a valid document.
        """
        if not os.path.exists(self.file_path):
            return None

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            return SummaryDocument.model_validate(data)

        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(
                {
                    "message": "Failed to load summary document",
                    "file_path": self.file_path,
                    "error": str(e),
                }
            )
            raise
