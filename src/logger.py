"""
Logging Setup Module.

Builds the application logger used across all modules. Messages are usually
passed as dictionaries and rendered as single-line JSON, so both the console
and the log files stay machine readable.
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler


class JsonMessageFormatter(logging.Formatter):
    """Formatter rendering dict messages as JSON next to the standard fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "module": record.module,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class LogManager:
    """
    Configures a named logger with console and rotating file output.

    Attributes:
        logger (logging.Logger): The configured logger instance.
    """

    def __init__(
        self,
        app_name: str,
        log_dir: str = "logs",
        development: bool = False,
        level: int = logging.INFO,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
    ):
        """
        Args:
            app_name (str): Logger name, also used for the log file name.
            log_dir (str): Directory for log files.
            development (bool): Use a human readable console format.
            level (int): Logging level.
            max_bytes (int): Size at which the log file is rotated.
            backup_count (int): Number of rotated files to keep.
        """
        self.logger = logging.getLogger(app_name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        # Avoid duplicate handlers when the module is imported more than once
        if self.logger.handlers:
            return

        console = logging.StreamHandler()
        if development:
            console.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(module)s: %(message)s")
            )
        else:
            console.setFormatter(JsonMessageFormatter())
        self.logger.addHandler(console)

        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, f"{app_name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonMessageFormatter())
        self.logger.addHandler(file_handler)
