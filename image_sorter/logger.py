"""
Logging module for the image sorter.

This module provides centralized logging functionality with configurable
log levels and output formats.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .models import Stage


class Logger:
    """
    Centralized logging configuration for the image sorter.

    Provides consistent logging across all modules with configurable
    log levels and output formats.
    """

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None):
        """
        Initialize the logger.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
        """
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_file = log_file
        self._setup_logging()

    def _setup_logging(self):
        """Set up logging configuration."""
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)
        root_logger.handlers.clear()

        # Reports go to stdout, keep log lines on stderr
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if self.log_file:
            try:
                file_handler = logging.FileHandler(self.log_file, mode='w')
            except OSError as e:
                logging.error(f"Failed to set up file logging: {e}")
            else:
                file_handler.setLevel(self.log_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
                logging.info(f"Logging to file: {self.log_file}")

        for noisy in ('urllib3', 'requests', 'geopy', 'PIL', 'exifread'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

        logging.info("Logging system initialized")

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger instance for a specific module.

        Args:
            name: Logger name (usually __name__)

        Returns:
            Configured logger instance
        """
        return logging.getLogger(name)

    @staticmethod
    def log_photo_failure(stage: Stage, source: Path, reason: str):
        """
        Log a photo that could not be sorted.

        Args:
            stage: Pipeline stage that failed
            source: Source file path
            reason: Error message
        """
        logging.getLogger(__name__).error(f"{stage.value.upper()} FAILED: {source}: {reason}")

    @staticmethod
    def log_photo_sorted(source: Path, place: str, device: str):
        logging.getLogger(__name__).debug(f"Sorted {source} (place: {place}, device: {device})")

    def create_progress_bar(self, total: int, desc: str = "Sorting",
                            enabled: bool = True) -> Optional[tqdm]:
        """
        Create a progress bar for tracking operations.

        Args:
            total: Total number of items to process
            desc: Description for the progress bar
            enabled: Whether progress bars are wanted at all

        Returns:
            tqdm progress bar instance or None when disabled or empty
        """
        if enabled and total > 0:
            return tqdm(total=total, desc=desc, unit="photos", ncols=80)
        return None
