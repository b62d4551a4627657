"""
Run configuration for the image sorter.
"""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import FatalConfigError
from .geocoder import DEFAULT_CACHE_SIZE
from .worker_pool import DEFAULT_WORKERS


@dataclass
class SorterConfig:
    """Settings of one sorting run."""

    source_dir: Path
    dest_dir: Path
    workers: int = DEFAULT_WORKERS
    use_device: bool = True
    cache_size: int = DEFAULT_CACHE_SIZE
    user_agent: str = "ImageSorter/1.0"
    geocode_timeout: float = 10
    geocode_min_delay: float = 1.0
    geocode_retries: int = 0
    log_level: str = "INFO"
    log_file: Optional[str] = None
    show_progress: bool = True

    def __post_init__(self):
        self.source_dir = Path(self.source_dir).expanduser()
        self.dest_dir = Path(self.dest_dir).expanduser()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "SorterConfig":
        return cls(
            source_dir=args.source_dir,
            dest_dir=args.dest_dir,
            workers=args.workers,
            use_device=not args.no_device,
            cache_size=args.cache_size,
            user_agent=args.user_agent,
            geocode_timeout=args.geocode_timeout,
            geocode_retries=args.geocode_retries,
            log_level=args.log_level,
            log_file=args.log_file,
            show_progress=not args.no_progress,
        )

    def validate(self):
        """
        Check the settings before any work is dispatched.

        The destination root is created when missing.

        Raises:
            FatalConfigError: If a root directory is unusable or a setting
                is out of range
        """
        if self.workers < 1:
            raise FatalConfigError(f"Worker count must be at least 1, got {self.workers}")
        if self.cache_size < 1:
            raise FatalConfigError(f"Cache size must be at least 1, got {self.cache_size}")
        if self.geocode_retries < 0:
            raise FatalConfigError(f"Geocode retries cannot be negative, got {self.geocode_retries}")

        if not self.source_dir.exists():
            raise FatalConfigError(f"Source directory does not exist: {self.source_dir}")
        if not self.source_dir.is_dir():
            raise FatalConfigError(f"Source path is not a directory: {self.source_dir}")

        try:
            self.dest_dir.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise FatalConfigError(f"Destination path is not a directory: {self.dest_dir}") from e
        except OSError as e:
            raise FatalConfigError(f"Cannot create destination directory {self.dest_dir}: {e}") from e

        if not os.access(self.dest_dir, os.W_OK | os.X_OK):
            raise FatalConfigError(f"Destination directory is not writable: {self.dest_dir}")
