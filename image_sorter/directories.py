"""
Destination directory management.

This module finds the images to sort, plans where each photo goes in the
destination tree and creates the directories, remembering which ones
already exist so slow storage is not asked twice.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import List, Optional, Set, Union

from .errors import DirectoryError, FatalConfigError
from .models import UNKNOWN_DATE, UNKNOWN_DEVICE, UNKNOWN_PLACE, PhotoRecord
from .stats import StatsAggregator
from .sync import ReadWriteLock

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.tif', '.tiff', '.heic', '.heif', '.webp'}

MAX_NAME_LENGTH = 100


def find_images(source_dir: Union[str, Path]) -> List[Path]:
    """
    Recursively scan a directory for image files.

    Args:
        source_dir: Source directory to scan

    Returns:
        Sorted list of image file paths
    """
    source_path = Path(source_dir)
    images = sorted(
        path for path in source_path.rglob('*')
        if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
    )
    logging.getLogger(__name__).info(f"Found {len(images)} images in {source_dir}")
    return images


def sanitize_name(name: Optional[str], fallback: str) -> str:
    """
    Make a name safe to use as a single directory component.

    Non-word characters become spaces, whitespace is collapsed and the
    result is trimmed. Returns the fallback when nothing usable is left.
    """
    if not name:
        return fallback
    cleaned = re.sub(r'[^\w]', ' ', name)
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()
    cleaned = cleaned[:MAX_NAME_LENGTH].strip()
    return cleaned or fallback


class DirectoryCache:
    """
    Set of destination directories known to exist during this run.

    Entries are only added, never evicted. Membership checks take the
    shared side of a read-write lock; a directory is created under the
    exclusive side so each one is created exactly once per run.
    """

    def __init__(self, destination_root: Path, stats: StatsAggregator):
        self.logger = logging.getLogger(__name__)
        self.destination_root = Path(destination_root)
        self.stats = stats
        self._known: Set[Path] = set()
        self._lock = ReadWriteLock()

    def __contains__(self, path: Path) -> bool:
        with self._lock.read_locked():
            return Path(path) in self._known

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._known)

    def ensure_dir(self, path: Path) -> Path:
        """
        Make sure a directory exists, creating it on first use.

        Args:
            path: Directory to ensure

        Returns:
            The directory path

        Raises:
            DirectoryError: If the directory cannot be created
            FatalConfigError: If the destination root has disappeared
        """
        path = Path(path)
        with self._lock.read_locked():
            if path in self._known:
                return path

        with self._lock.write_locked():
            if path in self._known:
                return path

            start = time.perf_counter()
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                if not self.destination_root.is_dir():
                    raise FatalConfigError(
                        f"Destination root is no longer available: {self.destination_root}"
                    ) from e
                raise DirectoryError(f"Failed to create directory {path}: {e}") from e

            self._known.add(path)
            self.stats.record_directory_creation(time.perf_counter() - start)

        self.logger.debug(f"Created directory: {path}")
        return path


class PathPlanner:
    """
    Derives the destination directory of a photo.

    Layout: <root>/<YYYY-MM>/<place>/<device>, the device level being
    optional.
    """

    def __init__(self, destination_root: Path, directory_cache: DirectoryCache,
                 use_device: bool = True):
        """
        Initialize the planner.

        Args:
            destination_root: Root directory for sorted photos
            directory_cache: Shared directory cache
            use_device: Whether to add a device level to the tree
        """
        self.destination_root = Path(destination_root)
        self.directory_cache = directory_cache
        self.use_device = use_device

    def destination_for(self, record: PhotoRecord, place: str) -> Path:
        """Compute the destination directory without touching the filesystem."""
        directory = (
            self.destination_root
            / (record.year_month or UNKNOWN_DATE)
            / sanitize_name(place, UNKNOWN_PLACE)
        )
        if self.use_device:
            directory = directory / sanitize_name(record.device, UNKNOWN_DEVICE)
        return directory

    def plan(self, record: PhotoRecord, place: str) -> Path:
        """Compute the destination directory and make sure it exists."""
        return self.directory_cache.ensure_dir(self.destination_for(record, place))
