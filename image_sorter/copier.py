"""
File copy module.

Streams photo bytes from the source to the destination tree, claiming a
free destination name atomically and recording size and elapsed time.
"""

import errno
import logging
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Tuple

from .errors import CopyError
from .stats import StatsAggregator

CHUNK_SIZE = 1024 * 1024

MAX_COLLISION_ATTEMPTS = 999


class CopyEngine:
    """
    Copies files into the destination tree.

    Existing files are never overwritten: when the destination name is
    taken the copy is stored as <stem>_2<suffix>, <stem>_3<suffix>, ...
    """

    def __init__(self, stats: StatsAggregator, chunk_size: int = CHUNK_SIZE):
        self.logger = logging.getLogger(__name__)
        self.stats = stats
        self.chunk_size = chunk_size

    def copy(self, source: Path, destination: Path) -> int:
        """
        Copy a file to the destination.

        Args:
            source: Source file path
            destination: Requested destination file path

        Returns:
            Number of bytes copied

        Raises:
            CopyError: If the source vanished, access was denied, the disk
                is full or any other I/O error occurred
        """
        source = Path(source)
        destination = Path(destination)
        start = time.perf_counter()

        try:
            src_file = open(source, 'rb')
        except FileNotFoundError as e:
            raise CopyError(f"Source file vanished: {source}") from e
        except OSError as e:
            raise _copy_error(e, source, destination) from e

        with src_file:
            dst_file, target = self._open_unique(destination)
            try:
                with dst_file:
                    shutil.copyfileobj(src_file, dst_file, self.chunk_size)
                    bytes_copied = dst_file.tell()
                shutil.copystat(source, target)
            except OSError as e:
                target.unlink(missing_ok=True)
                raise _copy_error(e, source, target) from e

        self.stats.record_copy(bytes_copied, time.perf_counter() - start)
        if target != destination:
            self.stats.duplicates_renamed.increment()
            self.logger.info(f"Renamed duplicate: {destination.name} -> {target.name}")
        self.logger.info(f"Copied: {source} -> {target}")
        return bytes_copied

    def _open_unique(self, destination: Path) -> Tuple[BinaryIO, Path]:
        """Create the first free file name derived from destination."""
        candidate = destination
        for counter in range(2, MAX_COLLISION_ATTEMPTS + 2):
            try:
                return open(candidate, 'xb'), candidate
            except FileExistsError:
                candidate = destination.with_name(f"{destination.stem}_{counter}{destination.suffix}")
            except OSError as e:
                raise _copy_error(e, destination, candidate) from e

        raise CopyError(
            f"Could not resolve filename collision after {MAX_COLLISION_ATTEMPTS} "
            f"attempts for: {destination}"
        )


def _copy_error(error: OSError, source: Path, destination: Path) -> CopyError:
    if isinstance(error, PermissionError):
        reason = "permission denied"
    elif error.errno == errno.ENOSPC:
        reason = "disk full"
    elif isinstance(error, FileNotFoundError):
        reason = "file not found"
    else:
        reason = str(error)
    return CopyError(f"Failed to copy {source} -> {destination}: {reason}")
