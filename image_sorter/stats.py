"""
Run statistics for the image sorter.

This module accumulates counters, breakdowns and stage durations from all
worker threads and freezes them into a PerformanceReport once the run is
over.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .models import FailureDetail, Stage
from .sync import AtomicCounter, ReadWriteLock


@dataclass(frozen=True)
class PerformanceReport:
    """Immutable snapshot of the statistics of one run."""

    elapsed_seconds: float
    photos_discovered: int
    photos_sorted: int
    extraction_attempts: int
    geocode_lookups: int
    cache_hits: int
    cache_misses: int
    copies: int
    bytes_copied: int
    directories_created: int
    duplicates_renamed: int
    photos_without_metadata: int
    failures: Mapping[Stage, int]
    places: Mapping[str, int]
    devices: Mapping[str, int]
    stage_durations: Mapping[Stage, float]
    oldest_date: Optional[str]
    newest_date: Optional[str]
    failure_details: Tuple[FailureDetail, ...]

    @property
    def total_failures(self) -> int:
        return sum(self.failures.values())

    @property
    def total_stage_time(self) -> float:
        return sum(self.stage_durations.values())

    def stage_count(self, stage: Stage) -> int:
        """Number of timed operations performed for a stage."""
        return {
            Stage.METADATA: self.extraction_attempts,
            Stage.GEOCODE: self.geocode_lookups,
            Stage.DIRECTORY: self.directories_created,
            Stage.COPY: self.copies,
        }[stage]


class StatsAggregator:
    """
    Thread-safe accumulation of run statistics.

    Scalar counters are independent AtomicCounter instances. The composite
    breakdowns share a single read-write lock which is only held while the
    in-memory structures are updated.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._start_time = time.perf_counter()

        self.photos_discovered = AtomicCounter()
        self.photos_sorted = AtomicCounter()
        self.extraction_attempts = AtomicCounter()
        self.geocode_lookups = AtomicCounter()
        self.cache_hits = AtomicCounter()
        self.cache_misses = AtomicCounter()
        self.copies = AtomicCounter()
        self.bytes_copied = AtomicCounter()
        self.directories_created = AtomicCounter()
        self.duplicates_renamed = AtomicCounter()
        self.photos_without_metadata = AtomicCounter()
        self.failures: Dict[Stage, AtomicCounter] = {stage: AtomicCounter() for stage in Stage}

        self._lock = ReadWriteLock()
        self._places: Counter = Counter()
        self._devices: Counter = Counter()
        self._stage_durations: Dict[Stage, float] = {stage: 0.0 for stage in Stage}
        self._oldest_date: Optional[str] = None
        self._newest_date: Optional[str] = None
        self._failure_details: List[FailureDetail] = []

        self._report: Optional[PerformanceReport] = None

    def restart_timer(self):
        self._start_time = time.perf_counter()

    def record_duration(self, stage: Stage, seconds: float):
        with self._lock.write_locked():
            self._stage_durations[stage] += seconds

    def record_extraction(self, seconds: float):
        self.extraction_attempts.increment()
        self.record_duration(Stage.METADATA, seconds)

    def record_directory_creation(self, seconds: float):
        self.directories_created.increment()
        self.record_duration(Stage.DIRECTORY, seconds)

    def record_copy(self, bytes_copied: int, seconds: float):
        self.copies.increment()
        self.bytes_copied.increment(bytes_copied)
        self.record_duration(Stage.COPY, seconds)

    def record_sorted(self, place: str, device: str, year_month: Optional[str] = None):
        """
        Record a photo that went through every stage.

        Args:
            place: Resolved place name (or the Unknown bucket)
            device: Device name (or the Unknown bucket)
            year_month: Capture month as YYYY-MM, if known
        """
        self.photos_sorted.increment()
        with self._lock.write_locked():
            self._places[place] += 1
            self._devices[device] += 1
            if year_month is not None:
                if self._oldest_date is None or year_month < self._oldest_date:
                    self._oldest_date = year_month
                if self._newest_date is None or year_month > self._newest_date:
                    self._newest_date = year_month

    def record_failure(self, stage: Stage, path: str, reason: str):
        self.failures[stage].increment()
        with self._lock.write_locked():
            self._failure_details.append(FailureDetail(path=path, stage=stage, reason=reason))

    def finalize(self) -> PerformanceReport:
        """
        Freeze the statistics into a PerformanceReport.

        Must be called after every worker has finished. The report is built
        once; later calls return the same object.
        """
        if self._report is not None:
            return self._report

        elapsed = time.perf_counter() - self._start_time
        with self._lock.read_locked():
            self._report = PerformanceReport(
                elapsed_seconds=elapsed,
                photos_discovered=self.photos_discovered.value,
                photos_sorted=self.photos_sorted.value,
                extraction_attempts=self.extraction_attempts.value,
                geocode_lookups=self.geocode_lookups.value,
                cache_hits=self.cache_hits.value,
                cache_misses=self.cache_misses.value,
                copies=self.copies.value,
                bytes_copied=self.bytes_copied.value,
                directories_created=self.directories_created.value,
                duplicates_renamed=self.duplicates_renamed.value,
                photos_without_metadata=self.photos_without_metadata.value,
                failures=MappingProxyType({stage: counter.value for stage, counter in self.failures.items()}),
                places=MappingProxyType(dict(self._places)),
                devices=MappingProxyType(dict(self._devices)),
                stage_durations=MappingProxyType(dict(self._stage_durations)),
                oldest_date=self._oldest_date,
                newest_date=self._newest_date,
                failure_details=tuple(self._failure_details),
            )

        self.logger.debug(f"Statistics finalized after {elapsed:.2f}s")
        return self._report
