"""
Sorting orchestration.

This module wires the shared caches and statistics together, runs the
per-photo pipeline (extract, resolve, plan, copy) on the worker pool and
produces the final statistics snapshot.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional

from .config import SorterConfig
from .copier import CopyEngine
from .directories import DirectoryCache, PathPlanner, find_images, sanitize_name
from .errors import FatalConfigError, ImageSorterError
from .geocoder import GeoResolver, GeocodeBackend, NominatimBackend
from .logger import Logger
from .metadata_extractor import MetadataExtractor
from .models import UNKNOWN_DEVICE, UNKNOWN_PLACE, Stage
from .stats import PerformanceReport, StatsAggregator
from .worker_pool import WorkerPool


class PhotoPipeline:
    """
    The four pipeline stages for a single photo.

    Any error other than FatalConfigError is recorded as a failure of the
    stage that raised it; the photo is skipped and the run goes on.
    """

    def __init__(self, extractor: MetadataExtractor, resolver: GeoResolver,
                 planner: PathPlanner, copy_engine: CopyEngine, stats: StatsAggregator):
        self.logger = logging.getLogger(__name__)
        self.extractor = extractor
        self.resolver = resolver
        self.planner = planner
        self.copy_engine = copy_engine
        self.stats = stats

    def process(self, source: Path) -> Optional[Path]:
        """
        Sort one photo.

        Args:
            source: Source photo path

        Returns:
            Destination directory, or None if the photo was skipped

        Raises:
            FatalConfigError: If the destination root became unusable
        """
        stage = Stage.METADATA
        try:
            start = time.perf_counter()
            try:
                record = self.extractor.extract(source)
            finally:
                self.stats.record_extraction(time.perf_counter() - start)

            stage = Stage.GEOCODE
            place = self.resolver.resolve_record(record)

            stage = Stage.DIRECTORY
            directory = self.planner.plan(record, place)

            stage = Stage.COPY
            self.copy_engine.copy(source, directory / source.name)
        except FatalConfigError:
            raise
        except ImageSorterError as e:
            self._record_failure(stage, source, str(e))
            return None
        except Exception as e:
            self.logger.exception(f"Unexpected error while processing {source}")
            self._record_failure(stage, source, f"unexpected error: {e}")
            return None

        # Same names as the directories they were copied to
        place = sanitize_name(place, UNKNOWN_PLACE)
        device = sanitize_name(record.device, UNKNOWN_DEVICE)
        self.stats.record_sorted(place, device, record.year_month)
        if not record.has_metadata:
            self.stats.photos_without_metadata.increment()
        Logger.log_photo_sorted(source, place, device)
        return directory

    __call__ = process

    def _record_failure(self, stage: Stage, source: Path, reason: str):
        Logger.log_photo_failure(stage, source, reason)
        self.stats.record_failure(stage, str(source), reason)


class ImageSorter:
    """
    Main application class that orchestrates a sorting run.

    All shared state (geocoding cache, directory cache, statistics) is
    created here once per run and handed to the components that use it.
    """

    def __init__(self, config: SorterConfig, backend: Optional[GeocodeBackend] = None,
                 extractor: Optional[MetadataExtractor] = None,
                 logger: Optional[Logger] = None):
        """
        Initialize the sorter.

        Args:
            config: Run configuration
            backend: Reverse geocoding backend, Nominatim when omitted
            extractor: Metadata extractor, the EXIF based one when omitted
            logger: Logging helper used for progress bars

        Raises:
            FatalConfigError: If the configuration is unusable
        """
        config.validate()
        self.config = config
        self.log = logging.getLogger(__name__)
        self.logger = logger
        self.stats = StatsAggregator()

        if backend is None:
            backend = NominatimBackend(
                user_agent=config.user_agent,
                timeout=config.geocode_timeout,
                min_delay_seconds=config.geocode_min_delay,
                retries=config.geocode_retries,
            )
        if extractor is None:
            extractor = MetadataExtractor()

        self.resolver = GeoResolver(backend, self.stats, max_size=config.cache_size)
        self.directory_cache = DirectoryCache(config.dest_dir, self.stats)
        self.planner = PathPlanner(config.dest_dir, self.directory_cache, use_device=config.use_device)
        self.pipeline = PhotoPipeline(
            extractor, self.resolver, self.planner, CopyEngine(self.stats), self.stats
        )

    def run(self, paths: Optional[Iterable[Path]] = None) -> PerformanceReport:
        """
        Sort every photo and return the final statistics.

        Args:
            paths: Photos to sort, all images under the source directory
                when omitted

        Returns:
            Frozen statistics of the run

        Raises:
            FatalConfigError: If the destination root becomes unusable
        """
        self.stats.restart_timer()

        photos: List[Path] = list(paths) if paths is not None else find_images(self.config.source_dir)
        self.stats.photos_discovered.increment(len(photos))
        if not photos:
            self.log.warning("No images found in the source directory.")

        progress_bar = None
        if self.logger is not None:
            progress_bar = self.logger.create_progress_bar(
                len(photos), "Sorting photos", enabled=self.config.show_progress
            )

        pool = WorkerPool(self.pipeline, workers=self.config.workers, progress_bar=progress_bar)
        try:
            pool.run(photos)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        report = self.stats.finalize()
        cache_stats = self.resolver.get_cache_stats()
        self.log.info(
            f"Geocoding cache: {cache_stats['cache_hits']} hits, {cache_stats['cache_misses']} misses "
            f"({cache_stats['hit_rate_percent']}% hit rate)"
        )
        self.log.info(f"Directory cache: {len(self.directory_cache)} directories cached")
        return report
