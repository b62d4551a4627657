"""
Image Sorter Package

A Python package for sorting photos by capture date, place and device.
Extracts EXIF metadata from images, reverse geocodes GPS coordinates and
copies the photos into Year-Month/Place/Device folders using a small pool
of concurrent workers.
"""

__version__ = "1.0.0"
__author__ = "Image Sorter Team"

from .metadata_extractor import MetadataExtractor
from .geocoder import GeoResolver, NominatimBackend
from .directories import DirectoryCache, PathPlanner
from .copier import CopyEngine
from .worker_pool import WorkerPool
from .stats import PerformanceReport, StatsAggregator
from .reporting import ReportFormatter
from .sorter import ImageSorter, PhotoPipeline
from .config import SorterConfig
from .logger import Logger

__all__ = [
    "MetadataExtractor",
    "GeoResolver",
    "NominatimBackend",
    "DirectoryCache",
    "PathPlanner",
    "CopyEngine",
    "WorkerPool",
    "PerformanceReport",
    "StatsAggregator",
    "ReportFormatter",
    "ImageSorter",
    "PhotoPipeline",
    "SorterConfig",
    "Logger",
]
