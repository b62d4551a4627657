"""
Data types shared across the sorting pipeline.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

UNKNOWN_PLACE = "Unknown"
UNKNOWN_DATE = "Unknown Date"
UNKNOWN_DEVICE = "Unknown Device"

# Place of a zeroed GPS position, resolved without a lookup
NULL_ISLAND = "Null Island"

# 4 decimal places is roughly 11 metres on the ground
GEO_KEY_PRECISION = 4


class Stage(Enum):
    """The four instrumented stages of the per-photo pipeline."""

    METADATA = "metadata"
    GEOCODE = "geocode"
    DIRECTORY = "directory"
    COPY = "copy"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    Stage.METADATA: "EXIF reading",
    Stage.GEOCODE: "Geocoding",
    Stage.DIRECTORY: "Directory creation",
    Stage.COPY: "File copying",
}


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


GeoKey = Tuple[float, float]


def geo_key(coordinate: Coordinate) -> GeoKey:
    """Round a coordinate to the precision used for cache lookups."""
    return (
        round(coordinate.latitude, GEO_KEY_PRECISION),
        round(coordinate.longitude, GEO_KEY_PRECISION),
    )


@dataclass(frozen=True)
class PhotoRecord:
    """Metadata extracted from one photo."""

    source_path: Path
    captured_at: Optional[datetime] = None
    gps: Optional[Coordinate] = None
    device: Optional[str] = None

    @property
    def has_metadata(self) -> bool:
        return any(value is not None for value in (self.captured_at, self.gps, self.device))

    @property
    def year_month(self) -> Optional[str]:
        if self.captured_at is None:
            return None
        return self.captured_at.strftime("%Y-%m")


@dataclass(frozen=True)
class FailureDetail:
    path: str
    stage: Stage
    reason: str
