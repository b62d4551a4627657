"""
Metadata extraction module for photos.

This module reads the capture time, GPS position and camera model of an
image. Pillow is tried first; exifread is used for files Pillow cannot
open (HEIC from phones, for instance).
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import exifread
from PIL import Image, UnidentifiedImageError
from PIL.ExifTags import GPSTAGS, TAGS

from .errors import MetadataError
from .models import Coordinate, PhotoRecord

EXIF_IFD = 0x8769
GPS_IFD = 0x8825

# Checked in priority order
DATE_TAGS = ('DateTimeOriginal', 'DateTimeDigitized', 'DateTime')
DEVICE_TAGS = ('Model', 'Make')

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

TagValues = Dict[str, Any]


class MetadataExtractor:
    """
    Extracts a PhotoRecord from an image file.

    A readable image without EXIF data gives a record whose optional
    fields are all empty. Unreadable or corrupt files raise MetadataError.
    """

    def __init__(self):
        """Initialize the metadata extractor."""
        self.logger = logging.getLogger(__name__)

    def extract(self, file_path: Union[str, Path]) -> PhotoRecord:
        """
        Extract metadata from an image file.

        Args:
            file_path: Path to the image file

        Returns:
            PhotoRecord for the file

        Raises:
            MetadataError: If the file is missing, unreadable or corrupt
        """
        path = Path(file_path)
        tags, gps_tags = self._read_tags(path)

        record = PhotoRecord(
            source_path=path,
            captured_at=_first_date(tags),
            gps=_convert_gps_to_decimal(gps_tags),
            device=_first_text(tags, DEVICE_TAGS),
        )
        self.logger.debug(f"Metadata for {path}: {record}")
        return record

    def _read_tags(self, path: Path) -> Tuple[TagValues, TagValues]:
        if not path.is_file():
            raise MetadataError(f"File does not exist: {path}")

        try:
            return self._read_with_pil(path)
        except UnidentifiedImageError as e:
            self.logger.debug(f"PIL cannot identify {path}, trying exifread: {e}")
        except OSError as e:
            raise MetadataError(f"Cannot read {path}: {e}") from e

        tags, gps_tags = self._read_with_exifread(path)
        if not tags and not gps_tags:
            raise MetadataError(f"Unreadable or corrupt image: {path}")
        return tags, gps_tags

    def _read_with_pil(self, path: Path) -> Tuple[TagValues, TagValues]:
        with Image.open(path) as img:
            exif = img.getexif()
            exif_ifd = exif.get_ifd(EXIF_IFD)
            gps_ifd = exif.get_ifd(GPS_IFD)

        tags = {TAGS.get(tag_id, tag_id): value for tag_id, value in exif.items()}
        tags.update({TAGS.get(tag_id, tag_id): value for tag_id, value in exif_ifd.items()})
        gps_tags = {GPSTAGS.get(tag_id, tag_id): value for tag_id, value in gps_ifd.items()}
        return tags, gps_tags

    def _read_with_exifread(self, path: Path) -> Tuple[TagValues, TagValues]:
        try:
            with open(path, 'rb') as f:
                raw = exifread.process_file(f, details=False)
        except OSError as e:
            raise MetadataError(f"Cannot read {path}: {e}") from e

        tags: TagValues = {}
        gps_tags: TagValues = {}
        for name, value in raw.items():
            group, _, tag = name.partition(' ')
            if group == 'GPS':
                gps_tags[tag] = value.values if tag in ('GPSLatitude', 'GPSLongitude') else str(value)
            elif group in ('Image', 'EXIF'):
                tags.setdefault(tag, str(value))
        return tags, gps_tags


def parse_exif_date(raw_value: Any) -> Optional[datetime]:
    """Parse an EXIF date string, returning None if invalid or zeroed."""
    text = _to_text(raw_value)
    if not text:
        return None
    try:
        return datetime.strptime(text[:19], EXIF_DATE_FORMAT)
    except ValueError:
        return None


def _first_date(tags: TagValues) -> Optional[datetime]:
    for tag in DATE_TAGS:
        captured_at = parse_exif_date(tags.get(tag))
        if captured_at is not None:
            return captured_at
    return None


def _first_text(tags: TagValues, names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        text = _to_text(tags.get(name))
        if text:
            return text
    return None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='ignore')
    return str(value).strip('\x00 ') or None


def _to_float(value: Any) -> float:
    # exifread ratios expose num/den
    if hasattr(value, 'num') and hasattr(value, 'den'):
        return float(value.num) / float(value.den) if value.den else math.nan
    return float(value)


def _convert_dms_to_decimal(gps_tags: TagValues, coord_key: str, ref_key: str) -> Optional[float]:
    """
    Convert degrees/minutes/seconds to a decimal coordinate.

    Args:
        gps_tags: GPS tags keyed by name
        coord_key: Key for the coordinate value
        ref_key: Key for the coordinate reference (N/S, E/W)

    Returns:
        Decimal coordinate value, None if missing or malformed
    """
    coord = gps_tags.get(coord_key)
    if not isinstance(coord, (list, tuple)) or len(coord) < 3:
        return None

    try:
        degrees, minutes, seconds = (_to_float(part) for part in coord[:3])
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)
    if (_to_text(gps_tags.get(ref_key)) or '').upper() in ('S', 'W'):
        decimal = -decimal
    return decimal


def _convert_gps_to_decimal(gps_tags: TagValues) -> Optional[Coordinate]:
    """Build a coordinate from GPS tags, None when absent or out of range."""
    lat = _convert_dms_to_decimal(gps_tags, 'GPSLatitude', 'GPSLatitudeRef')
    lon = _convert_dms_to_decimal(gps_tags, 'GPSLongitude', 'GPSLongitudeRef')
    if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return Coordinate(lat, lon)
