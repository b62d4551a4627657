"""
Geocoding module for reverse geocoding GPS coordinates.

This module resolves GPS coordinates to a place name through a
geocoding backend (Nominatim via geopy by default) and keeps the results
in a bounded least-recently-used cache shared by all workers.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from geopy.adapters import RequestsAdapter
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .errors import GeoLookupError
from .models import NULL_ISLAND, UNKNOWN_PLACE, Coordinate, GeoKey, PhotoRecord, Stage, geo_key
from .stats import StatsAggregator

DEFAULT_CACHE_SIZE = 1000

# Address keys tried in order, most specific first
PLACE_KEYS = (
    'city',
    'town',
    'village',
    'municipality',
    'suburb',
    'county',
    'state',
    'country',
)

GeocodeBackend = Callable[[float, float], Optional[str]]


class NominatimBackend:
    """
    Reverse geocoding backend using OpenStreetMap Nominatim through geopy.

    Requests go through geopy's RateLimiter so the service's one request
    per second policy is respected even with several workers.
    """

    def __init__(self, user_agent: str = "ImageSorter/1.0", timeout: float = 10,
                 min_delay_seconds: float = 1.0, retries: int = 0):
        """
        Initialize the backend.

        Args:
            user_agent: User agent string for geocoding requests
            timeout: Timeout in seconds for a single request
            min_delay_seconds: Minimum delay between two requests
            retries: Number of retries after a failed request
        """
        self.logger = logging.getLogger(__name__)
        self.geolocator = Nominatim(
            user_agent=user_agent,
            timeout=timeout,
            adapter_factory=RequestsAdapter,
        )
        self._reverse = RateLimiter(
            self.geolocator.reverse,
            min_delay_seconds=min_delay_seconds,
            max_retries=retries,
            swallow_exceptions=False,
        )
        self.logger.info(f"Geocoder initialized with Nominatim (timeout={timeout}s, retries={retries})")

    def __call__(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            location = self._reverse((latitude, longitude), language="en", exactly_one=True)
        except GeopyError as e:
            raise GeoLookupError(f"Geocoding failed for ({latitude}, {longitude}): {e}") from e

        if not location or not location.raw:
            self.logger.debug(f"No location data returned for coordinates ({latitude}, {longitude})")
            return None
        return extract_place_name(location.raw)


def extract_place_name(location_data: Dict[str, Any]) -> Optional[str]:
    """
    Pick the most specific place name from Nominatim location data.

    Args:
        location_data: Raw location data from the geocoding service

    Returns:
        Place name, or None if the address holds no usable name
    """
    address = location_data.get('address', {})
    for key in PLACE_KEYS:
        name = _clean_location_name(address.get(key))
        if name:
            return name
    return None


def _clean_location_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    name = name.strip().replace('_', ' ')
    if name.lower() in ('unknown', 'none', 'null', ''):
        return None
    return name


class GeoResolver:
    """
    Resolves GPS coordinates to place names with a bounded LRU cache.

    The cache is keyed on coordinates rounded to 4 decimal places. The
    backend is called without holding the cache lock, so two workers
    missing on the same key at the same time may both call it; the cache
    still ends up with a single entry for the key.
    """

    def __init__(self, backend: GeocodeBackend, stats: StatsAggregator,
                 max_size: int = DEFAULT_CACHE_SIZE):
        """
        Initialize the resolver.

        Args:
            backend: Callable (latitude, longitude) -> place name or None
            stats: Shared statistics aggregator
            max_size: Maximum number of cached places
        """
        if max_size < 1:
            raise ValueError(f"Cache size must be positive, got {max_size}")

        self.logger = logging.getLogger(__name__)
        self.backend = backend
        self.stats = stats
        self.max_size = max_size

        self._cache: "OrderedDict[GeoKey, str]" = OrderedDict()
        self._lock = threading.Lock()

    def resolve_record(self, record: PhotoRecord) -> str:
        """
        Return the place of a photo.

        Photos without GPS go to the Unknown bucket and a zeroed position
        maps to Null Island; neither touches the cache or the backend.
        """
        if record.gps is None:
            return UNKNOWN_PLACE
        if geo_key(record.gps) == (0.0, 0.0):
            return NULL_ISLAND
        return self.resolve(record.gps)

    def resolve(self, coordinate: Coordinate) -> str:
        """
        Resolve a coordinate to a place name.

        Args:
            coordinate: GPS coordinate to resolve

        Returns:
            Place name (the Unknown bucket if the service knows no place there)

        Raises:
            GeoLookupError: If the backend fails or times out
        """
        key = geo_key(coordinate)
        start = time.perf_counter()
        try:
            with self._lock:
                place = self._cache.get(key)
                if place is not None:
                    self._cache.move_to_end(key)
            if place is not None:
                self.stats.geocode_lookups.increment()
                self.stats.cache_hits.increment()
                self.logger.debug(f"Cache hit for coordinates {key}")
                return place

            # Counted before the backend call so failed lookups are attempts and misses too
            self.stats.geocode_lookups.increment()
            self.stats.cache_misses.increment()
            place = self.backend(*key) or UNKNOWN_PLACE

            with self._lock:
                self._cache[key] = place
                self._cache.move_to_end(key)
                while len(self._cache) > self.max_size:
                    evicted, _ = self._cache.popitem(last=False)
                    self.logger.debug(f"Evicted {evicted} from geocoding cache")
            self.logger.debug(f"Resolved {key} to {place}")
            return place
        finally:
            self.stats.record_duration(Stage.GEOCODE, time.perf_counter() - start)

    def __contains__(self, key: GeoKey) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_cache_stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache hit/miss statistics
        """
        hits = self.stats.cache_hits.value
        misses = self.stats.cache_misses.value
        total_requests = hits + misses
        hit_rate = (hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'cache_hits': hits,
            'cache_misses': misses,
            'total_requests': total_requests,
            'hit_rate_percent': round(hit_rate, 2),
            'cache_size': len(self),
        }
