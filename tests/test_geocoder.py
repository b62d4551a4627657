"""Tests for geocoder.py — LRU place cache, counters, Nominatim backend."""
import threading
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from geopy.exc import GeocoderTimedOut

from image_sorter.errors import GeoLookupError
from image_sorter.geocoder import GeoResolver, NominatimBackend, extract_place_name
from image_sorter.models import NULL_ISLAND, UNKNOWN_PLACE, Coordinate, PhotoRecord, Stage
from tests.helpers import StubBackend


PARIS = Coordinate(48.8566, 2.3522)


def _key(i: int) -> Coordinate:
    return Coordinate(round(i * 0.001, 4), 10.0)


# ── GeoResolver ───────────────────────────────────────────────────────────────

class TestResolve:
    def test_returns_backend_place(self, stats):
        resolver = GeoResolver(StubBackend({(48.8566, 2.3522): "Paris"}), stats)
        assert resolver.resolve(PARIS) == "Paris"

    def test_repeated_resolution_returns_same_place(self, stats):
        backend = StubBackend({(48.8566, 2.3522): "Paris"})
        resolver = GeoResolver(backend, stats)
        results = {resolver.resolve(PARIS) for _ in range(5)}
        assert results == {"Paris"}
        assert len(backend.calls) == 1

    def test_nearby_coordinates_share_cache_entry(self, stats):
        backend = StubBackend({(48.8566, 2.3522): "Paris"})
        resolver = GeoResolver(backend, stats)
        assert resolver.resolve(Coordinate(48.85661, 2.35221)) == "Paris"
        assert resolver.resolve(Coordinate(48.85664, 2.35218)) == "Paris"
        assert backend.calls == [(48.8566, 2.3522)]

    def test_backend_receives_rounded_coordinates(self, stats):
        backend = StubBackend()
        GeoResolver(backend, stats).resolve(Coordinate(1.234567, -7.654321))
        assert backend.calls == [(1.2346, -7.6543)]

    def test_hit_and_miss_counters(self, stats):
        resolver = GeoResolver(StubBackend(), stats)
        resolver.resolve(PARIS)
        resolver.resolve(PARIS)
        resolver.resolve(Coordinate(40.0, -3.7))
        assert stats.geocode_lookups.value == 3
        assert stats.cache_hits.value == 1
        assert stats.cache_misses.value == 2

    def test_records_geocode_duration(self, stats):
        GeoResolver(StubBackend(), stats).resolve(PARIS)
        assert stats.finalize().stage_durations[Stage.GEOCODE] >= 0.0

    def test_empty_backend_answer_is_unknown_place(self, stats):
        resolver = GeoResolver(StubBackend(default=None), stats)
        assert resolver.resolve(Coordinate(0.0, -30.0)) == UNKNOWN_PLACE

    def test_backend_failure_raises_lookup_error(self, stats):
        resolver = GeoResolver(StubBackend(fail=True), stats)
        with pytest.raises(LookupError):
            resolver.resolve(PARIS)

    def test_failure_is_not_cached(self, stats):
        backend = StubBackend(fail=True)
        resolver = GeoResolver(backend, stats)
        for _ in range(2):
            with pytest.raises(GeoLookupError):
                resolver.resolve(PARIS)
        assert len(backend.calls) == 2
        assert len(resolver) == 0
        assert stats.geocode_lookups.value == 2
        assert stats.cache_misses.value == 2

    def test_invalid_cache_size_rejected(self, stats):
        with pytest.raises(ValueError):
            GeoResolver(StubBackend(), stats, max_size=0)


class TestResolveRecord:
    def test_no_gps_is_unknown_without_lookup(self, stats):
        backend = StubBackend()
        resolver = GeoResolver(backend, stats)
        place = resolver.resolve_record(PhotoRecord(source_path=Path("b.jpg"), device="CamY"))
        assert place == UNKNOWN_PLACE
        assert backend.calls == []
        assert stats.geocode_lookups.value == 0
        assert len(resolver) == 0

    def test_gps_record_is_resolved(self, stats):
        resolver = GeoResolver(StubBackend({(48.8566, 2.3522): "Paris"}), stats)
        record = PhotoRecord(source_path=Path("a.jpg"), gps=PARIS)
        assert resolver.resolve_record(record) == "Paris"


    def test_zeroed_gps_is_null_island_without_lookup(self, stats):
        backend = StubBackend()
        resolver = GeoResolver(backend, stats)
        record = PhotoRecord(source_path=Path("z.jpg"), gps=Coordinate(0.00001, -0.00002))
        assert resolver.resolve_record(record) == NULL_ISLAND
        assert backend.calls == []
        assert stats.geocode_lookups.value == 0
        assert len(resolver) == 0


class TestLruEviction:
    def test_size_never_exceeds_bound(self, stats):
        resolver = GeoResolver(StubBackend(), stats)
        for i in range(1500):
            resolver.resolve(_key(i))
            assert len(resolver) <= 1000
        assert len(resolver) == 1000

    def test_oldest_untouched_key_evicted_first(self, stats):
        resolver = GeoResolver(StubBackend(), stats)
        for i in range(1001):
            resolver.resolve(_key(i))
        assert (_key(0).latitude, 10.0) not in resolver
        assert (_key(1).latitude, 10.0) in resolver
        assert (_key(1000).latitude, 10.0) in resolver

    def test_hit_refreshes_recency(self, stats):
        resolver = GeoResolver(StubBackend(), stats)
        for i in range(1000):
            resolver.resolve(_key(i))
        resolver.resolve(_key(0))
        resolver.resolve(_key(1000))
        assert (_key(0).latitude, 10.0) in resolver
        assert (_key(1).latitude, 10.0) not in resolver

    def test_small_cache(self, stats):
        backend = StubBackend()
        resolver = GeoResolver(backend, stats, max_size=2)
        for coordinate in (_key(1), _key(2), _key(3), _key(1)):
            resolver.resolve(coordinate)
        assert len(backend.calls) == 4
        assert len(resolver) == 2


class TestConcurrentResolution:
    def test_cache_converges_to_one_entry_per_key(self, stats):
        backend = StubBackend({(48.8566, 2.3522): "Paris"})
        resolver = GeoResolver(backend, stats)
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                place = resolver.resolve(PARIS)
                with lock:
                    results.append(place)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert set(results) == {"Paris"}
        assert len(resolver) == 1
        assert stats.geocode_lookups.value == 400
        assert stats.cache_hits.value + stats.cache_misses.value == 400
        assert stats.cache_misses.value == len(backend.calls)


class TestCacheStats:
    def test_hit_rate(self, stats):
        resolver = GeoResolver(StubBackend(), stats)
        for _ in range(4):
            resolver.resolve(PARIS)
        cache_stats = resolver.get_cache_stats()
        assert cache_stats["cache_hits"] == 3
        assert cache_stats["cache_misses"] == 1
        assert cache_stats["hit_rate_percent"] == 75.0
        assert cache_stats["cache_size"] == 1


# ── extract_place_name ────────────────────────────────────────────────────────

class TestExtractPlaceName:
    def test_city_preferred(self):
        raw = {"address": {"city": "Paris", "state": "Ile-de-France", "country": "France"}}
        assert extract_place_name(raw) == "Paris"

    def test_falls_back_to_town_then_country(self):
        assert extract_place_name({"address": {"town": "Vitre", "country": "France"}}) == "Vitre"
        assert extract_place_name({"address": {"country": "Iceland"}}) == "Iceland"

    def test_skips_placeholder_names(self):
        raw = {"address": {"city": "unknown", "county": "Cornwall"}}
        assert extract_place_name(raw) == "Cornwall"

    def test_no_address(self):
        assert extract_place_name({}) is None


# ── NominatimBackend ──────────────────────────────────────────────────────────

class TestNominatimBackend:
    def _backend(self, reverse):
        with patch("image_sorter.geocoder.Nominatim") as nominatim:
            nominatim.return_value.reverse = reverse
            return NominatimBackend(min_delay_seconds=0)

    def test_returns_place_name(self):
        location = SimpleNamespace(raw={"address": {"town": "Rennes", "country": "France"}})
        backend = self._backend(lambda *args, **kwargs: location)
        assert backend(48.0833, -1.6833) == "Rennes"

    def test_no_location_returns_none(self):
        backend = self._backend(lambda *args, **kwargs: None)
        assert backend(0.0, -30.0) is None

    def test_timeout_raises_geo_lookup_error(self):
        def reverse(*args, **kwargs):
            raise GeocoderTimedOut("timed out")

        backend = self._backend(reverse)
        with pytest.raises(GeoLookupError):
            backend(48.0833, -1.6833)

    def test_configures_geopy(self):
        with patch("image_sorter.geocoder.Nominatim") as nominatim:
            NominatimBackend(user_agent="test-agent", timeout=3, min_delay_seconds=0)
        kwargs = nominatim.call_args.kwargs
        assert kwargs["user_agent"] == "test-agent"
        assert kwargs["timeout"] == 3
