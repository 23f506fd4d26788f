"""Tests for the region-partitioned TTL cache."""

from common.cache import TTLCache
from constants import CacheRegions


def test_regions_are_independent():
    cache = TTLCache()
    cache.set(CacheRegions.RESOLVED_TREE, "k", "tree")
    cache.set(CacheRegions.VULNERABILITIES, "k", "report")

    assert cache.get(CacheRegions.RESOLVED_TREE, "k") == "tree"
    assert cache.get(CacheRegions.VULNERABILITIES, "k") == "report"
    assert cache.get(CacheRegions.SEARCH, "k") is None


def test_expired_entries_are_dropped(monkeypatch):
    clock = {"now": 1000.0}
    monkeypatch.setattr("common.cache.time.time", lambda: clock["now"])
    cache = TTLCache()
    cache.set(CacheRegions.SEARCH, "q", [1, 2], ttl=5)

    clock["now"] += 4
    assert cache.get(CacheRegions.SEARCH, "q") == [1, 2]
    clock["now"] += 2
    assert cache.get(CacheRegions.SEARCH, "q") is None


def test_region_default_ttl_applies(monkeypatch):
    clock = {"now": 0.0}
    monkeypatch.setattr("common.cache.time.time", lambda: clock["now"])
    cache = TTLCache()
    cache.set(CacheRegions.VULNERABILITIES, "k", "v")

    clock["now"] = CacheRegions.VULNERABILITIES.value - 1
    assert cache.get(CacheRegions.VULNERABILITIES, "k") == "v"
    clock["now"] = CacheRegions.VULNERABILITIES.value + 1
    assert cache.get(CacheRegions.VULNERABILITIES, "k") is None


def test_none_is_not_stored():
    cache = TTLCache()
    cache.set(CacheRegions.SEARCH, "k", None)
    assert cache.stats()["total_entries"] == 0


def test_invalidate_key_and_region():
    cache = TTLCache()
    cache.set(CacheRegions.SEARCH, "a", 1)
    cache.set(CacheRegions.SEARCH, "b", 2)
    cache.set(CacheRegions.VERSION_INFO, "a", 3)

    cache.invalidate(CacheRegions.SEARCH, "a")
    assert cache.get(CacheRegions.SEARCH, "a") is None
    assert cache.get(CacheRegions.SEARCH, "b") == 2

    cache.invalidate(CacheRegions.SEARCH)
    assert cache.get(CacheRegions.SEARCH, "b") is None
    assert cache.get(CacheRegions.VERSION_INFO, "a") == 3


def test_oldest_entries_evicted_over_capacity(monkeypatch):
    clock = {"now": 0.0}
    monkeypatch.setattr("common.cache.time.time", lambda: clock["now"])
    cache = TTLCache(max_entries=3)
    for i in range(4):
        clock["now"] += 1
        cache.set(CacheRegions.SEARCH, str(i), i)

    assert cache.get(CacheRegions.SEARCH, "0") is None
    assert cache.get(CacheRegions.SEARCH, "3") == 3
    assert cache.stats()["total_entries"] == 3
