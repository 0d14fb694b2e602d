"""
Tests for the TTL pool cache.
"""
from __future__ import annotations

from alertsynth.cache import CacheStore, pool_fingerprint


class FakeClock:
    def __init__(self, t: float = 1000.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


def test_fingerprint_shape():
    assert pool_fingerprint(100, 50, "nba", True) == "100-50-nba-true"
    assert pool_fingerprint(100) == "100-0-none-false"
    assert pool_fingerprint(10, None, None, False) != pool_fingerprint(10, None, None, True)


def test_entry_valid_until_ttl():
    clock = FakeClock()
    cache = CacheStore(ttl_seconds=3600, clock=clock)
    cache.put("k", "pool")
    clock.t += 3599
    assert cache.get("k") == "pool"
    clock.t += 1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_put_overwrites_stale_entry():
    clock = FakeClock()
    cache = CacheStore(ttl_seconds=10, clock=clock)
    cache.put("k", "old")
    clock.t += 20
    cache.put("k", "new")
    assert cache.get("k") == "new"
    assert len(cache) == 1


def test_oldest_entry_evicted_at_capacity():
    clock = FakeClock()
    cache = CacheStore(max_entries=2, clock=clock)
    cache.put("a", 1)
    clock.t += 1
    cache.put("b", 2)
    clock.t += 1
    cache.put("c", 3)
    assert cache.get("a") is None
    assert cache.get("b") == 2 and cache.get("c") == 3


def test_clear_expired_and_stats():
    clock = FakeClock()
    cache = CacheStore(ttl_seconds=5, clock=clock)
    cache.put("a", 1)
    clock.t += 10
    cache.put("b", 2)
    assert cache.clear_expired() == 1
    assert cache.get("b") == 2
    assert cache.get("zzz") is None
    stats = cache.stats()
    assert stats["size"] == 1 and stats["hits"] == 1 and stats["misses"] == 1
    assert stats["hit_rate"] == 0.5
    cache.clear()
    assert len(cache) == 0
