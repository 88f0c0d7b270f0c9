"""Tests for the LRU result cache."""

from __future__ import annotations

import json

import pytest

from fast_recall.cache import LRUCache
from conftest import FakeClock


class TestGetSet:
    def test_miss_on_empty_cache(self):
        assert LRUCache().get("absent") is None

    def test_set_then_get(self):
        cache = LRUCache()
        cache.set("k", {"results": [1, 2]})
        assert cache.get("k") == {"results": [1, 2]}

    def test_hit_updates_access_metadata(self, clock: FakeClock):
        cache = LRUCache(clock=clock)
        cache.set("k", "v")
        clock.advance(5)
        cache.get("k")
        entry = cache.entry("k")
        assert entry.access_count == 1
        assert entry.last_accessed == clock.now
        assert entry.created_at == clock.now - 5

    def test_set_existing_key_refreshes_in_place(self, clock: FakeClock):
        cache = LRUCache(clock=clock)
        cache.set("k", "old")
        created = cache.entry("k").created_at
        clock.advance(10)
        cache.set("k", "new")
        entry = cache.entry("k")
        assert cache.get("k") == "new"
        assert entry.created_at == created
        assert len(cache) == 1

    def test_values_are_copies(self):
        cache = LRUCache()
        value = {"results": [{"id": "a"}]}
        cache.set("k", value)
        value["results"].append({"id": "b"})
        got = cache.get("k")
        got["results"].clear()
        assert cache.get("k") == {"results": [{"id": "a"}]}

    def test_delete(self):
        cache = LRUCache()
        cache.set("k", "v")
        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.get("k") is None

    def test_clear(self):
        cache = LRUCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            LRUCache(capacity=0)


class TestEviction:
    def test_capacity_plus_one_evicts_first_inserted(self):
        cache = LRUCache(capacity=3)
        for key in ("k1", "k2", "k3", "k4"):
            cache.set(key, key)
        assert "k1" not in cache
        for key in ("k2", "k3", "k4"):
            assert key in cache

    def test_capacity_two_scenario(self):
        cache = LRUCache(capacity=2)
        cache.set("k1", 1)
        cache.set("k2", 2)
        cache.set("k3", 3)
        assert cache.get("k1") is None
        assert cache.get("k2") == 2
        assert cache.get("k3") == 3

    def test_get_protects_entry_from_eviction(self):
        cache = LRUCache(capacity=2)
        cache.set("k1", 1)
        cache.set("k2", 2)
        cache.get("k1")
        cache.set("k3", 3)
        assert "k1" in cache
        assert "k2" not in cache

    def test_equal_timestamps_still_evict_oldest_access(self, clock: FakeClock):
        # The clock never moves, so only access order can decide.
        cache = LRUCache(capacity=2, clock=clock)
        cache.set("k1", 1)
        cache.set("k2", 2)
        cache.set("k3", 3)
        assert cache.keys() == ["k2", "k3"]


class TestExpiry:
    def test_expired_entry_is_a_miss_and_evicted(self, clock: FakeClock):
        cache = LRUCache(max_age=60, clock=clock)
        cache.set("k", "v")
        clock.advance(61)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_entry_at_max_age_is_still_valid(self, clock: FakeClock):
        cache = LRUCache(max_age=60, clock=clock)
        cache.set("k", "v")
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_access_does_not_extend_lifetime(self, clock: FakeClock):
        cache = LRUCache(max_age=60, clock=clock)
        cache.set("k", "v")
        clock.advance(40)
        assert cache.get("k") == "v"
        clock.advance(40)
        assert cache.get("k") is None


class TestStats:
    def test_initial_stats(self):
        assert LRUCache(capacity=5).stats() == {"size": 0, "capacity": 5, "hitRate": 0.0}

    def test_hit_rate(self):
        cache = LRUCache()
        cache.get("k")  # miss
        cache.set("k", "v")
        cache.get("k")  # hit
        assert cache.stats()["hitRate"] == 0.5

    def test_expired_lookup_counts_as_miss(self, clock: FakeClock):
        cache = LRUCache(max_age=1, clock=clock)
        cache.set("k", "v")
        clock.advance(2)
        cache.get("k")
        assert cache.stats()["hitRate"] == 0.0


class TestPersistence:
    def test_round_trip(self, tmp_path, clock: FakeClock):
        path = tmp_path / "cache.json"
        cache = LRUCache(path, capacity=10, clock=clock)
        cache.set("k1", {"results": [{"id": "a", "score": 0.5}]})
        clock.advance(1)
        cache.set("k2", {"results": []})
        clock.advance(1)
        cache.get("k1")
        cache.get("missing")
        cache.flush()

        reloaded = LRUCache(path, capacity=10, clock=clock)
        assert reloaded.keys() == ["k2", "k1"]
        assert reloaded.entry("k1").access_count == 1
        assert reloaded.entry("k1").value == {"results": [{"id": "a", "score": 0.5}]}
        assert reloaded.hits == 1
        assert reloaded.misses == 1

    def test_autosave_writes_on_set(self, tmp_path):
        path = tmp_path / "cache.json"
        LRUCache(path).set("k", "v")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["entries"][0][0] == "k"

    def test_without_autosave_only_flush_writes(self, tmp_path):
        path = tmp_path / "cache.json"
        cache = LRUCache(path, autosave=False)
        cache.set("k", "v")
        assert not path.exists()
        cache.flush()
        assert path.exists()

    def test_reload_with_smaller_capacity_keeps_most_recent(self, tmp_path, clock: FakeClock):
        path = tmp_path / "cache.json"
        cache = LRUCache(path, capacity=3, clock=clock)
        for key in ("a", "b", "c"):
            cache.set(key, key)
            clock.advance(1)

        reloaded = LRUCache(path, capacity=2, clock=clock)
        assert reloaded.keys() == ["b", "c"]

    def test_corrupt_file_gives_empty_cache(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("nonsense", encoding="utf-8")
        assert len(LRUCache(path)) == 0

    def test_missing_file_gives_empty_cache(self, tmp_path):
        assert len(LRUCache(tmp_path / "absent.json")) == 0
