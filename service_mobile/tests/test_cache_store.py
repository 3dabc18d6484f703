"""
Unit tests for the mobile cache store and sweeper.
"""

import asyncio

import pytest

from service_mobile.app.caching.cache_store import CacheStore, compile_pattern
from service_mobile.app.caching.fingerprint import default_registry, fingerprint
from service_mobile.app.caching.sweeper import CacheSweeper
from shared.test_helpers import FakeClock


class TestCacheStore:
    """Test cases for CacheStore."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(max_entries=10, clock=clock, registry=default_registry())

    def test_set_then_get_returns_entry(self, store, clock):
        """A fresh entry round-trips with its payload and expiry."""
        payload = {"stream_url": "https://a", "station_name": "X"}

        entry = store.set("radio:config", payload, 30)
        fetched = store.get("radio:config")

        assert fetched is entry
        assert fetched.payload == payload
        assert fetched.expires_at == pytest.approx(clock.now + 30)
        assert fetched.fingerprint
        assert fetched.fingerprint == fingerprint(payload, None, prefix="resource")

    def test_set_same_payload_twice_keeps_fingerprint(self, store):
        payload = {"id": 1, "title": "A"}

        first = store.set("cards:all", payload, 60)
        second = store.set("cards:all", payload, 60)

        assert first.fingerprint == second.fingerprint
        assert len(store) == 1

    def test_registered_resource_uses_allow_list(self, store):
        """Fields outside the radio allow-list do not move the fingerprint."""
        base = {
            "stream_url": "https://a",
            "metadata_url": None,
            "station_name": "X",
            "connection_status": "active",
        }
        first = store.set("mobile:radio:config", {**base, "last_tested": "2024-01-01T00:00:00Z"}, 30, resource="radio")
        second = store.set("mobile:radio:config", {**base, "last_tested": "2024-06-01T00:00:00Z"}, 30, resource="radio")

        assert first.fingerprint == second.fingerprint
        assert first.fingerprint.startswith('"radio-')

    def test_get_after_ttl_is_a_miss(self, store, clock):
        store.set("news:1", {"items": []}, 120)

        clock.advance(120.5)

        assert store.get("news:1") is None
        # Expired entries are left for the sweep.
        assert "news:1" in store
        assert store.peek("news:1") is not None

    def test_get_exactly_at_expiry_is_still_fresh(self, store, clock):
        store.set("k", {"a": 1}, 10)
        clock.advance(10)

        assert store.get("k") is not None

    def test_invalidate_wildcard(self, store):
        store.set("cards:all", {"a": 1}, 60)

        assert store.invalidate("cards:*") == 1
        assert store.get("cards:all") is None

    def test_invalidate_namespace_leaves_other_keys(self, store):
        store.set("ns:one", {"a": 1}, 60)
        store.set("ns:two", {"a": 2}, 60)
        store.set("other:key", {"a": 3}, 60)

        removed = store.invalidate("ns:*")

        assert removed == 2
        assert store.get("ns:anything") is None
        assert store.get("other:key") is not None

    def test_invalidate_exact_key_and_no_match(self, store):
        store.set("mobile:cards:all", {"a": 1}, 60)
        store.set("mobile:cards:all:extra", {"a": 2}, 60)

        assert store.invalidate("mobile:cards:all") == 1
        assert store.get("mobile:cards:all:extra") is not None
        assert store.invalidate("missing:*") == 0
        assert store.invalidate("missing") == 0

    def test_pattern_characters_are_literal(self):
        regex = compile_pattern("mobile:news:1.*")

        assert regex.match("mobile:news:1.5")
        assert not regex.match("mobile:news:105")

    def test_sweep_removes_expired(self, store, clock):
        store.set("short", {"a": 1}, 5)
        store.set("long", {"a": 2}, 500)
        clock.advance(6)

        removed = store.sweep()

        assert removed == 1
        assert "short" not in store
        assert "long" in store

    def test_sweep_evicts_oldest_when_over_capacity(self, clock):
        store = CacheStore(max_entries=2, clock=clock)
        store.set("a", {"v": 1}, 100)
        clock.advance(1)
        store.set("b", {"v": 2}, 100)
        clock.advance(1)
        store.set("c", {"v": 3}, 100)

        # Reading "a" does not protect it under the oldest-first policy.
        store.get("a")
        removed = store.sweep()

        assert removed == 1
        assert store.keys() == ["b", "c"]

    def test_sweep_evicts_least_recently_read_under_lru(self, clock):
        store = CacheStore(max_entries=2, eviction_policy="lru", clock=clock)
        store.set("a", {"v": 1}, 100)
        clock.advance(1)
        store.set("b", {"v": 2}, 100)
        clock.advance(1)
        store.set("c", {"v": 3}, 100)

        store.get("a")
        store.sweep()

        assert sorted(store.keys()) == ["a", "c"]

    def test_unknown_eviction_policy_rejected(self):
        with pytest.raises(ValueError):
            CacheStore(eviction_policy="random")

    def test_ttl_remaining_and_stats(self, store, clock):
        store.set("k", {"a": 1}, 30)
        clock.advance(10)

        assert store.ttl_remaining("k") == 20
        assert store.ttl_remaining("absent") is None

        store.get("k")
        store.get("absent")
        stats = store.stats()

        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["keys"] == ["k"]
        assert stats["memory_estimate"] > 0

    def test_clear(self, store):
        store.set("a", {}, 10)
        store.set("b", {}, 10)

        assert store.clear() == 2
        assert len(store) == 0


class TestCacheSweeper:
    """Test cases for CacheSweeper."""

    def test_run_once_sweeps(self):
        clock = FakeClock()
        store = CacheStore(clock=clock)
        store.set("a", {}, 1)
        clock.advance(2)

        assert CacheSweeper(store).run_once() == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        clock = FakeClock()
        store = CacheStore(clock=clock)
        store.set("a", {}, 1)
        clock.advance(2)
        sweeper = CacheSweeper(store, interval_seconds=0.01)

        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.running
        assert len(store) == 0
