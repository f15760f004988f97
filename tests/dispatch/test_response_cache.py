"""Tests for ResponseCache."""

import pytest

from atrium.config import CacheConfig
from atrium.dispatch import ResponseCache


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache:
    return ResponseCache(CacheConfig(ttl_seconds=300, max_entries=3), clock=clock)


class TestKeys:
    """Tests for cache key construction."""

    def test_key_includes_user_and_model(self, cache: ResponseCache):
        assert cache.make_key("u1", "m1", "hi") != cache.make_key("u2", "m1", "hi")
        assert cache.make_key("u1", "m1", "hi") != cache.make_key("u1", "m2", "hi")

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            (("alice", "x-y", "hi"), ("alice-x", "y", "hi")),
            (("demo-user", "m", "hi"), ("demo", "user-m", "hi")),
            (("a\x1fb", "m", "hi"), ("a", "b\x1fm", "hi")),
            (('a", "b', "m", "hi"), ("a", 'b", "m', "hi")),
        ],
    )
    def test_distinct_ids_never_share_a_key(self, cache: ResponseCache, first, second):
        assert cache.make_key(*first) != cache.make_key(*second)

    def test_dashed_user_ids_keep_separate_slots(self, cache: ResponseCache):
        cache.set(cache.make_key("alice", "x-y", "hi"), "for alice", user_id="alice")
        assert cache.lookup(cache.make_key("alice-x", "y", "hi")) is None
        assert cache.lookup(cache.make_key("alice", "x-y", "hi")).response == "for alice"

    def test_long_messages_share_prefix_slot(self, cache: ResponseCache):
        base = "a" * 100
        assert cache.make_key("u1", "m", base + "x") == cache.make_key("u1", "m", base + "y")


class TestExpiry:
    """Tests for TTL behavior."""

    def test_hit_within_ttl(self, cache: ResponseCache, clock: FakeClock):
        cache.set("k", "answer", tier="unified")
        clock.now += 299
        entry = cache.lookup("k")
        assert entry is not None
        assert entry.response == "answer"
        assert entry.tier == "unified"

    def test_miss_at_ttl(self, cache: ResponseCache, clock: FakeClock):
        cache.set("k", "answer")
        clock.now += 300
        assert cache.get("k") is None

    def test_set_refreshes_timestamp(self, cache: ResponseCache, clock: FakeClock):
        cache.set("k", "old")
        clock.now += 200
        cache.set("k", "new")
        clock.now += 200
        assert cache.get("k") == "new"

    def test_purge_expired(self, cache: ResponseCache, clock: FakeClock):
        cache.set("old", "x")
        clock.now += 250
        cache.set("fresh", "y")
        clock.now += 100

        assert cache.purge_expired() == 1
        assert len(cache) == 1
        assert cache.get("fresh") == "y"


class TestEviction:
    """Tests for the size bound."""

    def test_fifo_eviction(self, cache: ResponseCache):
        for key in ("a", "b", "c", "d"):
            cache.set(key, key)
        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("d") == "d"
        assert cache.evictions == 1

    def test_reset_moves_key_to_back(self, cache: ResponseCache):
        for key in ("a", "b", "c"):
            cache.set(key, key)
        cache.set("a", "again")
        cache.set("d", "d")
        assert cache.get("a") == "again"
        assert cache.get("b") is None


class TestAdmin:
    """Tests for invalidation and stats."""

    def test_invalidate_user(self, cache: ResponseCache):
        cache.set("u1-m-a", "x", user_id="u1")
        cache.set("u1-m-b", "y", user_id="u1")
        cache.set("u2-m-a", "z", user_id="u2")

        assert cache.invalidate_user("u1") == 2
        assert cache.get("u2-m-a") == "z"

    def test_stats_counts_hits_and_misses(self, cache: ResponseCache):
        cache.set("k", "v", fallback=True)
        assert cache.lookup("k").fallback
        cache.get("missing")

        stats = cache.stats()
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["ttl_seconds"] == 300

    def test_clear_resets_counters(self, cache: ResponseCache):
        cache.set("k", "v")
        cache.get("k")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats()["hits"] == 0
