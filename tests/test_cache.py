"""Tests for TTL caches and the cache registry."""

from unittest.mock import AsyncMock

import pytest

from create_pr import cache as cache_module
from create_pr.cache import (
    DEFAULT_MAX_SIZE,
    DEFAULT_TTL,
    Cache,
    CacheRegistry,
    clear_all_caches,
    get_cache,
    with_cache,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCache:
    """Test the expiring key-value store."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = Cache(ttl=10, clock=self.clock)

    def test_defaults(self):
        cache = Cache()
        assert cache.default_ttl == DEFAULT_TTL
        assert cache.max_size == DEFAULT_MAX_SIZE

    def test_set_and_get(self):
        self.cache.set("key", "value")
        assert self.cache.get("key") == "value"
        assert self.cache.has("key")
        assert self.cache.get("missing") is None

    def test_entry_alive_at_exact_ttl(self):
        self.cache.set("key", "value")
        self.clock.advance(10)
        assert self.cache.get("key") == "value"

    def test_expired_entry_is_evicted_on_read(self):
        self.cache.set("key", "value")
        assert self.cache.size() == 1

        self.clock.advance(11)

        assert self.cache.get("key") is None
        assert self.cache.size() == 0

    def test_has_evicts_expired(self):
        self.cache.set("key", "value")
        self.clock.advance(11)
        assert not self.cache.has("key")
        assert self.cache.size() == 0

    def test_per_entry_ttl(self):
        self.cache.set("short", 1, ttl=1)
        self.cache.set("long", 2)
        self.clock.advance(5)
        assert self.cache.get("short") is None
        assert self.cache.get("long") == 2

    def test_delete_and_clear(self):
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False
        self.cache.clear()
        assert self.cache.size() == 0

    def test_cleanup_removes_only_expired(self):
        self.cache.set("old", 1, ttl=1)
        self.cache.set("older", 2, ttl=2)
        self.cache.set("fresh", 3)
        self.clock.advance(5)

        removed = self.cache.cleanup()

        assert removed == 2
        assert self.cache.size() == 1
        assert self.cache.get("fresh") == 3

    def test_max_size_is_advisory(self):
        cache = Cache(max_size=2, clock=self.clock)
        for i in range(5):
            cache.set(f"k{i}", i)
        assert cache.size() == 5
        assert cache.get("k0") == 0

    def test_stats(self):
        self.cache.set("key", "value")
        self.clock.advance(3)

        stats = self.cache.get_stats()

        assert stats["size"] == 1
        assert stats["max_size"] == DEFAULT_MAX_SIZE
        assert stats["default_ttl"] == 10
        assert stats["entries"] == [{"key": "key", "age": 3, "ttl": 10}]


class TestCacheRegistry:
    """Test named cache management."""

    def setup_method(self):
        self.clock = FakeClock()
        self.registry = CacheRegistry(clock=self.clock)

    def test_same_name_same_instance(self):
        first = self.registry.get_cache("tickets", ttl=10)
        second = self.registry.get_cache("tickets", ttl=99, max_size=1)

        assert first is second
        assert second.default_ttl == 10
        assert second.max_size == DEFAULT_MAX_SIZE

    def test_different_names_are_independent(self):
        self.registry.get_cache("a").set("key", 1)
        assert self.registry.get_cache("b").get("key") is None
        assert sorted(self.registry.names()) == ["a", "b"]

    def test_clear_all(self):
        self.registry.get_cache("a").set("key", 1)
        self.registry.get_cache("b").set("key", 2)
        self.registry.clear_all()
        assert self.registry.get_cache("a").size() == 0
        assert self.registry.get_cache("b").size() == 0

    def test_cleanup_all(self):
        self.registry.get_cache("a", ttl=1).set("key", 1)
        self.registry.get_cache("b", ttl=1).set("key", 2)
        self.registry.get_cache("c", ttl=100).set("key", 3)
        self.clock.advance(5)

        assert self.registry.cleanup_all() == 2

    def test_get_all_stats(self):
        self.registry.get_cache("a").set("key", 1)
        stats = self.registry.get_all_stats()
        assert stats["a"]["size"] == 1


class TestModuleHelpers:
    """Test the process-wide registry helpers."""

    def setup_method(self):
        cache_module._default_registry = None

    def teardown_method(self):
        cache_module._default_registry = None

    def test_get_cache_is_shared(self):
        get_cache("shared").set("key", "value")
        assert get_cache("shared").get("key") == "value"

    def test_clear_all_caches(self):
        get_cache("shared").set("key", "value")
        clear_all_caches()
        assert get_cache("shared").size() == 0


class TestWithCache:
    """Test the cache-or-compute helper."""

    def setup_method(self):
        self.cache = Cache(clock=FakeClock())

    @pytest.mark.asyncio
    async def test_computes_once(self):
        operation = AsyncMock(return_value="computed")

        first = await with_cache(self.cache, "key", operation)
        second = await with_cache(self.cache, "key", operation)

        assert first == second == "computed"
        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self):
        operation = AsyncMock(return_value=None)

        await with_cache(self.cache, "key", operation)
        await with_cache(self.cache, "key", operation)

        assert operation.await_count == 2
        assert not self.cache.has("key")

    @pytest.mark.asyncio
    async def test_errors_propagate_and_are_not_cached(self):
        operation = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await with_cache(self.cache, "key", operation)

        assert self.cache.size() == 0
