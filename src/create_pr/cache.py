"""In-memory TTL caches and the registry that hands them out by name.

Expiry is lazy: entries are checked when read, or swept when the caller runs
``cleanup()``. Nothing runs in the background.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = 5 * 60.0  # seconds
DEFAULT_MAX_SIZE = 100


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with the time it was stored and its time-to-live."""

    data: T
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class Cache(Generic[T]):
    """Expiring key-value store.

    ``max_size`` is advisory: it is reported by :meth:`get_stats` but the cache
    never evicts live entries to honour it.
    """

    def __init__(
        self,
        ttl: float | None = None,
        max_size: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = ttl if ttl is not None else DEFAULT_TTL
        self.max_size = max_size if max_size is not None else DEFAULT_MAX_SIZE
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> T | None:
        """Return the cached value, or None when absent or expired.

        An expired entry is evicted as part of the read.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None

        return entry.data

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        self._entries[key] = CacheEntry(
            data=value,
            timestamp=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
        )
        if len(self._entries) > self.max_size:
            logger.debug(
                f"Cache holds {len(self._entries)} entries, above advisory max_size {self.max_size}"
            )

    def has(self, key: str) -> bool:
        """Check if key exists and is not expired (evicts it if expired)."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return False
        return True

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def cleanup(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        now = self._clock()
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "default_ttl": self.default_ttl,
            "entries": [
                {"key": key, "age": now - entry.timestamp, "ttl": entry.ttl}
                for key, entry in self._entries.items()
            ],
        }


class CacheRegistry:
    """Maps cache names to independent :class:`Cache` instances."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._caches: dict[str, Cache[Any]] = {}

    def get_cache(
        self,
        name: str,
        ttl: float | None = None,
        max_size: int | None = None,
    ) -> Cache[Any]:
        """Get or create a named cache.

        Options only apply when the cache is created; later calls with the
        same name return the existing instance unchanged.
        """
        if name not in self._caches:
            logger.debug(f"Creating cache '{name}' (ttl={ttl}, max_size={max_size})")
            self._caches[name] = Cache(ttl=ttl, max_size=max_size, clock=self._clock)
        return self._caches[name]

    def names(self) -> list[str]:
        return list(self._caches)

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    def cleanup_all(self) -> int:
        return sum(cache.cleanup() for cache in self._caches.values())

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        return {name: cache.get_stats() for name, cache in self._caches.items()}


_default_registry: CacheRegistry | None = None


def get_registry() -> CacheRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = CacheRegistry()
    return _default_registry


def get_cache(name: str, ttl: float | None = None, max_size: int | None = None) -> Cache[Any]:
    return get_registry().get_cache(name, ttl=ttl, max_size=max_size)


def clear_all_caches() -> None:
    get_registry().clear_all()


def cleanup_all_caches() -> int:
    return get_registry().cleanup_all()


async def with_cache(
    cache: Cache[T],
    key: str,
    operation: Callable[[], Awaitable[T]],
    ttl: float | None = None,
) -> T:
    """Return the cached value for ``key`` or run ``operation`` and store it.

    None results are returned but never stored.
    """
    cached = cache.get(key)
    if cached is not None:
        logger.debug(f"Cache hit for {key}")
        return cached

    result = await operation()
    if result is None:
        return result
    cache.set(key, result, ttl)
    return result
