"""TTL cache helpers for per-spot aggregates."""
from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

from cachetools import TTLCache

T = TypeVar("T")


class SimpleTTLCache(Generic[T]):
    def __init__(self, ttl: int, maxsize: int = 256) -> None:
        self._cache: TTLCache[str, T] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: str) -> Optional[T]:
        return self._cache.get(key)

    def set(self, key: str, value: T) -> None:
        self._cache[key] = value

    def get_or_set(self, key: str, factory: Callable[[], T], refresh: bool = False) -> T:
        """Return the cached value, computing and storing it on a miss or when ``refresh`` is set."""

        if not refresh:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        value = factory()
        self._cache[key] = value
        return value

    def pop(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()
