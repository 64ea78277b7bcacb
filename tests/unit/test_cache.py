"""Unit tests for cache utilities."""
import time

from common.cache import SimpleTTLCache


class TestSimpleTTLCache:
    """Test the TTL cache implementation."""

    def test_cache_set_and_get(self):
        cache = SimpleTTLCache[str](ttl=60)

        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

    def test_cache_get_nonexistent_key(self):
        cache = SimpleTTLCache[str](ttl=60)

        assert cache.get("nonexistent") is None

    def test_cache_ttl_expiration(self):
        cache = SimpleTTLCache[str](ttl=1)

        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

        time.sleep(1.1)

        assert cache.get("key1") is None

    def test_get_or_set_computes_once(self):
        cache = SimpleTTLCache[dict](ttl=60)
        calls = []

        def factory() -> dict:
            calls.append(1)
            return {"num_reviews": len(calls)}

        assert cache.get_or_set("spot-rating:1", factory) == {"num_reviews": 1}
        assert cache.get_or_set("spot-rating:1", factory) == {"num_reviews": 1}
        assert len(calls) == 1

    def test_get_or_set_refresh(self):
        cache = SimpleTTLCache[int](ttl=60)
        cache.set("count", 1)

        assert cache.get_or_set("count", lambda: 2, refresh=True) == 2
        assert cache.get("count") == 2

    def test_cache_pop(self):
        cache = SimpleTTLCache[str](ttl=60)

        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.pop("key1")
        cache.pop("nonexistent")

        assert cache.get("key1") is None
        assert cache.get("key2") == "value2"

    def test_cache_clear(self):
        cache = SimpleTTLCache[str](ttl=60)

        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.clear()

        assert cache.get("key1") is None
        assert cache.get("key2") is None

    def test_cache_maxsize(self):
        cache = SimpleTTLCache[str](ttl=60, maxsize=2)

        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.set("key3", "value3")

        assert cache.get("key2") == "value2"
        assert cache.get("key3") == "value3"
