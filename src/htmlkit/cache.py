"""Fingerprint-keyed cache of transformed template text."""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional


def fingerprint(text: str, namespace: str = "") -> str:
    """Compute a stable content fingerprint.

    Args:
        text: Template text to fingerprint
        namespace: Optional salt separating otherwise identical texts that
            are transformed under different settings

    Returns:
        Hex digest identifying the text
    """
    payload = f"{namespace}\x00{text}" if namespace else text
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class FingerprintCache:
    """Thread-safe LRU cache with TTL expiry.

    Values are keyed by content fingerprint only, never by resolution state,
    so a single instance can be shared by concurrent renders.
    """

    def __init__(self, max_entries: int = 100, ttl_seconds: float = 300):
        """Initialize the cache.

        Args:
            max_entries: Capacity before least recently used entries are
                evicted; 0 disables caching
            ttl_seconds: Time-to-live for cached entries in seconds
        """
        self._cache: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._lock = threading.RLock()
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def enabled(self) -> bool:
        return self._max_entries > 0

    def get(self, key: str) -> Optional[str]:
        """Get a cached value if present and fresh.

        Args:
            key: Content fingerprint

        Returns:
            Cached value, or None on a miss or expiry
        """
        if not self.enabled:
            return None

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if time.time() - entry["timestamp"] > self._ttl_seconds:
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return entry["value"]

    def set(self, key: str, value: str) -> None:
        """Cache a value, evicting the least recently used entry when full."""
        if not self.enabled:
            return

        with self._lock:
            self._cache[key] = {"value": value, "timestamp": time.time()}
            self._cache.move_to_end(key)
            while len(self._cache) > self._max_entries:
                self._cache.popitem(last=False)
                self._evictions += 1

    def invalidate(self, key: str) -> bool:
        """Remove a single entry.

        Returns:
            True if an entry was removed, False if it wasn't cached
        """
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def clear(self) -> None:
        """Clear all cached entries and reset statistics."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def size(self) -> int:
        """Get the current number of cached entries."""
        with self._lock:
            return len(self._cache)

    def cleanup_expired(self) -> int:
        """Remove expired cache entries.

        Returns:
            Number of entries removed
        """
        current_time = time.time()

        with self._lock:
            expired_keys = [
                key
                for key, entry in self._cache.items()
                if current_time - entry["timestamp"] > self._ttl_seconds
            ]
            for key in expired_keys:
                del self._cache[key]

        return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary containing cache statistics
        """
        with self._lock:
            current_time = time.time()
            expired_entries = sum(
                1
                for entry in self._cache.values()
                if current_time - entry["timestamp"] > self._ttl_seconds
            )
            lookups = self._hits + self._misses

            return {
                "total_entries": len(self._cache),
                "active_entries": len(self._cache) - expired_entries,
                "expired_entries": expired_entries,
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }


# Global cache instance
_global_cache: Optional[FingerprintCache] = None
_cache_lock = threading.Lock()


def get_global_cache() -> FingerprintCache:
    """Get the process-wide transform cache shared between kits."""
    global _global_cache

    if _global_cache is None:
        with _cache_lock:
            if _global_cache is None:
                _global_cache = FingerprintCache()

    return _global_cache


def clear_global_cache() -> None:
    """Clear the process-wide transform cache."""
    if _global_cache is not None:
        _global_cache.clear()
