"""
sitebuild Invalidation Cache

The boundary the engine drives before re-rendering: every changed key is
invalidated so a render that starts afterwards cannot observe a stale
cached derivation of that key.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, Optional
import logging
import threading

logger = logging.getLogger(__name__)


_MISSING = object()


# =============================================================================
# INTERFACE
# =============================================================================

class InvalidationCache(ABC):
    """Keyed cache the engine instructs to drop entries."""

    @abstractmethod
    def invalidate(self, key: str) -> None:
        """
        Drop any cached derivation keyed by ``key``.

        Must be a no-op for a key with no cached entry.
        """


class NullCache(InvalidationCache):
    """Cache that holds nothing."""

    def invalidate(self, key: str) -> None:
        return None


class CallbackCache(InvalidationCache):
    """Adapts a plain ``invalidate(key)`` callable."""

    def __init__(self, callback: Callable[[str], Any]):
        self._callback = callback

    def invalidate(self, key: str) -> None:
        self._callback(key)


# =============================================================================
# DERIVATION CACHE
# =============================================================================

class DerivationCache(InvalidationCache):
    """
    In-memory cache of values derived from a dependency key.

    Render adapters use it to memoize expensive per-key work (reading and
    transforming a source file, for example); the build engine invalidates
    entries when the key changes.

    Usage:
        cache = DerivationCache()
        text = cache.get_or_compute("posts/hello.md", lambda: load(path))
    """

    def __init__(self):
        self._entries: Dict[Hashable, Any] = {}
        self._lock = threading.RLock()

        # Bumped by invalidate/clear; a compute that overlaps a bump is not stored
        self._generations: Dict[Hashable, int] = {}
        self._epoch = 0

        # Statistics
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        ``compute`` runs outside the lock. If ``key`` is invalidated while it
        runs, the result is returned to the caller but not cached.
        """
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is not _MISSING:
                self._hits += 1
                return value
            self._misses += 1
            stamp = self._stamp(key)

        value = compute()

        with self._lock:
            if self._stamp(key) == stamp:
                self._entries[key] = value
            else:
                logger.debug(f"Discarding derivation of {key} invalidated during compute")
        return value

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            if self._entries.pop(key, _MISSING) is not _MISSING:
                self._invalidations += 1
                logger.debug(f"Invalidated cached derivation for {key}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _stamp(self, key: Hashable) -> tuple:
        return (self._epoch, self._generations.get(key, 0))

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "invalidations": self._invalidations,
            }
