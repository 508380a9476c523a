"""In-memory cache with per-entry time-to-live.

Entries are replaced wholesale on refresh and never mutated in place. Expired
entries are not evicted on read; the next put for the key overwrites them.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

# Domain Layer Imports
from linearkit.domain.interfaces.cache import CacheService

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Key used by caches that only ever hold one value (viewer, team list)
SINGLE_ENTRY_KEY = "__single__"


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Internal representation of a cache entry with expiry."""
    value: V
    expires_at: float  # clock reading after which the entry is stale


class TTLCache(CacheService[K, V]):
    """Keyed in-memory cache with independent expiry per key.

    Unbounded by entry count; the keyed caches in this package are bounded by
    the number of teams in a workspace.
    """

    def __init__(self, name: str = "cache", clock: Callable[[], float] = time.monotonic):
        """Initializes the cache.

        Args:
            name: Label used in log lines.
            clock: Monotonic clock returning seconds. Injected by tests.
        """
        self.name = name
        self._clock = clock
        self._entries: Dict[K, CacheEntry[V]] = {}
        self._lock = threading.Lock()  # Guards the map; lost updates between two misses are tolerated
        logger.debug(f"TTLCache '{name}' initialized")

    def get(self, key: K) -> Optional[V]:
        """Returns the cached value iff present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache '{self.name}' MISS for key: {key}")
            return None
        if self._clock() >= entry.expires_at:
            logger.debug(f"Cache '{self.name}' EXPIRED for key: {key}")
            return None
        logger.debug(f"Cache '{self.name}' HIT for key: {key}")
        return entry.value

    def put(self, key: K, value: V, ttl: float) -> None:
        """Stores value under key, expiring ttl seconds from now."""
        entry = CacheEntry(value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"Cache '{self.name}' PUT key: {key} TTL: {ttl}s")

    def delete(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cleared cache '{self.name}'. Removed {count} entries.")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
