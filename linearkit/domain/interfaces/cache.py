"""Interface for caching mechanisms.

Defines the contract for storing, retrieving, and managing cached data
with per-entry time-to-live.
"""

import abc
from typing import Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class CacheService(abc.ABC, Generic[K, V]):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    def get(self, key: K) -> Optional[V]:
        """Retrieves an item from the cache.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    def put(self, key: K, value: V, ttl: float) -> None:
        """Stores an item, replacing any existing entry for the key.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl: Time-to-live in seconds.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: K) -> None:
        """Deletes an item from the cache, if present."""
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        """Clears all items from the cache."""
        pass
