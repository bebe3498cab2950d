"""Shared cache tier abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple


class SharedCacheTier(ABC):
    """Abstract base class for the shared (cross-process) cache tier.

    Entries in the shared tier are evicted by TTL only. Implementations
    must raise ``CacheUnavailableError`` when the backing store cannot be
    reached; the two-tier cache degrades such failures to cache misses.
    """

    name = "shared"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a cached value.

        Args:
            key: Cache key.

        Returns:
            Decoded value or None if absent/expired.
        """

    @abstractmethod
    async def get_with_ttl(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        """Get a cached value together with its remaining TTL in seconds.

        Returns:
            ``(value, remaining_ttl)`` or None if absent. ``remaining_ttl``
            is None when the entry has no expiry.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a JSON-serializable value with a TTL."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete one key. Returns True if it existed."""

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key selected by a prefix pattern. Returns the count.

        A trailing ``*`` selects keys starting with the rest of the pattern;
        every other character is literal.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry.

        Note: Destructive for every process sharing the tier.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the tier is reachable."""

    async def close(self) -> None:
        """Release connections held by the tier."""

    def get_stats(self) -> Dict[str, Any]:
        return {"tier": self.name}
