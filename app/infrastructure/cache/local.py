"""In-process LRU cache tier bounded by serialized size."""

import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from infrastructure.cache.key_builder import matches_prefix_pattern
from infrastructure.logging import get_module_logger

logger = get_module_logger()

DEFAULT_MAX_BYTES = 100 * 1024 * 1024


@dataclass
class CacheEntry:
    """One local cache entry.

    Values are held in serialized form so size accounting is exact and
    callers never share mutable objects through the cache.
    """

    key: str
    payload: str
    inserted_at: float
    ttl_seconds: float
    size_bytes: int

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl_seconds


class LocalCacheTier:
    """Least-recently-used cache bounded by total serialized bytes.

    Expiry is absolute from insertion. ``get`` and ``has`` refresh an
    entry's recency but never extend its TTL.

    Args:
        max_bytes: Total serialized-byte budget
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")
        self.max_bytes = max_bytes
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._size_bytes = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, key: str) -> Optional[Any]:
        entry = self._live_entry(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return json.loads(entry.payload)

    def has(self, key: str) -> bool:
        entry = self._live_entry(key)
        if entry is None:
            return False
        self._entries.move_to_end(key)
        return True

    def set(self, key: str, value: Any, ttl_seconds: float) -> bool:
        """Store a value; returns False when it cannot fit the budget.

        Raises:
            TypeError: If the value is not JSON-serializable
        """
        payload = json.dumps(value)
        size = len(key.encode("utf-8")) + len(payload.encode("utf-8"))

        self._remove(key)
        if size > self.max_bytes:
            logger.warning(
                "local_cache_entry_too_large",
                key=key,
                size_bytes=size,
                max_bytes=self.max_bytes,
            )
            return False

        while self._entries and self._size_bytes + size > self.max_bytes:
            _, evicted = self._entries.popitem(last=False)
            self._size_bytes -= evicted.size_bytes
            self._evictions += 1

        self._entries[key] = CacheEntry(
            key=key,
            payload=payload,
            inserted_at=self._clock(),
            ttl_seconds=ttl_seconds,
            size_bytes=size,
        )
        self._size_bytes += size
        return True

    def delete(self, key: str) -> bool:
        return self._remove(key)

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key selected by a prefix pattern such as ``query:users:*``."""
        matching = [k for k in self._entries if matches_prefix_pattern(k, pattern)]
        for key in matching:
            self._remove(key)
        return len(matching)

    def clear(self) -> None:
        self._entries.clear()
        self._size_bytes = 0

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._remove(key)
            self._expirations += 1
            return None
        return entry

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._size_bytes -= entry.size_bytes
        return True

    @property
    def size_bytes(self) -> int:
        return self._size_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "tier": "local",
            "entries": len(self._entries),
            "size_bytes": self._size_bytes,
            "max_bytes": self.max_bytes,
            "evictions": self._evictions,
            "expirations": self._expirations,
        }
