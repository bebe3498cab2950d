"""In-memory shared cache tier.

Stands in for Redis when ``CACHE_BACKEND=memory``: single process only, but
with the same TTL and prefix-pattern semantics.
"""

import json
import time
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.cache.base import SharedCacheTier
from infrastructure.cache.key_builder import matches_prefix_pattern


class InMemorySharedTier(SharedCacheTier):
    """Dict-backed shared tier; entries are evicted by TTL only."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._store: Dict[str, Tuple[str, float]] = {}

    def _read(self, key: str) -> Optional[Tuple[str, float]]:
        item = self._store.get(key)
        if item is None:
            return None
        if self._clock() >= item[1]:
            del self._store[key]
            return None
        return item

    async def get(self, key: str) -> Optional[Any]:
        item = self._read(key)
        return json.loads(item[0]) if item else None

    async def get_with_ttl(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        item = self._read(key)
        if item is None:
            return None
        return json.loads(item[0]), item[1] - self._clock()

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._store[key] = (json.dumps(value), self._clock() + ttl_seconds)

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        matching = [k for k in self._store if matches_prefix_pattern(k, pattern)]
        for key in matching:
            del self._store[key]
        return len(matching)

    async def exists(self, key: str) -> bool:
        return self._read(key) is not None

    async def clear(self) -> None:
        self._store.clear()

    async def ping(self) -> bool:
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {"tier": self.name, "entries": len(self._store)}
