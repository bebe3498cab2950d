"""Two-tier cache: a bounded in-process tier in front of a shared tier.

Read path: local -> shared -> backfill local. Write path: local first, then
best-effort shared. The local tier is only ever a cache of shared-tier data
and never the authority.

Shared-tier failures never reach callers: reads degrade to misses and
writes are logged. There is no single-flight protection, so concurrent
misses for one key each run the upstream fetch, and concurrent writes to a
key are last-write-wins.
"""

from typing import Any, Dict, Optional

from infrastructure.cache.base import SharedCacheTier
from infrastructure.cache.local import LocalCacheTier
from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import CacheUnavailableError

logger = get_module_logger()


class TwoTierCache:
    """Local LRU tier backed by an optional shared tier.

    Args:
        local: In-process tier
        shared: Shared tier, or None for a local-only cache
        default_ttl_seconds: TTL for entries stored without one
        is_production: When True, ``clear()`` leaves the shared tier intact

    Example:
        cache = TwoTierCache(LocalCacheTier(), InMemorySharedTier())
        await cache.set("get:users:ab12", {"id": "u-1"}, ttl_seconds=60)
        await cache.get("get:users:ab12")      # {"id": "u-1"}
        await cache.delete("query:users:*")     # prefix invalidation
    """

    def __init__(
        self,
        local: Optional[LocalCacheTier] = None,
        shared: Optional[SharedCacheTier] = None,
        default_ttl_seconds: int = 300,
        is_production: bool = False,
    ):
        self.local = local if local is not None else LocalCacheTier()
        self.shared = shared
        self.default_ttl_seconds = default_ttl_seconds
        self.is_production = is_production
        self._stats = {
            "local_hits": 0,
            "shared_hits": 0,
            "misses": 0,
            "sets": 0,
            "invalidations": 0,
            "shared_errors": 0,
        }

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent from both tiers."""
        value = self.local.get(key)
        if value is not None:
            self._stats["local_hits"] += 1
            return value

        if self.shared is None:
            self._stats["misses"] += 1
            return None

        try:
            found = await self.shared.get_with_ttl(key)
        except CacheUnavailableError as e:
            self._shared_failed("get", e, key=key)
            found = None

        if found is None:
            self._stats["misses"] += 1
            return None

        value, remaining = found
        self._stats["shared_hits"] += 1
        ttl = self.default_ttl_seconds
        if remaining is not None:
            ttl = min(ttl, remaining)
        if ttl > 0:
            self.local.set(key, value, ttl)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value in both tiers.

        Values that cannot be serialized are skipped with a warning.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        try:
            self.local.set(key, value, ttl)
        except (TypeError, ValueError) as e:
            logger.warning("cache_value_not_serializable", key=key, error=str(e))
            return
        self._stats["sets"] += 1

        if self.shared is None:
            return
        try:
            await self.shared.set(key, value, ttl)
        except CacheUnavailableError as e:
            self._shared_failed("set", e, key=key)

    async def has(self, key: str) -> bool:
        if self.local.has(key):
            return True
        if self.shared is None:
            return False
        try:
            return await self.shared.exists(key)
        except CacheUnavailableError as e:
            self._shared_failed("exists", e, key=key)
            return False

    async def delete(self, key: str) -> None:
        """Delete one key, or every key with the prefix when ``key`` ends in ``*``."""
        if key.endswith("*"):
            await self.delete_pattern(key)
            return

        self.local.delete(key)
        if self.shared is None:
            return
        try:
            await self.shared.delete(key)
        except CacheUnavailableError as e:
            self._shared_failed("delete", e, key=key)

    async def delete_pattern(self, pattern: str) -> int:
        """Invalidate every key starting with the prefix before a trailing ``*``."""
        removed = self.local.delete_pattern(pattern)
        if self.shared is not None:
            try:
                removed = max(removed, await self.shared.delete_pattern(pattern))
            except CacheUnavailableError as e:
                self._shared_failed("delete_pattern", e, pattern=pattern)
        self._stats["invalidations"] += 1
        logger.debug("cache_pattern_invalidated", pattern=pattern, removed=removed)
        return removed

    async def clear(self) -> None:
        """Clear the local tier, and the shared tier outside production."""
        self.local.clear()
        if self.shared is None:
            return
        if self.is_production:
            logger.warning("cache_clear_shared_skipped", reason="production")
            return
        try:
            await self.shared.clear()
            logger.info("cache_cleared", tiers=["local", self.shared.name])
        except CacheUnavailableError as e:
            self._shared_failed("clear", e)

    async def health_check(self) -> Dict[str, Any]:
        shared_ok = True if self.shared is None else await self.shared.ping()
        return {
            "healthy": shared_ok,
            "local": self.local.get_stats(),
            "shared": None if self.shared is None else self.shared.get_stats(),
            "shared_reachable": shared_ok,
        }

    def get_stats(self) -> Dict[str, Any]:
        lookups = (
            self._stats["local_hits"] + self._stats["shared_hits"] + self._stats["misses"]
        )
        hits = self._stats["local_hits"] + self._stats["shared_hits"]
        return {
            **self._stats,
            "hit_rate": round(hits / lookups, 4) if lookups else 0.0,
            "local": self.local.get_stats(),
        }

    async def close(self) -> None:
        if self.shared is not None:
            await self.shared.close()

    def _shared_failed(self, action: str, error: Exception, **context: Any) -> None:
        self._stats["shared_errors"] += 1
        logger.warning(
            "shared_cache_degraded",
            action=action,
            error=str(error),
            **context,
        )
