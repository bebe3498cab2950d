"""Redis shared cache tier.

Connects to Redis (or an ElastiCache Redis/Valkey cluster) as a plain
key-value client. Values are stored as JSON with ``SETEX``; pattern
deletes walk the keyspace with ``SCAN`` so they never block the server
the way ``KEYS`` would.

Usage:
    tier = RedisCacheTier.from_url("redis://localhost:6379/0")
    await tier.set("get:users:ab12", {"id": "u-1"}, ttl_seconds=300)
"""

import json
from typing import Any, Dict, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from infrastructure.cache.base import SharedCacheTier
from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import CacheUnavailableError

logger = get_module_logger()

SCAN_COUNT = 500
DELETE_CHUNK = 500

# Characters Redis MATCH treats as glob syntax
GLOB_SPECIAL = frozenset("*?[]\\")


def to_match_pattern(pattern: str) -> str:
    """Translate a prefix pattern into a Redis MATCH pattern.

    Only a trailing ``*`` stays a wildcard; glob characters inside the
    prefix are escaped so they match literally.
    """
    wildcard = pattern.endswith("*")
    literal = pattern[:-1] if wildcard else pattern
    escaped = "".join("\\" + c if c in GLOB_SPECIAL else c for c in literal)
    return escaped + "*" if wildcard else escaped


class RedisCacheTier(SharedCacheTier):
    """Shared tier backed by ``redis.asyncio``.

    Every Redis failure is logged and re-raised as ``CacheUnavailableError``.
    """

    name = "redis"

    def __init__(self, client: Redis):
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        max_connections: int = 10,
        socket_timeout: float = 5.0,
    ) -> "RedisCacheTier":
        client = Redis.from_url(
            url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info("redis_cache_client_created", max_connections=max_connections)
        return cls(client)

    def _unavailable(self, action: str, error: Exception, **context: Any):
        logger.warning(
            "redis_cache_operation_failed",
            action=action,
            error=str(error),
            **context,
        )
        return CacheUnavailableError(f"Redis {action} failed: {error}")

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise self._unavailable("get", e, key=key) from e
        return json.loads(raw) if raw is not None else None

    async def get_with_ttl(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.get(key)
                pipe.ttl(key)
                raw, ttl = await pipe.execute()
        except RedisError as e:
            raise self._unavailable("get", e, key=key) from e
        if raw is None:
            return None
        # -1: key exists without an expiry
        remaining = float(ttl) if ttl is not None and ttl >= 0 else None
        return json.loads(raw), remaining

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = json.dumps(value)
        try:
            await self._client.setex(key, max(1, int(ttl_seconds)), payload)
        except RedisError as e:
            raise self._unavailable("set", e, key=key) from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._client.delete(key))
        except RedisError as e:
            raise self._unavailable("delete", e, key=key) from e

    async def delete_pattern(self, pattern: str) -> int:
        deleted = 0
        batch = []
        try:
            async for key in self._client.scan_iter(
                match=to_match_pattern(pattern), count=SCAN_COUNT
            ):
                batch.append(key)
                if len(batch) >= DELETE_CHUNK:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
        except RedisError as e:
            raise self._unavailable("delete_pattern", e, pattern=pattern) from e
        return deleted

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._client.exists(key))
        except RedisError as e:
            raise self._unavailable("exists", e, key=key) from e

    async def clear(self) -> None:
        try:
            await self._client.flushdb()
        except RedisError as e:
            raise self._unavailable("clear", e) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("redis_cache_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()

    def get_stats(self) -> Dict[str, Any]:
        return {"tier": self.name}
