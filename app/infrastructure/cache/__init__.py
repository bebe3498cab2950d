"""Two-tier result cache for backend provider reads.

Exports:
    TwoTierCache: Local LRU tier in front of a shared tier
    LocalCacheTier: Size-bounded in-process tier
    SharedCacheTier: Abstract shared tier
    InMemorySharedTier: Process-local shared tier (memory backend, tests)
    RedisCacheTier: Redis-backed shared tier
    CacheKeyBuilder: ``operation:resourceKind:argsHash`` keys
    create_cache: Build a cache from CacheSettings
"""

from infrastructure.cache.base import SharedCacheTier
from infrastructure.cache.factory import create_cache, create_shared_tier
from infrastructure.cache.key_builder import CacheKeyBuilder
from infrastructure.cache.local import LocalCacheTier
from infrastructure.cache.memory import InMemorySharedTier
from infrastructure.cache.redis_tier import RedisCacheTier
from infrastructure.cache.two_tier import TwoTierCache

__all__ = [
    "TwoTierCache",
    "LocalCacheTier",
    "SharedCacheTier",
    "InMemorySharedTier",
    "RedisCacheTier",
    "CacheKeyBuilder",
    "create_cache",
    "create_shared_tier",
]
