"""Factory for the two-tier cache."""

from infrastructure.cache.base import SharedCacheTier
from infrastructure.cache.local import LocalCacheTier
from infrastructure.cache.memory import InMemorySharedTier
from infrastructure.cache.redis_tier import RedisCacheTier
from infrastructure.cache.two_tier import TwoTierCache
from infrastructure.configuration.infrastructure.cache import CacheSettings
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def create_shared_tier(settings: CacheSettings) -> SharedCacheTier:
    """Create the shared tier named by ``CACHE_BACKEND``.

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = settings.backend.lower()
    if backend == "memory":
        return InMemorySharedTier()
    if backend == "redis":
        return RedisCacheTier.from_url(settings.redis_url)
    raise ValueError(f"Unknown cache backend: {settings.backend}")


def create_cache(settings: CacheSettings, is_production: bool = False) -> TwoTierCache:
    """Build a TwoTierCache from settings."""
    cache = TwoTierCache(
        local=LocalCacheTier(max_bytes=settings.local_max_bytes),
        shared=create_shared_tier(settings),
        default_ttl_seconds=settings.default_ttl_seconds,
        is_production=is_production,
    )
    logger.info(
        "cache_created",
        backend=settings.backend,
        local_max_bytes=settings.local_max_bytes,
        default_ttl_seconds=settings.default_ttl_seconds,
    )
    return cache
