"""Two-tier cache infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class CacheSettings(InfrastructureSettings):
    """Two-tier cache configuration.

    Environment Variables:
        CACHE_ENABLED: Enable result caching for provider reads (default: True)
        CACHE_BACKEND: Shared tier backend - 'memory' or 'redis' (default: memory)
        CACHE_REDIS_URL: Redis URL for the shared tier
        CACHE_LOCAL_MAX_BYTES: Byte budget of the in-process tier (default: 100MB)
        CACHE_DEFAULT_TTL_SECONDS: TTL applied when none is given (default: 300s)
    """

    enabled: bool = Field(
        default=True,
        alias="CACHE_ENABLED",
        description="Enable result caching for provider reads",
    )
    backend: str = Field(
        default="memory",
        alias="CACHE_BACKEND",
        description="Shared tier backend: 'memory' or 'redis'",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        alias="CACHE_REDIS_URL",
        description="Redis connection URL for the shared tier",
    )
    local_max_bytes: int = Field(
        default=100 * 1024 * 1024,
        alias="CACHE_LOCAL_MAX_BYTES",
        description="Total serialized-byte budget of the local tier",
    )
    default_ttl_seconds: int = Field(
        default=300,
        alias="CACHE_DEFAULT_TTL_SECONDS",
        description="TTL applied to entries stored without an explicit TTL",
    )
