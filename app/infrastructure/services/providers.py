"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for the resilience stack
shared by every backend: settings, circuit breaker registry, cache and
metrics collector.
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Any, Optional

import structlog

from infrastructure.cache import TwoTierCache, create_cache
from infrastructure.configuration import Settings
from infrastructure.metrics import (
    HttpMetricsSink,
    LogMetricsSink,
    MetricsCollector,
    MetricsSink,
)
from infrastructure.resilience import CircuitBreakerRegistry, RetryOptions

if TYPE_CHECKING:
    from modules.providers.pipeline import ProviderResilience
    from modules.providers.resilient import ResilientBackend

logger = structlog.get_logger()


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    The @lru_cache decorator ensures only ONE instance is created per process.
    Tests build their own ``Settings`` (or call ``get_settings.cache_clear()``)
    instead of patching this one.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_circuit_breaker_registry() -> CircuitBreakerRegistry:
    """
    Get the application-scoped circuit breaker registry.

    Every backend created through ``build_resilience`` shares this registry,
    so failure counts accumulate per (backend kind, operation) across calls.
    """
    return CircuitBreakerRegistry.from_settings(get_settings().circuit_breaker)


@lru_cache
def get_cache() -> TwoTierCache:
    settings = get_settings()
    return create_cache(settings.cache, is_production=settings.is_production)


def create_metrics_sink(settings: Settings) -> MetricsSink:
    """
    Create the sink named by ``METRICS_SINK``.

    Raises:
        ValueError: If the sink is unknown or ``http`` has no endpoint
    """
    sink = settings.metrics.sink.lower()
    if sink == "log":
        return LogMetricsSink()
    if sink == "http":
        if not settings.metrics.endpoint:
            raise ValueError("METRICS_ENDPOINT is required when METRICS_SINK=http")
        return HttpMetricsSink(settings.metrics.endpoint)
    raise ValueError(f"Unknown metrics sink: {settings.metrics.sink}")


def create_metrics_collector(settings: Settings) -> MetricsCollector:
    environment = "production" if settings.is_production else "development"
    return MetricsCollector(
        sink=create_metrics_sink(settings),
        flush_threshold=settings.metrics.flush_threshold,
        flush_interval_seconds=settings.metrics.flush_interval_seconds,
        retention_seconds=settings.metrics.retention_seconds,
        enabled=settings.metrics.enabled,
        custom_dimensions={"environment": environment},
    )


@lru_cache
def get_metrics_collector() -> MetricsCollector:
    """
    Get the application-scoped metrics collector.

    The periodic flush is not started here; call ``collector.start()``
    from the running event loop.
    """
    return create_metrics_collector(get_settings())


def build_resilience(settings: Optional[Settings] = None) -> "ProviderResilience":
    """
    Assemble the resilience collaborators for a backend.

    With no argument, the application singletons are used. Passing a
    ``Settings`` instance builds fresh, unshared collaborators (useful in
    tests and scripts).
    """
    # modules.providers is layered on top of infrastructure
    from modules.providers.pipeline import (  # pylint: disable=import-outside-toplevel
        ProviderResilience,
    )

    if settings is None:
        settings = get_settings()
        breakers = get_circuit_breaker_registry()
        cache = get_cache() if settings.cache.enabled else None
        metrics = get_metrics_collector() if settings.metrics.enabled else None
    else:
        breakers = CircuitBreakerRegistry.from_settings(settings.circuit_breaker)
        cache = None
        if settings.cache.enabled:
            cache = create_cache(settings.cache, is_production=settings.is_production)
        metrics = create_metrics_collector(settings) if settings.metrics.enabled else None

    return ProviderResilience(
        breakers=breakers if settings.circuit_breaker.enabled else None,
        cache=cache,
        metrics=metrics,
        retry_options=RetryOptions.from_settings(settings.retry),
        cache_ttl_seconds=settings.providers.cache_ttl_seconds,
    )


def build_backend(settings: Optional[Settings] = None, **options: Any) -> "ResilientBackend":
    """
    Create the backend named by ``BACKEND_KIND`` wrapped with resilience.

    The ``local`` backend is configured from settings. Cloud backends need
    their SDK-backed components passed as ``options``.
    """
    from modules.providers import create_backend  # pylint: disable=import-outside-toplevel

    resilience = build_resilience(settings)
    settings = settings or get_settings()
    kind = settings.providers.backend_kind
    options.setdefault("project_id", settings.providers.project_id)
    if kind == "local":
        options.setdefault("data_path", settings.providers.local_data_path)
    else:
        options.setdefault("region", settings.providers.region)
    backend = create_backend(kind, resilience=resilience, **options)
    logger.info("configured_backend_built", kind=kind)
    return backend
