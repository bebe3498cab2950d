"""
Dependency injection services.

Provides application-scoped provider functions for the resilience stack.
"""

from infrastructure.services.providers import (
    build_backend,
    build_resilience,
    create_metrics_collector,
    create_metrics_sink,
    get_cache,
    get_circuit_breaker_registry,
    get_metrics_collector,
    get_settings,
)

__all__ = [
    "build_backend",
    "build_resilience",
    "create_metrics_collector",
    "create_metrics_sink",
    "get_cache",
    "get_circuit_breaker_registry",
    "get_metrics_collector",
    "get_settings",
]
