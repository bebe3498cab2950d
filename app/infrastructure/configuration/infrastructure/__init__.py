"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.cache import CacheSettings
from infrastructure.configuration.infrastructure.circuit_breaker import (
    CircuitBreakerSettings,
)
from infrastructure.configuration.infrastructure.metrics import MetricsSettings
from infrastructure.configuration.infrastructure.retry import RetrySettings

__all__ = [
    "CacheSettings",
    "CircuitBreakerSettings",
    "MetricsSettings",
    "RetrySettings",
]
