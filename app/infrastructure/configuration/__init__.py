"""Infrastructure configuration module - public API.

Centralized configuration management built on Pydantic BaseSettings with
domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    CircuitBreakerSettings, RetrySettings, CacheSettings, MetricsSettings:
        Infrastructure settings classes
    ProviderSettings, MigrationSettings: Feature settings classes

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()
    ttl = settings.cache.default_ttl_seconds
    ```
"""

from infrastructure.configuration.features import MigrationSettings, ProviderSettings
from infrastructure.configuration.infrastructure import (
    CacheSettings,
    CircuitBreakerSettings,
    MetricsSettings,
    RetrySettings,
)
from infrastructure.configuration.settings import Settings

__all__ = [
    "Settings",
    "CacheSettings",
    "CircuitBreakerSettings",
    "MetricsSettings",
    "RetrySettings",
    "MigrationSettings",
    "ProviderSettings",
]
