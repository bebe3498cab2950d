"""Backend platform configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Feature settings
from infrastructure.configuration.features import (
    MigrationSettings,
    ProviderSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    CacheSettings,
    CircuitBreakerSettings,
    MetricsSettings,
    RetrySettings,
)


class Settings(BaseSettings):
    """Backend platform configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Features**: Provider selection and migration behaviour
    - **Infrastructure**: Circuit breaker, retry, cache and metrics primitives

    Environment Variables:
        PREFIX: Environment prefix; empty means production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.circuit_breaker.enabled:
            threshold = settings.circuit_breaker.failure_threshold

        # Destructive cache clears are refused in production
        if not settings.is_production:
            await cache.clear()
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Feature settings
    providers: ProviderSettings
    migration: MigrationSettings

    # Infrastructure settings
    circuit_breaker: CircuitBreakerSettings
    retry: RetrySettings
    cache: CacheSettings
    metrics: MetricsSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Features
            "providers": ProviderSettings,
            "migration": MigrationSettings,
            # Infrastructure
            "circuit_breaker": CircuitBreakerSettings,
            "retry": RetrySettings,
            "cache": CacheSettings,
            "metrics": MetricsSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
