"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.migration import MigrationSettings
from infrastructure.configuration.features.providers import ProviderSettings

__all__ = [
    "MigrationSettings",
    "ProviderSettings",
]
