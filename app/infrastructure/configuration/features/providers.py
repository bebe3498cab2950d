"""Backend provider feature settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class ProviderSettings(FeatureSettings):
    """Backend provider selection and local backend configuration.

    Environment Variables:
        BACKEND_KIND: Active backend kind - 'local', 'firebase' or 'aws' (default: local)
        PROJECT_ID: Project identifier passed to backend drivers
        BACKEND_REGION: Region hint for cloud backends
        LOCAL_DATA_PATH: JSON file the local backend database persists to.
            When unset the local backend keeps everything in memory.
        PROVIDER_CACHE_TTL_SECONDS: TTL applied to cached provider reads (default: 300s)

    Example:
        ```python
        from infrastructure.services import get_settings
        from modules.providers import create_backend

        settings = get_settings()
        backend = create_backend(settings.providers.backend_kind)
        ```
    """

    backend_kind: str = Field(
        default="local",
        alias="BACKEND_KIND",
        description="Active backend kind",
    )
    project_id: str = Field(
        default="default",
        alias="PROJECT_ID",
        description="Project identifier passed to backend drivers",
    )
    region: Optional[str] = Field(
        default=None,
        alias="BACKEND_REGION",
        description="Region hint for cloud backends",
    )
    local_data_path: Optional[str] = Field(
        default=None,
        alias="LOCAL_DATA_PATH",
        description="JSON file for local backend persistence",
    )
    cache_ttl_seconds: int = Field(
        default=300,
        alias="PROVIDER_CACHE_TTL_SECONDS",
        description="TTL applied to cached provider reads",
    )
