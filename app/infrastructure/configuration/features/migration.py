"""Migration feature settings."""

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class MigrationSettings(FeatureSettings):
    """Migration executor configuration.

    Environment Variables:
        MIGRATION_BATCH_SIZE: Records read per page from the source (default: 100).
            Writes are additionally capped by the target's batch ceiling.
        MIGRATION_CONCURRENT: Run user/data/file sub-tasks concurrently (default: True)
        MIGRATION_USER_PAGE_SIZE: Users fetched per page from the source (default: 100)
    """

    batch_size: int = Field(
        default=100,
        alias="MIGRATION_BATCH_SIZE",
        description="Records read per page from the source backend",
    )
    concurrent: bool = Field(
        default=True,
        alias="MIGRATION_CONCURRENT",
        description="Run migration sub-tasks concurrently",
    )
    user_page_size: int = Field(
        default=100,
        alias="MIGRATION_USER_PAGE_SIZE",
        description="Users fetched per page from the source backend",
    )
