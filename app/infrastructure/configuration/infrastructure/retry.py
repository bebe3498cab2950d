"""Retry policy infrastructure settings."""

from typing import List

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry policy configuration for backend provider calls.

    Every provider operation runs through the retry policy, which recovers
    transient backend failures locally before the error reaches the caller.

    Environment Variables:
        RETRY_MAX_RETRIES: Retries after the first attempt (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 1.0s)
        RETRY_MAX_JITTER_SECONDS: Upper bound of the random jitter (default: 1.0s)
        RETRY_RETRYABLE_ERROR_CODES: JSON list of retryable error codes

    Exponential Backoff:
        Delay calculation: base_delay * (2 ^ attempt) + uniform(0, max_jitter)

        Example with defaults (base=1s, jitter<1s):
            Attempt 0: 1s - 2s
            Attempt 1: 2s - 3s
            Attempt 2: 4s - 5s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        max_retries = settings.retry.max_retries
        ```
    """

    max_retries: int = Field(
        default=3,
        alias="RETRY_MAX_RETRIES",
        description="Number of retries after the first attempt",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_jitter_seconds: float = Field(
        default=1.0,
        alias="RETRY_MAX_JITTER_SECONDS",
        description="Exclusive upper bound of the random jitter (seconds)",
    )
    retryable_error_codes: List[str] = Field(
        default_factory=lambda: [
            "unavailable",
            "deadline-exceeded",
            "resource-exhausted",
            "internal",
        ],
        alias="RETRY_RETRYABLE_ERROR_CODES",
        description="Error codes treated as transient",
    )
