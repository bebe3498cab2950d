"""Bounded retry with exponential backoff and jitter.

Only transient failures are retried. Validation errors, missing records and
other permanent failures propagate on the first attempt so programming
errors are never masked as flakiness.

Delay for attempt ``n`` (0-based):

    base_delay * 2 ** n + uniform(0, max_jitter)

With the defaults (base 1s, jitter under 1s) the delay lies in
``[2**n, 2**n + 1)`` seconds.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import (
    TRANSIENT_ERROR_CODES,
    CacheUnavailableError,
    CircuitOpenError,
    PermanentBackendError,
)

logger = get_module_logger()

T = TypeVar("T")


@dataclass
class RetryOptions:
    """Retry policy parameters.

    Attributes:
        max_retries: Retries after the first attempt; total attempts are
            at most ``max_retries + 1``
        base_delay: Base delay in seconds for exponential backoff
        max_jitter: Exclusive upper bound of the random jitter in seconds
        retryable_error_codes: Error codes considered transient
        max_delay: Optional cap on the exponential term

    Example:
        options = RetryOptions(max_retries=5, base_delay=0.5)
        result = await with_retry(fetch, options)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_jitter: float = 1.0
    retryable_error_codes: FrozenSet[str] = field(
        default_factory=lambda: TRANSIENT_ERROR_CODES
    )
    max_delay: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_jitter < 0:
            raise ValueError("max_jitter must be >= 0")
        if self.max_delay is not None and self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        self.retryable_error_codes = frozenset(self.retryable_error_codes)

    @classmethod
    def from_settings(cls, settings) -> "RetryOptions":
        """Build options from ``RetrySettings``."""
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay_seconds,
            max_jitter=settings.max_jitter_seconds,
            retryable_error_codes=frozenset(settings.retryable_error_codes),
        )


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_jitter: float = 1.0,
    max_delay: Optional[float] = None,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay in seconds before retrying after the given 0-based attempt."""
    delay = base_delay * (2**attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay + rng() * max_jitter


def is_retryable(error: BaseException, codes: Iterable[str]) -> bool:
    """Check whether an error should be retried.

    Permanent backend errors, circuit rejections and cache-tier errors are
    never retried. Otherwise the error's ``code`` attribute is matched
    against ``codes``, falling back to a substring match on the message so
    plain exceptions raised by vendor SDKs are classified too.
    """
    if isinstance(error, (PermanentBackendError, CircuitOpenError, CacheUnavailableError)):
        return False

    codes = frozenset(codes)
    code = getattr(error, "code", None)
    if isinstance(code, str) and code in codes:
        return True

    message = str(error).lower()
    return any(candidate in message for candidate in codes)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    operation: Optional[str] = None,
) -> T:
    """Invoke ``fn`` with bounded retries.

    Args:
        fn: Zero-argument coroutine function to invoke
        options: Retry policy, defaults to ``RetryOptions()``
        sleep: Awaitable sleep, injectable for tests
        on_retry: Called as ``on_retry(retry_number, error, delay)`` before
            each backoff sleep
        operation: Operation name used in log events

    Returns:
        The first successful result

    Raises:
        Exception: The last error, once it is non-retryable or the retry
            budget is exhausted
    """
    options = options or RetryOptions()
    attempt = 0

    while True:
        try:
            return await fn()
        except Exception as exc:
            if not is_retryable(exc, options.retryable_error_codes):
                raise
            if attempt >= options.max_retries:
                logger.warning(
                    "retry_exhausted",
                    operation=operation,
                    attempts=attempt + 1,
                    error=str(exc),
                )
                raise

            delay = compute_backoff_delay(
                attempt,
                base_delay=options.base_delay,
                max_jitter=options.max_jitter,
                max_delay=options.max_delay,
            )
            logger.info(
                "retry_scheduled",
                operation=operation,
                attempt=attempt + 1,
                max_retries=options.max_retries,
                delay_seconds=round(delay, 3),
                error=str(exc),
            )
            if on_retry is not None:
                on_retry(attempt + 1, exc, delay)
            await sleep(delay)
            attempt += 1
