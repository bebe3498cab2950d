"""Resilience primitives shared by every backend provider.

Circuit breaking, bounded retries with backoff, and the backend error
taxonomy they both classify.
"""

from infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState
from infrastructure.resilience.errors import (
    TRANSIENT_ERROR_CODES,
    BackendError,
    CacheUnavailableError,
    CircuitOpenError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PermanentBackendError,
    PermissionDeniedError,
    TransientBackendError,
    UnauthenticatedError,
)
from infrastructure.resilience.registry import CircuitBreakerRegistry
from infrastructure.resilience.retry import (
    RetryOptions,
    compute_backoff_delay,
    is_retryable,
    with_retry,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
    "CircuitBreakerRegistry",
    # Retry
    "RetryOptions",
    "compute_backoff_delay",
    "is_retryable",
    "with_retry",
    # Errors
    "TRANSIENT_ERROR_CODES",
    "BackendError",
    "TransientBackendError",
    "PermanentBackendError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "PermissionDeniedError",
    "UnauthenticatedError",
    "CircuitOpenError",
    "CacheUnavailableError",
]
