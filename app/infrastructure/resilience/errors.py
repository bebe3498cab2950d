"""Error taxonomy shared by every backend provider.

Provider drivers translate vendor failures into these classes so the retry
policy, circuit breaker and callers see uniform failure semantics regardless
of which backend produced them.

Hierarchy:
    BackendError
    ├── TransientBackendError        (retried by the retry policy)
    ├── PermanentBackendError        (never retried)
    │   ├── InvalidArgumentError
    │   ├── NotFoundError
    │   ├── ConflictError
    │   ├── PermissionDeniedError
    │   └── UnauthenticatedError
    ├── CircuitOpenError             (fast-fail, operation not attempted)
    └── CacheUnavailableError        (cache tier failure, degraded to a miss)
"""

from typing import Optional

TRANSIENT_ERROR_CODES = frozenset(
    {
        "unavailable",
        "deadline-exceeded",
        "resource-exhausted",
        "internal",
    }
)


class BackendError(Exception):
    """Base exception for all backend provider errors.

    Attributes:
        code: Normalized error code (e.g. ``"not-found"``, ``"unavailable"``).
        provider: Backend kind that raised the error, when known.
        operation: Operation name that failed, when known.

    Example:
        try:
            await backend.database.get("users", "u-1")
        except BackendError as e:
            logger.error("backend_error", code=e.code, error=str(e))
    """

    default_code = "unknown"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.provider = provider
        self.operation = operation

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class TransientBackendError(BackendError):
    """Backend failure expected to succeed on a later attempt."""

    default_code = "unavailable"


class PermanentBackendError(BackendError):
    """Backend failure that will not go away by retrying."""

    default_code = "invalid-argument"


class InvalidArgumentError(PermanentBackendError):
    default_code = "invalid-argument"


class NotFoundError(PermanentBackendError):
    """Raised when a record, file, user or deployment does not exist.

    Example:
        >>> await backend.database.update("users", "missing", {"name": "x"})
        Traceback (most recent call last):
        ...
        NotFoundError: Document users/missing not found
    """

    default_code = "not-found"


class ConflictError(PermanentBackendError):
    default_code = "already-exists"


class PermissionDeniedError(PermanentBackendError):
    default_code = "permission-denied"


class UnauthenticatedError(PermanentBackendError):
    default_code = "unauthenticated"


class CircuitOpenError(BackendError):
    """Raised when a circuit breaker rejects a call without attempting it.

    Attributes:
        breaker_name: Name of the rejecting breaker.
        retry_in: Seconds until the breaker will admit a probe call.
    """

    default_code = "circuit-open"

    def __init__(self, breaker_name: str, retry_in: float = 0.0, reason: str = "open"):
        super().__init__(
            f"Circuit breaker '{breaker_name}' is {reason.upper()}. "
            f"Retry in {int(retry_in)} seconds."
        )
        self.breaker_name = breaker_name
        self.retry_in = retry_in


class CacheUnavailableError(BackendError):
    """Raised by a cache tier that cannot be reached.

    The two-tier cache catches this and degrades to cache-miss behaviour; it
    never reaches provider callers.
    """

    default_code = "cache-unavailable"
