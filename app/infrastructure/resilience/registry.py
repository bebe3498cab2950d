"""Circuit breaker registry.

One registry instance is created per process (or per test) and injected into
every provider at construction. Breakers are keyed by provider kind and
operation name so failure counts accumulate across calls instead of being
lost to a fresh breaker per call.
"""

from typing import Any, Callable, Dict, List, Optional

import structlog

from infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState

logger = structlog.get_logger()


class CircuitBreakerRegistry:
    """Registry of circuit breakers keyed by (provider kind, operation).

    Usage:
        registry = CircuitBreakerRegistry(failure_threshold=5)
        breaker = registry.get_or_create("firebase", "database.get")
        result = await breaker.execute(lambda: client.get_document(...))

        # Operator views
        registry.get_open_breakers()   # ["firebase.database.get"]
        registry.reset("firebase", "database.get")
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        open_duration_seconds: float = 60.0,
        half_open_timeout_seconds: float = 30.0,
        half_open_max_calls: int = 1,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._defaults: Dict[str, Any] = {
            "failure_threshold": failure_threshold,
            "open_duration_seconds": open_duration_seconds,
            "half_open_timeout_seconds": half_open_timeout_seconds,
            "half_open_max_calls": half_open_max_calls,
        }
        if clock is not None:
            self._defaults["clock"] = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    @classmethod
    def from_settings(cls, settings) -> "CircuitBreakerRegistry":
        """Build a registry from ``CircuitBreakerSettings``."""
        return cls(
            failure_threshold=settings.failure_threshold,
            open_duration_seconds=settings.open_duration_seconds,
            half_open_timeout_seconds=settings.half_open_timeout_seconds,
            half_open_max_calls=settings.half_open_max_calls,
        )

    @staticmethod
    def key(provider: str, operation: str) -> str:
        return f"{provider}.{operation}"

    def get(self, provider: str, operation: str) -> Optional[CircuitBreaker]:
        return self._breakers.get(self.key(provider, operation))

    def get_or_create(
        self, provider: str, operation: str, **overrides: Any
    ) -> CircuitBreaker:
        """Return the breaker for the pair, creating it on first use.

        Args:
            provider: Backend kind (``"local"``, ``"firebase"``, ``"aws"``)
            operation: Operation name, e.g. ``"database.query"``
            **overrides: Breaker parameters, used only when creating

        Returns:
            The shared CircuitBreaker instance for this pair
        """
        name = self.key(provider, operation)
        existing = self._breakers.get(name)
        if existing is not None:
            return existing

        params = {**self._defaults, **overrides}
        breaker = CircuitBreaker(name=name, **params)
        self._breakers[name] = breaker
        logger.info(
            "circuit_breaker_created",
            name=name,
            failure_threshold=breaker.failure_threshold,
            open_duration_seconds=breaker.open_duration_seconds,
        )
        return breaker

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Statistics for every registered breaker, keyed by breaker name."""
        return {name: cb.get_stats() for name, cb in self._breakers.items()}

    def get_open_breakers(self) -> List[str]:
        """Names of breakers currently OPEN."""
        return [
            name
            for name, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]

    def list_breakers(self) -> List[str]:
        return list(self._breakers.keys())

    def reset(self, provider: str, operation: str) -> None:
        """Manually reset one breaker.

        Raises:
            KeyError: If no breaker exists for the pair
        """
        breaker = self.get(provider, operation)
        if breaker is None:
            raise KeyError(
                f"Circuit breaker '{self.key(provider, operation)}' not found"
            )
        breaker.reset()

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    def close(self) -> None:
        """Cancel pending timers on every breaker."""
        for breaker in self._breakers.values():
            breaker.close()

    def __len__(self) -> int:
        return len(self._breakers)
