"""Circuit breaker for backend provider operations.

The circuit breaker prevents cascading failures by:
1. CLOSED state: Normal operation, calls pass through
2. OPEN state: Fast-fail calls without invoking the backend
3. HALF_OPEN state: Admit a limited number of probe calls

State transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: When open_duration has elapsed at the next call, or
  when the scheduled half-open timer fires with no traffic at all
- HALF_OPEN -> CLOSED: After a successful probe
- HALF_OPEN -> OPEN: If the probe fails (open timer restarts)

All state updates happen under a per-breaker ``asyncio.Lock``; the half-open
timer is always cancelled before a new one is scheduled.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import CircuitOpenError

logger = get_module_logger()

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Async circuit breaker guarding one (provider, operation) pair.

    Args:
        name: Breaker name, typically ``"<provider>.<operation>"``
        failure_threshold: Consecutive failures before opening
        open_duration_seconds: Seconds to stay open before admitting a probe
        half_open_timeout_seconds: Delay of the scheduled transition to
            HALF_OPEN, so a breaker never stays open forever without traffic
        half_open_max_calls: Probe calls admitted concurrently while HALF_OPEN
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        open_duration_seconds: float = 60.0,
        half_open_timeout_seconds: float = 30.0,
        half_open_max_calls: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

        self.name = name
        self.failure_threshold = failure_threshold
        self.open_duration_seconds = open_duration_seconds
        self.half_open_timeout_seconds = half_open_timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: Optional[float] = None
        self._half_open_calls = 0
        self._timer: Optional[asyncio.TimerHandle] = None

        self._total_calls = 0
        self._total_failures = 0
        self._total_rejections = 0

        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def last_failure_time(self) -> Optional[float]:
        return self._last_failure_time

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` through the breaker.

        Args:
            operation: Zero-argument coroutine function to invoke

        Returns:
            Result of the operation

        Raises:
            CircuitOpenError: If the breaker is open (operation not invoked)
            Exception: Whatever the operation raised, unchanged
        """
        probe = await self._admit()

        try:
            result = await operation()
        except asyncio.CancelledError:
            async with self._lock:
                self._release_probe(probe)
            raise
        except Exception as exc:
            async with self._lock:
                self._release_probe(probe)
                self._on_failure(exc)
            raise

        async with self._lock:
            self._release_probe(probe)
            self._on_success()
        return result

    async def _admit(self) -> bool:
        """Decide whether a call may proceed; returns True for probe calls."""
        async with self._lock:
            self._total_calls += 1

            if self._state == CircuitState.OPEN:
                if self._open_duration_elapsed():
                    self._transition_to_half_open(trigger="next_call")
                else:
                    remaining = self._remaining_open_seconds()
                    self._total_rejections += 1
                    logger.warning(
                        "circuit_breaker_open",
                        name=self.name,
                        consecutive_failures=self._consecutive_failures,
                        retry_in_seconds=int(remaining),
                    )
                    raise CircuitOpenError(self.name, retry_in=remaining)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    self._total_rejections += 1
                    logger.debug(
                        "circuit_breaker_half_open_limit",
                        name=self.name,
                        calls=self._half_open_calls,
                    )
                    raise CircuitOpenError(self.name, reason="half_open")
                self._half_open_calls += 1
                return True

            return False

    def _release_probe(self, probe: bool) -> None:
        if probe and self._half_open_calls > 0:
            self._half_open_calls -= 1

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            logger.info(
                "circuit_breaker_success_half_open",
                name=self.name,
                previous_failures=self._consecutive_failures,
            )
            self._transition_to_closed()
        elif self._consecutive_failures > 0:
            logger.debug(
                "circuit_breaker_failure_count_reset",
                name=self.name,
                previous_failures=self._consecutive_failures,
            )
            self._consecutive_failures = 0

    def _on_failure(self, exception: Exception) -> None:
        self._consecutive_failures += 1
        self._total_failures += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            logger.warning(
                "circuit_breaker_recovery_failed",
                name=self.name,
                error=str(exception),
            )
            self._transition_to_open()
        elif self._state == CircuitState.CLOSED:
            if self._consecutive_failures >= self.failure_threshold:
                logger.error(
                    "circuit_breaker_threshold_exceeded",
                    name=self.name,
                    consecutive_failures=self._consecutive_failures,
                    threshold=self.failure_threshold,
                    error=str(exception),
                )
                self._transition_to_open()
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    consecutive_failures=self._consecutive_failures,
                    threshold=self.failure_threshold,
                    error=str(exception),
                )
        # OPEN: a call admitted before the breaker opened failed late;
        # the counter moves but the open window is left untouched.

    def _open_duration_elapsed(self) -> bool:
        if self._last_failure_time is None:
            return True
        return self._clock() - self._last_failure_time >= self.open_duration_seconds

    def _remaining_open_seconds(self) -> float:
        if self._last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self._last_failure_time
        return max(0.0, self.open_duration_seconds - elapsed)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_half_open_timer(self) -> None:
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.call_later(
            self.half_open_timeout_seconds, self._on_half_open_timer
        )

    def _on_half_open_timer(self) -> None:
        self._timer = None
        if self._state == CircuitState.OPEN:
            self._transition_to_half_open(trigger="timer")

    def _transition_to_closed(self) -> None:
        logger.info("circuit_breaker_closed", name=self.name)
        self._cancel_timer()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._half_open_calls = 0

    def _transition_to_open(self) -> None:
        logger.error(
            "circuit_breaker_opened",
            name=self.name,
            open_duration_seconds=self.open_duration_seconds,
        )
        self._state = CircuitState.OPEN
        self._half_open_calls = 0
        self._schedule_half_open_timer()

    def _transition_to_half_open(self, trigger: str) -> None:
        logger.info("circuit_breaker_half_open", name=self.name, trigger=trigger)
        self._cancel_timer()
        self._state = CircuitState.HALF_OPEN
        self._half_open_calls = 0

    def get_stats(self) -> Dict[str, Any]:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "consecutive_failures": self._consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self._last_failure_time,
            "half_open_calls": self._half_open_calls,
            "total_calls": self._total_calls,
            "total_failures": self._total_failures,
            "total_rejections": self._total_rejections,
        }

    def reset(self) -> None:
        """Manually reset the breaker to CLOSED (admin operations and tests)."""
        logger.info("circuit_breaker_manual_reset", name=self.name)
        self._transition_to_closed()
        self._last_failure_time = None

    def close(self) -> None:
        """Cancel any pending half-open timer."""
        self._cancel_timer()
