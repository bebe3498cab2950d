"""Shared fixtures for the test suite."""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest
import structlog

from infrastructure.cache import InMemorySharedTier, LocalCacheTier, TwoTierCache
from infrastructure.metrics import MetricsCollector, MetricsSink
from infrastructure.resilience import CircuitBreakerRegistry, RetryOptions
from modules.providers import LocalBackend, ProviderResilience, wrap_backend


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """Aware UTC clock advanced by hand."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingSink(MetricsSink):
    """Metrics sink that keeps exported batches; can be told to fail."""

    def __init__(self):
        self.batches: List[list] = []
        self.fail = False
        self.closed = False

    async def export(self, records, summary):
        if self.fail:
            raise RuntimeError("sink unavailable")
        self.batches.append(list(records))

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def utc_clock():
    return FakeUtcClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def two_tier_cache(clock):
    """Local tier and in-memory shared tier driven by the same fake clock."""
    return TwoTierCache(
        local=LocalCacheTier(max_bytes=1024 * 1024, clock=clock),
        shared=InMemorySharedTier(clock=clock),
        default_ttl_seconds=60,
        is_production=False,
    )


@pytest.fixture
def resilience(two_tier_cache, recording_sink, sleep):
    """Full resilience stack with a short breaker threshold and no real sleeps."""
    return ProviderResilience(
        breakers=CircuitBreakerRegistry(failure_threshold=3, open_duration_seconds=60),
        cache=two_tier_cache,
        metrics=MetricsCollector(sink=recording_sink, flush_threshold=1000),
        retry_options=RetryOptions(max_retries=2, base_delay=0.01, max_jitter=0.0),
        cache_ttl_seconds=60,
        sleep=sleep,
    )


@pytest.fixture
def local_backend():
    return LocalBackend()


@pytest.fixture
def resilient_local_backend(resilience):
    return wrap_backend(LocalBackend(), resilience)
