"""Unit tests for CircuitBreakerRegistry."""

import pytest

from infrastructure.configuration.infrastructure import CircuitBreakerSettings
from infrastructure.resilience import CircuitBreakerRegistry, CircuitState


async def fail():
    raise RuntimeError("fail")


@pytest.mark.unit
class TestCircuitBreakerRegistry:
    def test_key_joins_provider_and_operation(self):
        assert CircuitBreakerRegistry.key("aws", "database.query") == "aws.database.query"

    def test_get_or_create_returns_same_instance(self):
        registry = CircuitBreakerRegistry()

        first = registry.get_or_create("local", "database.get")
        second = registry.get_or_create("local", "database.get")

        assert first is second
        assert len(registry) == 1
        assert first.name == "local.database.get"

    def test_breakers_are_isolated_per_pair(self):
        registry = CircuitBreakerRegistry()

        a = registry.get_or_create("local", "database.get")
        b = registry.get_or_create("firebase", "database.get")

        assert a is not b
        assert registry.list_breakers() == ["local.database.get", "firebase.database.get"]

    def test_get_unknown_returns_none(self):
        assert CircuitBreakerRegistry().get("local", "database.get") is None

    def test_defaults_and_overrides(self, clock):
        registry = CircuitBreakerRegistry(failure_threshold=7, clock=clock)

        default = registry.get_or_create("local", "a")
        custom = registry.get_or_create("local", "b", failure_threshold=2)

        assert default.failure_threshold == 7
        assert custom.failure_threshold == 2

    def test_from_settings(self):
        settings = CircuitBreakerSettings(
            CIRCUIT_BREAKER_FAILURE_THRESHOLD=9,
            CIRCUIT_BREAKER_OPEN_DURATION_SECONDS=15,
        )

        breaker = CircuitBreakerRegistry.from_settings(settings).get_or_create("local", "x")

        assert breaker.failure_threshold == 9
        assert breaker.open_duration_seconds == 15

    @pytest.mark.asyncio
    async def test_open_breakers_and_reset(self, clock):
        registry = CircuitBreakerRegistry(failure_threshold=1, clock=clock)
        breaker = registry.get_or_create("aws", "storage.upload")
        registry.get_or_create("aws", "storage.download")

        with pytest.raises(RuntimeError):
            await breaker.execute(fail)

        assert registry.get_open_breakers() == ["aws.storage.upload"]
        assert registry.get_all_stats()["aws.storage.upload"]["state"] == "open"

        registry.reset("aws", "storage.upload")

        assert breaker.state == CircuitState.CLOSED
        assert registry.get_open_breakers() == []

    def test_reset_unknown_raises_key_error(self):
        with pytest.raises(KeyError):
            CircuitBreakerRegistry().reset("local", "missing")

    @pytest.mark.asyncio
    async def test_reset_all_and_close(self, clock):
        registry = CircuitBreakerRegistry(failure_threshold=1, clock=clock)
        for operation in ("a", "b"):
            with pytest.raises(RuntimeError):
                await registry.get_or_create("local", operation).execute(fail)

        registry.close()
        registry.reset_all()

        assert registry.get_open_breakers() == []
