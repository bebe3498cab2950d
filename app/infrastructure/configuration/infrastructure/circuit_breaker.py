"""Circuit breaker infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class CircuitBreakerSettings(InfrastructureSettings):
    """Circuit breaker configuration shared by every provider operation.

    One breaker exists per (provider kind, operation) pair; these values are
    the defaults applied when the registry creates a breaker.

    Environment Variables:
        CIRCUIT_BREAKER_ENABLED: Enable circuit breaker protection (default: True)
        CIRCUIT_BREAKER_FAILURE_THRESHOLD: Consecutive failures before opening (default: 5)
        CIRCUIT_BREAKER_OPEN_DURATION_SECONDS: Time spent open before a probe (default: 60s)
        CIRCUIT_BREAKER_HALF_OPEN_TIMEOUT_SECONDS: Scheduled half-open transition (default: 30s)
        CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS: Probe calls allowed while half-open (default: 1)
    """

    enabled: bool = Field(
        default=True,
        alias="CIRCUIT_BREAKER_ENABLED",
        description="Enable circuit breaker protection",
    )
    failure_threshold: int = Field(
        default=5,
        alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD",
        description="Consecutive failures before the circuit opens",
    )
    open_duration_seconds: float = Field(
        default=60.0,
        alias="CIRCUIT_BREAKER_OPEN_DURATION_SECONDS",
        description="Seconds the circuit stays open before allowing a probe",
    )
    half_open_timeout_seconds: float = Field(
        default=30.0,
        alias="CIRCUIT_BREAKER_HALF_OPEN_TIMEOUT_SECONDS",
        description="Seconds until the scheduled transition to half-open",
    )
    half_open_max_calls: int = Field(
        default=1,
        alias="CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS",
        description="Concurrent probe calls allowed while half-open",
    )
