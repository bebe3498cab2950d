"""Metrics collector infrastructure settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class MetricsSettings(InfrastructureSettings):
    """Metrics collection and export configuration.

    Environment Variables:
        METRICS_ENABLED: Record operation metrics (default: True)
        METRICS_SINK: Export sink - 'log' or 'http' (default: log)
        METRICS_ENDPOINT: Monitoring endpoint used by the 'http' sink
        METRICS_FLUSH_THRESHOLD: Buffered records that trigger a flush (default: 100)
        METRICS_FLUSH_INTERVAL_SECONDS: Periodic flush interval (default: 60s)
        METRICS_RETENTION_SECONDS: Rolling history window (default: 3600s)
    """

    enabled: bool = Field(
        default=True,
        alias="METRICS_ENABLED",
        description="Record operation metrics",
    )
    sink: str = Field(
        default="log",
        alias="METRICS_SINK",
        description="Export sink: 'log' or 'http'",
    )
    endpoint: Optional[str] = Field(
        default=None,
        alias="METRICS_ENDPOINT",
        description="Monitoring endpoint for the http sink",
    )
    flush_threshold: int = Field(
        default=100,
        alias="METRICS_FLUSH_THRESHOLD",
        description="Buffered records that trigger an immediate flush",
    )
    flush_interval_seconds: float = Field(
        default=60.0,
        alias="METRICS_FLUSH_INTERVAL_SECONDS",
        description="Seconds between periodic flushes",
    )
    retention_seconds: int = Field(
        default=3600,
        alias="METRICS_RETENTION_SECONDS",
        description="Rolling window of retained metric history",
    )
