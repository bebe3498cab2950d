"""Metric record models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class MetricRecord:
    """A single measurement.

    Attributes:
        name: Metric name, e.g. ``"database.get.Duration"``
        value: Numeric value
        unit: ``Count``, ``Milliseconds``, ...
        timestamp: UTC time the measurement was taken
        dimensions: String key/value labels
    """

    name: str
    value: float
    unit: str = "Count"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dimensions: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Export format handed to metric sinks."""
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp.isoformat(),
            "dimensions": dict(self.dimensions),
        }


@dataclass
class MetricSummary:
    """Aggregate over the retained records of one metric name."""

    count: int = 0
    sum: float = 0.0
    min: float = float("inf")
    max: float = float("-inf")
    unit: Optional[str] = None

    @property
    def avg(self) -> float:
        return self.sum / self.count if self.count else 0.0

    def add(self, value: float) -> None:
        self.count += 1
        self.sum += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "sum": self.sum,
            "min": self.min,
            "max": self.max,
            "avg": self.avg,
            "unit": self.unit,
        }


@dataclass
class ServiceHealth:
    """Last reported health of a service (a backend, the cache, ...)."""

    status: str
    latency_ms: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)
    last_checked: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"
