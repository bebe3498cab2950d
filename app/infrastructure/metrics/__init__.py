"""Operation metrics: buffered collection, windowed summaries, export sinks."""

from infrastructure.metrics.collector import MetricsCollector
from infrastructure.metrics.models import MetricRecord, MetricSummary, ServiceHealth
from infrastructure.metrics.sinks import HttpMetricsSink, LogMetricsSink, MetricsSink

__all__ = [
    "MetricsCollector",
    "MetricRecord",
    "MetricSummary",
    "ServiceHealth",
    "MetricsSink",
    "LogMetricsSink",
    "HttpMetricsSink",
]
