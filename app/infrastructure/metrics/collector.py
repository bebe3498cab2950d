"""Buffered, windowed metrics collector.

Records are appended to an export buffer and to a rolling history. The
buffer is flushed to a sink when it reaches ``flush_threshold`` records or
every ``flush_interval_seconds``; a failed export puts the batch back at the
front of the buffer so it is retried on the next flush (at-least-once).
History older than ``retention_seconds`` is purged on each flush and feeds
``get_summary``.
"""

import asyncio
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional

from infrastructure.logging import get_module_logger
from infrastructure.metrics.models import MetricRecord, MetricSummary, ServiceHealth
from infrastructure.metrics.sinks import LogMetricsSink, MetricsSink

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCollector:
    """Collects operation metrics and exports them in batches.

    Args:
        sink: Export destination, defaults to the structured log
        flush_threshold: Buffered records that trigger a flush
        flush_interval_seconds: Period of the background flush task
        retention_seconds: Rolling window kept for summaries
        max_buffer_size: Oldest buffered records are dropped beyond this
            while the sink keeps failing
        enabled: When False, ``record`` is a no-op
        custom_dimensions: Dimensions merged into every record
        clock: UTC clock, injectable for tests

    Example:
        collector = MetricsCollector(flush_threshold=100)
        await collector.record_success("database.get", {"provider": "local"})
        await collector.record_latency("database.get", 12.5, {"provider": "local"})
        collector.get_summary()["database.get.Duration"]["avg"]
    """

    def __init__(
        self,
        sink: Optional[MetricsSink] = None,
        flush_threshold: int = 100,
        flush_interval_seconds: float = 60.0,
        retention_seconds: float = 3600,
        max_buffer_size: int = 10_000,
        enabled: bool = True,
        custom_dimensions: Optional[Mapping[str, str]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if flush_threshold < 1:
            raise ValueError("flush_threshold must be at least 1")
        self.sink = sink or LogMetricsSink()
        self.flush_threshold = flush_threshold
        self.flush_interval_seconds = flush_interval_seconds
        self.retention = timedelta(seconds=retention_seconds)
        self.max_buffer_size = max(max_buffer_size, flush_threshold)
        self.enabled = enabled
        self.custom_dimensions = dict(custom_dimensions or {})
        self._clock = clock

        self._buffer: List[MetricRecord] = []
        self._history: Deque[MetricRecord] = deque()
        self._health: Dict[str, ServiceHealth] = {}
        self._lock = asyncio.Lock()
        self._flush_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

        self._exported = 0
        self._export_failures = 0
        self._dropped = 0

    async def record(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        dimensions: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Append a record; flushes when the buffer reaches the threshold."""
        if not self.enabled:
            return

        record = MetricRecord(
            name=name,
            value=value,
            unit=unit,
            timestamp=self._clock(),
            dimensions={**self.custom_dimensions, **(dimensions or {})},
        )
        async with self._lock:
            self._buffer.append(record)
            self._history.append(record)
            overflow = len(self._buffer) - self.max_buffer_size
            if overflow > 0:
                del self._buffer[:overflow]
                self._dropped += overflow
                logger.warning("metrics_buffer_overflow", dropped=overflow)
            should_flush = len(self._buffer) >= self.flush_threshold

        if should_flush:
            await self.flush()

    async def record_success(
        self, operation: str, dimensions: Optional[Mapping[str, str]] = None
    ) -> None:
        await self.record(f"{operation}.Success", 1, "Count", dimensions)

    async def record_error(
        self,
        operation: str,
        error: BaseException,
        dimensions: Optional[Mapping[str, str]] = None,
    ) -> None:
        dims = dict(dimensions or {})
        dims["error_type"] = type(error).__name__
        dims["error_code"] = str(getattr(error, "code", None) or "unknown")
        await self.record(f"{operation}.Error", 1, "Count", dims)

    async def record_latency(
        self,
        operation: str,
        milliseconds: float,
        dimensions: Optional[Mapping[str, str]] = None,
    ) -> None:
        await self.record(f"{operation}.Duration", milliseconds, "Milliseconds", dimensions)

    def record_health_check(
        self,
        service: str,
        status: str,
        latency_ms: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Store the latest health result for a service."""
        self._health[service] = ServiceHealth(
            status=status,
            latency_ms=latency_ms,
            details=details or {},
            last_checked=self._clock(),
        )
        if status == "unhealthy":
            logger.error("health_check_failed", service=service, details=details)

    def get_health_status(self) -> Dict[str, ServiceHealth]:
        return dict(self._health)

    async def flush(self) -> int:
        """Export the buffered batch.

        Returns:
            Number of records exported; 0 when the buffer was empty or the
            export failed (the batch is then requeued at the front).
        """
        async with self._flush_lock:
            async with self._lock:
                self._purge_history()
                if not self._buffer:
                    return 0
                batch = self._buffer
                self._buffer = []

            summary = self.get_summary()
            try:
                await self.sink.export([r.to_dict() for r in batch], summary)
            except Exception as e:
                self._export_failures += 1
                async with self._lock:
                    self._buffer[:0] = batch
                logger.warning(
                    "metrics_export_failed",
                    error=str(e),
                    requeued=len(batch),
                )
                return 0

            self._exported += len(batch)
            return len(batch)

    def _purge_history(self) -> None:
        cutoff = self._clock() - self.retention
        while self._history and self._history[0].timestamp <= cutoff:
            self._history.popleft()

    def get_summary(self) -> Dict[str, Dict[str, Any]]:
        """Per-name ``{count, sum, min, max, avg, unit}`` over retained history."""
        summaries: Dict[str, MetricSummary] = {}
        for record in self._history:
            summary = summaries.get(record.name)
            if summary is None:
                summary = summaries[record.name] = MetricSummary(unit=record.unit)
            summary.add(record.value)
        return {name: s.to_dict() for name, s in summaries.items()}

    def get_metrics(self, since: Optional[datetime] = None) -> List[MetricRecord]:
        """Retained records, optionally only those newer than ``since``."""
        if since is None:
            return list(self._history)
        return [r for r in self._history if r.timestamp > since]

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "buffered": len(self._buffer),
            "retained": len(self._history),
            "exported": self._exported,
            "export_failures": self._export_failures,
            "dropped": self._dropped,
        }

    def start(self) -> None:
        """Start the periodic flush task on the running loop."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._flush_periodically())
        logger.info(
            "metrics_collector_started",
            flush_interval_seconds=self.flush_interval_seconds,
        )

    async def _flush_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_seconds)
            await self.flush()

    async def shutdown(self) -> None:
        """Stop the periodic task and attempt a final flush."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.flush()
        await self.sink.close()
        logger.info("metrics_collector_stopped", **self.get_stats())
