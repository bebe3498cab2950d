"""Export sinks for buffered metric batches."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from infrastructure.logging import get_module_logger

logger = get_module_logger()


class MetricsSink(ABC):
    """Destination for flushed metric batches.

    ``export`` raises on failure; the collector requeues the batch.
    """

    @abstractmethod
    async def export(
        self, records: List[Dict[str, Any]], summary: Dict[str, Any]
    ) -> None:
        """Export one batch.

        Args:
            records: Records in ``{name, value, unit, timestamp, dimensions}`` form
            summary: Current per-name summary of retained history
        """

    async def close(self) -> None:
        pass


class LogMetricsSink(MetricsSink):
    """Writes batches to the structured log."""

    async def export(
        self, records: List[Dict[str, Any]], summary: Dict[str, Any]
    ) -> None:
        logger.info("metrics_summary", record_count=len(records), summary=summary)


class HttpMetricsSink(MetricsSink):
    """POSTs batches as JSON to a monitoring endpoint.

    Payload: ``{"metrics": [...], "summary": {...}, "timestamp": "..."}``
    """

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def export(
        self, records: List[Dict[str, Any]], summary: Dict[str, Any]
    ) -> None:
        payload = {
            "metrics": records,
            "summary": summary,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        response = await self._client.post(self.endpoint, json=payload)
        response.raise_for_status()
        logger.debug(
            "metrics_exported",
            endpoint=self.endpoint,
            record_count=len(records),
            status_code=response.status_code,
        )

    async def close(self) -> None:
        await self._client.aclose()
