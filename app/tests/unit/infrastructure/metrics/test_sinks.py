"""Unit tests for metrics sinks."""

import json

import httpx
import pytest

from infrastructure.metrics import HttpMetricsSink, LogMetricsSink, MetricRecord


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestHttpMetricsSink:
    @pytest.mark.asyncio
    async def test_posts_payload(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(202)

        sink = HttpMetricsSink("https://metrics.example.com/ingest", client=make_client(handler))
        records = [MetricRecord("database.get.Success", 1).to_dict()]

        await sink.export(records, {"database.get.Success": {"count": 1}})
        await sink.close()

        assert captured["url"] == "https://metrics.example.com/ingest"
        assert captured["body"]["metrics"] == records
        assert captured["body"]["summary"] == {"database.get.Success": {"count": 1}}
        assert "timestamp" in captured["body"]

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        sink = HttpMetricsSink(
            "https://metrics.example.com/ingest",
            client=make_client(lambda request: httpx.Response(503)),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await sink.export([], {})
        await sink.close()


@pytest.mark.unit
class TestLogMetricsSink:
    @pytest.mark.asyncio
    async def test_export_does_not_raise(self):
        sink = LogMetricsSink()

        await sink.export([MetricRecord("x", 1).to_dict()], {"x": {"count": 1}})
        await sink.close()


@pytest.mark.unit
class TestMetricRecord:
    def test_to_dict(self):
        record = MetricRecord("storage.upload.Duration", 3.5, "Milliseconds", dimensions={"provider": "aws"})

        data = record.to_dict()

        assert data["name"] == "storage.upload.Duration"
        assert data["value"] == 3.5
        assert data["unit"] == "Milliseconds"
        assert data["dimensions"] == {"provider": "aws"}
        assert data["timestamp"].endswith("+00:00")
