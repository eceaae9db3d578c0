"""Tests for OTELExporter."""

from unittest.mock import MagicMock

import pytest
from opentelemetry import trace

from cloudweave.infrastructure.telemetry.otel_exporter import (
    OTELConfig,
    OTELExporter,
    create_exporter,
)


class TestOTELConfig:
    def test_default_empty_endpoint(self):
        config = OTELConfig()
        assert config.endpoint == ""
        assert config.service_name == "cloudweave"

    def test_localhost_http_allowed(self):
        config = OTELConfig(endpoint="http://localhost:4317")
        assert config.endpoint == "http://localhost:4317"

    def test_remote_https_allowed(self):
        config = OTELConfig(endpoint="https://collector.example.com:4317")
        assert config.endpoint == "https://collector.example.com:4317"

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            OTELConfig(endpoint="http://collector.example.com:4317")

    def test_remote_http_with_insecure(self):
        config = OTELConfig(endpoint="http://collector.example.com:4317", insecure=True)
        assert config.insecure is True


class TestOTELExporter:
    def test_record_metric_buffers(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test.metric", 42.0)

        recorded = exporter.metrics_named("test.metric")
        assert len(recorded) == 1
        assert recorded[0]["value"] == 42.0
        assert "timestamp" in recorded[0]

    def test_record_step_uses_step_kind(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_step("create_firewall_rule:net-a:22/tcp", False, 12.5)

        metric = exporter.metrics_named("cloudweave.step.duration_ms")[0]
        assert metric["attributes"] == {"step": "create_firewall_rule", "success": "False"}
        assert metric["unit"] == "ms"

    def test_record_job_wait(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_job_wait("TimedOut", 100.0, 7)

        assert exporter.metrics_named("cloudweave.job.polls")[0]["value"] == 7.0
        assert exporter.metrics_named("cloudweave.job.wait_ms")[0]["attributes"] == {
            "outcome": "TimedOut"
        }

    def test_record_queue_wait(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_queue_wait("zone-a", 3.0)

        assert exporter.metrics_named("cloudweave.queue.wait_ms")[0]["attributes"] == {
            "partition": "zone-a"
        }

    def test_record_compensation(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_compensation("allocate_address:net-a", True)

        metric = exporter.metrics_named("cloudweave.compensation")[0]
        assert metric["attributes"] == {"step": "allocate_address", "success": "True"}

    @pytest.mark.asyncio
    async def test_export_noop_when_not_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test", 1.0)
        await exporter.export()
        # Buffer not cleared when not initialized (no-op)
        assert len(exporter.metrics_named("test")) == 1

    @pytest.mark.asyncio
    async def test_export_clears_buffer_when_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True  # simulate initialized
        exporter.record_metric("test", 1.0)
        await exporter.export()
        assert exporter.metrics_named("test") == []

    @pytest.mark.asyncio
    async def test_initialize_without_endpoint(self):
        exporter = await create_exporter()
        assert exporter.initialized is False

    def test_start_span_not_initialized(self):
        exporter = OTELExporter(OTELConfig())
        assert exporter.start_span("provision_plan") is None
        exporter.end_span(None)

    def test_end_span_records_error(self):
        exporter = OTELExporter(OTELConfig())
        span = MagicMock()
        error = RuntimeError("boom")

        exporter.end_span(span, error)

        span.record_exception.assert_called_once_with(error)
        status = span.set_status.call_args.args[0]
        assert status.status_code is trace.StatusCode.ERROR
        span.end.assert_called_once()

    def test_buffer_is_bounded(self):
        exporter = OTELExporter(OTELConfig(buffer_limit=2))
        for name in ("a", "b", "c"):
            exporter.record_metric(name, 1.0)

        assert exporter.metrics_named("a") == []
        assert len(exporter.metrics_named("c")) == 1

    def test_buffer_limit_must_be_positive(self):
        with pytest.raises(ValueError, match="buffer_limit"):
            OTELConfig(buffer_limit=0)

    @pytest.mark.asyncio
    async def test_shutdown_flushes_and_resets(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True  # simulate initialized
        exporter.record_metric("test", 1.0)

        await exporter.shutdown()

        assert exporter.metrics_named("test") == []
        assert exporter.initialized is False
