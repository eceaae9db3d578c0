"""Tests for composition root DI container."""

from unittest.mock import DEFAULT, patch

import pytest

from cloudweave.composition_root import CloudweaveContainer, create_backend, create_container
from cloudweave.infrastructure.adapters.simulated_cloud_adapter import SimulatedCloudAdapter
from cloudweave.infrastructure.config import (
    BackendConfig,
    CloudweaveConfig,
    QueueConfig,
    TelemetryConfig,
)


class TestCompositionRoot:
    def test_create_container(self):
        container = create_container()

        assert isinstance(container, CloudweaveContainer)
        assert isinstance(container.backend, SimulatedCloudAdapter)
        assert container.event_bus is not None
        assert container.telemetry is not None
        assert container.nodes is not None

    def test_injected_backend_is_used(self, cloud):
        container = create_container(backend=cloud)
        assert container.backend is cloud

    def test_caches_are_separate_instances(self):
        container = create_container()

        assert container.key_pairs is not container.security_groups
        assert container.key_pairs.name == "key-pairs"
        assert container.security_groups.name == "security-groups"

    def test_containers_do_not_share_caches(self):
        first = create_container()
        second = create_container()

        assert first.key_pairs is not second.key_pairs
        assert first.queue is not second.queue

    def test_queue_limits_from_config(self):
        config = CloudweaveConfig(
            queue=QueueConfig(default_concurrency=3, partition_limits=(("zone-b", 1),))
        )
        container = create_container(config)

        assert container.queue.stats("zone-a").limit == 3
        assert container.queue.stats("zone-b").limit == 1

    def test_backend_settings_from_config(self):
        config = CloudweaveConfig(backend=BackendConfig(job_latency=0.25, password_enabled=True))
        backend = create_backend(config)

        assert backend.job_latency == 0.25
        assert backend.password_enabled is True

    def test_unknown_backend_kind(self):
        with pytest.raises(ValueError, match="Unknown backend kind"):
            create_backend(CloudweaveConfig(backend=BackendConfig(kind="cloudstack")))


OTEL_MODULE = "cloudweave.infrastructure.telemetry.otel_exporter"


@pytest.fixture
def otlp_stubs():
    """Stand-ins for the OTLP exporters so no collector is needed."""
    with patch.multiple(
        OTEL_MODULE,
        OTLPSpanExporter=DEFAULT,
        OTLPMetricExporter=DEFAULT,
        PeriodicExportingMetricReader=DEFAULT,
        MeterProvider=DEFAULT,
        BatchSpanProcessor=DEFAULT,
    ) as stubs, patch("opentelemetry.trace.set_tracer_provider"), patch(
        "opentelemetry.metrics.set_meter_provider"
    ):
        yield stubs


class TestContainerLifecycle:
    @pytest.mark.asyncio
    async def test_start_initializes_configured_telemetry(self, otlp_stubs):
        config = CloudweaveConfig(
            telemetry=TelemetryConfig(endpoint="http://localhost:4317", service_name="weave-test")
        )
        container = create_container(config)

        await container.start()

        assert container.telemetry.initialized
        otlp_stubs["OTLPSpanExporter"].assert_called_once_with(
            endpoint="http://localhost:4317", insecure=False
        )
        span = container.telemetry.start_span("provision_plan", {"node": "web-1"})
        assert span is not None
        container.telemetry.end_span(span)

        await container.close()

        assert not container.telemetry.initialized
        otlp_stubs["MeterProvider"].return_value.shutdown.assert_called_once()
        assert container.telemetry.start_span("provision_plan") is None

    @pytest.mark.asyncio
    async def test_start_without_endpoint_keeps_buffering(self):
        container = create_container()

        await container.start()
        container.telemetry.record_metric("cloudweave.test", 1.0)
        await container.close()

        assert not container.telemetry.initialized
        assert len(container.telemetry.metrics_named("cloudweave.test")) == 1

    def test_buffer_limit_from_config(self):
        container = create_container(CloudweaveConfig(telemetry=TelemetryConfig(buffer_limit=3)))

        for i in range(5):
            container.telemetry.record_metric("cloudweave.test", float(i))

        assert [m["value"] for m in container.telemetry.metrics_named("cloudweave.test")] == [
            2.0,
            3.0,
            4.0,
        ]
