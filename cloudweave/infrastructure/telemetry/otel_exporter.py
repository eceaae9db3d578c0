"""
OpenTelemetry Exporter for Cloudweave

Architectural Intent:
- Exports provisioning telemetry to OTLP-compatible backends
- Step durations, compensations, job waits and queue admission waits are
  recorded as metrics; plans may be traced as spans
- Every record also lands in a bounded in-process buffer so tests and the
  CLI can inspect it; the oldest records are dropped once it is full

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "cloudweave"
    environment: str = "development"
    export_interval: int = 5
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False
    buffer_limit: int = 10_000

    def __post_init__(self) -> None:
        if self.buffer_limit < 1:
            raise ValueError("buffer_limit must be >= 1")
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for the provisioning orchestrator.

    Supports:
    - OTLP gRPC export of metrics and traces
    - In-process buffering when no endpoint is configured
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: deque[dict[str, Any]] = deque(maxlen=config.buffer_limit)
        self._meter: Any = None
        self._tracer: Any = None
        self._tracer_provider: Optional[TracerProvider] = None
        self._meter_provider: Optional[MeterProvider] = None
        self._histograms: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry buffered in-process")
            return

        try:
            resource = Resource(
                attributes={
                    SERVICE_NAME: self.config.service_name,
                    "environment": self.config.environment,
                }
            )

            if self.config.enable_traces:
                provider = TracerProvider(resource=resource)
                provider.add_span_processor(
                    BatchSpanProcessor(
                        OTLPSpanExporter(
                            endpoint=self.config.endpoint, insecure=self.config.insecure
                        )
                    )
                )
                trace.set_tracer_provider(provider)
                self._tracer_provider = provider
                self._tracer = provider.get_tracer(__name__)

            if self.config.enable_metrics:
                metric_reader = PeriodicExportingMetricReader(
                    OTLPMetricExporter(
                        endpoint=self.config.endpoint, insecure=self.config.insecure
                    ),
                    export_interval_millis=self.config.export_interval * 1000,
                )
                meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
                metrics.set_meter_provider(meter_provider)
                self._meter_provider = meter_provider
                self._meter = meter_provider.get_meter(__name__)

            self._initialized = True

        except Exception as e:
            logger.error("Failed to initialize OTEL: %s", e)
            self._initialized = False

    def _get_histogram(self, name: str, unit: str = "") -> Any:
        if name not in self._histograms and self._meter:
            self._histograms[name] = self._meter.create_histogram(name, unit=unit)
        return self._histograms.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            histogram = self._get_histogram(name, unit)
            if histogram:
                histogram.record(value, attributes=attributes or {})

    def metrics_named(self, name: str) -> list[dict[str, Any]]:
        return [m for m in self._metrics_buffer if m["name"] == name]

    def record_step(self, step: str, success: bool, duration_ms: float) -> None:
        """Record the outcome and duration of one provisioning step."""
        self.record_metric(
            "cloudweave.step.duration_ms",
            duration_ms,
            unit="ms",
            attributes={"step": step.split(":", 1)[0], "success": str(success)},
        )

    def record_compensation(self, step: str, success: bool) -> None:
        self.record_metric(
            "cloudweave.compensation",
            1.0,
            attributes={"step": step.split(":", 1)[0], "success": str(success)},
        )

    def record_job_wait(self, outcome: str, duration_ms: float, polls: int) -> None:
        self.record_metric(
            "cloudweave.job.wait_ms",
            duration_ms,
            unit="ms",
            attributes={"outcome": outcome},
        )
        self.record_metric(
            "cloudweave.job.polls", float(polls), attributes={"outcome": outcome}
        )

    def record_queue_wait(self, partition: str, wait_ms: float) -> None:
        self.record_metric(
            "cloudweave.queue.wait_ms",
            wait_ms,
            unit="ms",
            attributes={"partition": partition},
        )

    def start_span(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
    ) -> Optional[Any]:
        """Start a tracing span."""
        if not self._initialized or self._tracer is None:
            return None
        return self._tracer.start_span(name, attributes=attributes or {})

    def end_span(self, span: Any, error: Optional[BaseException] = None) -> None:
        """End a tracing span, marking it failed when an error is given."""
        if span is None:
            return
        if error is not None:
            span.record_exception(error)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(error)))
        span.end()

    async def export(self) -> None:
        """Export buffered telemetry via OTLP."""
        if not self._initialized:
            return

        # With the OTEL SDK initialized, metrics are auto-exported
        # via PeriodicExportingMetricReader. We just clear our local buffer.
        exported_count = len(self._metrics_buffer)
        self._metrics_buffer.clear()

        if exported_count:
            logger.debug("Flushed %d buffered metrics", exported_count)

    async def shutdown(self) -> None:
        """Flush and stop the SDK providers; the exporter can be initialized again."""
        await self.export()
        for provider in (self._tracer_provider, self._meter_provider):
            if provider is not None:
                await asyncio.to_thread(provider.shutdown)
        self._tracer_provider = None
        self._meter_provider = None
        self._tracer = None
        self._meter = None
        self._histograms.clear()
        self._initialized = False


async def create_exporter(
    endpoint: Optional[str] = None,
    service_name: str = "cloudweave",
    insecure: bool = False,
) -> OTELExporter:
    """Factory function to create OTEL exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        insecure=insecure,
    )
    exporter = OTELExporter(config)
    await exporter.initialize()
    return exporter
