"""
Cloudweave Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for observability
- Metrics and traces for steps, compensations, job waits and queue waits
"""

from cloudweave.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
