"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from cloudweave.domain.ports.job_status_port import JobStatusClient
from cloudweave.domain.ports.resource_backend_port import ResourceBackendPort
from cloudweave.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "JobStatusClient",
    "ResourceBackendPort",
    "EventBusPort",
]
