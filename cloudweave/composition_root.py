"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the cloudweave application
- Single place where the backend, orchestration core and use cases are
  wired together
- No adapter instantiation should occur outside this module (except CLI and
  tests)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Shared-resource caches are explicit instances owned by the container, one
  per resource kind, never module globals
- The backend is injectable so tests and real control planes share wiring
"""

from dataclasses import dataclass
from typing import Optional

from cloudweave.application.orchestration.job_waiter import JobWaiter
from cloudweave.application.orchestration.provisioning_pipeline import ProvisioningPipeline
from cloudweave.application.orchestration.provisioning_queue import ProvisioningQueue
from cloudweave.application.orchestration.single_flight_cache import SingleFlightResourceCache
from cloudweave.application.use_cases.node_lifecycle import NodeLifecycleFacade
from cloudweave.domain.ports.resource_backend_port import ResourceBackendPort
from cloudweave.domain.value_objects.cloud_resources import KeyPair, SecurityGroup
from cloudweave.domain.value_objects.resource_key import KeyPairKey, SecurityGroupKey
from cloudweave.infrastructure.adapters.simulated_cloud_adapter import SimulatedCloudAdapter
from cloudweave.infrastructure.config import CloudweaveConfig
from cloudweave.infrastructure.event_bus import EventBus
from cloudweave.infrastructure.telemetry.otel_exporter import OTELConfig, OTELExporter


@dataclass
class CloudweaveContainer:
    """DI container holding all wired dependencies."""

    config: CloudweaveConfig
    backend: ResourceBackendPort
    event_bus: EventBus
    telemetry: OTELExporter
    waiter: JobWaiter
    queue: ProvisioningQueue
    pipeline: ProvisioningPipeline
    key_pairs: SingleFlightResourceCache[KeyPairKey, KeyPair]
    security_groups: SingleFlightResourceCache[SecurityGroupKey, SecurityGroup]
    nodes: NodeLifecycleFacade

    async def start(self) -> None:
        """Bring up async resources; OTLP export starts here when configured."""
        await self.telemetry.initialize()

    async def close(self) -> None:
        await self.telemetry.shutdown()


def create_backend(config: CloudweaveConfig) -> ResourceBackendPort:
    if config.backend.kind != "simulated":
        raise ValueError(f"Unknown backend kind {config.backend.kind!r}")
    return SimulatedCloudAdapter(
        job_latency=config.backend.job_latency,
        password_enabled=config.backend.password_enabled,
    )


def create_container(
    config: Optional[CloudweaveConfig] = None,
    backend: Optional[ResourceBackendPort] = None,
) -> CloudweaveContainer:
    """Create and wire all dependencies."""
    config = config or CloudweaveConfig()
    backend = backend or create_backend(config)
    event_bus = EventBus()
    telemetry = OTELExporter(
        OTELConfig(
            endpoint=config.telemetry.endpoint,
            service_name=config.telemetry.service_name,
            insecure=config.telemetry.insecure,
            buffer_limit=config.telemetry.buffer_limit,
        )
    )

    waiter = JobWaiter(
        backend,
        default_timeout=config.waiter.default_timeout,
        backoff=config.waiter.backoff_policy(),
        retry=config.waiter.retry_policy(),
        request_timeout=config.waiter.request_timeout,
        telemetry=telemetry,
    )
    queue = ProvisioningQueue(
        default_concurrency=config.queue.default_concurrency,
        partition_limits=config.queue.limits,
        admission_timeout=config.queue.admission_timeout,
        telemetry=telemetry,
    )
    pipeline = ProvisioningPipeline(
        waiter,
        event_bus=event_bus,
        telemetry=telemetry,
        compensation_timeout=config.waiter.compensation_timeout,
    )
    key_pairs: SingleFlightResourceCache[KeyPairKey, KeyPair] = SingleFlightResourceCache(
        "key-pairs", expire_after=config.cache.key_pair_expire_after
    )
    security_groups: SingleFlightResourceCache[SecurityGroupKey, SecurityGroup] = (
        SingleFlightResourceCache(
            "security-groups", expire_after=config.cache.security_group_expire_after
        )
    )
    nodes = NodeLifecycleFacade(
        backend,
        waiter,
        queue,
        pipeline,
        key_pairs=key_pairs,
        security_groups=security_groups,
        event_bus=event_bus,
        region=config.backend.region,
        naming_prefix=config.backend.naming_prefix,
        default_login_user=config.backend.login_user,
    )

    return CloudweaveContainer(
        config=config,
        backend=backend,
        event_bus=event_bus,
        telemetry=telemetry,
        waiter=waiter,
        queue=queue,
        pipeline=pipeline,
        key_pairs=key_pairs,
        security_groups=security_groups,
        nodes=nodes,
    )
