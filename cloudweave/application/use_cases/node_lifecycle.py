"""
Node Lifecycle Use Case

Architectural Intent:
- Public entry point for creating, destroying, power-cycling and listing
  nodes
- create_node resolves shared prerequisites (key pair, security group)
  through the single-flight caches, converts the request for the zone's
  network model, builds the plan and runs it through the pipeline inside
  the partition's queue lane
- This is the only layer that translates orchestration errors into the
  caller-facing NodeCreationError and publishes node lifecycle events

Credential Selection:
1. private key of the resolved key pair, when it is known
2. backend-generated password, when the instance is password-enabled
3. login user alone
"""

from __future__ import annotations
import hashlib
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from cloudweave.application.dtos.node_dtos import NodeSpec, TeardownReport
from cloudweave.application.orchestration.job_waiter import JobWaiter
from cloudweave.application.orchestration.provisioning_pipeline import (
    PlanResult,
    ProvisioningPipeline,
    is_already_absent,
)
from cloudweave.application.orchestration.provisioning_queue import ProvisioningQueue
from cloudweave.application.orchestration.single_flight_cache import SingleFlightResourceCache
from cloudweave.application.use_cases.create_node_plan import (
    CREATE_INSTANCE,
    NodePlanBuilder,
    static_nat_step_name,
)
from cloudweave.application.use_cases.teardown_node import NodeTeardown
from cloudweave.domain.errors import (
    CreationFailureKind,
    NodeCreationError,
    PrerequisiteFailure,
    StepFailure,
    TeardownError,
)
from cloudweave.domain.events.node_events import NodeCreated, NodeCreationFailed, NodeDestroyed
from cloudweave.domain.ports.event_bus_port import EventBusPort
from cloudweave.domain.ports.resource_backend_port import ResourceBackendPort
from cloudweave.domain.services.naming import DEFAULT_PREFIX, shared_name_for_group
from cloudweave.domain.services.network_options import OPTIONS_CONVERTERS, convert_options
from cloudweave.domain.value_objects.cloud_resources import (
    Instance,
    InstanceRequest,
    KeyPair,
    SecurityGroup,
    Zone,
)
from cloudweave.domain.value_objects.job import Failed, JobHandle, TimedOut
from cloudweave.domain.value_objects.node_record import LoginCredentials, NodeRecord
from cloudweave.domain.value_objects.resource_key import KeyPairKey, SecurityGroupKey

logger = logging.getLogger(__name__)


def fingerprint_private_key(pem: str) -> str:
    digest = hashlib.sha256(pem.strip().encode()).hexdigest()
    return ":".join(digest[i:i + 2] for i in range(0, 32, 2))


class NodeLifecycleFacade:
    def __init__(
        self,
        backend: ResourceBackendPort,
        waiter: JobWaiter,
        queue: ProvisioningQueue,
        pipeline: ProvisioningPipeline,
        key_pairs: SingleFlightResourceCache[KeyPairKey, KeyPair],
        security_groups: SingleFlightResourceCache[SecurityGroupKey, SecurityGroup],
        event_bus: Optional[EventBusPort] = None,
        region: str = "default",
        naming_prefix: str = DEFAULT_PREFIX,
        default_login_user: str = "root",
        converters=OPTIONS_CONVERTERS,
    ) -> None:
        self._backend = backend
        self._waiter = waiter
        self._queue = queue
        self._pipeline = pipeline
        self._key_pairs = key_pairs
        self._security_groups = security_groups
        self._event_bus = event_bus
        self._region = region
        self._naming_prefix = naming_prefix
        self._default_login_user = default_login_user
        self._converters = converters
        self._builder = NodePlanBuilder(backend)
        self._teardown = NodeTeardown(backend, waiter)

    async def _publish(self, event: Any) -> None:
        if self._event_bus:
            await self._event_bus.publish([event])

    # -- prerequisites -----------------------------------------------------

    async def _lookup_key_pair(self, key: KeyPairKey) -> KeyPair:
        key_pair = await self._backend.get_key_pair(key.name)
        if key_pair is None:
            raise LookupError(f"key pair {key.name!r} does not exist")
        return key_pair

    async def _create_key_pair(self, key: KeyPairKey) -> KeyPair:
        logger.info("Creating shared key pair %s", key.name)
        return await self._backend.create_key_pair(key.name)

    async def _get_or_create_security_group(self, key: SecurityGroupKey) -> SecurityGroup:
        existing = await self._backend.get_security_group(key.zone, key.name)
        if existing is not None:
            return existing
        logger.info("Creating security group %s", key)
        return await self._backend.create_security_group(
            key.zone, key.name, sorted(key.ports), sorted(key.cidrs)
        )

    async def _resolve(
        self,
        resource: str,
        cache: SingleFlightResourceCache,
        key: Any,
        loader: Callable[[Any], Awaitable[Any]],
    ) -> Any:
        try:
            return await cache.get_or_create(key, loader)
        except Exception as e:
            raise PrerequisiteFailure(resource, key, e) from e

    async def _resolve_key_pair(self, spec: NodeSpec) -> Optional[KeyPair]:
        if spec.key_pair:
            key = KeyPairKey(self._region, spec.key_pair)
            if spec.login_private_key:
                key_pair = KeyPair(
                    name=spec.key_pair,
                    fingerprint=fingerprint_private_key(spec.login_private_key),
                    private_key=spec.login_private_key,
                )
                self._key_pairs.put(key, key_pair)
                return key_pair
            return await self._resolve("key pair", self._key_pairs, key, self._lookup_key_pair)
        if spec.generate_key_pair:
            key = KeyPairKey(self._region, shared_name_for_group(spec.group, self._naming_prefix))
            return await self._resolve("key pair", self._key_pairs, key, self._create_key_pair)
        return None

    async def _resolve_security_groups(self, spec: NodeSpec, zone: Zone) -> tuple[str, ...]:
        if spec.security_group_ids:
            return tuple(spec.security_group_ids)
        if not (zone.security_groups_enabled and spec.inbound_ports and spec.generate_security_group):
            return ()
        key = SecurityGroupKey(
            zone=zone.id,
            name=shared_name_for_group(spec.group, self._naming_prefix),
            ports=frozenset(spec.inbound_ports),
        )
        group = await self._resolve(
            "security group", self._security_groups, key, self._get_or_create_security_group
        )
        return (group.id,)

    async def _prepare(self, spec: NodeSpec) -> tuple[Zone, InstanceRequest, Optional[KeyPair]]:
        try:
            zone = await self._backend.get_zone(spec.zone)
            networks = await self._backend.list_networks(zone.id)
        except Exception as e:
            raise PrerequisiteFailure("zone", spec.zone, e) from e

        key_pair = await self._resolve_key_pair(spec)
        security_group_ids = await self._resolve_security_groups(spec, zone)

        base = InstanceRequest(
            name=spec.name,
            group=spec.group,
            zone=zone.id,
            image_id=spec.image_id,
            hardware_id=spec.hardware_id,
            key_pair=key_pair.name if key_pair else None,
            disk_offering_id=spec.disk_offering_id,
            data_disk_size_gb=spec.data_disk_size_gb if spec.disk_offering_id else 0,
        )
        try:
            request = convert_options(
                base,
                zone,
                networks,
                spec.network_ids,
                security_group_ids,
                converters=self._converters,
            )
        except ValueError as e:
            raise PrerequisiteFailure("network options", zone.id, e) from e
        return zone, request, key_pair

    def _select_credentials(
        self, spec: NodeSpec, key_pair: Optional[KeyPair], instance: Instance
    ) -> LoginCredentials:
        user = spec.login_user or self._default_login_user
        if key_pair is not None and key_pair.private_key:
            return LoginCredentials(user=user, private_key=key_pair.private_key)
        if instance.password_enabled and instance.password:
            return LoginCredentials(user=user, password=instance.password)
        return LoginCredentials(user=user)

    # -- create ------------------------------------------------------------

    async def create_node(self, spec: NodeSpec) -> NodeRecord:
        """
        Provision one node and return its record.

        Raises PrerequisiteFailure when nothing was started, or
        NodeCreationError once a plan has run and been rolled back.
        """
        partition = spec.partition_key
        try:
            zone, request, key_pair = await self._prepare(spec)
        except PrerequisiteFailure as e:
            logger.error(
                "Node %s not created: %s",
                spec.name,
                e,
                extra={"event": "node_creation_failed", "node": spec.name, "partition": partition},
            )
            await self._publish(
                NodeCreationFailed(
                    aggregate_id=spec.name,
                    node_name=spec.name,
                    kind="prerequisite",
                    error_message=str(e),
                )
            )
            raise

        plan = self._builder.build(spec, zone, request)
        try:
            result: PlanResult = await self._queue.submit(
                partition, lambda: self._pipeline.execute(plan)
            )
        except StepFailure as e:
            kind = (
                CreationFailureKind.ROLLED_BACK
                if e.rollback_complete
                else CreationFailureKind.ROLLBACK_INCOMPLETE
            )
            error = NodeCreationError(spec.name, kind, e)
            logger.error(
                "%s",
                error,
                extra={
                    "event": "node_creation_failed",
                    "node": spec.name,
                    "partition": partition,
                    "plan_id": plan.plan_id,
                    "step": e.step_name,
                },
            )
            await self._publish(
                NodeCreationFailed(
                    aggregate_id=spec.name,
                    node_name=spec.name,
                    kind=kind.name.lower(),
                    failed_step=e.step_name,
                    error_message=str(e.cause),
                )
            )
            raise error from e

        instance: Instance = result[CREATE_INSTANCE]
        # the node exists at this point; a failed refresh keeps the step's view
        try:
            refreshed = await self._backend.get_instance(instance.id)
        except Exception as e:
            logger.warning(
                "Node %s: refreshing instance %s failed, using creation result: %s",
                spec.name,
                instance.id,
                e,
                extra={"event": "instance_refresh_failed", "node": instance.id},
            )
        else:
            if refreshed is not None:
                instance = refreshed
        public_ips = tuple(
            result[static_nat_step_name(n)].ip
            for n in request.network_ids
            if static_nat_step_name(n) in result.results
        )
        record = NodeRecord.from_instance(
            instance,
            partition=partition,
            credentials=self._select_credentials(spec, key_pair, instance),
            public_ips=public_ips,
        )
        for step_name, cause in result.best_effort_failures:
            logger.warning("Node %s: best-effort step %s failed: %s", record.id, step_name, cause)
        logger.info(
            "Node %s created as %s",
            spec.name,
            record.id,
            extra={"event": "node_created", "node": record.id, "partition": partition},
        )
        await self._publish(
            NodeCreated(
                aggregate_id=record.id,
                node_name=spec.name,
                group=spec.group,
                partition=partition,
            )
        )
        return record

    # -- destroy -----------------------------------------------------------

    async def destroy_node(self, node_id: str) -> TeardownReport:
        try:
            report = await self._teardown.execute(node_id)
        except TeardownError as e:
            logger.error("%s", e, extra={"event": "teardown_failed", "node": node_id})
            await self._publish(
                NodeDestroyed(aggregate_id=node_id, complete=False, failed_steps=tuple(e.failed_steps))
            )
            raise
        await self._publish(NodeDestroyed(aggregate_id=node_id))
        return report

    # -- power -------------------------------------------------------------

    async def _power(
        self,
        operation: str,
        node_id: str,
        call: Callable[[str], Awaitable[Optional[JobHandle]]],
    ) -> None:
        handle = await call(node_id)
        if handle is None:
            logger.debug("%s of node %s completed synchronously", operation, node_id)
            return
        outcome = await self._waiter.wait_for(handle)
        if isinstance(outcome, Failed):
            if is_already_absent(outcome.cause):
                logger.info("%s of node %s: node already absent", operation, node_id)
                return
            raise outcome.cause
        if isinstance(outcome, TimedOut):
            raise outcome.as_error()
        logger.info("%s of node %s completed", operation, node_id)

    async def reboot_node(self, node_id: str) -> None:
        await self._power("reboot", node_id, self._backend.reboot_instance)

    async def suspend_node(self, node_id: str) -> None:
        await self._power("suspend", node_id, self._backend.stop_instance)

    async def resume_node(self, node_id: str) -> None:
        await self._power("resume", node_id, self._backend.start_instance)

    # -- queries -----------------------------------------------------------

    async def list_nodes(self, ids: Optional[Iterable[str]] = None) -> list[Instance]:
        instances = await self._backend.list_instances()
        if ids is None:
            return instances
        wanted = set(ids)
        return [i for i in instances if i.id in wanted]

    async def get_node(self, node_id: str) -> Optional[Instance]:
        return await self._backend.get_instance(node_id)
