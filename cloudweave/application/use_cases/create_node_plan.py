"""
Create Node Plan Use Case

Architectural Intent:
- Turns a NodeSpec, its zone and the converted InstanceRequest into the
  ordered ProvisioningPlan the pipeline executes
- Each step pairs a backend mutation with the delete that undoes it
- Later steps read earlier results by step name; no step reaches into the
  backend for state an earlier step already produced

Step Order:
1. create_instance
2. create_volume:<name> then attach_volume:<name> for every extra volume
3. per network: allocate_address:<net>, enable_static_nat:<net>
4. per network and port: create_forwarding_rule:<net>:<port>/tcp on legacy
   2.x control planes, create_firewall_rule:<net>:<port>/tcp otherwise
5. create_tags (best-effort)
"""

import logging
from typing import Any, Mapping, Optional

from cloudweave.application.dtos.node_dtos import NodeSpec, VolumeSpec
from cloudweave.domain.entities.provisioning_plan import ProvisioningPlan, ProvisioningStep
from cloudweave.domain.ports.resource_backend_port import ResourceBackendPort
from cloudweave.domain.value_objects.cloud_resources import (
    FirewallRule,
    ForwardingRule,
    Instance,
    InstanceRequest,
    PublicAddress,
    Volume,
    Zone,
)

logger = logging.getLogger(__name__)

CREATE_INSTANCE = "create_instance"
CREATE_TAGS = "create_tags"


def create_volume_step_name(volume: VolumeSpec) -> str:
    return f"create_volume:{volume.name}"


def attach_volume_step_name(volume: VolumeSpec) -> str:
    return f"attach_volume:{volume.name}"


def allocate_address_step_name(network_id: str) -> str:
    return f"allocate_address:{network_id}"


def static_nat_step_name(network_id: str) -> str:
    return f"enable_static_nat:{network_id}"


class NodePlanBuilder:
    def __init__(self, backend: ResourceBackendPort) -> None:
        self._backend = backend

    def build(
        self,
        spec: NodeSpec,
        zone: Zone,
        request: InstanceRequest,
        plan_id: Optional[str] = None,
    ) -> ProvisioningPlan:
        steps = [self._create_instance(request, spec.step_timeout)]
        for volume in spec.volumes:
            steps.append(self._create_volume(spec, zone, volume))
            steps.append(self._attach_volume(volume, spec.step_timeout))
        if spec.setup_static_nat:
            for network_id in request.network_ids:
                steps.append(self._allocate_address(zone, network_id, spec.step_timeout))
                steps.append(self._enable_static_nat(network_id))
                for port in spec.inbound_ports:
                    if zone.uses_legacy_port_forwarding:
                        steps.append(self._forwarding_rule(network_id, port, spec.step_timeout))
                    else:
                        steps.append(self._firewall_rule(network_id, port, spec.step_timeout))
        if spec.tags:
            steps.append(self._create_tags(spec.tags, spec.step_timeout))

        logger.debug(
            "Built plan for node %s/%s with %d steps", spec.group, spec.name, len(steps)
        )
        return ProvisioningPlan(
            node_group=spec.group,
            node_name=spec.name,
            steps=steps,
            partition=spec.partition_key,
            plan_id=plan_id,
        )

    def _create_instance(self, request: InstanceRequest, timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend

        async def action(results: Mapping[str, Any]) -> Any:
            return await backend.create_instance(request)

        async def compensate(instance: Instance) -> Any:
            return await backend.delete_instance(instance.id)

        return ProvisioningStep(CREATE_INSTANCE, action, compensate, timeout=timeout)

    def _create_volume(self, spec: NodeSpec, zone: Zone, volume: VolumeSpec) -> ProvisioningStep:
        backend = self._backend
        volume_name = f"{spec.name}-{volume.name}"

        async def action(results: Mapping[str, Any]) -> Any:
            return await backend.create_volume(zone.id, volume_name, volume.size_gb)

        async def compensate(created: Volume) -> Any:
            return await backend.delete_volume(created.id)

        return ProvisioningStep(
            create_volume_step_name(volume), action, compensate, timeout=spec.step_timeout
        )

    def _attach_volume(self, volume: VolumeSpec, timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend
        created_by = create_volume_step_name(volume)

        async def action(results: Mapping[str, Any]) -> Any:
            created: Volume = results[created_by]
            instance: Instance = results[CREATE_INSTANCE]
            return await backend.attach_volume(created.id, instance.id)

        async def compensate(attached: Volume) -> Any:
            return await backend.detach_volume(attached.id)

        return ProvisioningStep(attach_volume_step_name(volume), action, compensate, timeout=timeout)

    def _allocate_address(self, zone: Zone, network_id: str, timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend

        async def action(results: Mapping[str, Any]) -> Any:
            return await backend.allocate_address(zone.id, network_id)

        async def compensate(address: PublicAddress) -> Any:
            return await backend.release_address(address.id)

        return ProvisioningStep(
            allocate_address_step_name(network_id), action, compensate, timeout=timeout
        )

    def _enable_static_nat(self, network_id: str) -> ProvisioningStep:
        backend = self._backend
        allocated_by = allocate_address_step_name(network_id)

        async def action(results: Mapping[str, Any]) -> Any:
            address: PublicAddress = results[allocated_by]
            instance: Instance = results[CREATE_INSTANCE]
            await backend.enable_static_nat(address.id, instance.id)
            return address

        async def compensate(address: PublicAddress) -> Any:
            return await backend.disable_static_nat(address.id)

        return ProvisioningStep(static_nat_step_name(network_id), action, compensate)

    def _forwarding_rule(self, network_id: str, port: int, timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend
        allocated_by = allocate_address_step_name(network_id)

        async def action(results: Mapping[str, Any]) -> Any:
            address: PublicAddress = results[allocated_by]
            instance: Instance = results[CREATE_INSTANCE]
            return await backend.create_forwarding_rule(address.id, instance.id, port)

        async def compensate(rule: ForwardingRule) -> Any:
            return await backend.delete_forwarding_rule(rule.id)

        return ProvisioningStep(
            f"create_forwarding_rule:{network_id}:{port}/tcp", action, compensate, timeout=timeout
        )

    def _firewall_rule(self, network_id: str, port: int, timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend
        allocated_by = allocate_address_step_name(network_id)

        async def action(results: Mapping[str, Any]) -> Any:
            address: PublicAddress = results[allocated_by]
            return await backend.create_firewall_rule(address.id, port, port)

        async def compensate(rule: FirewallRule) -> Any:
            return await backend.delete_firewall_rule(rule.id)

        return ProvisioningStep(
            f"create_firewall_rule:{network_id}:{port}/tcp", action, compensate, timeout=timeout
        )

    def _create_tags(self, tags: Mapping[str, str], timeout: Optional[float]) -> ProvisioningStep:
        backend = self._backend

        async def action(results: Mapping[str, Any]) -> Any:
            instance: Instance = results[CREATE_INSTANCE]
            return await backend.create_tags(instance.id, dict(tags))

        return ProvisioningStep(
            CREATE_TAGS, action, depends_on_prior_success=False, timeout=timeout
        )
