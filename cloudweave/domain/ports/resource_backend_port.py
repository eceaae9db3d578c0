"""
Resource Backend Port

Architectural Intent:
- Port interface for the cloud control plane the orchestrator drives
- Abstracts zone/network lookup, instance, volume, address, NAT, rule,
  security group, key pair and tag operations
- Implemented by SimulatedCloudAdapter; real control-plane adapters plug in
  through the composition root

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Long-running operations return a JobHandle instead of a result; the
  handle is resolved by the JobWaiter through the JobStatusClient port,
  which every backend also implements
- Mutations that target an absent resource raise ResourceNotFoundError,
  except delete_instance which returns None so teardown can tell "already
  gone" from "job started"
- Power operations return None when the control plane completed them
  synchronously
"""

from typing import Protocol, runtime_checkable, Optional, Mapping, Sequence

from cloudweave.domain.value_objects.cloud_resources import (
    FirewallRule,
    ForwardingRule,
    Instance,
    InstanceRequest,
    KeyPair,
    Network,
    PublicAddress,
    SecurityGroup,
    Volume,
    Zone,
)
from cloudweave.domain.value_objects.job import JobHandle, JobStatusReport


@runtime_checkable
class ResourceBackendPort(Protocol):
    """Port for control-plane resource operations."""

    async def status(self, job_id: str) -> JobStatusReport: ...

    # -- topology ----------------------------------------------------------

    async def get_zone(self, zone_id: str) -> Zone:
        """Look up a zone; raises ResourceNotFoundError when unknown."""
        ...

    async def list_networks(self, zone_id: str) -> list[Network]: ...

    # -- instances ---------------------------------------------------------

    async def create_instance(self, request: InstanceRequest) -> JobHandle:
        """Start deploying an instance. The job result is the Instance."""
        ...

    async def get_instance(self, instance_id: str) -> Optional[Instance]: ...

    async def list_instances(self) -> list[Instance]: ...

    async def delete_instance(self, instance_id: str) -> Optional[JobHandle]:
        """Start destroying an instance; None when it does not exist."""
        ...

    async def reboot_instance(self, instance_id: str) -> Optional[JobHandle]: ...

    async def stop_instance(self, instance_id: str) -> Optional[JobHandle]: ...

    async def start_instance(self, instance_id: str) -> Optional[JobHandle]: ...

    # -- volumes -----------------------------------------------------------

    async def create_volume(self, zone_id: str, name: str, size_gb: int) -> JobHandle:
        """The job result is the Volume."""
        ...

    async def attach_volume(self, volume_id: str, instance_id: str) -> JobHandle: ...

    async def detach_volume(self, volume_id: str) -> JobHandle: ...

    async def delete_volume(self, volume_id: str) -> None: ...

    async def list_volumes(self, instance_id: str) -> list[Volume]:
        """Data volumes currently attached to the instance."""
        ...

    # -- public addresses and NAT ------------------------------------------

    async def allocate_address(self, zone_id: str, network_id: Optional[str]) -> JobHandle:
        """The job result is the PublicAddress."""
        ...

    async def release_address(self, address_id: str) -> JobHandle: ...

    async def list_addresses(self, instance_id: str) -> list[PublicAddress]:
        """Addresses whose static NAT points at the instance."""
        ...

    async def enable_static_nat(self, address_id: str, instance_id: str) -> None: ...

    async def disable_static_nat(self, address_id: str) -> JobHandle: ...

    # -- rules -------------------------------------------------------------

    async def create_forwarding_rule(
        self, address_id: str, instance_id: str, port: int, protocol: str = "tcp"
    ) -> JobHandle:
        """The job result is the ForwardingRule."""
        ...

    async def delete_forwarding_rule(self, rule_id: str) -> JobHandle: ...

    async def list_forwarding_rules(self, instance_id: str) -> list[ForwardingRule]: ...

    async def create_firewall_rule(
        self,
        address_id: str,
        start_port: int,
        end_port: int,
        protocol: str = "tcp",
        cidrs: Sequence[str] = ("0.0.0.0/0",),
    ) -> JobHandle:
        """The job result is the FirewallRule."""
        ...

    async def delete_firewall_rule(self, rule_id: str) -> JobHandle: ...

    async def list_firewall_rules(self, address_id: str) -> list[FirewallRule]: ...

    # -- shared resources --------------------------------------------------

    async def get_security_group(self, zone_id: str, name: str) -> Optional[SecurityGroup]: ...

    async def create_security_group(
        self, zone_id: str, name: str, ports: Sequence[int], cidrs: Sequence[str]
    ) -> SecurityGroup: ...

    async def get_key_pair(self, name: str) -> Optional[KeyPair]: ...

    async def create_key_pair(self, name: str) -> KeyPair:
        """Create a key pair; the returned value carries the private key."""
        ...

    async def create_tags(self, instance_id: str, tags: Mapping[str, str]) -> JobHandle: ...
