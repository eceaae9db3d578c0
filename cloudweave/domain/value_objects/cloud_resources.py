"""
Cloud Resource Value Objects

Architectural Intent:
- Minimal, provider-neutral shapes of the resources the orchestrator touches
- Only the fields the orchestrator reads are modeled; vendor payloads stay in
  the adapters
- All immutable; adapters build new instances on every state change
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Mapping


class NetworkType(Enum):
    BASIC = auto()
    ADVANCED = auto()


class InstanceState(Enum):
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()
    STOPPED = auto()
    DESTROYED = auto()
    ERROR = auto()


class RuleState(Enum):
    ACTIVE = auto()
    DELETING = auto()


@dataclass(frozen=True)
class Zone:
    id: str
    name: str
    network_type: NetworkType = NetworkType.ADVANCED
    security_groups_enabled: bool = False
    control_plane_version: str = "4.0"

    @property
    def uses_legacy_port_forwarding(self) -> bool:
        """2.x control planes expose NAT through IP forwarding rules."""
        return self.control_plane_version.startswith("2")


@dataclass(frozen=True)
class Network:
    id: str
    zone: str
    name: str = ""
    is_default: bool = False


@dataclass(frozen=True)
class Instance:
    id: str
    name: str
    zone: str
    state: InstanceState = InstanceState.RUNNING
    group: str = ""
    private_ip: Optional[str] = None
    public_ip_id: Optional[str] = None
    password_enabled: bool = False
    password: Optional[str] = None
    key_pair: Optional[str] = None
    security_group_ids: tuple[str, ...] = ()
    network_ids: tuple[str, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Volume:
    id: str
    name: str
    zone: str
    size_gb: int
    instance_id: Optional[str] = None


@dataclass(frozen=True)
class PublicAddress:
    id: str
    ip: str
    zone: str
    network_id: Optional[str] = None
    static_nat_instance_id: Optional[str] = None


@dataclass(frozen=True)
class ForwardingRule:
    id: str
    address_id: str
    instance_id: str
    port: int
    protocol: str = "tcp"
    state: RuleState = RuleState.ACTIVE


@dataclass(frozen=True)
class FirewallRule:
    id: str
    address_id: str
    start_port: int
    end_port: int
    protocol: str = "tcp"
    cidrs: tuple[str, ...] = ("0.0.0.0/0",)
    state: RuleState = RuleState.ACTIVE


@dataclass(frozen=True)
class SecurityGroup:
    id: str
    name: str
    zone: str
    ports: frozenset[int] = frozenset()
    cidrs: frozenset[str] = frozenset()


@dataclass(frozen=True)
class KeyPair:
    name: str
    fingerprint: str = ""
    private_key: Optional[str] = None


@dataclass(frozen=True)
class InstanceRequest:
    """Everything a backend needs to launch one instance."""
    name: str
    group: str
    zone: str
    image_id: str
    hardware_id: str
    network_ids: tuple[str, ...] = ()
    security_group_ids: tuple[str, ...] = ()
    key_pair: Optional[str] = None
    disk_offering_id: Optional[str] = None
    data_disk_size_gb: int = 0
