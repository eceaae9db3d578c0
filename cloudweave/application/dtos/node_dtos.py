"""
Node DTOs

Architectural Intent:
- Data Transfer Objects for the node lifecycle use case boundaries
- Input validation at the application boundary
- Decouples the caller's request shape from the backend's InstanceRequest
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional


@dataclass(frozen=True)
class VolumeSpec:
    name: str
    size_gb: int

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("volume name cannot be empty")
        if self.size_gb < 1:
            raise ValueError(f"volume size must be >= 1 GB, got {self.size_gb}")


@dataclass(frozen=True)
class NodeSpec:
    """
    Everything create_node needs to know about one node.

    Key pair modes: an explicit ``key_pair`` (optionally seeded with
    ``login_private_key``), ``generate_key_pair`` for one shared key pair
    per group, or neither. A security group is generated per group only
    when the zone supports them, ``security_group_ids`` is empty and
    ``inbound_ports`` is not.
    """
    name: str
    group: str
    zone: str
    image_id: str
    hardware_id: str
    partition: Optional[str] = None
    inbound_ports: tuple[int, ...] = ()
    network_ids: tuple[str, ...] = ()
    security_group_ids: tuple[str, ...] = ()
    key_pair: Optional[str] = None
    login_private_key: Optional[str] = field(default=None, repr=False)
    login_user: Optional[str] = None
    generate_key_pair: bool = False
    generate_security_group: bool = True
    setup_static_nat: bool = True
    volumes: tuple[VolumeSpec, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)
    disk_offering_id: Optional[str] = None
    data_disk_size_gb: int = 0
    step_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        for attr in ("name", "group", "zone", "image_id", "hardware_id"):
            if not getattr(self, attr):
                raise ValueError(f"{attr} cannot be empty")
        for port in self.inbound_ports:
            if not (1 <= port <= 65535):
                raise ValueError(f"Port must be 1-65535, got {port}")
        if self.key_pair and self.generate_key_pair:
            raise ValueError("key_pair and generate_key_pair are mutually exclusive")
        if self.login_private_key and not self.key_pair:
            raise ValueError("login_private_key requires key_pair")
        names = [v.name for v in self.volumes]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate volume names: {names}")

    @property
    def partition_key(self) -> str:
        return self.partition or self.zone


@dataclass(frozen=True)
class TeardownReport:
    node_id: str
    instance_found: bool
    forwarding_rules_deleted: int = 0
    firewall_rules_deleted: int = 0
    addresses_released: int = 0
    volumes_deleted: int = 0
