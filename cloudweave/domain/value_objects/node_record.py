"""
Node Record Value Object

Architectural Intent:
- Public-facing identity of a node created by the orchestrator
- Handed to the caller on success; the orchestrator keeps no reference to it
- Credentials never appear in repr()
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from cloudweave.domain.value_objects.cloud_resources import Instance, InstanceState


@dataclass(frozen=True)
class LoginCredentials:
    user: str = "root"
    password: Optional[str] = field(default=None, repr=False)
    private_key: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("LoginCredentials user cannot be empty")

    @property
    def has_secret(self) -> bool:
        return bool(self.password or self.private_key)


@dataclass(frozen=True)
class NodeRecord:
    id: str
    name: str
    group: str
    partition: str
    credentials: LoginCredentials
    state: InstanceState = InstanceState.RUNNING
    private_ip: Optional[str] = None
    public_ips: tuple[str, ...] = ()

    @staticmethod
    def from_instance(
        instance: Instance,
        partition: str,
        credentials: LoginCredentials,
        public_ips: tuple[str, ...] = (),
    ) -> "NodeRecord":
        return NodeRecord(
            id=instance.id,
            name=instance.name,
            group=instance.group,
            partition=partition,
            credentials=credentials,
            state=instance.state,
            private_ip=instance.private_ip,
            public_ips=public_ips,
        )
