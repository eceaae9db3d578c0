"""
Resource Key Value Objects

Architectural Intent:
- Cache keys for shared, named resources that many nodes reuse
- Structural equality and hashing (frozen dataclasses) so two requests for
  the same security group in the same zone with the same ports collide
- Port and CIDR collections are normalised to frozensets so ordering does
  not produce distinct keys
"""

from dataclasses import dataclass, field
from typing import Iterable


def _freeze(values: Iterable) -> frozenset:
    if isinstance(values, frozenset):
        return values
    return frozenset(values)


@dataclass(frozen=True)
class SecurityGroupKey:
    zone: str
    name: str
    ports: frozenset[int] = field(default_factory=frozenset)
    cidrs: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.zone:
            raise ValueError("SecurityGroupKey zone cannot be empty")
        if not self.name:
            raise ValueError("SecurityGroupKey name cannot be empty")
        object.__setattr__(self, "ports", _freeze(self.ports))
        object.__setattr__(self, "cidrs", _freeze(self.cidrs))
        for port in self.ports:
            if not (1 <= port <= 65535):
                raise ValueError(f"Port must be 1-65535, got {port}")

    def __str__(self) -> str:
        ports = ",".join(str(p) for p in sorted(self.ports))
        return f"{self.zone}/{self.name}[{ports}]"


@dataclass(frozen=True)
class KeyPairKey:
    region: str
    name: str

    def __post_init__(self) -> None:
        if not self.region:
            raise ValueError("KeyPairKey region cannot be empty")
        if not self.name:
            raise ValueError("KeyPairKey name cannot be empty")

    def __str__(self) -> str:
        return f"{self.region}/{self.name}"
