"""
Node Lifecycle Events

Architectural Intent:
- Events published by the lifecycle facade once a create or destroy call
  has reached its final verdict
- aggregate_id is the node id when one exists, otherwise the node name
"""

from dataclasses import dataclass

from cloudweave.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class NodeCreated(DomainEvent):
    node_name: str = ""
    group: str = ""
    partition: str = ""


@dataclass(frozen=True)
class NodeCreationFailed(DomainEvent):
    node_name: str = ""
    kind: str = ""
    failed_step: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class NodeDestroyed(DomainEvent):
    complete: bool = True
    failed_steps: tuple[str, ...] = ()
