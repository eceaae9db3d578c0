"""
Provisioning Plan Events

Architectural Intent:
- Emitted by ProvisioningPlan on every state transition
- aggregate_id is always the plan id
- Carry names and indexes only; results and credentials never leave the plan
"""

from dataclasses import dataclass

from cloudweave.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class PlanStarted(DomainEvent):
    node_name: str = ""
    partition: str = ""
    step_count: int = 0


@dataclass(frozen=True)
class StepStarted(DomainEvent):
    step_name: str = ""
    step_index: int = 0


@dataclass(frozen=True)
class StepSucceeded(DomainEvent):
    step_name: str = ""
    step_index: int = 0


@dataclass(frozen=True)
class StepFailed(DomainEvent):
    step_name: str = ""
    step_index: int = 0
    error_message: str = ""
    best_effort: bool = False


@dataclass(frozen=True)
class CompensationStarted(DomainEvent):
    failed_step_index: int = 0
    steps_to_compensate: int = 0


@dataclass(frozen=True)
class StepCompensated(DomainEvent):
    step_name: str = ""
    step_index: int = 0
    success: bool = True
    error_message: str = ""


@dataclass(frozen=True)
class CompensationFinished(DomainEvent):
    success: bool = True
    failure_count: int = 0


@dataclass(frozen=True)
class PlanSucceeded(DomainEvent):
    node_name: str = ""
