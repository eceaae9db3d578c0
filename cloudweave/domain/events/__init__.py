"""
Domain Events Package

Architectural Intent:
- Contains domain events and event bus infrastructure
- Events are the primary mechanism for cross-boundary communication
"""

from cloudweave.domain.events.event_base import DomainEvent
from cloudweave.domain.events.node_events import (
    NodeCreated,
    NodeCreationFailed,
    NodeDestroyed,
)
from cloudweave.domain.events.plan_events import (
    PlanStarted,
    StepStarted,
    StepSucceeded,
    StepFailed,
    CompensationStarted,
    StepCompensated,
    CompensationFinished,
    PlanSucceeded,
)

__all__ = [
    "DomainEvent",
    "NodeCreated",
    "NodeCreationFailed",
    "NodeDestroyed",
    "PlanStarted",
    "StepStarted",
    "StepSucceeded",
    "StepFailed",
    "CompensationStarted",
    "StepCompensated",
    "CompensationFinished",
    "PlanSucceeded",
]
