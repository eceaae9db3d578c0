"""
Domain Events Module

Architectural Intent:
- Base class for domain events following DDD principles
- Events are immutable and capture significant provisioning occurrences
- Events are collected on the plan aggregate and dispatched via the event bus
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )
    aggregate_id: str = ""

    def with_aggregate_id(self, aggregate_id: str) -> "DomainEvent":
        object.__setattr__(self, "aggregate_id", aggregate_id)
        return self

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at,
            "event_type": self.event_type,
        }
        for f in fields(self):
            if f.name not in data:
                data[f.name] = getattr(self, f.name)
        return data
