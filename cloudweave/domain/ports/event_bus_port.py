"""
Event Bus Port

Architectural Intent:
- Outbound contract the pipeline and the node facade publish through
- Plan transitions (step started/succeeded/failed, compensation) and node
  lifecycle events leave the application layer only via this port
- Publishing must not raise because of a subscriber; a provisioning run
  never fails on observability
"""

from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from cloudweave.domain.events.event_base import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: Sequence[DomainEvent]) -> None:
        """Deliver events in order to every handler whose type matches."""
        ...

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """Register handler for event_type and all of its subclasses."""
        ...
