"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus implementation for publishing domain events
- Supports async subscription handlers
- Handlers subscribed to a base class receive every subclass event, so
  subscribing to DomainEvent observes the whole provisioning stream
- A failing handler is logged and skipped; publishing happens in the middle
  of provisioning and rollback, which must not be interrupted by an observer
"""

import logging
from typing import Callable, Awaitable
from cloudweave.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[DomainEvent], Awaitable[None]]]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for event_type in type(event).__mro__:
                for handler in self._handlers.get(event_type, ()):
                    try:
                        await handler(event)
                    except Exception as e:
                        logger.error(
                            "Event handler %r failed for %s: %s",
                            handler,
                            event.event_type,
                            e,
                        )

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None:
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)


class EventRecorder:
    """Subscriber that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]
