"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus for publishing domain events to observers
- Supports async subscription handlers keyed by event type
- Observers are passive: a failing handler is logged and the remaining
  handlers still run
"""

import logging
from typing import Callable, Awaitable
from apiary.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[DomainEvent], Awaitable[None]]]] = {}

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for handler in self._handlers.get(type(event), []):
                try:
                    await handler(event)
                except Exception:
                    logger.exception(
                        "Handler %r failed for %s", handler, event.event_type
                    )

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def handler_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, []))
