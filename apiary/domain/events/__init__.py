"""
Domain Events Package

Architectural Intent:
- Contains domain events and their base class
- Events are the only channel from the executor to observers
"""

from apiary.domain.events.event_base import DomainEvent
from apiary.domain.events.task_events import TaskTransitionEvent

__all__ = [
    "DomainEvent",
    "TaskTransitionEvent",
]
