"""
Task Events

Architectural Intent:
- One event per state transition of a deployment task pipeline
- Consumed by progress reporters and telemetry, never by the executor itself
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import time

from apiary.domain.events.event_base import DomainEvent
from apiary.domain.value_objects.task_state import TaskState, Phase


@dataclass(frozen=True, kw_only=True)
class TaskTransitionEvent(DomainEvent):
    task_name: str
    from_state: TaskState
    to_state: TaskState
    phase: Optional[Phase] = None
    cause: Optional[str] = None
    # monotonic clock, comparable across events of one run
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def is_terminal(self) -> bool:
        return self.to_state.is_terminal

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "task_name": self.task_name,
                "from_state": self.from_state.value,
                "to_state": self.to_state.value,
                "phase": self.phase.value if self.phase else None,
                "cause": self.cause,
                "timestamp": self.timestamp,
            }
        )
        return data
