"""
Progress Reporter Port

Architectural Intent:
- Observer contract for rendering task transitions
- The executor feeds it from an event queue; it never gates execution
"""

from typing import Protocol, runtime_checkable
from apiary.domain.events.task_events import TaskTransitionEvent


@runtime_checkable
class ProgressReporterPort(Protocol):
    def start(self, total: int) -> None: ...

    async def handle(self, event: TaskTransitionEvent) -> None: ...

    def finish(self) -> None: ...
