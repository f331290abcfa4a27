"""
Progress Reporters

Architectural Intent:
- Render task transitions for a human watching an apply run
- Verbose mode prints one line per transition
- Default mode keeps a single spinner line updated in place
- Purely cosmetic: reporters only observe events fed by the executor
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text

from apiary.domain.events.task_events import TaskTransitionEvent
from apiary.domain.value_objects.task_state import TaskState

STATE_STYLES = {
    TaskState.QUEUED: "dim",
    TaskState.TRANSFERRING: "cyan",
    TaskState.ACTIVATING: "blue",
    TaskState.SUCCEEDED: "green",
    TaskState.FAILED: "red",
}


class FleetProgress:
    """Running tally of task states, shared by both reporters."""

    def __init__(self, total: int = 0) -> None:
        self.total = total
        self.states: dict[str, TaskState] = {}

    def apply(self, event: TaskTransitionEvent) -> None:
        self.states[event.task_name] = event.to_state

    def count(self, state: TaskState) -> int:
        return sum(1 for s in self.states.values() if s is state)

    @property
    def in_flight(self) -> int:
        return sum(1 for s in self.states.values() if s.is_in_flight)

    @property
    def queued(self) -> int:
        return self.total - len(self.states)

    def describe(self) -> str:
        return (
            f"{self.in_flight} in flight, "
            f"{self.count(TaskState.SUCCEEDED)} succeeded, "
            f"{self.count(TaskState.FAILED)} failed of {self.total}"
        )


class VerboseReporter:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)
        self.progress = FleetProgress()

    def start(self, total: int) -> None:
        self.progress = FleetProgress(total)
        self.console.print(f"Deploying to {total} host(s)")

    async def handle(self, event: TaskTransitionEvent) -> None:
        self.progress.apply(event)
        timestamp = datetime.now().strftime("%H:%M:%S")
        line = Text(f"[{timestamp}] {event.task_name}: {event.from_state} -> ")
        line.append(str(event.to_state), style=STATE_STYLES[event.to_state])
        if event.cause:
            line.append(f" ({event.cause})", style="red")
        self.console.print(line)

    def finish(self) -> None:
        self.console.print(self.progress.describe())


class SpinnerReporter:
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)
        self.progress = FleetProgress()
        self._spinner = Spinner("dots", text="")
        self._live: Optional[Live] = None

    def _render_text(self) -> Text:
        return Text(f"Deploying: {self.progress.describe()}", style="cyan")

    def start(self, total: int) -> None:
        self.progress = FleetProgress(total)
        self._spinner.update(text=self._render_text())
        self._live = Live(
            self._spinner,
            console=self.console,
            refresh_per_second=10,
            transient=True,
        )
        self._live.start()

    async def handle(self, event: TaskTransitionEvent) -> None:
        self.progress.apply(event)
        self._spinner.update(text=self._render_text())

    def finish(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
        failed = self.progress.count(TaskState.FAILED)
        style = "red" if failed else "green"
        mark = "✗" if failed else "✓"
        self.console.print(Text(f"  {mark} {self.progress.describe()}", style=style))


def create_reporter(quiet: bool, console: Optional[Console] = None):
    """Spinner when quiet, one line per transition otherwise."""
    if quiet:
        return SpinnerReporter(console)
    return VerboseReporter(console)
