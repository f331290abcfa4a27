"""
Fleet Summary Module

Architectural Intent:
- Terminal records of an apply run: per-task outcomes, skipped names,
  names that were never admitted because the run was interrupted
- All records are immutable; equality ignores ordering and timing so two
  runs over identical inputs compare equal
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from apiary.domain.value_objects.task_state import Phase


@dataclass(frozen=True)
class TaskOutcome:
    name: str
    phase_reached: Phase
    succeeded: bool
    cause: Optional[str] = None
    duration: float = field(default=0.0, compare=False)

    @classmethod
    def success(cls, name: str, phase_reached: Phase, duration: float = 0.0) -> TaskOutcome:
        return cls(name=name, phase_reached=phase_reached, succeeded=True, duration=duration)

    @classmethod
    def failure(
        cls, name: str, phase_reached: Phase, cause: str, duration: float = 0.0
    ) -> TaskOutcome:
        return cls(
            name=name,
            phase_reached=phase_reached,
            succeeded=False,
            cause=cause,
            duration=duration,
        )

    @property
    def failed(self) -> bool:
        return not self.succeeded


@dataclass(frozen=True)
class SkipEntry:
    """A selected name that never became a task."""
    name: str
    reason: str


@dataclass(frozen=True, eq=False)
class FleetSummary:
    outcomes: tuple[TaskOutcome, ...] = ()
    skipped: tuple[SkipEntry, ...] = ()
    not_started: tuple[str, ...] = ()
    interrupted: bool = False

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failures(self) -> list[TaskOutcome]:
        return sorted((o for o in self.outcomes if o.failed), key=lambda o: o.name)

    def outcome_for(self, name: str) -> Optional[TaskOutcome]:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def with_skipped(self, entries: Iterable[SkipEntry]) -> FleetSummary:
        return replace(self, skipped=self.skipped + tuple(entries))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FleetSummary):
            return NotImplemented
        return (
            set(self.outcomes) == set(other.outcomes)
            and set(self.skipped) == set(other.skipped)
            and set(self.not_started) == set(other.not_started)
            and self.interrupted == other.interrupted
        )

    __hash__ = None  # type: ignore[assignment]
