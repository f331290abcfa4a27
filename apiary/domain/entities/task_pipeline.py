"""
Task Pipeline Module

Architectural Intent:
- Per-task aggregate enforcing the deployment state machine
- Every transition produces a new instance and records a TaskTransitionEvent
- Pipeline length depends on the goal: PUSH ends after the transfer phase

State machine:
    QUEUED       -> TRANSFERRING
    TRANSFERRING -> SUCCEEDED   (goal == PUSH)
    TRANSFERRING -> ACTIVATING  (goal != PUSH)
    TRANSFERRING -> FAILED      (transfer error)
    ACTIVATING   -> SUCCEEDED
    ACTIVATING   -> FAILED      (activation error)
"""

from __future__ import annotations
from typing import Optional
import time

from apiary.domain.entities.deployment_task import DeploymentTask
from apiary.domain.entities.fleet_summary import TaskOutcome
from apiary.domain.errors import InvalidTransitionError
from apiary.domain.events.task_events import TaskTransitionEvent
from apiary.domain.value_objects.task_state import TaskState, Phase


class TaskPipeline:
    __slots__ = (
        "_task",
        "_state",
        "_phase",
        "_cause",
        "_started_at",
        "_finished_at",
        "_domain_events",
    )

    def __init__(
        self,
        task: DeploymentTask,
        state: TaskState = TaskState.QUEUED,
        phase: Optional[Phase] = None,
        cause: Optional[str] = None,
        started_at: Optional[float] = None,
        finished_at: Optional[float] = None,
        domain_events: tuple = (),
    ):
        self._task = task
        self._state = state
        self._phase = phase
        self._cause = cause
        self._started_at = started_at
        self._finished_at = finished_at
        self._domain_events = domain_events

    @property
    def task(self) -> DeploymentTask:
        return self._task

    @property
    def name(self) -> str:
        return self._task.name

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def phase(self) -> Optional[Phase]:
        return self._phase

    @property
    def cause(self) -> Optional[str]:
        return self._cause

    @property
    def domain_events(self) -> tuple:
        return self._domain_events

    @property
    def last_event(self) -> Optional[TaskTransitionEvent]:
        return self._domain_events[-1] if self._domain_events else None

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def _transition(
        self,
        to_state: TaskState,
        phase: Optional[Phase],
        cause: Optional[str] = None,
    ) -> TaskPipeline:
        now = time.monotonic()
        event = TaskTransitionEvent(
            aggregate_id=self._task.name,
            task_name=self._task.name,
            from_state=self._state,
            to_state=to_state,
            phase=phase,
            cause=cause,
            timestamp=now,
        )
        return TaskPipeline(
            task=self._task,
            state=to_state,
            phase=phase,
            cause=cause,
            started_at=self._started_at if self._started_at is not None else now,
            finished_at=now if to_state.is_terminal else None,
            domain_events=self._domain_events + (event,),
        )

    def _require(self, *states: TaskState) -> None:
        if self._state not in states:
            raise InvalidTransitionError(
                f"Task {self._task.name!r} cannot leave state {self._state} this way"
            )

    def begin_transfer(self) -> TaskPipeline:
        self._require(TaskState.QUEUED)
        return self._transition(TaskState.TRANSFERRING, Phase.TRANSFER)

    def complete_transfer(self) -> TaskPipeline:
        self._require(TaskState.TRANSFERRING)
        if not self._task.goal.requires_activation:
            return self._transition(TaskState.SUCCEEDED, Phase.TRANSFER)
        return self._transition(TaskState.ACTIVATING, Phase.ACTIVATION)

    def complete_activation(self) -> TaskPipeline:
        self._require(TaskState.ACTIVATING)
        return self._transition(TaskState.SUCCEEDED, Phase.ACTIVATION)

    def fail(self, cause: str) -> TaskPipeline:
        self._require(TaskState.TRANSFERRING, TaskState.ACTIVATING)
        return self._transition(TaskState.FAILED, self._phase, cause)

    def outcome(self) -> TaskOutcome:
        if not self.is_terminal:
            raise InvalidTransitionError(
                f"Task {self._task.name!r} has no outcome yet (state {self._state})"
            )
        duration = (self._finished_at or 0.0) - (self._started_at or 0.0)
        if self._state is TaskState.SUCCEEDED:
            return TaskOutcome.success(self.name, self._phase, duration)
        return TaskOutcome.failure(self.name, self._phase, self._cause or "", duration)

    def __repr__(self) -> str:
        return (
            f"TaskPipeline(task={self._task.name}, state={self._state}, "
            f"phase={self._phase}, cause={self._cause})"
        )
