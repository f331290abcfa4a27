"""
Deployment Executor

Architectural Intent:
- Runs a set of independent deployment tasks under a concurrency ceiling
- Advances each task through its TaskPipeline state machine
- Isolates failures per host: a remote error becomes that task's outcome and
  never reaches sibling tasks or the caller
- Emits every transition on an event queue consumed by observers

Parallelization Strategy:
- One asyncio task per deployment task; an asyncio.Semaphore admits at most
  `concurrency_limit` of them into the transfer phase at a time
- A slot is held from admission until the task reaches a terminal state
- No limit (None or 0) means every task is admitted immediately

Cancellation:
- Cancelling run() stops admission at once; queued tasks are reported as
  not started
- Tasks already transferring or activating are never cancelled, since an
  interrupted activation can leave a host half-switched; run() waits for
  them and returns a partial summary
"""

from __future__ import annotations
import asyncio
import logging
from typing import Callable, Iterable, Optional

from apiary.domain.entities.deployment_task import DeploymentTask
from apiary.domain.entities.fleet_summary import FleetSummary, TaskOutcome
from apiary.domain.entities.task_pipeline import TaskPipeline
from apiary.domain.errors import ConstructionError, TransferError, ActivationError
from apiary.domain.events.task_events import TaskTransitionEvent
from apiary.domain.ports.event_bus_port import EventBusPort
from apiary.domain.ports.progress_port import ProgressReporterPort
from apiary.domain.ports.remote_host_port import RemoteHostPort

logger = logging.getLogger(__name__)

ReporterFactory = Callable[[bool], ProgressReporterPort]


def _describe(error: Exception) -> str:
    if isinstance(error, (TransferError, ActivationError)):
        return str(error) or type(error).__name__
    return f"{type(error).__name__}: {error}"


class DeploymentExecutor:
    def __init__(
        self,
        remote_host: RemoteHostPort,
        reporter_factory: Optional[ReporterFactory] = None,
        event_bus: Optional[EventBusPort] = None,
    ) -> None:
        self.remote_host = remote_host
        self.reporter_factory = reporter_factory
        self.event_bus = event_bus

    @staticmethod
    def _validate(tasks: list[DeploymentTask], concurrency_limit: Optional[int]) -> None:
        if concurrency_limit is not None and concurrency_limit < 0:
            raise ConstructionError(
                f"Concurrency limit cannot be negative, got {concurrency_limit}"
            )
        seen: set[str] = set()
        for task in tasks:
            if task.name in seen:
                raise ConstructionError(f"Duplicate task name: {task.name!r}")
            seen.add(task.name)

    async def run(
        self,
        tasks: Iterable[DeploymentTask],
        concurrency_limit: Optional[int] = None,
        quiet: bool = True,
    ) -> FleetSummary:
        tasks = list(tasks)
        self._validate(tasks, concurrency_limit)

        slots = asyncio.Semaphore(concurrency_limit) if concurrency_limit else None
        stopping = asyncio.Event()
        events: asyncio.Queue[Optional[TaskTransitionEvent]] = asyncio.Queue()

        reporter = self.reporter_factory(quiet) if self.reporter_factory else None
        if reporter is not None:
            try:
                reporter.start(len(tasks))
            except Exception:
                logger.exception("Progress reporter failed to start")
                reporter = None

        try:
            dispatcher = asyncio.create_task(self._dispatch(events, reporter))
            pipelines = {
                asyncio.create_task(
                    self._run_task(task, slots, stopping, events),
                    name=f"apiary-deploy-{task.name}",
                ): task
                for task in tasks
            }
            logger.debug(
                "Dispatched %d tasks (limit: %s)",
                len(pipelines),
                concurrency_limit or "unbounded",
            )

            interrupted = await self._wait_all(set(pipelines), stopping)
            events.put_nowait(None)
            interrupted = await self._wait_all({dispatcher}, stopping) or interrupted
        finally:
            if reporter is not None:
                try:
                    reporter.finish()
                except Exception:
                    logger.exception("Progress reporter failed to finish")

        outcomes: list[TaskOutcome] = []
        not_started: list[str] = []
        for pipeline_task, task in pipelines.items():
            outcome = pipeline_task.result()
            if outcome is None:
                not_started.append(task.name)
            else:
                outcomes.append(outcome)

        return FleetSummary(
            outcomes=tuple(outcomes),
            not_started=tuple(not_started),
            interrupted=interrupted,
        )

    async def _wait_all(self, pending: set[asyncio.Task], stopping: asyncio.Event) -> bool:
        """Wait for every task in pending; returns True if we were cancelled meanwhile."""
        interrupted = False
        while pending:
            try:
                _, pending = await asyncio.wait(pending)
            except asyncio.CancelledError:
                if not stopping.is_set():
                    logger.warning(
                        "Interrupted: no new hosts will be started, "
                        "waiting for in-flight deployments to finish..."
                    )
                stopping.set()
                interrupted = True
        return interrupted

    async def _run_task(
        self,
        task: DeploymentTask,
        slots: Optional[asyncio.Semaphore],
        stopping: asyncio.Event,
        events: asyncio.Queue,
    ) -> Optional[TaskOutcome]:
        if stopping.is_set():
            return None
        if slots is None:
            return await self._execute_pipeline(task, events)
        async with slots:
            if stopping.is_set():
                return None
            return await self._execute_pipeline(task, events)

    async def _execute_pipeline(
        self, task: DeploymentTask, events: asyncio.Queue
    ) -> TaskOutcome:
        pipeline = self._advance(TaskPipeline(task).begin_transfer(), events)

        try:
            await self.remote_host.copy_closure(task.node, task.artifact, task.options)
        except Exception as e:
            logger.error(
                "Transfer to %s failed: %s", task.name, e, extra={"task": task.name}
            )
            pipeline = self._advance(pipeline.fail(_describe(e)), events)
            return pipeline.outcome()

        pipeline = self._advance(pipeline.complete_transfer(), events)
        if pipeline.is_terminal:
            return pipeline.outcome()

        try:
            await self.remote_host.activate(task.node, task.artifact, task.goal)
        except Exception as e:
            logger.error(
                "Activation on %s failed: %s", task.name, e, extra={"task": task.name}
            )
            pipeline = self._advance(pipeline.fail(_describe(e)), events)
            return pipeline.outcome()

        pipeline = self._advance(pipeline.complete_activation(), events)
        return pipeline.outcome()

    @staticmethod
    def _advance(pipeline: TaskPipeline, events: asyncio.Queue) -> TaskPipeline:
        events.put_nowait(pipeline.last_event)
        return pipeline

    async def _dispatch(
        self,
        events: asyncio.Queue,
        reporter: Optional[ProgressReporterPort],
    ) -> None:
        while True:
            event = await events.get()
            if event is None:
                return
            if reporter is not None:
                try:
                    await reporter.handle(event)
                except Exception:
                    logger.exception("Progress reporter failed on %s", event.task_name)
            if self.event_bus is not None:
                try:
                    await self.event_bus.publish([event])
                except Exception:
                    logger.exception("Event bus failed on %s", event.task_name)
