"""Tests for the bounded-parallelism deployment executor."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from apiary.application.orchestration.deployment_executor import DeploymentExecutor
from apiary.domain.errors import ConstructionError
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.task_state import Phase, TaskState


def _max_overlap(events):
    """Largest number of tasks between admission and terminal state at once."""
    marks = []
    for event in events:
        if event.to_state is TaskState.TRANSFERRING:
            marks.append((event.timestamp, 1))
        elif event.is_terminal:
            marks.append((event.timestamp, -1))
    # terminal before admission when timestamps tie
    marks.sort(key=lambda m: (m[0], m[1]))
    current = peak = 0
    for _, delta in marks:
        current += delta
        peak = max(peak, current)
    return peak


class TestPipeline:
    @pytest.mark.asyncio
    async def test_switch_runs_transfer_then_activation(self, stub_host, task_factory):
        executor = DeploymentExecutor(stub_host)

        summary = await executor.run([task_factory("web-1")])

        assert [kind for kind, _, _ in stub_host.calls] == ["copy", "activate"]
        outcome = summary.outcome_for("web-1")
        assert outcome.succeeded
        assert outcome.phase_reached is Phase.ACTIVATION

    @pytest.mark.asyncio
    async def test_push_never_activates(self, stub_host, task_factory):
        executor = DeploymentExecutor(stub_host)
        tasks = [task_factory(f"web-{i}", goal=DeploymentGoal.PUSH) for i in range(4)]

        summary = await executor.run(tasks)

        assert stub_host.calls_for("activate") == []
        assert summary.succeeded == 4
        assert all(o.phase_reached is Phase.TRANSFER for o in summary.outcomes)

    @pytest.mark.asyncio
    async def test_activation_only_after_successful_transfer(
        self, stub_host_factory, task_factory
    ):
        host = stub_host_factory(fail_transfer={"bad"})
        executor = DeploymentExecutor(host)

        summary = await executor.run([task_factory("good"), task_factory("bad")])

        assert host.calls_for("activate") == ["good"]
        assert summary.outcome_for("bad").phase_reached is Phase.TRANSFER
        assert summary.outcome_for("bad").failed

    @pytest.mark.asyncio
    async def test_goal_passed_to_activation(self, stub_host, task_factory):
        executor = DeploymentExecutor(stub_host)

        await executor.run([task_factory("web-1", goal=DeploymentGoal.DRY_ACTIVATE)])

        _, _, goal = stub_host.calls[1]
        assert goal is DeploymentGoal.DRY_ACTIVATE

    @pytest.mark.asyncio
    async def test_activation_failure_recorded(self, stub_host_factory, task_factory):
        host = stub_host_factory(fail_activation={"web-1"})
        executor = DeploymentExecutor(host)

        summary = await executor.run([task_factory("web-1")])

        outcome = summary.outcome_for("web-1")
        assert outcome.failed
        assert outcome.phase_reached is Phase.ACTIVATION
        assert "switch-to-configuration" in outcome.cause

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(
        self, stub_host_factory, task_factory
    ):
        host = stub_host_factory(crash_transfer={"web-1"})
        executor = DeploymentExecutor(host)

        summary = await executor.run([task_factory("web-1"), task_factory("web-2")])

        outcome = summary.outcome_for("web-1")
        assert outcome.failed
        assert outcome.cause.startswith("OSError")
        assert summary.outcome_for("web-2").succeeded

    @pytest.mark.asyncio
    async def test_no_retry(self, stub_host_factory, task_factory):
        host = stub_host_factory(fail_transfer={"web-1"})
        executor = DeploymentExecutor(host)

        await executor.run([task_factory("web-1")])

        assert host.calls_for("copy") == ["web-1"]

    @pytest.mark.asyncio
    async def test_empty_task_list(self, stub_host):
        executor = DeploymentExecutor(stub_host)

        summary = await executor.run([])

        assert summary.attempted == 0
        assert not summary.interrupted


class TestValidation:
    @pytest.mark.asyncio
    async def test_duplicate_names_rejected(self, stub_host, task_factory):
        executor = DeploymentExecutor(stub_host)

        with pytest.raises(ConstructionError, match="Duplicate task name"):
            await executor.run([task_factory("web-1"), task_factory("web-1")])

        assert stub_host.calls == []

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, stub_host, task_factory):
        executor = DeploymentExecutor(stub_host)

        with pytest.raises(ConstructionError, match="negative"):
            await executor.run([task_factory("web-1")], concurrency_limit=-1)


class TestConcurrency:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 3])
    async def test_limit_never_exceeded(
        self, limit, stub_host_factory, task_factory, recording_reporter
    ):
        delays = {f"web-{i}": 0.001 * (i % 4) for i in range(10)}
        host = stub_host_factory(delay=0.002, delays=delays)
        executor = DeploymentExecutor(host, reporter_factory=lambda quiet: recording_reporter)

        summary = await executor.run(
            [task_factory(f"web-{i}") for i in range(10)], concurrency_limit=limit
        )

        assert summary.succeeded == 10
        assert host.max_active <= limit
        assert _max_overlap(recording_reporter.events) <= limit

    @pytest.mark.asyncio
    async def test_limit_is_reached(self, stub_host_factory, task_factory):
        host = stub_host_factory(delay=0.01)
        executor = DeploymentExecutor(host)

        await executor.run(
            [task_factory(f"web-{i}") for i in range(6)], concurrency_limit=3
        )

        assert host.max_active == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [None, 0])
    async def test_unbounded_admits_everything(self, limit, stub_host_factory, task_factory):
        host = stub_host_factory(delay=0.01)
        executor = DeploymentExecutor(host)

        await executor.run(
            [task_factory(f"web-{i}") for i in range(20)], concurrency_limit=limit
        )

        assert host.max_active == 20

    @pytest.mark.asyncio
    async def test_serial_run_with_limit_one(
        self, stub_host_factory, task_factory, recording_reporter
    ):
        host = stub_host_factory(delay=0.005)
        executor = DeploymentExecutor(host, reporter_factory=lambda quiet: recording_reporter)

        await executor.run(
            [task_factory(n) for n in ("a", "b", "c")], concurrency_limit=1
        )

        admissions = [
            e for e in recording_reporter.events if e.to_state is TaskState.TRANSFERRING
        ]
        assert len(admissions) == 3
        assert _max_overlap(recording_reporter.events) == 1
        # each admission happens only after the previous task finished
        terminals = sorted(e.timestamp for e in recording_reporter.events if e.is_terminal)
        admitted = sorted(e.timestamp for e in admissions)
        assert admitted[1] >= terminals[0]
        assert admitted[2] >= terminals[1]

    @pytest.mark.asyncio
    async def test_failure_does_not_delay_siblings(self, stub_host_factory, task_factory):
        loop = asyncio.get_running_loop()
        host = stub_host_factory(delay=0.05, fail_transfer={"a"})
        executor = DeploymentExecutor(host)

        started = loop.time()
        summary = await executor.run([task_factory("a"), task_factory("b")])
        elapsed = loop.time() - started

        assert summary.outcome_for("a").failed
        assert summary.outcome_for("b").succeeded
        # b: transfer + activation, run alongside a
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_idempotent_summaries(self, stub_host_factory, task_factory):
        def build():
            host = stub_host_factory(
                delays={"a": 0.003, "b": 0.001}, fail_activation={"c"}
            )
            return DeploymentExecutor(host)

        tasks = [task_factory(n) for n in ("a", "b", "c", "d")]
        first = await build().run(tasks, concurrency_limit=2)
        second = await build().run(tasks, concurrency_limit=2)

        assert first == second
        assert set(first.outcomes) == set(second.outcomes)


class TestEvents:
    @pytest.mark.asyncio
    async def test_transitions_reported_in_order(self, stub_host, task_factory, recording_reporter):
        executor = DeploymentExecutor(stub_host, reporter_factory=lambda quiet: recording_reporter)

        await executor.run([task_factory("web-1")])

        assert recording_reporter.total == 1
        assert recording_reporter.finished
        assert [(e.from_state, e.to_state) for e in recording_reporter.events] == [
            (TaskState.QUEUED, TaskState.TRANSFERRING),
            (TaskState.TRANSFERRING, TaskState.ACTIVATING),
            (TaskState.ACTIVATING, TaskState.SUCCEEDED),
        ]

    @pytest.mark.asyncio
    async def test_quiet_flag_selects_reporter(self, stub_host, task_factory):
        factory = MagicMock(return_value=MagicMock(handle=AsyncMock()))
        executor = DeploymentExecutor(stub_host, reporter_factory=factory)

        await executor.run([task_factory("web-1")], quiet=False)

        factory.assert_called_once_with(False)

    @pytest.mark.asyncio
    async def test_failing_reporter_does_not_gate_execution(self, stub_host, task_factory):
        reporter = MagicMock()
        reporter.handle = AsyncMock(side_effect=RuntimeError("terminal gone"))
        reporter.finish.side_effect = RuntimeError("terminal gone")
        executor = DeploymentExecutor(stub_host, reporter_factory=lambda quiet: reporter)

        summary = await executor.run([task_factory("web-1"), task_factory("web-2")])

        assert summary.succeeded == 2
        assert reporter.handle.await_count == 6

    @pytest.mark.asyncio
    async def test_events_published_on_bus(self, stub_host, task_factory):
        bus = MagicMock()
        bus.publish = AsyncMock()
        executor = DeploymentExecutor(stub_host, event_bus=bus)

        await executor.run([task_factory("web-1", goal=DeploymentGoal.PUSH)])

        assert bus.publish.await_count == 2
        last = bus.publish.await_args_list[-1].args[0][0]
        assert last.to_state is TaskState.SUCCEEDED


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_lets_in_flight_finish(self, stub_host_factory, task_factory):
        host = stub_host_factory(delay=0.05)
        executor = DeploymentExecutor(host)
        tasks = [task_factory(f"web-{i}") for i in range(5)]

        run = asyncio.create_task(executor.run(tasks, concurrency_limit=2))
        await asyncio.sleep(0.02)
        run.cancel()
        summary = await run

        assert summary.interrupted
        assert summary.attempted == 2
        assert summary.succeeded == 2
        assert len(summary.not_started) == 3
        # in-flight tasks completed activation rather than being aborted
        assert len(host.calls_for("activate")) == 2

    @pytest.mark.asyncio
    async def test_every_task_accounted_for(self, stub_host_factory, task_factory):
        host = stub_host_factory(delay=0.02)
        executor = DeploymentExecutor(host)
        tasks = [task_factory(f"web-{i}") for i in range(7)]

        run = asyncio.create_task(executor.run(tasks, concurrency_limit=3))
        await asyncio.sleep(0.05)
        run.cancel()
        summary = await run

        names = {o.name for o in summary.outcomes} | set(summary.not_started)
        assert names == {t.name for t in tasks}
        assert not ({o.name for o in summary.outcomes} & set(summary.not_started))
