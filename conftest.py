"""Global test configuration.

Shared stubs for the remote host port and deployment task construction.
"""

import asyncio

import pytest

from apiary.domain.entities.deployment_task import DeploymentTask
from apiary.domain.errors import ActivationError, TransferError
from apiary.domain.ports.remote_host_port import RemoteHostPort
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.node import Node
from apiary.domain.value_objects.store_path import StorePath
from apiary.domain.value_objects.transfer_options import TransferOptions

STORE_PATH = "/nix/store/0123456789abcdfghijklmnpqrsvwxyz-nixos-system-24.05"


class StubRemoteHost(RemoteHostPort):
    """Records every call and simulates latency and failures per host."""

    def __init__(
        self,
        delay=0.0,
        delays=None,
        fail_transfer=(),
        fail_activation=(),
        crash_transfer=(),
    ):
        self.delay = delay
        self.delays = delays or {}
        self.fail_transfer = set(fail_transfer)
        self.fail_activation = set(fail_activation)
        self.crash_transfer = set(crash_transfer)
        self.calls = []
        self.active = 0
        self.max_active = 0

    def calls_for(self, op):
        return [host for (kind, host, _) in self.calls if kind == op]

    async def _occupy(self, host):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(host, self.delay))
        finally:
            self.active -= 1

    async def copy_closure(self, node, artifact, options):
        self.calls.append(("copy", node.host, options))
        await self._occupy(node.host)
        if node.host in self.crash_transfer:
            raise OSError("connection reset by peer")
        if node.host in self.fail_transfer:
            raise TransferError(f"copy to {node.host} failed")

    async def activate(self, node, artifact, goal):
        self.calls.append(("activate", node.host, goal))
        await self._occupy(node.host)
        if node.host in self.fail_activation:
            raise ActivationError(f"switch-to-configuration on {node.host} failed")


class RecordingReporter:
    """Progress reporter that keeps every event it is handed."""

    def __init__(self):
        self.total = None
        self.events = []
        self.finished = False

    def start(self, total):
        self.total = total

    async def handle(self, event):
        self.events.append(event)

    def finish(self):
        self.finished = True


def make_task(name, goal=DeploymentGoal.SWITCH, options=None, host=None):
    return DeploymentTask(
        name=name,
        node=Node(host=host or name),
        artifact=StorePath(STORE_PATH),
        goal=goal,
        options=options or TransferOptions(),
    )


@pytest.fixture
def stub_host():
    return StubRemoteHost()


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def stub_host_factory():
    return StubRemoteHost


@pytest.fixture
def recording_reporter():
    return RecordingReporter()


@pytest.fixture
def store_path():
    return StorePath(STORE_PATH)
