"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing RemoteHostPort via Fabric/SSH
- Closures are copied with nix-copy-closure, activation runs over a
  Fabric Connection
- Every call opens its own connection; nothing is shared between hosts
- Copies run as asyncio subprocesses in their own session; each activation
  gets a dedicated worker thread, so no host waits on a shared pool

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- Remote command arguments quoted via shlex.quote()
- Non-root users escalate with sudo for profile and activation commands
"""

import asyncio
import logging
import os
import shlex
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from fabric import Connection

from apiary.domain.errors import ActivationError, TransferError
from apiary.domain.ports.remote_host_port import RemoteHostPort
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.node import Node
from apiary.domain.value_objects.store_path import StorePath
from apiary.domain.value_objects.transfer_options import TransferOptions

logger = logging.getLogger(__name__)

SYSTEM_PROFILE = "/nix/var/nix/profiles/system"
PRIVILEGE_ESCALATION = "sudo -H --"


def activation_commands(node: Node, artifact: StorePath, goal: DeploymentGoal) -> list[str]:
    """Shell commands that activate artifact on node for goal, in order."""
    path = shlex.quote(str(artifact))
    prefix = "" if node.is_root else f"{PRIVILEGE_ESCALATION} "
    commands = []
    if goal.should_switch_profile:
        commands.append(f"{prefix}nix-env --profile {SYSTEM_PROFILE} --set {path}")
    commands.append(
        f"{prefix}{path}/bin/switch-to-configuration {goal.activation_action}"
    )
    return commands


class FabricAdapter(RemoteHostPort):
    """Adapter implementing RemoteHostPort via Fabric/SSH."""

    def __init__(self, connect_timeout: int = 30) -> None:
        self.connect_timeout = connect_timeout

    def _get_connection(self, node: Node) -> Connection:
        return Connection(
            host=node.host,
            user=node.user,
            port=node.port,
            connect_timeout=self.connect_timeout,
            connect_kwargs={
                "allow_agent": True,
                "look_for_keys": True,
            },
        )

    @staticmethod
    def _copy_env(node: Node) -> Optional[dict[str, str]]:
        port_option = node.ssh_port_option
        if port_option is None:
            return None
        sshopts = " ".join(filter(None, [os.environ.get("NIX_SSHOPTS"), port_option]))
        return {**os.environ, "NIX_SSHOPTS": sshopts}

    async def copy_closure(
        self, node: Node, artifact: StorePath, options: TransferOptions
    ) -> None:
        cmd = [
            "nix-copy-closure",
            "--to",
            node.ssh_target,
            *options.to_copy_flags(),
            str(artifact),
        ]
        logger.debug("Running %s", " ".join(cmd))

        # own session: terminal SIGINT must not reach copies in flight
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._copy_env(node),
                start_new_session=True,
            )
        except FileNotFoundError:
            raise TransferError("nix-copy-closure not found. Is Nix installed?")

        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise TransferError(
                f"nix-copy-closure to {node.ssh_target} exited with "
                f"{proc.returncode}: {stderr.decode(errors='replace').strip()}"
            )

    async def activate(
        self, node: Node, artifact: StorePath, goal: DeploymentGoal
    ) -> None:
        commands = activation_commands(node, artifact, goal)

        def _activate():
            try:
                with self._get_connection(node) as conn:
                    for command in commands:
                        logger.debug("%s: running %s", node, command)
                        result = conn.run(command, hide=True, warn=True)
                        if result.failed:
                            raise ActivationError(
                                f"'{command}' exited with {result.exited}: "
                                f"{result.stderr.strip()}"
                            )
            except ActivationError:
                raise
            except Exception as e:
                raise ActivationError(f"Connection to {node} failed: {e}") from e

        # dedicated worker per activation, never the loop's shared default pool
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="apiary-activate")
        try:
            await asyncio.get_running_loop().run_in_executor(pool, _activate)
        finally:
            pool.shutdown(wait=False)
