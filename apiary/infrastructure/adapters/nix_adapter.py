"""
Nix Adapter

Architectural Intent:
- Infrastructure adapter implementing HivePort
- Evaluates the hive through the bundled eval.nix and builds node closures
- Uses subprocess for Nix CLI operations, run in the loop's executor so the
  event loop stays responsive
"""

import asyncio
import json
import logging
import subprocess
from pathlib import Path
from typing import Iterable

from apiary.domain.errors import HiveError
from apiary.domain.ports.hive_port import HivePort
from apiary.domain.value_objects.node_config import NodeConfig
from apiary.domain.value_objects.store_path import StorePath

logger = logging.getLogger(__name__)

EVAL_NIX = Path(__file__).with_name("eval.nix")


def _attr(name: str) -> str:
    """Quote a node name as a Nix attribute path component."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class NixAdapter(HivePort):
    def __init__(self, hive_path: str) -> None:
        self.hive_path = Path(hive_path)

    def _hive_args(self) -> list[str]:
        return [
            str(EVAL_NIX),
            "--arg",
            "rawHive",
            f"import {self.hive_path.resolve()}",
        ]

    def _run(self, cmd: list[str]) -> str:
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError:
            raise HiveError(f"'{cmd[0]}' not found. Is Nix installed?")
        except subprocess.CalledProcessError as e:
            raise HiveError(f"{cmd[0]} failed: {e.stderr.strip()}")
        return result.stdout

    async def deployment_info(self) -> dict[str, NodeConfig]:
        if not self.hive_path.exists():
            raise HiveError(f"Hive not found at path: {self.hive_path}")

        def _evaluate():
            cmd = [
                "nix-instantiate",
                "--eval",
                "--strict",
                "--json",
                *self._hive_args(),
                "-A",
                "deploymentInfo",
            ]
            return self._run(cmd)

        output = await asyncio.get_running_loop().run_in_executor(None, _evaluate)
        try:
            raw = json.loads(output)
        except json.JSONDecodeError as e:
            raise HiveError(f"Unparsable deployment info: {e}")

        return {name: NodeConfig.from_dict(info) for name, info in raw.items()}

    async def build_selected(self, names: Iterable[str]) -> dict[str, StorePath]:
        names = list(names)
        if not names:
            return {}

        # One nix-build per node: identical configurations share a store path
        # and nix-build would print it only once.
        def _build(name: str) -> StorePath:
            cmd = [
                "nix-build",
                "--no-out-link",
                *self._hive_args(),
                "-A",
                f"toplevel.{_attr(name)}",
            ]
            lines = [line.strip() for line in self._run(cmd).splitlines() if line.strip()]
            if not lines:
                raise HiveError(f"nix-build produced no store path for {name!r}")
            return StorePath(lines[-1])

        loop = asyncio.get_running_loop()
        artifacts = {}
        for name in names:
            logger.debug("Building %s", name)
            artifacts[name] = await loop.run_in_executor(None, _build, name)

        logger.info("Built %d node configurations", len(artifacts))
        return artifacts
