"""
Assemble Tasks Use Case

Architectural Intent:
- Joins built artifacts with resolved connection descriptors
- Partitions the selection into deployment tasks and skip entries
- No network or build activity; a pure join plus one log notice
"""

import logging
from typing import Iterable, Mapping, Optional

from apiary.domain.entities.deployment_task import DeploymentTask
from apiary.domain.entities.fleet_summary import SkipEntry
from apiary.domain.errors import ConstructionError
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.node import Node
from apiary.domain.value_objects.store_path import StorePath
from apiary.domain.value_objects.transfer_options import TransferOptions

logger = logging.getLogger(__name__)

UNRESOLVED_REASON = "host unreachable/unresolved: no usable target host"


class TaskAssembler:
    def assemble(
        self,
        artifacts: Mapping[str, StorePath],
        connections: Mapping[str, Optional[Node]],
        goal: DeploymentGoal,
        options: TransferOptions,
        selection: Iterable[str],
    ) -> tuple[list[DeploymentTask], list[SkipEntry]]:
        tasks: list[DeploymentTask] = []
        skips: list[SkipEntry] = []

        for name in sorted(set(selection)):
            if name not in artifacts:
                raise ConstructionError(f"No built artifact supplied for node {name!r}")

            node = connections.get(name)
            if node is None:
                skips.append(SkipEntry(name=name, reason=UNRESOLVED_REASON))
                continue

            tasks.append(
                DeploymentTask(
                    name=name,
                    node=node,
                    artifact=artifacts[name],
                    goal=goal,
                    options=options,
                )
            )

        if skips:
            logger.info("Applying configurations (%d skipped)...", len(skips))
        else:
            logger.info("Applying configurations...")

        return tasks, skips
