"""
Apply Configuration Use Case

Architectural Intent:
- Orchestrates one `apply` run end to end
- Enumerates the hive, selects nodes, builds them, assembles tasks,
  runs the executor and folds skipped hosts into the summary
- An empty selection is fatal and is raised before anything is built
"""

import logging
from typing import Optional

from apiary.application.dtos.apply_dtos import ApplyRequest
from apiary.application.orchestration.deployment_executor import DeploymentExecutor
from apiary.application.use_cases.assemble_tasks import TaskAssembler
from apiary.domain.entities.fleet_summary import FleetSummary
from apiary.domain.errors import SelectionEmptyError
from apiary.domain.ports.hive_port import HivePort
from apiary.domain.services.node_selection import select_nodes
from apiary.domain.services.outcome_aggregation import OutcomeAggregator

logger = logging.getLogger(__name__)


class ApplyConfiguration:
    def __init__(
        self,
        hive: HivePort,
        executor: DeploymentExecutor,
        assembler: Optional[TaskAssembler] = None,
        aggregator: Optional[OutcomeAggregator] = None,
    ):
        self.hive = hive
        self.executor = executor
        self.assembler = assembler or TaskAssembler()
        self.aggregator = aggregator or OutcomeAggregator()

    async def execute(self, request: ApplyRequest) -> FleetSummary:
        logger.info("Enumerating nodes...")
        all_nodes = await self.hive.deployment_info()

        selected = select_nodes(all_nodes, request.on)
        if not selected:
            logger.warning("No hosts matched. Exiting...")
            raise SelectionEmptyError(request.on or "")

        if len(selected) == len(all_nodes):
            logger.info("Building all node configurations...")
        else:
            logger.info(
                "Selected %d out of %d hosts. Building node configurations...",
                len(selected),
                len(all_nodes),
            )

        artifacts = await self.hive.build_selected(selected)
        connections = {name: all_nodes[name].to_node() for name in selected}

        tasks, skips = self.assembler.assemble(
            artifacts,
            connections,
            request.goal,
            request.transfer_options,
            selected,
        )

        summary = await self.executor.run(
            tasks,
            concurrency_limit=request.concurrency_limit,
            quiet=not request.verbose,
        )
        return self.aggregator.finalize(summary, skips)
