"""
Composition Root

Architectural Intent:
- Dependency injection composition root for apiary
- Single place where all adapters and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies from ApiaryConfig
"""

from dataclasses import dataclass
from functools import partial
from typing import Optional

from rich.console import Console

from apiary.application.orchestration.deployment_executor import DeploymentExecutor
from apiary.application.use_cases.apply_configuration import ApplyConfiguration
from apiary.application.use_cases.assemble_tasks import TaskAssembler
from apiary.domain.services.outcome_aggregation import OutcomeAggregator
from apiary.infrastructure.adapters.fabric_adapter import FabricAdapter
from apiary.infrastructure.adapters.nix_adapter import NixAdapter
from apiary.infrastructure.config import ApiaryConfig
from apiary.infrastructure.event_bus import EventBus
from apiary.infrastructure.telemetry.otel_exporter import DeploymentTracer
from apiary.presentation.progress.reporters import create_reporter


@dataclass
class ApiaryContainer:
    """DI container holding all wired dependencies."""

    nix_adapter: NixAdapter
    fabric_adapter: FabricAdapter
    event_bus: EventBus
    tracer: DeploymentTracer
    executor: DeploymentExecutor
    aggregator: OutcomeAggregator
    apply: ApplyConfiguration


def create_container(
    config: Optional[ApiaryConfig] = None,
    hive_path: Optional[str] = None,
    console: Optional[Console] = None,
) -> ApiaryContainer:
    """Create and wire all dependencies.

    `console` is handed to every progress reporter, so a caller that logs
    through the same console keeps log lines above the live display.
    """
    config = config or ApiaryConfig()

    nix_adapter = NixAdapter(hive_path or config.hive.path)
    fabric_adapter = FabricAdapter(connect_timeout=config.ssh.connect_timeout)
    event_bus = EventBus()

    tracer = DeploymentTracer()
    tracer.register(event_bus)

    executor = DeploymentExecutor(
        fabric_adapter,
        reporter_factory=partial(create_reporter, console=console),
        event_bus=event_bus,
    )
    aggregator = OutcomeAggregator(fail_on_skipped=config.report.fail_on_skipped)
    apply = ApplyConfiguration(nix_adapter, executor, TaskAssembler(), aggregator)

    return ApiaryContainer(
        nix_adapter=nix_adapter,
        fabric_adapter=fabric_adapter,
        event_bus=event_bus,
        tracer=tracer,
        executor=executor,
        aggregator=aggregator,
        apply=apply,
    )
