from dataclasses import dataclass, field

from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.node import Node
from apiary.domain.value_objects.store_path import StorePath
from apiary.domain.value_objects.transfer_options import TransferOptions


@dataclass(frozen=True)
class DeploymentTask:
    """
    One host's unit of work for a single apply run.
    Built once by the task assembler and never mutated afterwards.
    """
    name: str
    node: Node
    artifact: StorePath
    goal: DeploymentGoal
    options: TransferOptions = field(default_factory=TransferOptions)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Task name cannot be empty")

    def __str__(self):
        return f"{self.name} ({self.node}, {self.goal})"
