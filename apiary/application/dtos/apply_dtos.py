"""
Apply DTOs

Architectural Intent:
- Data Transfer Objects for the apply use case boundary
- Input validation at the application boundary
- Decouples CLI flags from the domain model
"""

from dataclasses import dataclass
from typing import Optional

from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.transfer_options import TransferOptions


@dataclass(frozen=True)
class ApplyRequest:
    goal: DeploymentGoal = DeploymentGoal.SWITCH
    parallel: int = 10
    verbose: bool = False
    use_substitutes: bool = True
    use_gzip: bool = True
    on: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.goal, DeploymentGoal):
            raise ValueError(f"goal must be a DeploymentGoal, got {self.goal!r}")
        if self.parallel < 0:
            raise ValueError("parallel cannot be negative")

    @property
    def concurrency_limit(self) -> Optional[int]:
        """None means unbounded."""
        return self.parallel or None

    @property
    def transfer_options(self) -> TransferOptions:
        return TransferOptions(
            use_compression=self.use_gzip,
            use_substitutes=self.use_substitutes,
        )
