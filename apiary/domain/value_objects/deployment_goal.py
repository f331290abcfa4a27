"""
Deployment Goal Value Object

Architectural Intent:
- Closed enumeration of the end states a host can be brought to
- Goal tokens are the same as the targets of switch-to-configuration,
  plus "push" which only copies the closure
- Mapping to activation behaviour is exhaustive and lives here, not in
  string comparisons scattered through adapters
"""

from enum import Enum
from typing import Optional

from apiary.domain.errors import ConstructionError


class DeploymentGoal(Enum):
    PUSH = "push"
    SWITCH = "switch"
    BOOT = "boot"
    TEST = "test"
    DRY_ACTIVATE = "dry-activate"

    @classmethod
    def parse(cls, token: str) -> "DeploymentGoal":
        for goal in cls:
            if goal.value == token:
                return goal
        raise ConstructionError(
            f"Invalid deployment goal {token!r}, expected one of: "
            + ", ".join(GOAL_TOKENS)
        )

    @property
    def requires_activation(self) -> bool:
        return self is not DeploymentGoal.PUSH

    @property
    def should_switch_profile(self) -> bool:
        """Whether the system profile is pointed at the new closure first."""
        return self in (DeploymentGoal.SWITCH, DeploymentGoal.BOOT)

    @property
    def activation_action(self) -> str:
        action = _ACTIVATION_ACTIONS[self]
        if action is None:
            raise ConstructionError(f"Goal {self.value!r} has no activation step")
        return action

    def __str__(self) -> str:
        return self.value


_ACTIVATION_ACTIONS: dict[DeploymentGoal, Optional[str]] = {
    DeploymentGoal.PUSH: None,
    DeploymentGoal.SWITCH: "switch",
    DeploymentGoal.BOOT: "boot",
    DeploymentGoal.TEST: "test",
    DeploymentGoal.DRY_ACTIVATE: "dry-activate",
}

GOAL_TOKENS: tuple[str, ...] = tuple(goal.value for goal in DeploymentGoal)
