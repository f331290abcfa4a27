"""
Remote Host Port

Architectural Intent:
- Port interface for the two remote operations of a deployment
- Each call concerns exactly one connection descriptor; implementations
  keep no state shared between descriptors
- Implemented by FabricAdapter (SSH) or test stubs
"""

from abc import ABC, abstractmethod
from apiary.domain.value_objects.deployment_goal import DeploymentGoal
from apiary.domain.value_objects.node import Node
from apiary.domain.value_objects.store_path import StorePath
from apiary.domain.value_objects.transfer_options import TransferOptions


class RemoteHostPort(ABC):
    """
    Port interface for copying closures to hosts and activating them.
    """

    @abstractmethod
    async def copy_closure(
        self, node: Node, artifact: StorePath, options: TransferOptions
    ) -> None:
        """
        Copies the closure of artifact to the node.
        Raises TransferError on failure.
        """
        pass

    @abstractmethod
    async def activate(
        self, node: Node, artifact: StorePath, goal: DeploymentGoal
    ) -> None:
        """
        Runs the activation action for goal using the copied artifact.
        Raises ActivationError on failure.
        """
        pass
