"""
Hive Port

Architectural Intent:
- Port interface for the inventory and build collaborators
- Evaluating and building configurations is outside the deployment core;
  the core only needs node metadata and already-built artifacts
- Implemented by NixAdapter
"""

from abc import ABC, abstractmethod
from typing import Iterable
from apiary.domain.value_objects.node_config import NodeConfig
from apiary.domain.value_objects.store_path import StorePath


class HivePort(ABC):

    @abstractmethod
    async def deployment_info(self) -> dict[str, NodeConfig]:
        """
        Returns the inventory entry of every node in the hive.
        Raises HiveError if the hive cannot be evaluated.
        """
        pass

    @abstractmethod
    async def build_selected(self, names: Iterable[str]) -> dict[str, StorePath]:
        """
        Builds the system configuration of each named node.
        Returns a store path for every requested name or raises HiveError.
        """
        pass
