"""
Node Config Value Object

Architectural Intent:
- One inventory entry of the hive, as produced by hive evaluation
- Knows how to turn itself into a connection descriptor, or to report
  that it cannot (which routes the node to the skip set)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional
import logging

from apiary.domain.value_objects.node import Node, DEFAULT_SSH_PORT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeConfig:
    target_host: Optional[str] = None
    target_user: str = "root"
    target_port: Optional[int] = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeConfig:
        """Build from the camelCase attribute set the hive evaluator emits."""
        port = data.get("targetPort")
        return cls(
            target_host=data.get("targetHost"),
            target_user=data.get("targetUser") or "root",
            target_port=int(port) if port is not None else None,
            tags=tuple(data.get("tags") or ()),
        )

    def to_node(self) -> Optional[Node]:
        if not self.target_host:
            return None
        try:
            return Node(
                host=self.target_host,
                user=self.target_user,
                port=self.target_port or DEFAULT_SSH_PORT,
            )
        except ValueError as e:
            logger.debug("Unusable connection descriptor %r: %s", self.target_host, e)
            return None
