"""
Node Selection Service

Architectural Intent:
- Turns an --on filter expression into the set of hive node names to act on
- Pure function of the inventory and the expression, no I/O

Filter syntax:
- Comma-separated list of patterns
- Plain patterns are shell globs matched against node names ("web-*")
- Patterns starting with "@" are globs matched against node tags ("@db-*")
"""

from fnmatch import fnmatchcase
from typing import Mapping, Optional

from apiary.domain.value_objects.node_config import NodeConfig


def _split_patterns(filter_expr: str) -> list[str]:
    return [p.strip() for p in filter_expr.split(",") if p.strip()]


def _matches(name: str, config: NodeConfig, pattern: str) -> bool:
    if pattern.startswith("@"):
        tag_pattern = pattern[1:]
        return any(fnmatchcase(tag, tag_pattern) for tag in config.tags)
    return fnmatchcase(name, pattern)


def filter_nodes(nodes: Mapping[str, NodeConfig], filter_expr: str) -> list[str]:
    """Return the sorted names of nodes matching any pattern of filter_expr."""
    patterns = _split_patterns(filter_expr)
    return sorted(
        name
        for name, config in nodes.items()
        if any(_matches(name, config, p) for p in patterns)
    )


def select_nodes(
    nodes: Mapping[str, NodeConfig], filter_expr: Optional[str] = None
) -> list[str]:
    """All nodes when no filter is given, otherwise the filtered subset."""
    if filter_expr is None:
        return sorted(nodes)
    return filter_nodes(nodes, filter_expr)
