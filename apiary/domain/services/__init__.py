"""
Domain Services Package

Architectural Intent:
- Pure domain logic: node selection and outcome aggregation
"""

from apiary.domain.services.node_selection import filter_nodes, select_nodes
from apiary.domain.services.outcome_aggregation import (
    OutcomeAggregator,
    EXIT_OK,
    EXIT_FAILURE,
    EXIT_NO_MATCH,
    EXIT_INTERRUPTED,
)

__all__ = [
    "filter_nodes",
    "select_nodes",
    "OutcomeAggregator",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_NO_MATCH",
    "EXIT_INTERRUPTED",
]
