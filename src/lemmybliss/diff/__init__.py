"""Reconciliation engine for relation sets.

Exports
-------
DiffPlanner
    Computes the ordered mutations between a desired and a current set.
MutationExecutor
    Applies mutations sequentially under a minimum interval.
to_add, to_remove
    Order-preserving set differences on cross-instance identity.
"""

from .executor import MutationExecutor
from .planner import DiffPlanner, to_add, to_remove

__all__ = [
    "DiffPlanner",
    "MutationExecutor",
    "to_add",
    "to_remove",
]
