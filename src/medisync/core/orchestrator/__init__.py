"""Orchestrator - traversal, retry supervision, run context."""

from .context import RunContext, RunStats
from .supervisor import PositionFailureTracker, RetrySupervisor
from .traversal import TraversalDriver

__all__ = [
    "PositionFailureTracker",
    "RetrySupervisor",
    "RunContext",
    "RunStats",
    "TraversalDriver",
]
