"""Execution bookkeeping: stats and the execution registry."""

from intentflow.tracking.execution_registry import ExecutionRegistry
from intentflow.tracking.stats import StatsSnapshot, StatsTracker

__all__ = ["ExecutionRegistry", "StatsSnapshot", "StatsTracker"]
