"""Step compilation, dependency analysis and workflow scheduling."""

from intentflow.scheduling.dependency_graph import DependencyGraph, build_plan
from intentflow.scheduling.executor import WorkflowScheduler
from intentflow.scheduling.plan_builder import PlanBuilder, StepSpec
from intentflow.scheduling.references import (
    is_reference,
    make_reference,
    referenced_steps,
    rename_references,
    resolve_params,
)
from intentflow.scheduling.retry_strategies import StepRetryPolicy
from intentflow.scheduling.step_compiler import DEFAULT_TOPOLOGIES, StepCompiler, TopologyBuilder

__all__ = [
    # Dependency graph
    "DependencyGraph",
    "build_plan",
    # Builder
    "PlanBuilder",
    "StepSpec",
    # References
    "is_reference",
    "make_reference",
    "referenced_steps",
    "rename_references",
    "resolve_params",
    # Compiler
    "DEFAULT_TOPOLOGIES",
    "StepCompiler",
    "TopologyBuilder",
    # Execution
    "StepRetryPolicy",
    "WorkflowScheduler",
]
