"""Caller-facing orchestration API."""

from intentflow.orchestration.orchestrator import WorkflowOrchestrator, create_workflow_orchestrator

__all__ = ["WorkflowOrchestrator", "create_workflow_orchestrator"]
