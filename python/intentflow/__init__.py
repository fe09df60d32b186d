"""intentflow: intent execution orchestrator.

Compiles typed intents into dependency-annotated step plans and runs them
against pluggable skill providers.
"""

from intentflow.config import OrchestratorSettings, get_settings
from intentflow.event_bus import InMemoryEventBus
from intentflow.interfaces import AgentEvent, AgentEventType, SkillMetadata, SkillProvider
from intentflow.models import (
    ExecutionContext,
    ExecutionStatus,
    Intent,
    IntentType,
    SkillExecutionResult,
    StepStatus,
    WorkflowExecution,
    WorkflowPlan,
    WorkflowStep,
)
from intentflow.orchestration import WorkflowOrchestrator, create_workflow_orchestrator
from intentflow.skills import BaseSkill, SkillRegistry

__version__ = "0.1.0"

__all__ = [
    "AgentEvent",
    "AgentEventType",
    "BaseSkill",
    "ExecutionContext",
    "ExecutionStatus",
    "InMemoryEventBus",
    "Intent",
    "IntentType",
    "OrchestratorSettings",
    "SkillExecutionResult",
    "SkillMetadata",
    "SkillProvider",
    "SkillRegistry",
    "StepStatus",
    "WorkflowExecution",
    "WorkflowOrchestrator",
    "WorkflowPlan",
    "WorkflowStep",
    "create_workflow_orchestrator",
    "get_settings",
]
