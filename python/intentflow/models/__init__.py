"""Intent and workflow data model."""

from intentflow.models.intent import (
    Amount,
    BridgeParams,
    CctpTransferParams,
    Intent,
    IntentStep,
    IntentType,
    ResolveEnsParams,
    ReverseResolveParams,
    SwapParams,
    TokenInfo,
    create_amount,
    generate_intent_id,
)
from intentflow.models.workflow import (
    ExecutionContext,
    ExecutionStatus,
    PlanStatus,
    SkillExecutionResult,
    StepStatus,
    WorkflowExecution,
    WorkflowPlan,
    WorkflowStep,
    generate_execution_id,
    generate_plan_id,
    generate_session_id,
    generate_step_id,
)

__all__ = [
    # Intent
    "Amount",
    "BridgeParams",
    "CctpTransferParams",
    "Intent",
    "IntentStep",
    "IntentType",
    "ResolveEnsParams",
    "ReverseResolveParams",
    "SwapParams",
    "TokenInfo",
    "create_amount",
    "generate_intent_id",
    # Workflow
    "ExecutionContext",
    "ExecutionStatus",
    "PlanStatus",
    "SkillExecutionResult",
    "StepStatus",
    "WorkflowExecution",
    "WorkflowPlan",
    "WorkflowStep",
    "generate_execution_id",
    "generate_plan_id",
    "generate_session_id",
    "generate_step_id",
]
