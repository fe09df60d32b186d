"""Workflow data model: steps, plans, executions and their results.

Plans and executions are mutable; only the scheduler writes to them.
Step status moves forward only, and result maps are append-only.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set

# ── Enums ────────────────────────────────────────────────────────────


class StepStatus(str, Enum):
    """Lifecycle of a single step."""

    PENDING = "pending"  # waiting on unsatisfied deps
    READY = "ready"  # all deps met, selected for dispatch
    EXECUTING = "executing"  # provider call in flight
    COMPLETED = "completed"
    FAILED = "failed"


# pending -> failed is only taken by the cascade failure policy
_STEP_TRANSITIONS: Dict[StepStatus, FrozenSet[StepStatus]] = {
    StepStatus.PENDING: frozenset({StepStatus.READY, StepStatus.FAILED}),
    StepStatus.READY: frozenset({StepStatus.EXECUTING}),
    StepStatus.EXECUTING: frozenset({StepStatus.COMPLETED, StepStatus.FAILED}),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.FAILED: frozenset(),
}


class PlanStatus(str, Enum):
    CREATED = "created"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


# ── Identifiers ──────────────────────────────────────────────────────


def _stamp() -> int:
    return int(time.time() * 1000)


def generate_step_id(skill_id: str) -> str:
    return f"step_{skill_id}_{_stamp()}_{uuid.uuid4().hex[:6]}"


def generate_session_id() -> str:
    return f"session_{_stamp()}_{uuid.uuid4().hex[:9]}"


def generate_plan_id(intent_id: str) -> str:
    return f"workflow_{intent_id}_{_stamp()}"


def generate_execution_id(plan_id: str) -> str:
    return f"exec_{plan_id}_{_stamp()}_{uuid.uuid4().hex[:4]}"


# ── Value objects ────────────────────────────────────────────────────


@dataclass
class SkillExecutionResult:
    """Outcome of one skill invocation.  ``execution_time`` is in seconds."""

    success: bool
    output: Any = None
    error: Optional[str] = None
    transaction_hash: Optional[str] = None
    gas_used: Optional[str] = None
    execution_time: float = 0.0

    @classmethod
    def ok(cls, output: Any = None, **kwargs: Any) -> "SkillExecutionResult":
        return cls(success=True, output=output, **kwargs)

    @classmethod
    def failure(cls, error: str, **kwargs: Any) -> "SkillExecutionResult":
        return cls(success=False, error=error, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "transaction_hash": self.transaction_hash,
            "gas_used": self.gas_used,
            "execution_time": self.execution_time,
        }


@dataclass(frozen=True)
class ExecutionContext:
    """Caller-supplied context; read-only to the orchestrator."""

    session_id: str
    chain_id: int
    user_address: Optional[str] = None
    balances: Dict[str, str] = field(default_factory=dict)
    gas_price: Optional[str] = None
    nonce: Optional[int] = None
    conversation_history: List[Dict[str, Any]] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "chain_id": self.chain_id,
            "user_address": self.user_address,
            "balances": dict(self.balances),
            "gas_price": self.gas_price,
            "nonce": self.nonce,
            "extra": dict(self.extra),
        }


# ── Steps & plans ────────────────────────────────────────────────────


@dataclass
class WorkflowStep:
    """One unit of work bound to exactly one skill invocation."""

    id: str
    skill_id: str
    description: str
    params: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    status: StepStatus = StepStatus.PENDING
    result: Optional[SkillExecutionResult] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def transition(self, new_status: StepStatus) -> None:
        """Move to *new_status*.

        Raises:
            ValueError: if the move is not a forward transition.
        """
        if new_status not in _STEP_TRANSITIONS[self.status]:
            raise ValueError(
                f"Invalid step transition for {self.id!r}: "
                f"{self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    @property
    def is_settled(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "skill_id": self.skill_id,
            "description": self.description,
            "params": dict(self.params),
            "depends_on": list(self.depends_on),
            "status": self.status.value,
            "result": self.result.to_dict() if self.result else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


def _record_once(
    results: Dict[str, SkillExecutionResult],
    step_id: str,
    result: SkillExecutionResult,
) -> None:
    if step_id in results:
        raise ValueError(f"Result for step {step_id!r} already recorded")
    results[step_id] = result


@dataclass
class WorkflowPlan:
    """Compiled, dependency-annotated step list derived from one intent."""

    id: str
    intent_id: str
    steps: List[WorkflowStep]
    # step_id -> ids of the steps that depend on it
    dependency_graph: Dict[str, List[str]] = field(default_factory=dict)
    status: PlanStatus = PlanStatus.CREATED
    results: Dict[str, SkillExecutionResult] = field(default_factory=dict)
    execution_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def step_ids(self) -> List[str]:
        return [s.id for s in self.steps]

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def record_result(self, step_id: str, result: SkillExecutionResult) -> None:
        _record_once(self.results, step_id, result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "intent_id": self.intent_id,
            "steps": [s.to_dict() for s in self.steps],
            "dependency_graph": {k: list(v) for k, v in self.dependency_graph.items()},
            "status": self.status.value,
            "results": {k: v.to_dict() for k, v in self.results.items()},
            "execution_id": self.execution_id,
            "created_at": self.created_at,
        }


# ── Executions ───────────────────────────────────────────────────────


@dataclass
class WorkflowExecution:
    """One run of a plan, tracking per-step and overall status."""

    id: str
    plan: WorkflowPlan
    context: ExecutionContext
    status: ExecutionStatus = ExecutionStatus.PENDING
    current_step: Optional[str] = None
    completed_steps: Set[str] = field(default_factory=set)
    failed_steps: Set[str] = field(default_factory=set)
    results: Dict[str, SkillExecutionResult] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def session_id(self) -> str:
        return self.context.session_id

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def all_steps_settled(self) -> bool:
        """Completion invariant: every step is either completed or failed."""
        settled = len(self.completed_steps) + len(self.failed_steps)
        return settled == len(self.plan.steps)

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def record_result(self, step_id: str, result: SkillExecutionResult) -> None:
        """Append a step result to both the execution and its plan."""
        _record_once(self.results, step_id, result)
        self.plan.record_result(step_id, result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plan_id": self.plan.id,
            "intent_id": self.plan.intent_id,
            "session_id": self.session_id,
            "status": self.status.value,
            "current_step": self.current_step,
            "completed_steps": sorted(self.completed_steps),
            "failed_steps": sorted(self.failed_steps),
            "results": {k: v.to_dict() for k, v in self.results.items()},
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "error": self.error,
            "error_kind": self.error_kind,
        }
