"""
Workflow Orchestrator
Caller-facing facade: compiles intents into plans, runs them, and exposes
execution state, statistics and lifecycle events.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from intentflow.config.settings import OrchestratorSettings, get_settings
from intentflow.enhanced_logging import mask_address
from intentflow.event_bus import InMemoryEventBus
from intentflow.exceptions import IntentflowException, WorkflowError
from intentflow.interfaces.event_bus import AgentEventType, EventListener
from intentflow.models.intent import Intent
from intentflow.models.workflow import (
    ExecutionContext,
    PlanStatus,
    WorkflowExecution,
    WorkflowPlan,
    generate_execution_id,
)
from intentflow.scheduling.executor import WorkflowScheduler
from intentflow.scheduling.step_compiler import StepCompiler
from intentflow.skills.registry import SkillRegistry
from intentflow.tracking.execution_registry import ExecutionRegistry
from intentflow.tracking.stats import StatsSnapshot, StatsTracker

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
    """
    Intent execution orchestrator.

    Responsibilities:
    1. Compile intents into validated workflow plans
    2. Schedule step execution against the skill registry
    3. Track executions, statistics and lifecycle events
    """

    def __init__(
        self,
        skill_registry: SkillRegistry,
        settings: Optional[OrchestratorSettings] = None,
        event_bus: Optional[InMemoryEventBus] = None,
        compiler: Optional[StepCompiler] = None,
    ):
        """
        Initialize orchestrator

        Args:
            skill_registry: Providers available to workflow steps
            settings: Orchestrator settings (process defaults if omitted)
            event_bus: Event bus for lifecycle notifications
            compiler: Intent compiler (default topologies if omitted)
        """
        self.settings = settings or get_settings()
        self.skill_registry = skill_registry
        self.event_bus = event_bus or InMemoryEventBus()
        self.compiler = compiler or StepCompiler()
        self.stats = StatsTracker()
        self.executions = ExecutionRegistry(self.event_bus)
        self.scheduler = WorkflowScheduler(
            skill_registry, self.event_bus, self.stats, self.settings
        )
        self._tasks: Dict[str, "asyncio.Task[WorkflowExecution]"] = {}

    # ==================== Workflow lifecycle ====================

    async def create_workflow(self, intent: Intent, context: ExecutionContext) -> WorkflowPlan:
        """
        Compile *intent* into a validated plan.

        Starts execution immediately when ``auto_execute`` is set; the
        execution id is then available as ``plan.execution_id``.

        Raises:
            UnsupportedIntentTypeError: No topology for the intent type
            CyclicDependencyError: Compiled steps form a cycle
            WorkflowValidationError: Invalid params or step declarations
        """
        logger.info(
            "Creating workflow for %s intent %s (user %s)",
            intent.type.value, intent.id, mask_address(context.user_address),
        )
        try:
            plan = self.compiler.compile_plan(intent, context)
        except IntentflowException as e:
            logger.error("Failed to create workflow for intent %s: %s", intent.id, e)
            self.event_bus.emit(
                AgentEventType.ERROR_OCCURRED,
                context.session_id,
                {"intent_id": intent.id, "error": e.message, "error_kind": e.kind},
            )
            raise

        self.event_bus.emit(
            AgentEventType.WORKFLOW_CREATED,
            context.session_id,
            {
                "plan_id": plan.id,
                "intent_id": intent.id,
                "step_count": len(plan.steps),
                "step_ids": plan.step_ids,
            },
        )

        if self.settings.auto_execute:
            await self.execute_workflow(plan, context)
        return plan

    async def execute_workflow(self, plan: WorkflowPlan, context: ExecutionContext) -> str:
        """
        Start executing *plan* in the background.

        Returns:
            Execution id
        """
        execution = self._start_execution(plan, context)
        task = asyncio.create_task(self.scheduler.run(execution), name=execution.id)
        self._tasks[execution.id] = task
        task.add_done_callback(lambda _t, eid=execution.id: self._tasks.pop(eid, None))
        return execution.id

    async def run_workflow(self, plan: WorkflowPlan, context: ExecutionContext) -> WorkflowExecution:
        """Execute *plan* and wait until it reaches a terminal state."""
        execution = self._start_execution(plan, context)
        return await self.scheduler.run(execution)

    async def wait_for_execution(
        self,
        execution_id: str,
        timeout: Optional[float] = None,
    ) -> Optional[WorkflowExecution]:
        """
        Wait for a background execution to finish.

        Raises:
            asyncio.TimeoutError: If it is still running after *timeout* seconds
        """
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        return self.executions.get(execution_id)

    def _start_execution(self, plan: WorkflowPlan, context: ExecutionContext) -> WorkflowExecution:
        """Wrap *plan* in a new execution, claiming the plan before any await."""
        if plan.status != PlanStatus.CREATED or plan.execution_id is not None:
            raise WorkflowError(
                f"Plan {plan.id} has already been executed (status: {plan.status.value})",
                execution_id=plan.execution_id,
            )

        execution = WorkflowExecution(
            id=generate_execution_id(plan.id),
            plan=plan,
            context=context,
        )
        plan.status = PlanStatus.EXECUTING
        plan.execution_id = execution.id
        self.executions.add(execution)
        self.stats.record_started()
        logger.info("Starting execution %s for plan %s", execution.id, plan.id)
        return execution

    # ==================== Public API ====================

    def get_execution(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self.executions.get(execution_id)

    def get_all_executions(self) -> List[WorkflowExecution]:
        return self.executions.list()

    def cancel_execution(self, execution_id: str) -> bool:
        """Advisory cancel; returns False for unknown or finished executions"""
        cancelled = self.executions.cancel(execution_id)
        if cancelled:
            self.stats.record_cancelled()
        return cancelled

    def clear_executions(self) -> None:
        self.executions.clear()

    def get_stats(self) -> StatsSnapshot:
        return self.stats.snapshot()

    def on(self, event_type: AgentEventType, listener: EventListener) -> str:
        return self.event_bus.on(event_type, listener)

    def off(self, event_type: AgentEventType, listener: EventListener) -> bool:
        return self.event_bus.off(event_type, listener)

    async def shutdown(self) -> None:
        """Cancel and await every background execution still running"""
        tasks = list(self._tasks.items())
        for execution_id, task in tasks:
            self.cancel_execution(execution_id)
            task.cancel()
        if tasks:
            await asyncio.gather(*(t for _, t in tasks), return_exceptions=True)
            logger.info("Orchestrator shut down; %d execution(s) cancelled", len(tasks))


def create_workflow_orchestrator(
    skill_registry: SkillRegistry,
    settings: Optional[OrchestratorSettings] = None,
    **overrides: Any,
) -> WorkflowOrchestrator:
    """
    Create an orchestrator, applying keyword overrides on top of *settings*.

    Example:
        create_workflow_orchestrator(registry, auto_execute=False, step_timeout=5)
    """
    base = settings or get_settings()
    if overrides:
        base = OrchestratorSettings(**{**base.model_dump(), **overrides})
    return WorkflowOrchestrator(skill_registry, settings=base)
