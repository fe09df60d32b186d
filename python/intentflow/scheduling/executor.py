"""Workflow scheduler: drives an execution's plan to a terminal state.

Two scheduling modes share one dispatch path:

- ``batched`` (default): level-synchronous.  Every ready step is
  dispatched concurrently and the whole batch settles before the next
  ready set is computed.
- ``eager``: a step is dispatched as soon as all of its dependencies
  have completed, without waiting for unrelated in-flight steps.

Two failure policies:

- ``deadlock`` (default): dependents of a failed step stay ``pending``;
  the run ends ``failed`` with ``WorkflowDeadlock`` once nothing is ready.
- ``cascade``: transitive dependents are marked ``failed`` immediately
  and the run ends through the completion invariant.

Step-level errors are captured into step results; nothing raised by a
provider escapes :meth:`WorkflowScheduler.run`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import Any, Dict, Optional

from intentflow.config.settings import OrchestratorSettings
from intentflow.enhanced_logging import track_performance
from intentflow.exceptions import (
    ChainNotSupportedError,
    IntentflowException,
    SimulationDisabledError,
    SkillNotFoundError,
    StepExecutionError,
    WorkflowDeadlockError,
)
from intentflow.interfaces.event_bus import AgentEventType, IEventBus
from intentflow.models.workflow import (
    ExecutionStatus,
    PlanStatus,
    SkillExecutionResult,
    StepStatus,
    WorkflowExecution,
    WorkflowStep,
)
from intentflow.scheduling.dependency_graph import DependencyGraph
from intentflow.scheduling.references import resolve_params
from intentflow.scheduling.retry_strategies import StepRetryPolicy
from intentflow.skills.registry import SkillRegistry
from intentflow.tracking.stats import StatsTracker

logger = logging.getLogger(__name__)


class WorkflowScheduler:
    """Runs workflow executions against a skill registry.

    Stateless between runs; one scheduler can drive many executions
    concurrently on the same event loop.
    """

    def __init__(
        self,
        skill_registry: SkillRegistry,
        event_bus: IEventBus,
        stats: StatsTracker,
        settings: OrchestratorSettings,
    ) -> None:
        self._skills = skill_registry
        self._events = event_bus
        self._stats = stats
        self._settings = settings

    @track_performance(operation="workflow.run")
    async def run(self, execution: WorkflowExecution) -> WorkflowExecution:
        """Drive *execution* until it is completed, failed or cancelled."""
        if execution.is_terminal:
            return execution

        execution.status = ExecutionStatus.EXECUTING
        execution.plan.status = PlanStatus.EXECUTING
        graph = DependencyGraph(execution.plan.steps)
        self._trace(
            "Executing %s: %d step(s), waves=%s, mode=%s, policy=%s",
            execution.id,
            len(graph),
            graph.get_execution_waves(),
            self._settings.scheduling_mode,
            self._settings.failure_policy,
        )

        try:
            if self._settings.scheduling_mode == "eager":
                await self._run_eager(execution, graph)
            else:
                await self._run_batched(execution, graph)
        except Exception as e:
            logger.exception("Workflow execution %s raised unexpectedly", execution.id)
            if not execution.is_terminal:
                self._fail(execution, str(e) or type(e).__name__, type(e).__name__)

        return execution

    # ── Scheduling loops ─────────────────────────────────────────────

    async def _run_batched(self, execution: WorkflowExecution, graph: DependencyGraph) -> None:
        while True:
            if execution.status == ExecutionStatus.CANCELLED:
                self._stop_cancelled(execution)
                return
            if execution.all_steps_settled:
                self._finish(execution)
                return

            ready = graph.ready_steps(execution.completed_steps)
            if not ready:
                self._deadlock(execution, graph)
                return

            for step in ready:
                step.transition(StepStatus.READY)
            self._trace("Dispatching batch for %s: %s", execution.id, [s.id for s in ready])
            await asyncio.gather(*(self._dispatch(step, execution, graph) for step in ready))

    async def _run_eager(self, execution: WorkflowExecution, graph: DependencyGraph) -> None:
        in_flight: Dict[str, "asyncio.Task[None]"] = {}
        try:
            while True:
                if execution.status == ExecutionStatus.CANCELLED:
                    if in_flight:
                        await asyncio.gather(*in_flight.values())
                    self._stop_cancelled(execution)
                    return
                if not in_flight and execution.all_steps_settled:
                    self._finish(execution)
                    return

                for step in graph.ready_steps(execution.completed_steps):
                    if step.id in in_flight:
                        continue
                    step.transition(StepStatus.READY)
                    in_flight[step.id] = asyncio.create_task(
                        self._dispatch(step, execution, graph)
                    )

                if not in_flight:
                    self._deadlock(execution, graph)
                    return

                await asyncio.wait(in_flight.values(), return_when=asyncio.FIRST_COMPLETED)
                for step_id, task in list(in_flight.items()):
                    if task.done():
                        del in_flight[step_id]
                        task.result()
        finally:
            for task in in_flight.values():
                task.cancel()

    # ── Step dispatch ────────────────────────────────────────────────

    async def _dispatch(
        self,
        step: WorkflowStep,
        execution: WorkflowExecution,
        graph: DependencyGraph,
    ) -> None:
        step.transition(StepStatus.EXECUTING)
        step.start_time = time.time()
        execution.current_step = step.id
        self._stats.record_skill_dispatch(step.skill_id)
        self._events.emit(
            AgentEventType.STEP_STARTED,
            execution.session_id,
            {"execution_id": execution.id, "step_id": step.id, "skill_id": step.skill_id},
        )
        self._trace("Executing step %s (%s)", step.id, step.skill_id)

        started = time.perf_counter()
        try:
            result = await self._invoke(step, execution)
        except IntentflowException as e:
            result = SkillExecutionResult.failure(e.message)
        except Exception as e:
            logger.exception("Step %s raised unexpectedly", step.id)
            result = SkillExecutionResult.failure(str(e) or type(e).__name__)

        result = dataclasses.replace(result, execution_time=time.perf_counter() - started)
        step.end_time = time.time()
        self._settle(step, result, execution, graph)

    async def _invoke(self, step: WorkflowStep, execution: WorkflowExecution) -> SkillExecutionResult:
        provider = self._skills.get(step.skill_id)
        if provider is None:
            raise SkillNotFoundError(step.skill_id)

        chain_id = execution.context.chain_id
        if not provider.is_chain_supported(chain_id):
            raise ChainNotSupportedError(step.skill_id, chain_id)

        if self._settings.simulation_mode:
            raise SimulationDisabledError(step.skill_id)

        params = resolve_params(step.params, execution.results, step.id)
        policy = StepRetryPolicy.from_settings(
            self._settings, step.skill_id, step.params.get("action")
        )
        return await policy.run(lambda: provider.execute(params, execution.context), step.id)

    def _settle(
        self,
        step: WorkflowStep,
        result: SkillExecutionResult,
        execution: WorkflowExecution,
        graph: DependencyGraph,
    ) -> None:
        step.result = result
        execution.record_result(step.id, result)
        if execution.current_step == step.id:
            execution.current_step = None

        payload: Dict[str, Any] = {
            "execution_id": execution.id,
            "step_id": step.id,
            "skill_id": step.skill_id,
            "success": result.success,
            "execution_time": result.execution_time,
        }

        if result.success:
            step.transition(StepStatus.COMPLETED)
            execution.completed_steps.add(step.id)
            self._trace("Step completed: %s", step.id)
            self._events.emit(AgentEventType.STEP_COMPLETED, execution.session_id, payload)
            return

        step.transition(StepStatus.FAILED)
        execution.failed_steps.add(step.id)
        logger.warning("Step %s failed: %s", step.id, result.error)
        self._events.emit(
            AgentEventType.STEP_FAILED,
            execution.session_id,
            {**payload, "error": result.error},
        )
        if self._settings.failure_policy == "cascade":
            self._cascade(step, execution, graph)

    def _cascade(self, failed: WorkflowStep, execution: WorkflowExecution, graph: DependencyGraph) -> None:
        """Fail every transitive dependent of *failed* that has not run."""
        for step_id in graph.get_downstream(failed.id):
            step = execution.plan.get_step(step_id)
            if step is None or step.status != StepStatus.PENDING:
                continue
            error = StepExecutionError(
                f"Upstream step {failed.id} failed", step_id=step_id
            )
            result = SkillExecutionResult.failure(error.message)
            step.transition(StepStatus.FAILED)
            step.result = result
            execution.record_result(step_id, result)
            execution.failed_steps.add(step_id)
            self._events.emit(
                AgentEventType.STEP_FAILED,
                execution.session_id,
                {
                    "execution_id": execution.id,
                    "step_id": step_id,
                    "skill_id": step.skill_id,
                    "success": False,
                    "error": result.error,
                    "upstream_step_id": failed.id,
                },
            )
        self._trace("Cascaded failure of %s to its dependents", failed.id)

    # ── Terminal transitions ─────────────────────────────────────────

    def _finish(self, execution: WorkflowExecution) -> None:
        """Completion invariant holds: every step completed or failed."""
        execution.end_time = time.time()
        execution.current_step = None

        if execution.failed_steps:
            failed = [s for s in execution.plan.step_ids if s in execution.failed_steps]
            self._fail(
                execution,
                f"{len(failed)} step(s) failed: {', '.join(failed)}",
                "StepExecution",
            )
            return

        execution.status = ExecutionStatus.COMPLETED
        execution.plan.status = PlanStatus.COMPLETED
        duration = execution.duration or 0.0
        self._stats.record_completed(duration)
        logger.info("Workflow execution completed: %s (%.3fs)", execution.id, duration)
        self._events.emit(
            AgentEventType.WORKFLOW_COMPLETED,
            execution.session_id,
            {
                "execution_id": execution.id,
                "plan_id": execution.plan.id,
                "execution_time": duration,
            },
        )

    def _deadlock(self, execution: WorkflowExecution, graph: DependencyGraph) -> None:
        error = WorkflowDeadlockError(
            execution.id, graph.blocked_steps(execution.completed_steps)
        )
        self._fail(execution, error.message, error.kind)

    def _fail(self, execution: WorkflowExecution, message: str, kind: Optional[str]) -> None:
        execution.status = ExecutionStatus.FAILED
        execution.plan.status = PlanStatus.FAILED
        execution.end_time = execution.end_time or time.time()
        execution.current_step = None
        execution.error = message
        execution.error_kind = kind
        self._stats.record_failed()
        logger.error("Workflow execution failed: %s: %s", execution.id, message)
        self._events.emit(
            AgentEventType.WORKFLOW_FAILED,
            execution.session_id,
            {
                "execution_id": execution.id,
                "plan_id": execution.plan.id,
                "error": message,
                "error_kind": kind,
            },
        )

    def _stop_cancelled(self, execution: WorkflowExecution) -> None:
        execution.plan.status = PlanStatus.FAILED
        execution.current_step = None
        logger.info("Workflow execution %s stopped after cancellation", execution.id)

    def _trace(self, msg: str, *args: Any) -> None:
        if self._settings.verbose:
            logger.info(msg, *args)
        else:
            logger.debug(msg, *args)
