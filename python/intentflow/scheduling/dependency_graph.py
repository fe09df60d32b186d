"""Step dependency graph for workflow plans.

Standalone module: built once from a compiled step list, never mutated.

Provides:
- Cycle detection (three-colour DFS over ``depends_on``)
- Ready-set selection against a completed set
- Topological ordering via Kahn's algorithm (execution waves)
- Downstream lookup (BFS over reverse edges) for cascade failure
- Plan construction (``build_plan``)
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Collection, Dict, Iterable, List, Optional, Set

from intentflow.exceptions import CyclicDependencyError, WorkflowValidationError
from intentflow.models.workflow import StepStatus, WorkflowPlan, WorkflowStep, generate_plan_id

logger = logging.getLogger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed graph over a plan's steps.

    Tracks forward edges (step → deps it needs) and reverse edges
    (step → steps that need it).  Step order is the plan order and is
    preserved by every query.

    Raises:
        WorkflowValidationError: on duplicate step ids or a dependency on an
            id that is not in the step list.
    """

    def __init__(self, steps: Iterable[WorkflowStep]) -> None:
        self._steps: Dict[str, WorkflowStep] = {}
        for step in steps:
            if step.id in self._steps:
                raise WorkflowValidationError(
                    f"Duplicate step id: {step.id}", details={"step_id": step.id}
                )
            self._steps[step.id] = step

        # Forward edges: step_id → ids it depends ON (declared order)
        self._dependencies: Dict[str, List[str]] = {}
        # Reverse edges: step_id → ids that depend on IT (plan order)
        self._dependents: Dict[str, List[str]] = {sid: [] for sid in self._steps}

        for sid, step in self._steps.items():
            deps = list(dict.fromkeys(step.depends_on))
            unknown = [d for d in deps if d not in self._steps]
            if unknown:
                raise WorkflowValidationError(
                    f"Step {sid} depends on unknown step(s): {', '.join(unknown)}",
                    details={"step_id": sid, "unknown": unknown},
                )
            self._dependencies[sid] = deps
            for dep in deps:
                self._dependents[dep].append(sid)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    @property
    def step_ids(self) -> List[str]:
        return list(self._steps)

    # ── Cycle detection ──────────────────────────────────────────────

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def find_cycle(self) -> Optional[List[str]]:
        """Return a cycle as ``[a, b, ..., a]`` or ``None`` if acyclic.

        Three-colour DFS: reaching a grey node closes a back-edge.
        """
        colour: Dict[str, int] = {sid: _WHITE for sid in self._steps}

        for root in self._steps:
            if colour[root] != _WHITE:
                continue
            colour[root] = _GREY
            path: List[str] = [root]
            stack = [iter(self._dependencies[root])]

            while stack:
                dep = next(stack[-1], None)
                if dep is None:
                    stack.pop()
                    colour[path.pop()] = _BLACK
                    continue
                if colour[dep] == _GREY:
                    start = path.index(dep)
                    return path[start:] + [dep]
                if colour[dep] == _WHITE:
                    colour[dep] = _GREY
                    path.append(dep)
                    stack.append(iter(self._dependencies[dep]))

        return None

    # ── Queries ──────────────────────────────────────────────────────

    def dependencies_of(self, step_id: str) -> List[str]:
        return list(self._dependencies.get(step_id, []))

    def dependents_of(self, step_id: str) -> List[str]:
        return list(self._dependents.get(step_id, []))

    def ready_steps(self, completed: Collection[str]) -> List[WorkflowStep]:
        """Steps not yet dispatched whose every dependency is in *completed*."""
        return [
            step
            for sid, step in self._steps.items()
            if step.status in (StepStatus.PENDING, StepStatus.READY)
            and all(dep in completed for dep in self._dependencies[sid])
        ]

    def blocked_steps(self, completed: Collection[str]) -> Dict[str, List[str]]:
        """Undispatched steps mapped to their unsatisfied dependencies."""
        blocked: Dict[str, List[str]] = {}
        for sid, step in self._steps.items():
            if step.status not in (StepStatus.PENDING, StepStatus.READY):
                continue
            missing = [dep for dep in self._dependencies[sid] if dep not in completed]
            if missing:
                blocked[sid] = missing
        return blocked

    def get_execution_waves(self) -> List[List[str]]:
        """Kahn's algorithm producing parallel execution waves.

        Each wave contains steps whose dependencies are fully satisfied by
        prior waves, in plan order.  Steps on a cycle appear in no wave.
        """
        in_degree = {sid: len(deps) for sid, deps in self._dependencies.items()}
        current_wave = [sid for sid, deg in in_degree.items() if deg == 0]
        waves: List[List[str]] = []

        while current_wave:
            waves.append(current_wave)
            released: Set[str] = set()
            for sid in current_wave:
                for dependent in self._dependents[sid]:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        released.add(dependent)
            current_wave = [sid for sid in self._steps if sid in released]

        return waves

    def get_downstream(self, step_id: str) -> List[str]:
        """BFS to find all transitive dependents of *step_id*, in plan order."""
        result: Set[str] = set()
        queue: deque[str] = deque(self._dependents.get(step_id, []))
        while queue:
            sid = queue.popleft()
            if sid in result:
                continue
            result.add(sid)
            queue.extend(self._dependents.get(sid, []))
        return [sid for sid in self._steps if sid in result]

    def dependents_map(self) -> Dict[str, List[str]]:
        """step_id → ids of the steps that directly depend on it."""
        return {sid: list(deps) for sid, deps in self._dependents.items()}

    # ── Serialisation ────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependencies": {k: list(v) for k, v in self._dependencies.items()},
            "dependents": self.dependents_map(),
            "waves": self.get_execution_waves(),
        }


def build_plan(
    intent_id: str,
    steps: List[WorkflowStep],
    plan_id: Optional[str] = None,
) -> WorkflowPlan:
    """Validate *steps* as a DAG and wrap them in a new plan.

    Raises:
        WorkflowValidationError: on unknown dependency ids or an empty plan.
        CyclicDependencyError: if the dependency graph has a cycle.
    """
    if not steps:
        raise WorkflowValidationError(
            "Workflow has no steps", details={"intent_id": intent_id}
        )

    graph = DependencyGraph(steps)
    cycle = graph.find_cycle()
    if cycle is not None:
        raise CyclicDependencyError(cycle)

    plan = WorkflowPlan(
        id=plan_id or generate_plan_id(intent_id),
        intent_id=intent_id,
        steps=list(steps),
        dependency_graph=graph.dependents_map(),
    )
    logger.debug(
        "Built plan %s with %d step(s) in %d wave(s)",
        plan.id, len(steps), len(graph.get_execution_waves()),
    )
    return plan
