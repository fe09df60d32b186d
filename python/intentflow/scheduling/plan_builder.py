"""Fluent builder for workflow step lists.

Steps are declared under local aliases; ids are generated at build time
and every alias used in ``depends_on`` or in a deferred reference is
rewritten to the generated id.

Usage::

    builder = PlanBuilder(intent.id)
    builder.step("quote", "uniswap", "Get swap quote", {"action": "quote"})
    builder.step(
        "execute", "uniswap", "Execute swap",
        {"action": "execute", "quoteId": builder.ref("quote", "quoteId")},
        depends_on=["quote"],
    )
    plan = builder.build()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from intentflow.exceptions import WorkflowValidationError
from intentflow.models.workflow import WorkflowPlan, WorkflowStep, generate_step_id
from intentflow.scheduling.dependency_graph import DependencyGraph, build_plan
from intentflow.scheduling.references import make_reference, referenced_steps, rename_references

logger = logging.getLogger(__name__)


@dataclass
class StepSpec:
    """A step definition within a builder, keyed by alias."""

    alias: str
    skill_id: str
    description: str = ""
    params: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)


class PlanBuilder:
    """Fluent API for declaring steps and their dependencies."""

    def __init__(
        self,
        intent_id: str,
        id_factory: Callable[[str], str] = generate_step_id,
    ) -> None:
        self._intent_id = intent_id
        self._id_factory = id_factory
        self._steps: Dict[str, StepSpec] = {}
        self._errors: List[str] = []

    def __len__(self) -> int:
        return len(self._steps)

    # ── Fluent step definition ───────────────────────────────────────

    def step(
        self,
        alias: str,
        skill_id: str,
        description: str = "",
        params: Optional[Dict[str, Any]] = None,
        depends_on: Optional[List[str]] = None,
    ) -> "PlanBuilder":
        """Add a step.

        Args:
            alias: Local name, unique within this builder.
            skill_id: Provider that executes the step.
            description: Human-readable summary.
            params: Provider params; may contain :meth:`ref` placeholders.
            depends_on: Aliases that must complete first.
        """
        if alias in self._steps:
            self._errors.append(f"Duplicate step alias '{alias}'")
            return self

        self._steps[alias] = StepSpec(
            alias=alias,
            skill_id=skill_id,
            description=description,
            params=dict(params or {}),
            depends_on=list(depends_on or []),
        )
        return self

    @staticmethod
    def ref(alias: str, path: str = "") -> str:
        """Placeholder for the output of step *alias* at dotted *path*."""
        return make_reference(alias, path)

    # ── Validation ───────────────────────────────────────────────────

    def validate(self) -> List[str]:
        """Validate the declared steps, returning a list of errors (empty = valid).

        Checks:
        1. At least one step defined.
        2. Aliases are unique.
        3. All dependency aliases exist.
        4. Every referenced step is a declared dependency.
        5. No cycles in the dependency graph.
        """
        errors = list(self._errors)

        if not self._steps:
            errors.append("Workflow has no steps")
            return errors

        for spec in self._steps.values():
            for dep in spec.depends_on:
                if dep not in self._steps:
                    errors.append(f"Step '{spec.alias}' depends on unknown step '{dep}'")
            for source in sorted(referenced_steps(spec.params)):
                if source not in spec.depends_on:
                    errors.append(
                        f"Step '{spec.alias}' references '{source}' without depending on it"
                    )

        if not errors:
            graph = DependencyGraph(
                WorkflowStep(
                    id=spec.alias,
                    skill_id=spec.skill_id,
                    description=spec.description,
                    depends_on=spec.depends_on,
                )
                for spec in self._steps.values()
            )
            cycle = graph.find_cycle()
            if cycle is not None:
                errors.append(f"Cycle detected: {' -> '.join(cycle)}")

        return errors

    # ── Build ────────────────────────────────────────────────────────

    def build_steps(self) -> List[WorkflowStep]:
        """Generate ids and return the step list in declaration order.

        Raises:
            WorkflowValidationError: on duplicate aliases, unknown
                dependencies or references to undeclared dependencies.
        """
        structural = [e for e in self.validate() if not e.startswith("Cycle detected")]
        if structural:
            raise WorkflowValidationError(
                f"Invalid workflow: {'; '.join(structural)}",
                details={"errors": structural},
            )

        ids = {alias: self._id_factory(spec.skill_id) for alias, spec in self._steps.items()}
        return [
            WorkflowStep(
                id=ids[alias],
                skill_id=spec.skill_id,
                description=spec.description,
                params=rename_references(spec.params, ids),
                depends_on=[ids[dep] for dep in spec.depends_on],
            )
            for alias, spec in self._steps.items()
        ]

    def build(self) -> WorkflowPlan:
        """Build and validate a plan.

        Raises:
            WorkflowValidationError: on structural errors.
            CyclicDependencyError: if the steps form a cycle.
        """
        return build_plan(self._intent_id, self.build_steps())
