"""Interface for skill providers.

A skill provider knows how to quote and execute one category of on-chain
operation (bridging, swapping, name resolution, ...).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from intentflow.models.workflow import ExecutionContext, SkillExecutionResult


@dataclass(frozen=True)
class SkillMetadata:
    """Static description of a provider."""

    id: str
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    supported_chains: List[int] = field(default_factory=list)
    required_params: List[str] = field(default_factory=list)
    optional_params: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name or self.id,
            "description": self.description,
            "version": self.version,
            "supported_chains": list(self.supported_chains),
            "required_params": list(self.required_params),
            "optional_params": list(self.optional_params),
            "examples": list(self.examples),
        }


@dataclass(frozen=True)
class SkillEstimate:
    """Rough cost of running a skill."""

    gas_estimate: str = "0"
    time_estimate_ms: int = 5000
    cost_estimate: str = "Unknown"


@runtime_checkable
class SkillProvider(Protocol):
    """Interface every provider registered with the orchestrator satisfies."""

    @property
    def metadata(self) -> SkillMetadata:
        ...

    async def execute(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
    ) -> SkillExecutionResult:
        """Run the skill.

        Providers report failure through ``success=False`` rather than by
        raising.  A raised exception is treated as a contract violation.

        Args:
            params: Step params with deferred references already resolved
            context: Caller's execution context (read-only)

        Returns:
            Execution result
        """
        ...

    def is_chain_supported(self, chain_id: int) -> bool:
        """Whether the provider can serve *chain_id*."""
        ...


@runtime_checkable
class EstimatingSkillProvider(SkillProvider, Protocol):
    """Provider that can also estimate the cost of a call."""

    async def estimate(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
    ) -> Optional[SkillEstimate]:
        ...
