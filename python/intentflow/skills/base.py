"""
Base Skill Abstraction
Defines the common behaviour concrete skill providers inherit
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from intentflow.enhanced_logging import mask_address, sanitize_params
from intentflow.interfaces.skill_provider import SkillEstimate, SkillMetadata
from intentflow.models.workflow import ExecutionContext, SkillExecutionResult

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of a params or context check"""
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class BaseSkill(ABC):
    """
    Abstract base class for skill providers.

    Subclasses provide ``metadata`` and implement ``on_initialize``,
    ``on_execute`` and ``on_estimate``.  ``execute`` never raises: every
    failure is reported as ``success=False``.
    """

    def __init__(self, **config: Any):
        """
        Initialize skill

        Args:
            **config: Provider-specific configuration
        """
        self.config = config
        self.is_initialized = False
        self.last_execution_time: Optional[float] = None
        self.execution_count = 0

    @property
    @abstractmethod
    def metadata(self) -> SkillMetadata:
        """Static description of this skill"""

    @property
    def skill_id(self) -> str:
        return self.metadata.id

    async def initialize(self) -> None:
        """
        Run one-time setup before first use.

        Raises:
            RuntimeError: If subclass setup fails
        """
        if self.is_initialized:
            return
        try:
            await self.on_initialize()
        except Exception as e:
            logger.error("Failed to initialize skill %s: %s", self.skill_id, e)
            raise RuntimeError(f"Skill initialization failed: {e}") from e
        self.is_initialized = True
        logger.info("Skill %s initialized", self.skill_id)

    async def execute(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
    ) -> SkillExecutionResult:
        """
        Validate, run and time the skill.

        Args:
            params: Step params (references already resolved)
            context: Execution context

        Returns:
            Execution result with wall-clock execution_time in seconds
        """
        start = time.perf_counter()

        def elapsed() -> float:
            return time.perf_counter() - start

        try:
            if not self.is_initialized:
                await self.initialize()

            report = self.validate(params)
            if not report.valid:
                return SkillExecutionResult.failure(
                    f"Parameter validation failed: {', '.join(report.errors)}",
                    execution_time=elapsed(),
                )

            report = self.validate_context(context)
            if not report.valid:
                return SkillExecutionResult.failure(
                    f"Context validation failed: {', '.join(report.errors)}",
                    execution_time=elapsed(),
                )

            output = await self.on_execute(params, context)
            self.last_execution_time = time.time()
            self.execution_count += 1
            self.log_execution(params, context, output)

            return SkillExecutionResult.ok(output, execution_time=elapsed())

        except Exception as e:
            logger.error("Skill %s execution failed: %s", self.skill_id, e)
            return SkillExecutionResult.failure(self.format_error(e), execution_time=elapsed())

    def validate(self, params: Dict[str, Any]) -> ValidationReport:
        """Check required params, then subclass rules"""
        report = ValidationReport()
        for name in self.metadata.required_params:
            if params.get(name) in (None, ""):
                report.errors.append(f"Missing required parameter: {name}")
        report.errors.extend(self.on_validate(params))
        return report

    def validate_context(self, context: ExecutionContext) -> ValidationReport:
        report = ValidationReport()
        if not self.is_chain_supported(context.chain_id):
            report.errors.append(f"Chain {context.chain_id} is not supported by this skill")
        if "userAddress" in self.metadata.required_params and not context.user_address:
            report.errors.append("User address is required but not provided in context")
        return report

    async def estimate(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
    ) -> SkillEstimate:
        """Estimate cost, falling back to a conservative default on any error"""
        try:
            report = self.validate(params)
            if not report.valid:
                raise ValueError(f"Invalid parameters: {', '.join(report.errors)}")
            return await self.on_estimate(params, context)
        except Exception as e:
            logger.warning("Failed to estimate for skill %s: %s", self.skill_id, e)
            return SkillEstimate()

    def is_chain_supported(self, chain_id: int) -> bool:
        return chain_id in self.metadata.supported_chains

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_initialized": self.is_initialized,
            "last_execution_time": self.last_execution_time,
            "execution_count": self.execution_count,
            "supported_chains": list(self.metadata.supported_chains),
        }

    def reset(self) -> None:
        self.is_initialized = False
        self.last_execution_time = None
        self.execution_count = 0
        self.on_reset()

    # ── Subclass hooks ───────────────────────────────────────────────

    @abstractmethod
    async def on_initialize(self) -> None:
        """Set up SDKs, clients, connections"""

    @abstractmethod
    async def on_execute(self, params: Dict[str, Any], context: ExecutionContext) -> Any:
        """
        Run the skill logic.

        Returns:
            The step output (becomes ``SkillExecutionResult.output``)
        """

    @abstractmethod
    async def on_estimate(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
    ) -> SkillEstimate:
        """Estimate gas, time and cost"""

    def on_validate(self, params: Dict[str, Any]) -> List[str]:
        """Extra param checks; returns error messages"""
        return []

    def on_reset(self) -> None:
        pass

    # ── Utilities ────────────────────────────────────────────────────

    @staticmethod
    def format_error(error: BaseException) -> str:
        message = str(error)
        return message or type(error).__name__

    def log_execution(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
        output: Any,
    ) -> None:
        logger.debug(
            "[Skill %s] action=%s params=%s chain=%s user=%s",
            self.skill_id,
            params.get("action"),
            sanitize_params(params),
            context.chain_id,
            mask_address(context.user_address),
        )
