"""
Error system for intentflow.

One hierarchy for everything the orchestrator can raise or record:
- Rich error context (id, timestamp, category, severity, details)
- Plan construction errors raised to the caller of ``create_workflow``
- Step-level errors captured into step results by the scheduler
- Workflow-level terminal errors (deadlock, cancellation)
- Retry configuration with exponential backoff
"""

import asyncio
import logging
import random
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Enums & Constants
# ============================================================================

class ErrorSeverity(Enum):
    """Error severity levels."""
    CRITICAL = "critical"      # Orchestrator cannot continue
    ERROR = "error"            # Operation failure, user impacted
    WARNING = "warning"        # Degraded operation, user should be aware
    INFO = "info"              # Informational, no action needed


class ErrorCategory(Enum):
    """Error categories for classification and routing."""
    VALIDATION = "validation"   # Intent or plan failed validation
    SKILL = "skill"             # Skill provider lookup / capability failure
    EXECUTION = "execution"     # A provider call failed
    TIMEOUT = "timeout"         # A provider call exceeded its timeout
    WORKFLOW = "workflow"       # Whole-run terminal condition
    INTERNAL = "internal"       # Internal orchestrator error


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ErrorContext:
    """Rich error context with metadata."""
    error_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.INTERNAL
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    is_recoverable: bool = True
    recovery_suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (stack trace excluded)."""
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
            "is_recoverable": self.is_recoverable,
            "recovery_suggestions": self.recovery_suggestions,
        }


@dataclass
class RetryConfig:
    """Retry strategy configuration."""
    max_retries: int = 3
    initial_delay_ms: int = 100
    max_delay_ms: int = 10000
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int) -> float:
        """Calculate delay in seconds for given attempt number (0-indexed)."""
        delay = min(
            self.initial_delay_ms * (self.exponential_base ** attempt),
            self.max_delay_ms
        )

        if self.jitter:
            # Add random jitter (0-25% of delay)
            delay += delay * random.uniform(0, 0.25)

        return delay / 1000.0


# ============================================================================
# Exception Hierarchy
# ============================================================================

class IntentflowException(Exception):
    """Base exception for all intentflow errors with rich context."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        is_recoverable: bool = True,
        recovery_suggestions: Optional[List[str]] = None,
        context: Optional[ErrorContext] = None,
    ):
        """Initialize exception with full context."""
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.is_recoverable = is_recoverable
        self.recovery_suggestions = recovery_suggestions or []

        if context:
            self.context = context
        else:
            self.context = ErrorContext(
                severity=severity,
                category=category,
                message=message,
                details=self.details,
                stack_trace=traceback.format_exc(),
                is_recoverable=is_recoverable,
                recovery_suggestions=self.recovery_suggestions,
            )

        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Short error kind name, e.g. ``WorkflowDeadlock``."""
        name = type(self).__name__
        return name[:-5] if name.endswith("Error") else name

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = self.context.to_dict()
        data["kind"] = self.kind
        return data


# ============================================================================
# Plan Construction Errors
# ============================================================================

class WorkflowValidationError(IntentflowException):
    """Intent or plan failed validation before execution."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.WARNING)
        kwargs.setdefault("is_recoverable", False)
        super().__init__(message, **kwargs)


class UnsupportedIntentTypeError(WorkflowValidationError):
    """No step topology exists for the intent type."""
    def __init__(self, intent_type: Any, reason: Optional[str] = None, **kwargs):
        self.intent_type = intent_type
        type_name = getattr(intent_type, "value", intent_type)
        message = f"Unsupported intent type: {type_name}"
        if reason:
            message = f"{message} ({reason})"
        kwargs.setdefault("details", {"intent_type": type_name})
        super().__init__(message, **kwargs)


class CyclicDependencyError(WorkflowValidationError):
    """The step dependency graph contains a cycle."""
    def __init__(self, cycle: List[str], **kwargs):
        self.cycle = cycle
        path = " -> ".join(cycle)
        kwargs.setdefault("details", {"cycle": list(cycle)})
        super().__init__(f"Workflow has cyclic dependency: {path}", **kwargs)


# ============================================================================
# Skill Errors
# ============================================================================

class SkillError(IntentflowException):
    """Base skill provider error."""
    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.SKILL)
        kwargs.setdefault("is_recoverable", False)
        super().__init__(message, **kwargs)


class SkillNotFoundError(SkillError):
    """No provider is registered under the step's skill id."""
    def __init__(self, skill_id: str, **kwargs):
        self.skill_id = skill_id
        kwargs.setdefault("details", {"skill_id": skill_id})
        super().__init__(f"Skill not found: {skill_id}", **kwargs)


class ChainNotSupportedError(SkillError):
    """The provider cannot serve the execution's chain id."""
    def __init__(self, skill_id: str, chain_id: int, **kwargs):
        self.skill_id = skill_id
        self.chain_id = chain_id
        kwargs.setdefault("details", {"skill_id": skill_id, "chain_id": chain_id})
        super().__init__(f"Skill {skill_id} does not support chain {chain_id}", **kwargs)


class SimulationDisabledError(SkillError):
    """Simulation mode was requested; results are never fabricated."""
    def __init__(self, skill_id: str, **kwargs):
        self.skill_id = skill_id
        kwargs.setdefault("details", {"skill_id": skill_id})
        super().__init__(
            f"Simulation execution disabled. Skill {skill_id} requires a real "
            f"provider; disable simulation_mode to execute.",
            **kwargs,
        )


# ============================================================================
# Step Execution Errors
# ============================================================================

class StepExecutionError(IntentflowException):
    """A step's provider call failed."""
    def __init__(self, message: str, step_id: Optional[str] = None, **kwargs):
        self.step_id = step_id
        kwargs.setdefault("category", ErrorCategory.EXECUTION)
        if step_id is not None:
            kwargs.setdefault("details", {"step_id": step_id})
        super().__init__(message, **kwargs)


class StepTimeoutError(StepExecutionError):
    """A step's provider call exceeded the configured timeout."""
    def __init__(self, message: str, step_id: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.TIMEOUT)
        super().__init__(message, step_id=step_id, **kwargs)


# ============================================================================
# Workflow Errors
# ============================================================================

class WorkflowError(IntentflowException):
    """Base whole-run error."""
    def __init__(self, message: str, execution_id: Optional[str] = None, **kwargs):
        self.execution_id = execution_id
        kwargs.setdefault("category", ErrorCategory.WORKFLOW)
        if execution_id is not None:
            kwargs.setdefault("details", {"execution_id": execution_id})
        super().__init__(message, **kwargs)


class WorkflowDeadlockError(WorkflowError):
    """No step is ready but the execution is not terminal."""
    def __init__(
        self,
        execution_id: str,
        blocked_steps: Optional[Dict[str, List[str]]] = None,
        **kwargs,
    ):
        self.blocked_steps = blocked_steps or {}
        message = "Workflow deadlock detected: no ready steps but workflow not completed"
        if self.blocked_steps:
            blocked = ", ".join(
                f"{sid} (waiting on {', '.join(deps)})"
                for sid, deps in self.blocked_steps.items()
            )
            message = f"{message}; blocked: {blocked}"
        kwargs.setdefault(
            "details",
            {"execution_id": execution_id, "blocked_steps": self.blocked_steps},
        )
        super().__init__(message, execution_id=execution_id, **kwargs)


class WorkflowCancelledError(WorkflowError):
    """The execution was cancelled by the user."""
    def __init__(self, execution_id: str, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.INFO)
        super().__init__("Cancelled by user", execution_id=execution_id, **kwargs)


# ============================================================================
# Retry Helpers
# ============================================================================

async def retry_with_backoff(
    fn: Callable,
    config: Optional[RetryConfig] = None,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
) -> Any:
    """
    Execute an async callable with retry and exponential backoff.

    Args:
        fn: Zero-argument async function to execute
        config: Retry configuration
        should_retry: Optional predicate deciding whether an error is retryable
        on_retry: Optional hook called with (attempt, error, delay) before sleeping

    Returns:
        Function result
    """
    config = config or RetryConfig()

    for attempt in range(config.max_retries + 1):
        try:
            return await fn()
        except Exception as e:
            if should_retry and not should_retry(e):
                raise
            if attempt >= config.max_retries:
                raise

            delay = config.get_delay(attempt)
            logger.warning(
                "Attempt %d failed, retrying in %.2fs: %s", attempt + 1, delay, e
            )
            if on_retry is not None:
                on_retry(attempt + 1, e, delay)
            await asyncio.sleep(delay)
