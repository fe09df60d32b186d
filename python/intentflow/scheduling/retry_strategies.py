"""Timeout and retry policy for skill provider calls.

Every provider call runs under ``asyncio.wait_for(step_timeout)``.
Timeouts and raised exceptions are retried with exponential backoff;
a returned ``success=False`` result is final and never retried.
Steps that submit a transaction (``action: execute``) get one attempt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from intentflow.config.settings import OrchestratorSettings
from intentflow.exceptions import (
    RetryConfig,
    StepExecutionError,
    StepTimeoutError,
    retry_with_backoff,
)
from intentflow.models.workflow import SkillExecutionResult

logger = logging.getLogger(__name__)

ProviderCall = Callable[[], Awaitable[Any]]

# Actions that may broadcast a transaction. Single attempt unless the
# skill config sets ``retry_submissions``.
SUBMITTING_ACTIONS = ("execute",)


@dataclass(frozen=True)
class StepRetryPolicy:
    """Per-skill timeout and retry budget."""

    max_retries: int = 3
    step_timeout: float = 30.0
    backoff: RetryConfig = field(default_factory=RetryConfig)

    @property
    def total_max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_settings(
        cls,
        settings: OrchestratorSettings,
        skill_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> "StepRetryPolicy":
        """Policy from settings, applying ``skill_configs[skill_id]`` overrides.

        Steps whose *action* submits a transaction are never retried unless
        the skill config sets ``retry_submissions``.
        """
        overrides = settings.get_skill_config(skill_id) if skill_id else {}
        max_retries = int(overrides.get("max_retries", settings.max_retries))
        if action in SUBMITTING_ACTIONS and not overrides.get("retry_submissions", False):
            max_retries = 0
        step_timeout = float(overrides.get("step_timeout", settings.step_timeout))
        return cls(
            max_retries=max_retries,
            step_timeout=step_timeout,
            backoff=settings.retry_config(max_retries=max_retries),
        )

    async def run(self, call: ProviderCall, step_id: str) -> SkillExecutionResult:
        """Invoke *call* under the timeout, retrying timeouts and exceptions.

        Raises:
            StepTimeoutError: if the last attempt timed out.
            StepExecutionError: if the last attempt raised or returned
                something other than a :class:`SkillExecutionResult`.
        """

        async def attempt() -> SkillExecutionResult:
            try:
                result = await asyncio.wait_for(call(), timeout=self.step_timeout)
            except asyncio.TimeoutError:
                raise StepTimeoutError(
                    f"Step {step_id} timed out after {self.step_timeout:g}s",
                    step_id=step_id,
                ) from None
            if not isinstance(result, SkillExecutionResult):
                raise StepExecutionError(
                    f"Step {step_id} provider returned {type(result).__name__}, "
                    f"expected SkillExecutionResult",
                    step_id=step_id,
                )
            return result

        def on_retry(attempt_no: int, error: Exception, delay: float) -> None:
            logger.info(
                "Retrying step %s (attempt %d/%d) after %s",
                step_id, attempt_no + 1, self.total_max_attempts, type(error).__name__,
            )

        config = RetryConfig(
            max_retries=self.max_retries,
            initial_delay_ms=self.backoff.initial_delay_ms,
            max_delay_ms=self.backoff.max_delay_ms,
            exponential_base=self.backoff.exponential_base,
            jitter=self.backoff.jitter,
        )
        try:
            return await retry_with_backoff(attempt, config=config, on_retry=on_retry)
        except StepExecutionError:
            raise
        except Exception as e:
            raise StepExecutionError(
                f"Step {step_id} failed: {e}", step_id=step_id
            ) from e
