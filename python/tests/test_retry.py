"""Tests for retry helpers and the per-step retry policy."""

import asyncio

import pytest

from intentflow.exceptions import (
    RetryConfig,
    StepExecutionError,
    StepTimeoutError,
    WorkflowDeadlockError,
    retry_with_backoff,
)
from intentflow.models.workflow import SkillExecutionResult
from intentflow.scheduling.retry_strategies import StepRetryPolicy

from conftest import make_settings

NO_DELAY = RetryConfig(max_retries=2, initial_delay_ms=0, jitter=False)


class TestRetryConfig:

    def test_exponential_delay(self):
        config = RetryConfig(initial_delay_ms=100, exponential_base=2.0, jitter=False)
        assert [config.get_delay(n) for n in range(3)] == [0.1, 0.2, 0.4]

    def test_delay_capped(self):
        config = RetryConfig(initial_delay_ms=100, max_delay_ms=250, jitter=False)
        assert config.get_delay(5) == 0.25

    def test_jitter_bounded(self):
        config = RetryConfig(initial_delay_ms=100, jitter=True)
        assert 0.1 <= config.get_delay(0) <= 0.125


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        retries = []
        result = await retry_with_backoff(flaky, NO_DELAY, on_retry=lambda n, e, d: retries.append(n))
        assert result == "ok"
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_gives_up(self):
        async def broken():
            raise ConnectionError("reset")

        with pytest.raises(ConnectionError):
            await retry_with_backoff(broken, NO_DELAY)

    @pytest.mark.asyncio
    async def test_should_retry_predicate(self):
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await retry_with_backoff(broken, NO_DELAY, should_retry=lambda e: not isinstance(e, ValueError))
        assert len(calls) == 1


class TestStepRetryPolicy:

    def test_from_settings(self):
        settings = make_settings(max_retries=2, step_timeout=4.0)
        policy = StepRetryPolicy.from_settings(settings, "lifi")
        assert policy.max_retries == 2
        assert policy.step_timeout == 4.0
        assert policy.total_max_attempts == 3
        assert policy.backoff.jitter is False

    def test_skill_overrides(self):
        settings = make_settings(skill_configs={"lifi": {"max_retries": 0, "step_timeout": 90}})
        policy = StepRetryPolicy.from_settings(settings, "lifi")
        assert policy.max_retries == 0
        assert policy.step_timeout == 90.0
        assert policy.backoff.max_retries == 0
        assert StepRetryPolicy.from_settings(settings, "ens").max_retries == 3

    def test_submitting_action_single_attempt(self):
        settings = make_settings(max_retries=3)
        assert StepRetryPolicy.from_settings(settings, "lifi", "execute").max_retries == 0
        assert StepRetryPolicy.from_settings(settings, "lifi", "quote").max_retries == 3
        assert StepRetryPolicy.from_settings(settings, "lifi").max_retries == 3

    def test_submitting_action_opt_in(self):
        settings = make_settings(max_retries=3, skill_configs={"lifi": {"retry_submissions": True}})
        assert StepRetryPolicy.from_settings(settings, "lifi", "execute").max_retries == 3
        assert StepRetryPolicy.from_settings(settings, "uniswap", "execute").max_retries == 0

    @pytest.mark.asyncio
    async def test_result_passed_through(self):
        policy = StepRetryPolicy(max_retries=0, step_timeout=1.0, backoff=NO_DELAY)

        async def call():
            return SkillExecutionResult.failure("insufficient funds")

        result = await policy.run(call, "s1")
        assert result.success is False
        assert result.error == "insufficient funds"

    @pytest.mark.asyncio
    async def test_timeout_error(self):
        policy = StepRetryPolicy(max_retries=1, step_timeout=0.01, backoff=NO_DELAY)
        attempts = []

        async def call():
            attempts.append(1)
            await asyncio.sleep(1)

        with pytest.raises(StepTimeoutError, match="Step s1 timed out after 0.01s"):
            await policy.run(call, "s1")
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_wrong_return_type(self):
        policy = StepRetryPolicy(max_retries=0, step_timeout=1.0, backoff=NO_DELAY)

        async def call():
            return {"txHash": "0x1"}

        with pytest.raises(StepExecutionError, match="expected SkillExecutionResult"):
            await policy.run(call, "s1")

    @pytest.mark.asyncio
    async def test_exception_wrapped(self):
        policy = StepRetryPolicy(max_retries=0, step_timeout=1.0, backoff=NO_DELAY)

        async def call():
            raise RuntimeError("rpc down")

        with pytest.raises(StepExecutionError, match="Step s1 failed: rpc down") as info:
            await policy.run(call, "s1")
        assert info.value.step_id == "s1"
        assert info.value.kind == "StepExecution"


def test_error_kinds_and_details():
    error = WorkflowDeadlockError("exec_1", {"b": ["a"]})
    assert error.kind == "WorkflowDeadlock"
    assert "b (waiting on a)" in error.message
    data = error.to_dict()
    assert data["kind"] == "WorkflowDeadlock"
    assert data["details"]["blocked_steps"] == {"b": ["a"]}
