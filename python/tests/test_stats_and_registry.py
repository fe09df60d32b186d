"""Tests for intentflow.tracking (stats tracker and execution registry)."""

import statistics

import pytest

from intentflow.event_bus import InMemoryEventBus
from intentflow.interfaces.event_bus import AgentEventType
from intentflow.models.workflow import (
    ExecutionContext,
    ExecutionStatus,
    WorkflowExecution,
    WorkflowPlan,
    WorkflowStep,
)
from intentflow.tracking.execution_registry import ExecutionRegistry
from intentflow.tracking.stats import StatsTracker


def _execution(execution_id="e1", session_id="s1"):
    plan = WorkflowPlan(
        id=f"plan-{execution_id}",
        intent_id="i1",
        steps=[WorkflowStep(id="a", skill_id="ens", description="")],
    )
    return WorkflowExecution(
        id=execution_id,
        plan=plan,
        context=ExecutionContext(session_id=session_id, chain_id=1),
    )


# ========================================================================
# STATS
# ========================================================================


class TestStatsTracker:

    def test_counts(self):
        stats = StatsTracker()
        for _ in range(3):
            stats.record_started()
        stats.record_completed(1.0)
        stats.record_failed()
        stats.record_cancelled()
        snap = stats.snapshot()
        assert snap.total_executions == 3
        assert snap.completed_executions == 1
        assert snap.failed_executions == 1
        assert snap.cancelled_executions == 1
        assert snap.success_rate == 0.5

    @pytest.mark.parametrize("durations", [[1.0], [1.0, 2.0, 3.0, 4.0], [0.25, 7.5, 3.1, 0.9, 12.0]])
    def test_incremental_average_equals_mean(self, durations):
        stats = StatsTracker()
        for d in durations:
            stats.record_completed(d)
        assert stats.snapshot().average_execution_time == pytest.approx(statistics.mean(durations))

    def test_failures_do_not_affect_average(self):
        stats = StatsTracker()
        stats.record_completed(2.0)
        stats.record_failed()
        assert stats.snapshot().average_execution_time == 2.0

    def test_skill_usage(self):
        stats = StatsTracker()
        stats.record_skill_dispatch("lifi")
        stats.record_skill_dispatch("lifi")
        stats.record_skill_dispatch("ens")
        assert stats.snapshot().skill_usage == {"lifi": 2, "ens": 1}

    def test_snapshot_is_a_copy(self):
        stats = StatsTracker()
        stats.record_skill_dispatch("lifi")
        snap = stats.snapshot()
        snap.skill_usage["lifi"] = 99
        assert stats.snapshot().skill_usage == {"lifi": 1}

    def test_reset(self):
        stats = StatsTracker()
        stats.record_started()
        stats.record_completed(3.0)
        stats.reset()
        assert stats.to_dict()["total_executions"] == 0
        assert stats.to_dict()["average_execution_time"] == 0.0


# ========================================================================
# EXECUTION REGISTRY
# ========================================================================


class TestExecutionRegistry:

    def test_add_get_contains(self):
        registry = ExecutionRegistry()
        execution = _execution()
        registry.add(execution)
        assert registry.get("e1") is execution
        assert "e1" in registry
        assert len(registry) == 1

    def test_duplicate_add_rejected(self):
        registry = ExecutionRegistry()
        registry.add(_execution())
        with pytest.raises(ValueError):
            registry.add(_execution())

    def test_list_filters(self):
        registry = ExecutionRegistry()
        a, b, c = _execution("a", "s1"), _execution("b", "s2"), _execution("c", "s1")
        b.status = ExecutionStatus.COMPLETED
        for e in (a, b, c):
            registry.add(e)
        assert [e.id for e in registry.list()] == ["a", "b", "c"]
        assert [e.id for e in registry.list(session_id="s1")] == ["a", "c"]
        assert [e.id for e in registry.list(status=ExecutionStatus.COMPLETED)] == ["b"]

    def test_cancel_marks_and_emits(self):
        bus = InMemoryEventBus()
        events = []
        bus.on(AgentEventType.USER_CANCELLED, events.append)
        registry = ExecutionRegistry(bus)
        execution = _execution()
        execution.status = ExecutionStatus.EXECUTING
        registry.add(execution)

        assert registry.cancel("e1") is True
        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.error == "Cancelled by user"
        assert execution.error_kind == "WorkflowCancelled"
        assert execution.end_time is not None
        assert [e.data["execution_id"] for e in events] == ["e1"]

    def test_cancel_unknown_is_noop(self):
        registry = ExecutionRegistry()
        registry.add(_execution())
        assert registry.cancel("missing") is False
        assert len(registry) == 1
        assert registry.get("e1").status == ExecutionStatus.PENDING

    def test_cancel_terminal_is_noop(self):
        registry = ExecutionRegistry()
        execution = _execution()
        execution.status = ExecutionStatus.COMPLETED
        registry.add(execution)
        assert registry.cancel("e1") is False
        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.error is None

    def test_remove_and_clear(self):
        registry = ExecutionRegistry()
        registry.add(_execution("a"))
        registry.add(_execution("b"))
        assert registry.remove("a") is True
        assert registry.remove("a") is False
        registry.clear()
        assert len(registry) == 0
