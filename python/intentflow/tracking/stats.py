"""Running aggregate counters over all workflow executions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of the tracker's counters."""

    total_executions: int = 0
    completed_executions: int = 0
    failed_executions: int = 0
    cancelled_executions: int = 0
    average_execution_time: float = 0.0  # seconds, completed runs only
    skill_usage: Dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        settled = self.completed_executions + self.failed_executions
        return self.completed_executions / settled if settled else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_executions": self.total_executions,
            "completed_executions": self.completed_executions,
            "failed_executions": self.failed_executions,
            "cancelled_executions": self.cancelled_executions,
            "average_execution_time": self.average_execution_time,
            "success_rate": self.success_rate,
            "skill_usage": dict(self.skill_usage),
        }


class StatsTracker:
    """Counts executions by outcome and skill dispatches.

    Updated incrementally; the average duration is maintained with
    ``avg += (x - avg) / n`` over completed executions only.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._total = 0
        self._completed = 0
        self._failed = 0
        self._cancelled = 0
        self._avg_duration = 0.0
        self._skill_usage: Dict[str, int] = {}

    def record_started(self) -> None:
        self._total += 1

    def record_completed(self, duration: float) -> None:
        self._completed += 1
        self._avg_duration += (duration - self._avg_duration) / self._completed

    def record_failed(self) -> None:
        self._failed += 1

    def record_cancelled(self) -> None:
        self._cancelled += 1

    def record_skill_dispatch(self, skill_id: str) -> None:
        self._skill_usage[skill_id] = self._skill_usage.get(skill_id, 0) + 1

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            total_executions=self._total,
            completed_executions=self._completed,
            failed_executions=self._failed,
            cancelled_executions=self._cancelled,
            average_execution_time=self._avg_duration,
            skill_usage=dict(self._skill_usage),
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.snapshot().to_dict()
