"""Execution registry: id → WorkflowExecution.

Executions are retained until explicitly removed or cleared.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterator, List, Optional

from intentflow.exceptions import WorkflowCancelledError
from intentflow.interfaces.event_bus import AgentEventType, IEventBus
from intentflow.models.workflow import ExecutionStatus, WorkflowExecution

logger = logging.getLogger(__name__)


class ExecutionRegistry:
    """Keyed store of executions, in insertion order."""

    def __init__(self, event_bus: Optional[IEventBus] = None) -> None:
        self._executions: Dict[str, WorkflowExecution] = {}
        self._event_bus = event_bus

    def __len__(self) -> int:
        return len(self._executions)

    def __contains__(self, execution_id: object) -> bool:
        return execution_id in self._executions

    def __iter__(self) -> Iterator[WorkflowExecution]:
        return iter(list(self._executions.values()))

    def add(self, execution: WorkflowExecution) -> None:
        """Register *execution*.

        Raises:
            ValueError: if an execution with the same id is already present.
        """
        if execution.id in self._executions:
            raise ValueError(f"Execution {execution.id!r} already registered")
        self._executions[execution.id] = execution

    def get(self, execution_id: str) -> Optional[WorkflowExecution]:
        return self._executions.get(execution_id)

    def list(
        self,
        status: Optional[ExecutionStatus] = None,
        session_id: Optional[str] = None,
    ) -> List[WorkflowExecution]:
        """Executions in insertion order, optionally filtered."""
        return [
            e for e in self._executions.values()
            if (status is None or e.status == status)
            and (session_id is None or e.session_id == session_id)
        ]

    def cancel(self, execution_id: str) -> bool:
        """Mark a running execution cancelled.

        Advisory only: provider calls already in flight run to completion.
        Returns False, without mutating anything, for an unknown id or an
        execution that is already terminal.
        """
        execution = self._executions.get(execution_id)
        if execution is None or execution.is_terminal:
            return False

        error = WorkflowCancelledError(execution_id)
        execution.status = ExecutionStatus.CANCELLED
        execution.end_time = time.time()
        execution.error = error.message
        execution.error_kind = error.kind
        logger.info("Execution %s cancelled", execution_id)

        if self._event_bus is not None:
            self._event_bus.emit(
                AgentEventType.USER_CANCELLED,
                execution.session_id,
                {"execution_id": execution_id, "plan_id": execution.plan.id},
            )
        return True

    def remove(self, execution_id: str) -> bool:
        return self._executions.pop(execution_id, None) is not None

    def clear(self) -> None:
        self._executions.clear()
