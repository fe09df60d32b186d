"""Interface for the orchestrator's event bus.

Observers subscribe to lifecycle transitions instead of polling executions.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol


class AgentEventType(str, Enum):
    """Closed set of lifecycle events."""
    # Intent
    INTENT_RECEIVED = "INTENT_RECEIVED"
    INTENT_PARSED = "INTENT_PARSED"
    # Workflow lifecycle
    WORKFLOW_CREATED = "WORKFLOW_CREATED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"
    WORKFLOW_FAILED = "WORKFLOW_FAILED"
    # Step lifecycle
    STEP_STARTED = "STEP_STARTED"
    STEP_COMPLETED = "STEP_COMPLETED"
    STEP_FAILED = "STEP_FAILED"
    # User interaction
    USER_CONFIRMATION_REQUIRED = "USER_CONFIRMATION_REQUIRED"
    USER_CONFIRMED = "USER_CONFIRMED"
    USER_CANCELLED = "USER_CANCELLED"
    # Errors
    ERROR_OCCURRED = "ERROR_OCCURRED"


@dataclass(frozen=True)
class AgentEvent:
    """A single emitted event."""

    type: AgentEventType
    session_id: str
    timestamp: float = field(default_factory=time.time)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            "data": dict(self.data),
        }


EventListener = Callable[[AgentEvent], Any]


class IEventBus(Protocol):
    """Interface for synchronous publish-subscribe event messaging."""

    def emit(
        self,
        event_type: AgentEventType,
        session_id: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> AgentEvent:
        """Build an event and deliver it to every listener of its type.

        Args:
            event_type: Type of event
            session_id: Session the event belongs to
            data: Event payload

        Returns:
            The delivered event
        """
        ...

    def on(self, event_type: AgentEventType, listener: EventListener) -> str:
        """Register a listener.

        Returns:
            Subscription ID for later unsubscribe
        """
        ...

    def off(self, event_type: AgentEventType, listener: EventListener) -> bool:
        """Remove a listener; returns False if it was not registered."""
        ...
