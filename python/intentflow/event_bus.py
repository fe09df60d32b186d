"""Lightweight in-memory event bus satisfying the IEventBus protocol.

Used by the orchestrator to notify observers of workflow and step
lifecycle transitions.  Delivery is synchronous, in registration order.
"""

import asyncio
import inspect
import logging
import uuid
from typing import Any, Dict, List, Optional, Set, Tuple

from intentflow.interfaces.event_bus import AgentEvent, AgentEventType, EventListener

logger = logging.getLogger(__name__)


class InMemoryEventBus:
    """Simple synchronous event bus for single-process use.

    Satisfies ``intentflow.interfaces.IEventBus`` via structural subtyping.
    Coroutine listeners are scheduled on the running loop rather than
    awaited.
    """

    def __init__(self) -> None:
        # event type → [(sub_id, listener)] in registration order
        self._subscribers: Dict[AgentEventType, List[Tuple[str, EventListener]]] = {}
        self._pending: Set["asyncio.Task[Any]"] = set()

    def emit(
        self,
        event_type: AgentEventType,
        session_id: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> AgentEvent:
        event = AgentEvent(type=event_type, session_id=session_id, data=dict(data or {}))
        for _, listener in list(self._subscribers.get(event_type, [])):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event_type)
            except Exception:
                logger.exception("Event listener failed for %s", event_type.value)
        return event

    def on(self, event_type: AgentEventType, listener: EventListener) -> str:
        sub_id = uuid.uuid4().hex[:12]
        self._subscribers.setdefault(event_type, []).append((sub_id, listener))
        return sub_id

    def off(self, event_type: AgentEventType, listener: EventListener) -> bool:
        listeners = self._subscribers.get(event_type, [])
        for index, (_, registered) in enumerate(listeners):
            if registered == listener:
                del listeners[index]
                return True
        return False

    def unsubscribe(self, subscription_id: str) -> bool:
        for listeners in self._subscribers.values():
            for index, (sub_id, _) in enumerate(listeners):
                if sub_id == subscription_id:
                    del listeners[index]
                    return True
        return False

    def listener_count(self, event_type: Optional[AgentEventType] = None) -> int:
        if event_type is not None:
            return len(self._subscribers.get(event_type, []))
        return sum(len(listeners) for listeners in self._subscribers.values())

    def clear(self) -> None:
        self._subscribers.clear()

    # ── Internal helpers ─────────────────────────────────────────────

    def _schedule(self, awaitable: Any, event_type: AgentEventType) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "Async listener for %s skipped: no running event loop", event_type.value
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(self._run_async_listener(awaitable, event_type))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _run_async_listener(awaitable: Any, event_type: AgentEventType) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("Event listener failed for %s", event_type.value)
