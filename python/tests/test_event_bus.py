"""Tests for the in-memory event bus (intentflow/event_bus.py)."""

import asyncio
import logging

import pytest

from intentflow.event_bus import InMemoryEventBus
from intentflow.interfaces.event_bus import AgentEvent, AgentEventType


@pytest.fixture
def bus():
    return InMemoryEventBus()


def test_emit_builds_event(bus):
    event = bus.emit(AgentEventType.WORKFLOW_CREATED, "s1", {"plan_id": "p"})
    assert isinstance(event, AgentEvent)
    assert event.type == AgentEventType.WORKFLOW_CREATED
    assert event.session_id == "s1"
    assert event.data == {"plan_id": "p"}
    assert event.timestamp > 0


def test_listeners_called_in_registration_order(bus):
    calls = []
    bus.on(AgentEventType.STEP_STARTED, lambda e: calls.append("first"))
    bus.on(AgentEventType.STEP_STARTED, lambda e: calls.append("second"))
    bus.on(AgentEventType.STEP_FAILED, lambda e: calls.append("other"))
    bus.emit(AgentEventType.STEP_STARTED, "s1")
    assert calls == ["first", "second"]


def test_raising_listener_does_not_abort_emission(bus, caplog):
    calls = []

    def broken(event):
        raise RuntimeError("observer bug")

    bus.on(AgentEventType.STEP_COMPLETED, broken)
    bus.on(AgentEventType.STEP_COMPLETED, lambda e: calls.append(e.session_id))
    with caplog.at_level(logging.ERROR):
        bus.emit(AgentEventType.STEP_COMPLETED, "s1")
    assert calls == ["s1"]
    assert "Event listener failed for STEP_COMPLETED" in caplog.text


def test_off_removes_listener(bus):
    calls = []
    listener = calls.append
    bus.on(AgentEventType.USER_CANCELLED, listener)
    assert bus.off(AgentEventType.USER_CANCELLED, listener) is True
    bus.emit(AgentEventType.USER_CANCELLED, "s1")
    assert calls == []
    assert bus.off(AgentEventType.USER_CANCELLED, listener) is False


def test_unsubscribe_by_id(bus):
    calls = []
    sub_id = bus.on(AgentEventType.WORKFLOW_FAILED, calls.append)
    assert len(sub_id) == 12
    assert bus.unsubscribe(sub_id) is True
    assert bus.unsubscribe(sub_id) is False
    bus.emit(AgentEventType.WORKFLOW_FAILED, "s1")
    assert calls == []


def test_listener_count(bus):
    bus.on(AgentEventType.STEP_STARTED, lambda e: None)
    bus.on(AgentEventType.STEP_FAILED, lambda e: None)
    assert bus.listener_count(AgentEventType.STEP_STARTED) == 1
    assert bus.listener_count() == 2
    bus.clear()
    assert bus.listener_count() == 0


def test_event_to_dict(bus):
    event = bus.emit(AgentEventType.ERROR_OCCURRED, "s1", {"error": "x"})
    data = event.to_dict()
    assert data["type"] == "ERROR_OCCURRED"
    assert data["data"] == {"error": "x"}


@pytest.mark.asyncio
async def test_async_listener_is_scheduled(bus):
    received = []

    async def listener(event):
        received.append(event.type)

    bus.on(AgentEventType.WORKFLOW_COMPLETED, listener)
    bus.emit(AgentEventType.WORKFLOW_COMPLETED, "s1")
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert received == [AgentEventType.WORKFLOW_COMPLETED]
