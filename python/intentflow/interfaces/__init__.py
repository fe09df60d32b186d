"""intentflow interface contracts (Protocol-based dependency injection)."""

from intentflow.interfaces.event_bus import AgentEvent, AgentEventType, EventListener, IEventBus
from intentflow.interfaces.intent_parser import IntentParser, ParseFailure, ParseResult
from intentflow.interfaces.skill_provider import (
    EstimatingSkillProvider,
    SkillEstimate,
    SkillMetadata,
    SkillProvider,
)

__all__ = [
    "AgentEvent",
    "AgentEventType",
    "EventListener",
    "IEventBus",
    "IntentParser",
    "ParseFailure",
    "ParseResult",
    "EstimatingSkillProvider",
    "SkillEstimate",
    "SkillMetadata",
    "SkillProvider",
]
