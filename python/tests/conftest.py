"""Shared fixtures: fake skill providers, contexts, intents and settings."""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from intentflow.config.settings import OrchestratorSettings
from intentflow.event_bus import InMemoryEventBus
from intentflow.interfaces.event_bus import AgentEvent, AgentEventType
from intentflow.interfaces.skill_provider import SkillMetadata
from intentflow.models.intent import Intent
from intentflow.models.workflow import ExecutionContext, SkillExecutionResult
from intentflow.orchestration.orchestrator import WorkflowOrchestrator
from intentflow.skills.registry import SkillRegistry

ARB_SEPOLIA = 421614
BASE_SEPOLIA = 84532
USER = "0x1234567890abcdef1234567890abcdef12345678"

Handler = Callable[[Dict[str, Any], int], Any]


def default_handler(params: Dict[str, Any], attempt: int) -> SkillExecutionResult:
    if params.get("action") == "quote":
        return SkillExecutionResult.ok({"quoteId": "q-1"})
    return SkillExecutionResult.ok({"txHash": "0xabc", "params": dict(params)})


class FakeSkill:
    """In-memory skill provider with configurable delay and behaviour."""

    def __init__(
        self,
        skill_id: str,
        chains: Sequence[int] = (ARB_SEPOLIA, BASE_SEPOLIA),
        delay: float = 0.0,
        handler: Optional[Handler] = None,
    ) -> None:
        self._metadata = SkillMetadata(id=skill_id, name=skill_id, supported_chains=list(chains))
        self.delay = delay
        self.handler = handler or default_handler
        self.calls: List[Dict[str, Any]] = []

    @property
    def metadata(self) -> SkillMetadata:
        return self._metadata

    def is_chain_supported(self, chain_id: int) -> bool:
        return chain_id in self._metadata.supported_chains

    async def execute(self, params: Dict[str, Any], context: ExecutionContext) -> SkillExecutionResult:
        self.calls.append(dict(params))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.handler(params, len(self.calls))


class EventRecorder:
    """Subscribes to every event type and keeps them in emission order."""

    def __init__(self, bus: InMemoryEventBus) -> None:
        self.events: List[AgentEvent] = []
        for event_type in AgentEventType:
            bus.on(event_type, self.events.append)

    def types(self) -> List[AgentEventType]:
        return [e.type for e in self.events]

    def of(self, event_type: AgentEventType) -> List[AgentEvent]:
        return [e for e in self.events if e.type == event_type]

    def index(self, event_type: AgentEventType, step_id: Optional[str] = None) -> int:
        for i, event in enumerate(self.events):
            if event.type == event_type and (step_id is None or event.data.get("step_id") == step_id):
                return i
        raise AssertionError(f"{event_type} for {step_id} not emitted")


# -- Builders --------------------------------------------------------------


def make_settings(**overrides: Any) -> OrchestratorSettings:
    values: Dict[str, Any] = {
        "auto_execute": False,
        "step_timeout": 2.0,
        "retry_initial_delay_ms": 0,
        "retry_jitter": False,
    }
    values.update(overrides)
    return OrchestratorSettings(**values)


def bridge_intent(recipient: Optional[str] = None) -> Intent:
    params: Dict[str, Any] = {
        "fromChainId": ARB_SEPOLIA,
        "toChainId": BASE_SEPOLIA,
        "token": {"address": "0xUSDC", "symbol": "USDC", "name": "USD Coin", "decimals": 6, "chainId": ARB_SEPOLIA},
        "amount": {"raw": 1500000, "formatted": "1.5", "decimals": 6},
    }
    if recipient:
        params["recipient"] = recipient
    return Intent.from_dict({
        "type": "BRIDGE",
        "description": "Bridge 1.5 USDC to Base Sepolia",
        "chainId": ARB_SEPOLIA,
        "userAddress": USER,
        "params": params,
    })


def swap_intent() -> Intent:
    return Intent.from_dict({
        "type": "SWAP",
        "chainId": ARB_SEPOLIA,
        "params": {
            "fromToken": {"address": "0xWETH", "symbol": "WETH", "decimals": 18, "chainId": ARB_SEPOLIA},
            "toToken": {"address": "0xUSDC", "symbol": "USDC", "decimals": 6, "chainId": ARB_SEPOLIA},
            "amountIn": {"raw": 10 ** 17, "formatted": "0.1", "decimals": 18},
        },
    })


def complex_intent(steps: List[Dict[str, Any]]) -> Intent:
    return Intent.from_dict({
        "type": "COMPLEX",
        "description": "composite",
        "chainId": ARB_SEPOLIA,
        "steps": steps,
    })


# -- Fixtures --------------------------------------------------------------


@pytest.fixture
def context():
    return ExecutionContext(session_id="session-test", chain_id=ARB_SEPOLIA, user_address=USER)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def registry():
    return SkillRegistry([FakeSkill("lifi"), FakeSkill("uniswap"), FakeSkill("circle"), FakeSkill("ens")])


@pytest.fixture
def orchestrator(registry, settings):
    return WorkflowOrchestrator(registry, settings=settings)


@pytest.fixture
def recorder(orchestrator):
    return EventRecorder(orchestrator.event_bus)
