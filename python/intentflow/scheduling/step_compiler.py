"""Intent → step list compiler.

Each intent type maps to a fixed step topology.  Topology builders are
plain functions ``fn(intent, context, builder)`` that declare steps on a
:class:`PlanBuilder`; extra builders can be registered per intent type.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from intentflow.exceptions import UnsupportedIntentTypeError, WorkflowValidationError
from intentflow.models.intent import (
    BridgeParams,
    CctpTransferParams,
    Intent,
    IntentType,
    ResolveEnsParams,
    ReverseResolveParams,
    SwapParams,
)
from intentflow.models.workflow import ExecutionContext, WorkflowPlan, WorkflowStep, generate_step_id
from intentflow.scheduling.dependency_graph import build_plan
from intentflow.scheduling.plan_builder import PlanBuilder

logger = logging.getLogger(__name__)

TopologyBuilder = Callable[[Intent, ExecutionContext, PlanBuilder], None]

P = TypeVar("P", bound=BaseModel)

DEFAULT_SLIPPAGE = 0.5


def _typed_params(intent: Intent, model: Type[P]) -> P:
    if not isinstance(intent.params, model):
        raise WorkflowValidationError(
            f"{intent.type.value} intent requires {model.__name__}",
            details={"intent_id": intent.id},
        )
    return intent.params


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


# ── Topologies ───────────────────────────────────────────────────────


def ens_resolve_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    params = _typed_params(intent, ResolveEnsParams)
    builder.step(
        "resolve", "ens", f"Resolve ENS domain: {params.domain}",
        {"action": "resolve", "domain": params.domain, "chainId": intent.chain_id},
    )


def ens_reverse_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    params = _typed_params(intent, ReverseResolveParams)
    builder.step(
        "reverse", "ens", f"Reverse resolve address: {params.address}",
        {"action": "reverse", "address": params.address, "chainId": intent.chain_id},
    )


def swap_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    params = _typed_params(intent, SwapParams)
    pair = f"{params.from_token.symbol} -> {params.to_token.symbol}"
    builder.step(
        "quote", "uniswap", f"Get {pair} swap quote",
        {
            "action": "quote",
            "fromToken": _dump(params.from_token),
            "toToken": _dump(params.to_token),
            "amountIn": _dump(params.amount_in),
            "slippage": params.slippage,
            "chainId": intent.chain_id,
        },
    )
    builder.step(
        "execute", "uniswap", f"Execute {pair} swap",
        {
            "action": "execute",
            "quoteId": builder.ref("quote", "quoteId"),
            "chainId": intent.chain_id,
        },
        depends_on=["quote"],
    )


def bridge_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    params = _typed_params(intent, BridgeParams)
    builder.step(
        "quote", "lifi",
        f"Get {params.token.symbol} cross-chain quote from chain "
        f"{params.from_chain_id} to chain {params.to_chain_id}",
        {
            "action": "quote",
            "fromChainId": params.from_chain_id,
            "toChainId": params.to_chain_id,
            "fromTokenAddress": params.token.address,
            "toTokenAddress": params.token.address,
            "amount": params.amount.formatted,
            "slippage": DEFAULT_SLIPPAGE,
            "fromAddress": context.user_address,
            "toAddress": params.recipient or context.user_address,
        },
    )
    builder.step(
        "execute", "lifi", f"Execute {params.token.symbol} cross-chain transfer",
        {
            "action": "execute",
            "quoteId": builder.ref("quote", "quoteId"),
            "chainId": params.from_chain_id,
        },
        depends_on=["quote"],
    )


def cctp_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    params = _typed_params(intent, CctpTransferParams)
    builder.step(
        "quote", "circle",
        f"Get USDC CCTP cross-chain quote from chain "
        f"{params.from_chain_id} to chain {params.to_chain_id}",
        {
            "action": "quote",
            "fromChainId": params.from_chain_id,
            "toChainId": params.to_chain_id,
            "amount": _dump(params.amount),
            "recipient": params.recipient or context.user_address,
        },
    )
    builder.step(
        "execute", "circle", "Execute USDC CCTP cross-chain transfer",
        {
            "action": "execute",
            "quoteId": builder.ref("quote", "quoteId"),
            "chainId": params.from_chain_id,
        },
        depends_on=["quote"],
    )


def complex_steps(intent: Intent, context: ExecutionContext, builder: PlanBuilder) -> None:
    if not intent.steps:
        raise UnsupportedIntentTypeError(intent.type, reason="no parser-provided steps")
    for step in intent.steps:
        builder.step(
            step.id, step.skill, step.description or f"Run {step.skill}",
            dict(step.params), depends_on=list(step.depends_on),
        )


DEFAULT_TOPOLOGIES: Dict[IntentType, TopologyBuilder] = {
    IntentType.RESOLVE_ENS: ens_resolve_steps,
    IntentType.REVERSE_RESOLVE: ens_reverse_steps,
    IntentType.SWAP: swap_steps,
    IntentType.BRIDGE: bridge_steps,
    IntentType.CCTP_TRANSFER: cctp_steps,
    IntentType.COMPLEX: complex_steps,
}


# ── Compiler ─────────────────────────────────────────────────────────


class StepCompiler:
    """Compiles intents into dependency-annotated step lists.

    Deterministic in topology; step ids are freshly generated per call.
    """

    def __init__(
        self,
        topologies: Optional[Dict[IntentType, TopologyBuilder]] = None,
        id_factory: Callable[[str], str] = generate_step_id,
    ) -> None:
        self._topologies: Dict[IntentType, TopologyBuilder] = dict(
            DEFAULT_TOPOLOGIES if topologies is None else topologies
        )
        self._id_factory = id_factory

    def register(self, intent_type: IntentType, fn: TopologyBuilder) -> None:
        """Register (or replace) the topology for *intent_type*."""
        self._topologies[intent_type] = fn
        logger.debug("Registered step topology for %s", intent_type.value)

    def supports(self, intent_type: IntentType) -> bool:
        return intent_type in self._topologies

    def compile(self, intent: Intent, context: ExecutionContext) -> List[WorkflowStep]:
        """Compile *intent* into its step list.

        Raises:
            UnsupportedIntentTypeError: if no topology exists for the type.
            WorkflowValidationError: if the params or declared steps are invalid.
        """
        topology = self._topologies.get(intent.type)
        if topology is None:
            raise UnsupportedIntentTypeError(intent.type)

        builder = PlanBuilder(intent.id, id_factory=self._id_factory)
        topology(intent, context, builder)
        steps = builder.build_steps()
        logger.debug(
            "Compiled %s intent %s into %d step(s)", intent.type.value, intent.id, len(steps)
        )
        return steps

    def compile_plan(self, intent: Intent, context: ExecutionContext) -> WorkflowPlan:
        """Compile *intent* and validate the result as a DAG.

        Raises:
            CyclicDependencyError: if the compiled steps form a cycle.
        """
        return build_plan(intent.id, self.compile(intent, context))
