"""Typed intent model.

Intents arrive from the external text-to-structure parser as JSON
(camelCase keys).  These models validate that payload against the
parameter variant for the intent's type and freeze the result.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class IntentType(str, Enum):
    """Supported intent types."""

    # Identity
    RESOLVE_ENS = "RESOLVE_ENS"
    REVERSE_RESOLVE = "REVERSE_RESOLVE"

    # Trading
    SWAP = "SWAP"
    ADD_LIQUIDITY = "ADD_LIQUIDITY"
    REMOVE_LIQUIDITY = "REMOVE_LIQUIDITY"

    # Cross-chain
    BRIDGE = "BRIDGE"
    CCTP_TRANSFER = "CCTP_TRANSFER"

    # Composite
    COMPLEX = "COMPLEX"


class _IntentModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ── Value objects ────────────────────────────────────────────────────


class TokenInfo(_IntentModel):
    address: str
    symbol: str
    name: str = ""
    decimals: int = Field(default=18, ge=0, le=36)
    chain_id: int


class Amount(_IntentModel):
    """Token amount in base units plus its human-readable form."""

    raw: int = Field(ge=0)
    formatted: str
    decimals: int = Field(ge=0, le=36)


def create_amount(raw: int, decimals: int) -> Amount:
    """Build an :class:`Amount` from base units, trimming trailing zeros."""
    divisor = 10 ** decimals
    integer_part, fractional_part = divmod(raw, divisor)

    formatted = str(integer_part)
    if fractional_part > 0:
        fractional = str(fractional_part).rjust(decimals, "0").rstrip("0")
        formatted = f"{integer_part}.{fractional}"

    return Amount(raw=raw, formatted=formatted, decimals=decimals)


# ── Parameter variants ───────────────────────────────────────────────


class ResolveEnsParams(_IntentModel):
    domain: str = Field(min_length=1)


class ReverseResolveParams(_IntentModel):
    address: str = Field(min_length=1)


class SwapParams(_IntentModel):
    from_token: TokenInfo
    to_token: TokenInfo
    amount_in: Amount
    slippage: float = Field(default=0.5, ge=0, le=100)
    deadline: Optional[int] = None


class BridgeParams(_IntentModel):
    from_chain_id: int
    to_chain_id: int
    token: TokenInfo
    amount: Amount
    recipient: Optional[str] = None


class CctpTransferParams(_IntentModel):
    from_chain_id: int
    to_chain_id: int
    amount: Amount
    recipient: Optional[str] = None


# Plain dicts first: typed variants are produced by the before-validator on
# Intent, so a raw dict is never coerced into the wrong variant.
IntentParams = Union[
    Dict[str, Any],
    ResolveEnsParams,
    ReverseResolveParams,
    SwapParams,
    BridgeParams,
    CctpTransferParams,
]

PARAMS_BY_TYPE: Dict[IntentType, Type[BaseModel]] = {
    IntentType.RESOLVE_ENS: ResolveEnsParams,
    IntentType.REVERSE_RESOLVE: ReverseResolveParams,
    IntentType.SWAP: SwapParams,
    IntentType.BRIDGE: BridgeParams,
    IntentType.CCTP_TRANSFER: CctpTransferParams,
}


class IntentStep(_IntentModel):
    """A parser-provided step of a composite intent."""

    id: str
    skill: str
    description: str = ""
    params: Dict[str, Any] = Field(default_factory=dict)
    depends_on: List[str] = Field(default_factory=list)


# ── Intent ───────────────────────────────────────────────────────────


def generate_intent_id() -> str:
    return f"intent_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class Intent(_IntentModel):
    """A typed, structured description of a user-requested operation."""

    id: str = Field(default_factory=generate_intent_id)
    type: IntentType
    description: str = ""
    params: IntentParams = Field(default_factory=dict, union_mode="left_to_right")
    chain_id: int
    user_address: Optional[str] = None
    created_at: float = Field(default_factory=time.time)
    steps: List[IntentStep] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _validate_params_variant(cls, data: Any) -> Any:
        """Validate ``params`` against the model registered for ``type``."""
        if not isinstance(data, dict):
            return data
        raw_type = data.get("type")
        try:
            intent_type = IntentType(raw_type)
        except ValueError:
            return data
        model = PARAMS_BY_TYPE.get(intent_type)
        params = data.get("params")
        if model is not None and isinstance(params, dict):
            data = {**data, "params": model.model_validate(params)}
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Intent":
        """Validate a parser payload (camelCase or snake_case keys)."""
        return cls.model_validate(payload)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
