"""Tests for intentflow.scheduling.step_compiler."""

import pytest

from intentflow.exceptions import CyclicDependencyError, UnsupportedIntentTypeError
from intentflow.models.intent import Intent, IntentType
from intentflow.scheduling.dependency_graph import DependencyGraph
from intentflow.scheduling.step_compiler import StepCompiler

from conftest import ARB_SEPOLIA, BASE_SEPOLIA, USER, bridge_intent, complex_intent, swap_intent


@pytest.fixture
def compiler():
    return StepCompiler()


# ========================================================================
# TOPOLOGIES
# ========================================================================


class TestBridge:

    def test_two_steps_quote_then_execute(self, compiler, context):
        steps = compiler.compile(bridge_intent(), context)
        assert len(steps) == 2
        quote, execute = steps
        assert quote.depends_on == []
        assert execute.depends_on == [quote.id]
        assert quote.skill_id == execute.skill_id == "lifi"

    def test_quote_params(self, compiler, context):
        quote, _ = compiler.compile(bridge_intent(), context)
        assert quote.params == {
            "action": "quote",
            "fromChainId": ARB_SEPOLIA,
            "toChainId": BASE_SEPOLIA,
            "fromTokenAddress": "0xUSDC",
            "toTokenAddress": "0xUSDC",
            "amount": "1.5",
            "slippage": 0.5,
            "fromAddress": USER,
            "toAddress": USER,
        }

    def test_recipient_overrides_to_address(self, compiler, context):
        quote, _ = compiler.compile(bridge_intent(recipient="0xfriend"), context)
        assert quote.params["toAddress"] == "0xfriend"
        assert quote.params["fromAddress"] == USER

    def test_execute_references_quote(self, compiler, context):
        quote, execute = compiler.compile(bridge_intent(), context)
        assert execute.params == {
            "action": "execute",
            "quoteId": "{{" + quote.id + ".output.quoteId}}",
            "chainId": ARB_SEPOLIA,
        }

    def test_step_ids_generated(self, compiler, context):
        quote, execute = compiler.compile(bridge_intent(), context)
        assert quote.id.startswith("step_lifi_")
        assert quote.id != execute.id

    def test_compiled_plan_is_acyclic(self, compiler, context):
        plan = compiler.compile_plan(bridge_intent(), context)
        assert DependencyGraph(plan.steps).has_cycle() is False


class TestOtherTopologies:

    def test_swap(self, compiler, context):
        quote, execute = compiler.compile(swap_intent(), context)
        assert quote.skill_id == "uniswap"
        assert quote.params["action"] == "quote"
        assert quote.params["fromToken"]["symbol"] == "WETH"
        assert quote.params["amountIn"]["raw"] == 10 ** 17
        assert quote.params["slippage"] == 0.5
        assert quote.params["chainId"] == ARB_SEPOLIA
        assert execute.depends_on == [quote.id]
        assert "WETH -> USDC" in execute.description

    def test_swap_zero_slippage_kept(self, compiler, context):
        intent = Intent.from_dict({
            "type": "SWAP",
            "chainId": ARB_SEPOLIA,
            "params": {
                "fromToken": {"address": "0xWETH", "symbol": "WETH", "decimals": 18, "chainId": ARB_SEPOLIA},
                "toToken": {"address": "0xUSDC", "symbol": "USDC", "decimals": 6, "chainId": ARB_SEPOLIA},
                "amountIn": {"raw": 10 ** 17, "formatted": "0.1", "decimals": 18},
                "slippage": 0,
            },
        })
        quote, _ = compiler.compile(intent, context)
        assert quote.params["slippage"] == 0

    def test_cctp(self, compiler, context):
        intent = Intent.from_dict({
            "type": "CCTP_TRANSFER",
            "chainId": ARB_SEPOLIA,
            "params": {
                "fromChainId": ARB_SEPOLIA,
                "toChainId": BASE_SEPOLIA,
                "amount": {"raw": 5_000_000, "formatted": "5", "decimals": 6},
            },
        })
        quote, execute = compiler.compile(intent, context)
        assert quote.skill_id == "circle"
        assert quote.params["recipient"] == USER
        assert quote.params["amount"]["formatted"] == "5"
        assert execute.params["chainId"] == ARB_SEPOLIA

    def test_resolve_ens(self, compiler, context):
        intent = Intent.from_dict({"type": "RESOLVE_ENS", "chainId": 1, "params": {"domain": "nick.eth"}})
        (step,) = compiler.compile(intent, context)
        assert step.skill_id == "ens"
        assert step.params == {"action": "resolve", "domain": "nick.eth", "chainId": 1}

    def test_reverse_resolve(self, compiler, context):
        intent = Intent.from_dict({"type": "REVERSE_RESOLVE", "chainId": 1, "params": {"address": USER}})
        (step,) = compiler.compile(intent, context)
        assert step.params["action"] == "reverse"
        assert step.params["address"] == USER

    def test_complex_preserves_dependencies(self, compiler, context):
        intent = complex_intent([
            {"id": "a", "skill": "ens", "params": {"domain": "x.eth"}},
            {"id": "b", "skill": "lifi", "dependsOn": ["a"],
             "params": {"to": "{{a.output.address}}"}},
        ])
        a, b = compiler.compile(intent, context)
        assert a.skill_id == "ens"
        assert b.depends_on == [a.id]
        assert b.params["to"] == "{{" + a.id + ".output.address}}"

    def test_complex_cycle_rejected(self, compiler, context):
        intent = complex_intent([
            {"id": "a", "skill": "ens", "dependsOn": ["b"]},
            {"id": "b", "skill": "ens", "dependsOn": ["a"]},
        ])
        with pytest.raises(CyclicDependencyError):
            compiler.compile_plan(intent, context)


# ========================================================================
# UNSUPPORTED / EXTENSION
# ========================================================================


class TestUnsupported:

    @pytest.mark.parametrize("intent_type", ["ADD_LIQUIDITY", "REMOVE_LIQUIDITY"])
    def test_liquidity_unsupported(self, compiler, context, intent_type):
        intent = Intent.from_dict({"type": intent_type, "chainId": 1})
        with pytest.raises(UnsupportedIntentTypeError, match=intent_type):
            compiler.compile(intent, context)

    def test_complex_without_steps_unsupported(self, compiler, context):
        with pytest.raises(UnsupportedIntentTypeError, match="no parser-provided steps"):
            compiler.compile(complex_intent([]), context)

    def test_register_custom_topology(self, compiler, context):
        def liquidity(intent, ctx, builder):
            builder.step("add", "uniswap", "Add liquidity", {"action": "add", **intent.params})

        compiler.register(IntentType.ADD_LIQUIDITY, liquidity)
        intent = Intent.from_dict({"type": "ADD_LIQUIDITY", "chainId": 1, "params": {"pool": "p"}})
        (step,) = compiler.compile(intent, context)
        assert step.params == {"action": "add", "pool": "p"}
        assert compiler.supports(IntentType.ADD_LIQUIDITY)
