"""
Tests for DexSwap: V2 router calls, V3 exactInputSingle, V4 UniversalRouter.

Тесты свопов: селекторы, раскладка calldata, value для native,
zeroForOne из канонического порядка, approvals только при нехватке allowance.
"""

import pytest
from eth_abi import decode

from amm_engine.contracts.transaction import Allowances
from amm_engine.contracts.v4.abis import ACTION_PARAM_TYPES, Commands, V4Actions
from amm_engine.dex_swap import DexSwap, SwapParams
from amm_engine.errors import EncodingError, InputValidationError, UnsupportedConfigurationError
from amm_engine.math.ticks import DYNAMIC_FEE_FLAG
from amm_engine.positions import ProtocolVersion

from conftest import (
    DEADLINE,
    HOOKS,
    NATIVE,
    SELECTORS,
    TOKEN_A,
    TOKEN_B,
    WALLET,
    decode_unlock_data,
    selector,
)

V2_SWAP_TYPES = ['uint256', 'uint256', 'address[]', 'address', 'uint256']
V2_ETH_IN_TYPES = ['uint256', 'address[]', 'address', 'uint256']
V3_SWAP_TYPES = ['(address,address,uint24,address,uint256,uint256,uint160)']


@pytest.fixture
def swapper(config):
    return DexSwap(config)


def _swap(version, **kwargs):
    defaults = dict(
        version=version,
        token_in=TOKEN_A,
        token_out=TOKEN_B,
        amount_in=10**18,
        recipient=WALLET,
        amount_out_min=1_900 * 10**6,
        deadline=DEADLINE,
    )
    defaults.update(kwargs)
    return SwapParams(**defaults)


def _decode_execute(data: bytes):
    commands, inputs, deadline = decode(['bytes', 'bytes[]', 'uint256'], data[4:])
    return commands, list(inputs), deadline


class TestMinOut:

    def test_explicit_min(self, swapper):
        assert swapper.resolve_min_out(_swap(ProtocolVersion.V2)) == 1_900 * 10**6

    def test_from_expected_with_default_slippage(self, swapper):
        params = _swap(ProtocolVersion.V2, amount_out_min=None, expected_amount_out=2_000 * 10**6)
        # 0.5% default
        assert swapper.resolve_min_out(params) == 1_990 * 10**6

    def test_from_expected_with_custom_slippage(self, swapper):
        params = _swap(ProtocolVersion.V2, amount_out_min=None, expected_amount_out=1000, slippage=10)
        assert swapper.resolve_min_out(params) == 900

    def test_missing(self, swapper):
        with pytest.raises(InputValidationError):
            swapper.resolve_min_out(_swap(ProtocolVersion.V2, amount_out_min=None))


class TestV2Swap:

    def test_token_to_token(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2))
        assert len(steps) == 1
        step = steps[0]
        assert step.action == "swap"
        assert step.to.lower() == swapper.config.v2_router.lower()
        assert step.value == 0
        assert selector(step.data) == SELECTORS["swapExactTokensForTokens"]

        amount_in, min_out, path, to, deadline = decode(V2_SWAP_TYPES, step.data[4:])
        assert amount_in == 10**18
        assert min_out == 1_900 * 10**6
        assert [p.lower() for p in path] == [TOKEN_A, TOKEN_B]
        assert to.lower() == WALLET
        assert deadline == DEADLINE

    def test_eth_in_uses_wrapped_path_and_value(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2, token_in=NATIVE, token_out=TOKEN_A))
        step = steps[0]
        assert selector(step.data) == SELECTORS["swapExactETHForTokens"]
        assert step.value == 10**18

        min_out, path, to, deadline = decode(V2_ETH_IN_TYPES, step.data[4:])
        assert [p.lower() for p in path] == [swapper.config.wrapped_native.lower(), TOKEN_A]
        assert deadline == DEADLINE

    def test_eth_out(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2, token_in=TOKEN_A, token_out=NATIVE))
        step = steps[0]
        assert selector(step.data) == SELECTORS["swapExactTokensForETH"]
        assert step.value == 0
        _, _, path, _, _ = decode(V2_SWAP_TYPES, step.data[4:])
        assert path[1].lower() == swapper.config.wrapped_native.lower()

    def test_approval_prepended(self, swapper, no_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2, allowances=no_allowances))
        assert [s.action for s in steps] == ["approve", "swap"]
        assert steps[0].to.lower() == TOKEN_A
        spender, amount = decode(['address', 'uint256'], steps[0].data[4:])
        assert spender.lower() == swapper.config.v2_router.lower()
        assert amount == 10**18

    def test_no_approval_when_sufficient(self, swapper, full_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2, allowances=full_allowances))
        assert [s.action for s in steps] == ["swap"]

    def test_native_in_needs_no_approval(self, swapper, no_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V2, token_in=NATIVE, allowances=no_allowances))
        assert [s.action for s in steps] == ["swap"]

    def test_recipient_required(self, swapper):
        with pytest.raises(InputValidationError):
            swapper.build_swap(_swap(ProtocolVersion.V2, recipient=None))

    def test_same_token(self, swapper):
        with pytest.raises(InputValidationError):
            swapper.build_swap(_swap(ProtocolVersion.V2, token_out=TOKEN_A))


class TestV3Swap:

    def test_exact_input_single_layout(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V3, fee=500))
        step = steps[0]
        assert step.to.lower() == swapper.config.v3_swap_router.lower()
        assert step.value == 0
        assert selector(step.data) == SELECTORS["exactInputSingle"]

        (fields,) = decode(V3_SWAP_TYPES, step.data[4:])
        token_in, token_out, fee, recipient, amount_in, min_out, price_limit = fields
        assert token_in.lower() == TOKEN_A
        assert token_out.lower() == TOKEN_B
        assert fee == 500
        assert recipient.lower() == WALLET
        assert amount_in == 10**18
        assert min_out == 1_900 * 10**6
        assert price_limit == 0

    def test_reverse_direction_keeps_caller_order(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V3, token_in=TOKEN_B, token_out=TOKEN_A))
        (fields,) = decode(V3_SWAP_TYPES, steps[0].data[4:])
        assert fields[0].lower() == TOKEN_B
        assert fields[1].lower() == TOKEN_A

    def test_approval_to_router(self, swapper, no_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V3, allowances=no_allowances))
        assert [s.action for s in steps] == ["approve", "swap"]
        spender, _ = decode(['address', 'uint256'], steps[0].data[4:])
        assert spender.lower() == swapper.config.v3_swap_router.lower()

    @pytest.mark.parametrize("token_in,token_out", [
        (NATIVE, TOKEN_A),
        (TOKEN_A, NATIVE),
    ], ids=["native_in", "native_out"])
    def test_native_rejected(self, swapper, token_in, token_out):
        with pytest.raises(UnsupportedConfigurationError):
            swapper.build_swap(_swap(ProtocolVersion.V3, token_in=token_in, token_out=token_out))

    def test_dynamic_fee_rejected(self, swapper):
        with pytest.raises(UnsupportedConfigurationError):
            swapper.build_swap(_swap(ProtocolVersion.V3, fee=DYNAMIC_FEE_FLAG))


class TestV4Swap:

    def _actions(self, step):
        commands, inputs, deadline = _decode_execute(step.data)
        assert commands == bytes([Commands.V4_SWAP])
        assert len(inputs) == 1
        actions, params = decode_unlock_data(inputs[0])
        return actions, params, deadline

    def test_execute_layout(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, recipient=None))
        step = steps[0]
        assert step.to.lower() == swapper.config.universal_router.lower()
        assert selector(step.data) == SELECTORS["execute"]

        actions, params, deadline = self._actions(step)
        assert actions == [V4Actions.SWAP_EXACT_IN_SINGLE, V4Actions.SETTLE_ALL, V4Actions.TAKE_ALL]
        assert deadline == DEADLINE

        (swap,) = decode(ACTION_PARAM_TYPES[V4Actions.SWAP_EXACT_IN_SINGLE], params[0])
        pool_key, zero_for_one, amount_in, min_out, hook_data = swap
        assert pool_key[0].lower() == TOKEN_A
        assert pool_key[1].lower() == TOKEN_B
        assert pool_key[2:4] == (3000, 60)
        assert zero_for_one is True
        assert amount_in == 10**18
        assert min_out == 1_900 * 10**6
        assert hook_data == b""

        settle_currency, settle_amount = decode(ACTION_PARAM_TYPES[V4Actions.SETTLE_ALL], params[1])
        take_currency, take_amount = decode(ACTION_PARAM_TYPES[V4Actions.TAKE_ALL], params[2])
        assert settle_currency.lower() == TOKEN_A
        assert settle_amount == 10**18
        assert take_currency.lower() == TOKEN_B
        assert take_amount == 1_900 * 10**6

    def test_zero_for_one_from_canonical_order(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, token_in=TOKEN_B, token_out=TOKEN_A))
        _, params, _ = self._actions(steps[0])
        (swap,) = decode(ACTION_PARAM_TYPES[V4Actions.SWAP_EXACT_IN_SINGLE], params[0])
        assert swap[0][0].lower() == TOKEN_A
        assert swap[1] is False
        settle_currency, _ = decode(ACTION_PARAM_TYPES[V4Actions.SETTLE_ALL], params[1])
        take_currency, _ = decode(ACTION_PARAM_TYPES[V4Actions.TAKE_ALL], params[2])
        assert settle_currency.lower() == TOKEN_B
        assert take_currency.lower() == TOKEN_A

    def test_mixed_case_input(self, swapper):
        upper = "0x" + TOKEN_B[2:].upper()
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, token_in=upper, token_out=TOKEN_A))
        _, params, _ = self._actions(steps[0])
        (swap,) = decode(ACTION_PARAM_TYPES[V4Actions.SWAP_EXACT_IN_SINGLE], params[0])
        assert swap[1] is False

    def test_native_in_sends_value(self, swapper, no_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, token_in=NATIVE, allowances=no_allowances))
        assert [s.action for s in steps] == ["swap"]
        assert steps[0].value == 10**18

    def test_native_out_no_value(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, token_in=TOKEN_A, token_out=NATIVE))
        assert steps[0].value == 0
        _, params, _ = self._actions(steps[0])
        (swap,) = decode(ACTION_PARAM_TYPES[V4Actions.SWAP_EXACT_IN_SINGLE], params[0])
        assert swap[1] is False

    def test_permit2_pair_to_universal_router(self, swapper, no_allowances):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, allowances=no_allowances))
        assert [s.action for s in steps] == ["approve", "permit2_approve", "swap"]

        spender, amount = decode(['address', 'uint256'], steps[0].data[4:])
        assert spender.lower() == swapper.config.permit2.lower()
        assert amount == 10**18

        assert steps[1].to.lower() == swapper.config.permit2.lower()
        assert selector(steps[1].data) == SELECTORS["permit2_approve"]
        token, p2_spender, p2_amount, expiration = decode(
            ['address', 'address', 'uint160', 'uint48'], steps[1].data[4:]
        )
        assert token.lower() == TOKEN_A
        assert p2_spender.lower() == swapper.config.universal_router.lower()
        assert p2_amount == 10**18
        assert expiration > DEADLINE - 10**9

    def test_only_missing_permit2_leg(self, swapper):
        allowances = Allowances(erc20={TOKEN_A: 10**18})
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, allowances=allowances))
        assert [s.action for s in steps] == ["permit2_approve", "swap"]

    def test_dynamic_fee_uses_deployment_spacing(self, swapper):
        steps = swapper.build_swap(_swap(ProtocolVersion.V4, fee=DYNAMIC_FEE_FLAG, hooks=HOOKS))
        _, params, _ = self._actions(steps[0])
        (swap,) = decode(ACTION_PARAM_TYPES[V4Actions.SWAP_EXACT_IN_SINGLE], params[0])
        assert swap[0][2] == DYNAMIC_FEE_FLAG
        assert swap[0][3] == 200
        assert swap[0][4].lower() == HOOKS

    def test_dynamic_fee_without_spacing(self, eth_config):
        with pytest.raises(UnsupportedConfigurationError):
            DexSwap(eth_config).build_swap(_swap(ProtocolVersion.V4, fee=DYNAMIC_FEE_FLAG))

    def test_amount_over_uint128(self, swapper):
        with pytest.raises(EncodingError):
            swapper.build_swap(_swap(ProtocolVersion.V4, amount_in=2**128))


class TestDispatch:

    def test_unknown_version(self, swapper):
        with pytest.raises(UnsupportedConfigurationError):
            swapper.build_swap(_swap("v5"))

    def test_to_dict(self, swapper):
        step = swapper.build_swap(_swap(ProtocolVersion.V4, token_in=NATIVE))[0]
        payload = step.to_dict()
        assert payload["value"] == str(10**18)
        assert payload["data"].startswith("0x" + SELECTORS["execute"])
