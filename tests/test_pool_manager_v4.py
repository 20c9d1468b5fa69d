"""
Tests for V4PoolManager: initializePool encoding and StateView probes.
"""

import dataclasses

import pytest
from eth_abi import decode, encode

from amm_engine.contracts.encoding import function_selector
from amm_engine.contracts.pool_key import PoolKey
from amm_engine.contracts.v4.abis import V4_POSITION_MANAGER_ABI, V4_STATE_VIEW_ABI
from amm_engine.contracts.v4.pool_manager import Slot0, V4PoolManager
from amm_engine.errors import InputValidationError, UnsupportedConfigurationError
from amm_engine.math.ticks import MAX_SQRT_RATIO, Q96

from conftest import NATIVE, TOKEN_A, TOKEN_B, selector


@pytest.fixture
def pool_manager(config):
    return V4PoolManager(config)


class TestInitialize:

    def test_initialize_via_position_manager(self, pool_manager, config):
        key = PoolKey.from_tokens(TOKEN_B, TOKEN_A, 3000)
        step = pool_manager.build_initialize_step(key, Q96)
        assert step.to.lower() == config.v4_position_manager.lower()
        assert step.action == "initialize"
        assert step.data[:4] == function_selector(V4_POSITION_MANAGER_ABI, "initializePool")

        pool_key, sqrt_price = decode(['(address,address,uint24,int24,address)', 'uint160'], step.data[4:])
        assert pool_key[0].lower() == TOKEN_A
        assert pool_key[1].lower() == TOKEN_B
        assert pool_key[2:4] == (3000, 60)
        assert pool_key[4].lower() == NATIVE
        assert sqrt_price == Q96

    @pytest.mark.parametrize("sqrt_price", [0, 1, MAX_SQRT_RATIO])
    def test_rejects_invalid_price(self, pool_manager, sqrt_price):
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        with pytest.raises(InputValidationError):
            pool_manager.build_initialize_step(key, sqrt_price)


class TestStateView:

    def test_slot0_call(self, pool_manager, config):
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        step = pool_manager.build_slot0_call(key)
        assert step.action == "eth_call"
        assert step.to.lower() == config.v4_state_view.lower()
        assert step.data[:4] == function_selector(V4_STATE_VIEW_ABI, "getSlot0")
        assert step.data[4:] == key.pool_id

    def test_liquidity_call(self, pool_manager):
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        step = pool_manager.build_liquidity_call(key)
        assert selector(step.data) == function_selector(V4_STATE_VIEW_ABI, "getLiquidity").hex()

    def test_no_state_view_configured(self, config):
        manager = V4PoolManager(dataclasses.replace(config, v4_state_view=None))
        with pytest.raises(UnsupportedConfigurationError):
            manager.build_slot0_call(PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000))

    def test_decode_slot0(self):
        raw = encode(['uint160', 'int24', 'uint24', 'uint24'], [Q96, -60, 0, 3000])
        slot0 = V4PoolManager.decode_slot0(raw)
        assert slot0 == Slot0(Q96, -60, 0, 3000)
        assert slot0.initialized

    def test_uninitialized_slot0(self):
        raw = encode(['uint160', 'int24', 'uint24', 'uint24'], [0, 0, 0, 0])
        assert not V4PoolManager.decode_slot0(raw).initialized

    def test_decode_liquidity(self):
        assert V4PoolManager.decode_liquidity(encode(['uint128'], [12345])) == 12345
