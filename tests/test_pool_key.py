"""
Tests for amm_engine.contracts.pool_key.

Сортировка currency, валидация PoolKey, pool id.
"""

import pytest
from eth_abi import encode
from web3 import Web3

from amm_engine.contracts.pool_key import (
    NATIVE_CURRENCY,
    ZERO_ADDRESS,
    PoolKey,
    compute_pool_identifier,
    is_native,
    normalize_address,
    sort_currencies,
    validate_fee,
)
from amm_engine.errors import InputValidationError, UnsupportedConfigurationError
from amm_engine.math.ticks import DYNAMIC_FEE_FLAG

from conftest import HOOKS, NATIVE, TOKEN_A, TOKEN_B, USDC_BASE, WETH_BASE

ADDRESS_GRID = [
    NATIVE,
    TOKEN_A,
    TOKEN_B,
    USDC_BASE,
    WETH_BASE,
    "0xffffffffffffffffffffffffffffffffffffffff",
    "0x0000000000000000000000000000000000000001",
]


class TestSortCurrencies:

    def test_already_sorted(self):
        assert sort_currencies(TOKEN_A, TOKEN_B) == (TOKEN_A, TOKEN_B)

    def test_reversed(self):
        assert sort_currencies(TOKEN_B, TOKEN_A) == (TOKEN_A, TOKEN_B)

    def test_case_insensitive(self):
        lower = USDC_BASE.lower()
        c0, c1 = sort_currencies(lower, WETH_BASE)
        # WETH on Base (0x4200...) sorts before USDC (0x8335...)
        assert c0 == Web3.to_checksum_address(WETH_BASE)
        assert c1 == USDC_BASE

    def test_native_first(self):
        assert sort_currencies(TOKEN_A, NATIVE)[0] == NATIVE

    @pytest.mark.parametrize("a", ADDRESS_GRID)
    @pytest.mark.parametrize("b", ADDRESS_GRID)
    def test_ordering_invariant(self, a, b):
        if int(a, 16) == int(b, 16):
            with pytest.raises(InputValidationError):
                sort_currencies(a, b)
            return
        c0, c1 = sort_currencies(a, b)
        assert int(c0, 16) < int(c1, 16)
        assert sort_currencies(b, a) == (c0, c1)

    def test_identical_different_case(self):
        with pytest.raises(InputValidationError):
            sort_currencies(USDC_BASE, USDC_BASE.lower())

    @pytest.mark.parametrize("bad", ["0x1234", "not an address", "", None, 123])
    def test_malformed(self, bad):
        with pytest.raises(InputValidationError):
            sort_currencies(bad, TOKEN_A)


class TestHelpers:

    def test_is_native(self):
        assert is_native(NATIVE_CURRENCY)
        assert is_native(ZERO_ADDRESS)
        assert not is_native(TOKEN_A)

    def test_normalize_checksums(self):
        assert normalize_address(USDC_BASE.lower()) == USDC_BASE

    @pytest.mark.parametrize("fee", [0, 100, 3000, 999_999, 1_000_000, DYNAMIC_FEE_FLAG])
    def test_valid_fees(self, fee):
        assert validate_fee(fee) == fee

    @pytest.mark.parametrize("fee", [-1, 1_000_001, "3000", 30.0, True])
    def test_invalid_fees(self, fee):
        with pytest.raises(InputValidationError):
            validate_fee(fee)


class TestPoolKey:

    def test_from_tokens_sorts(self):
        """Обратный порядок токенов сортируется в ключе."""
        key = PoolKey.from_tokens(TOKEN_B, TOKEN_A, 3000)
        assert key.currency0 == TOKEN_A
        assert key.currency1 == TOKEN_B
        assert key.tick_spacing == 60
        assert key.hooks == ZERO_ADDRESS

    def test_explicit_spacing_and_hooks(self):
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 33330, tick_spacing=100, hooks=HOOKS)
        assert key.tick_spacing == 100
        assert key.hooks == HOOKS
        assert key.to_tuple() == (TOKEN_A, TOKEN_B, 33330, 100, HOOKS)

    def test_dynamic_fee_needs_spacing(self):
        with pytest.raises(UnsupportedConfigurationError):
            PoolKey.from_tokens(TOKEN_A, TOKEN_B, DYNAMIC_FEE_FLAG)
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, DYNAMIC_FEE_FLAG, dynamic_fee_tick_spacing=200)
        assert key.is_dynamic_fee
        assert key.tick_spacing == 200

    def test_constructor_rejects_unsorted(self):
        with pytest.raises(InputValidationError):
            PoolKey(TOKEN_B, TOKEN_A, 3000, 60)

    @pytest.mark.parametrize("fee,spacing", [(3000, 0), (3000, 40000), (-5, 60)])
    def test_constructor_validates(self, fee, spacing):
        with pytest.raises(InputValidationError):
            PoolKey(TOKEN_A, TOKEN_B, fee, spacing)

    def test_native_key(self):
        key = PoolKey.from_tokens(TOKEN_B, NATIVE, 500)
        assert key.is_native()
        assert key.currency0 == NATIVE
        assert key.tick_spacing == 10

    def test_frozen_and_hashable(self):
        a = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        b = PoolKey.from_tokens(TOKEN_B, TOKEN_A, 3000)
        assert a == b
        assert hash(a) == hash(b)


class TestPoolIdentifier:

    def test_matches_keccak_of_abi_encoding(self):
        key = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        expected = Web3.keccak(encode(
            ['address', 'address', 'uint24', 'int24', 'address'],
            [TOKEN_A, TOKEN_B, 3000, 60, ZERO_ADDRESS],
        ))
        assert compute_pool_identifier(key) == bytes(expected)
        assert key.pool_id == bytes(expected)
        assert len(key.pool_id) == 32

    def test_independent_of_input_order(self):
        assert PoolKey.from_tokens(TOKEN_B, TOKEN_A, 3000).pool_id == PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000).pool_id

    @pytest.mark.parametrize("kwargs", [
        {"fee": 500},
        {"tick_spacing": 10},
        {"hooks": HOOKS},
    ], ids=["fee", "spacing", "hooks"])
    def test_every_field_is_identity(self, kwargs):
        base = PoolKey.from_tokens(TOKEN_A, TOKEN_B, 3000)
        params = {"fee": 3000}
        params.update(kwargs)
        other = PoolKey.from_tokens(TOKEN_A, TOKEN_B, **params)
        assert other.pool_id != base.pool_id
