"""
Tests for amm_engine.quote: V2 / V3 / V4 swap quotes from pool snapshots.
"""

from decimal import Decimal

import pytest

from amm_engine.errors import InputValidationError, UnsupportedConfigurationError
from amm_engine.math.constant_product import constant_product_amount_out
from amm_engine.math.swap_math import apply_fee_ppm, spot_amount_out
from amm_engine.math.ticks import DYNAMIC_FEE_FLAG, Q96
from amm_engine.positions import ProtocolVersion
from amm_engine.quote import (
    ConcentratedPoolState,
    QuoteParams,
    SwapQuote,
    V2PoolState,
    get_swap_quote,
    get_v2_swap_quote,
    get_v3_swap_quote,
    get_v4_swap_quote,
)

from conftest import NATIVE, TOKEN_A, TOKEN_B

# TOKEN_A = 18-dec "WETH", TOKEN_B = 6-dec "USDC"
V2_STATE = V2PoolState(reserve0=100 * 10**18, reserve1=200_000 * 10**6, token0=TOKEN_A)


def _v2(amount_in, token_in=TOKEN_A, token_out=TOKEN_B, **kwargs):
    return QuoteParams.for_v2(V2_STATE, token_in, token_out, amount_in, decimals0=18, decimals1=6, **kwargs)


class TestV2Quote:

    def test_known_amount(self):
        quote = get_v2_swap_quote(_v2(10**18))
        assert quote.amount_out == 1_974_316_068

    def test_execution_price_and_impact(self):
        quote = get_v2_swap_quote(_v2(10**18))
        # 1974.316068 USDC per WETH vs spot 2000
        assert quote.execution_price == Decimal("1974.316068")
        assert Decimal("1.28") < quote.price_impact_percent < Decimal("1.29")

    def test_reverse_direction(self):
        quote = get_v2_swap_quote(_v2(2000 * 10**6, token_in=TOKEN_B, token_out=TOKEN_A))
        assert quote.amount_out == constant_product_amount_out(2000 * 10**6, 200_000 * 10**6, 100 * 10**18)
        assert quote.amount_out < 10**18

    def test_token0_from_sorting(self):
        params = QuoteParams(
            version=ProtocolVersion.V2,
            token_in=TOKEN_A,
            token_out=TOKEN_B,
            amount_in=10**18,
            reserve0=100 * 10**18,
            reserve1=200_000 * 10**6,
            decimals1=6,
        )
        assert get_v2_swap_quote(params).amount_out == 1_974_316_068

    def test_custom_fee(self):
        no_fee = get_v2_swap_quote(_v2(10**18, v2_fee_bps=0))
        assert no_fee.amount_out > 1_974_316_068

    def test_monotonic_impact(self):
        impacts = [get_v2_swap_quote(_v2(10**k)).price_impact_percent for k in range(16, 21)]
        assert impacts == sorted(impacts)

    @pytest.mark.parametrize("state,amount_in", [
        (V2PoolState(0, 200_000 * 10**6, TOKEN_A), 10**18),
        (V2PoolState(100 * 10**18, 0, TOKEN_A), 10**18),
        (V2_STATE, 0),
    ], ids=["empty_in", "empty_out", "zero_input"])
    def test_degenerate_is_zero(self, state, amount_in):
        params = QuoteParams.for_v2(state, TOKEN_A, TOKEN_B, amount_in)
        assert get_v2_swap_quote(params) == SwapQuote.empty()

    def test_missing_reserves(self):
        with pytest.raises(InputValidationError):
            get_v2_swap_quote(QuoteParams(ProtocolVersion.V2, TOKEN_A, TOKEN_B, 10**18))

    def test_string_amounts(self):
        assert get_v2_swap_quote(_v2(str(10**18))).amount_out == 1_974_316_068

    def test_bad_amount(self):
        with pytest.raises(InputValidationError):
            get_v2_swap_quote(_v2("1e18"))


class TestV3Quote:

    def test_spot_projection_without_liquidity(self):
        state = ConcentratedPoolState(sqrt_price_x96=2 * Q96)
        params = QuoteParams.for_concentrated(ProtocolVersion.V3, state, TOKEN_A, TOKEN_B, 10**6, fee=3000)
        quote = get_v3_swap_quote(params)
        assert quote.amount_out == spot_amount_out(apply_fee_ppm(10**6, 3000), 2 * Q96, True)
        assert quote.amount_out == 3_988_000
        # fee only: exec price 3.988 vs spot 4 -> 0.3%
        assert quote.price_impact_percent == Decimal("0.3")

    def test_reverse_direction(self):
        state = ConcentratedPoolState(sqrt_price_x96=2 * Q96)
        params = QuoteParams.for_concentrated(ProtocolVersion.V3, state, TOKEN_B, TOKEN_A, 4 * 10**6, fee=3000)
        assert get_v3_swap_quote(params).amount_out == 997_000

    def test_liquidity_adds_impact(self):
        spot = QuoteParams.for_concentrated(
            ProtocolVersion.V3, ConcentratedPoolState(Q96), TOKEN_A, TOKEN_B, 10**20
        )
        curve = QuoteParams.for_concentrated(
            ProtocolVersion.V3, ConcentratedPoolState(Q96, liquidity=10**21), TOKEN_A, TOKEN_B, 10**20
        )
        spot_quote = get_v3_swap_quote(spot)
        curve_quote = get_v3_swap_quote(curve)
        assert curve_quote.amount_out < spot_quote.amount_out
        assert curve_quote.price_impact_percent > spot_quote.price_impact_percent

    @pytest.mark.parametrize("state,amount_in", [
        (ConcentratedPoolState(0), 10**18),
        (ConcentratedPoolState(Q96, liquidity=0), 10**18),
        (ConcentratedPoolState(Q96), 0),
    ], ids=["uninitialized", "no_liquidity", "zero_input"])
    def test_degenerate_is_zero(self, state, amount_in):
        params = QuoteParams.for_concentrated(ProtocolVersion.V3, state, TOKEN_A, TOKEN_B, amount_in)
        assert get_v3_swap_quote(params) == SwapQuote.empty()

    def test_missing_price(self):
        with pytest.raises(InputValidationError):
            get_v3_swap_quote(QuoteParams(ProtocolVersion.V3, TOKEN_A, TOKEN_B, 10**18))

    def test_dynamic_fee_rejected(self):
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V3, ConcentratedPoolState(Q96), TOKEN_A, TOKEN_B, 10**18, fee=DYNAMIC_FEE_FLAG
        )
        with pytest.raises(UnsupportedConfigurationError):
            get_v3_swap_quote(params)

    def test_decimals_adjust_execution_price(self):
        # raw price 1e-12 (USDC/WETH style) -> human price 1
        sqrt_price = Q96 // 10**6
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V3, ConcentratedPoolState(sqrt_price), TOKEN_A, TOKEN_B, 10**18,
            fee=0, decimals0=18, decimals1=6,
        )
        quote = get_v3_swap_quote(params)
        assert abs(quote.execution_price - 1) < Decimal("1e-5")


class TestV4Quote:

    def test_static_fee(self):
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V4, ConcentratedPoolState(Q96), NATIVE, TOKEN_A, 10**6, fee=10000
        )
        assert get_v4_swap_quote(params).amount_out == 990_000

    def test_dynamic_fee_uses_snapshot_lp_fee(self):
        state = ConcentratedPoolState(Q96, lp_fee=5000)
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V4, state, TOKEN_A, TOKEN_B, 10**6, fee=DYNAMIC_FEE_FLAG
        )
        assert get_v4_swap_quote(params).amount_out == 995_000

    def test_dynamic_fee_without_lp_fee(self):
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V4, ConcentratedPoolState(Q96), TOKEN_A, TOKEN_B, 10**6, fee=DYNAMIC_FEE_FLAG
        )
        with pytest.raises(UnsupportedConfigurationError):
            get_v4_swap_quote(params)

    def test_fee_out_of_range(self):
        params = QuoteParams.for_concentrated(
            ProtocolVersion.V4, ConcentratedPoolState(Q96), TOKEN_A, TOKEN_B, 10**6, fee=1_000_000
        )
        with pytest.raises(InputValidationError):
            get_v4_swap_quote(params)


class TestDispatch:

    def test_routes_by_version(self):
        assert get_swap_quote(_v2(10**18)).amount_out == 1_974_316_068
        params = QuoteParams.for_concentrated(ProtocolVersion.V4, ConcentratedPoolState(Q96), TOKEN_A, TOKEN_B, 10**6, fee=0)
        assert get_swap_quote(params).amount_out == 10**6

    def test_unknown_version(self):
        with pytest.raises(UnsupportedConfigurationError):
            get_swap_quote(QuoteParams("v3", TOKEN_A, TOKEN_B, 1))

    def test_deterministic(self):
        assert get_swap_quote(_v2(10**18)) == get_swap_quote(_v2(10**18))
