"""
Swap quotes for V2 / V3 / V4.

Котировка - чистая функция снимка состояния пула (снимок получает
вызывающий): без кеша, без I/O, детерминированно.

- V2: x*y=k с комиссией; price impact = |exec - spot| / spot * 100
- V3/V4: комиссия в ppm снимается со входа, затем проекция через sqrt цену
  (по кривой постоянной liquidity, если liquidity известна)

Пустой пул (нулевые резервы / liquidity / цена) или нулевой вход -> нулевая
котировка, без исключений.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Optional

from .contracts.pool_key import sort_currencies
from .contracts.v4.constants import resolve_lp_fee
from .errors import InputValidationError, UnsupportedConfigurationError
from .math.constant_product import DEFAULT_V2_FEE_BPS, constant_product_amount_out
from .math.swap_math import apply_fee_ppm, concentrated_amount_out, spot_amount_out
from .math.ticks import DYNAMIC_FEE_FLAG, Q192
from .positions import ProtocolVersion
from .utils import Amount, parse_amount

logger = logging.getLogger(__name__)

PRICE_PRECISION = 50


@dataclass(frozen=True)
class SwapQuote:
    """Результат котировки."""
    amount_out: int
    price_impact_percent: Decimal
    execution_price: Decimal  # token_out per token_in, decimals-adjusted

    @classmethod
    def empty(cls) -> "SwapQuote":
        return cls(0, Decimal(0), Decimal(0))


@dataclass(frozen=True)
class V2PoolState:
    """Reserves snapshot; token0 is the pair's token0."""
    reserve0: int
    reserve1: int
    token0: str


@dataclass(frozen=True)
class ConcentratedPoolState:
    """V3/V4 snapshot (slot0 + liquidity). lp_fee - для dynamic fee V4."""
    sqrt_price_x96: int
    liquidity: Optional[int] = None
    tick: Optional[int] = None
    lp_fee: Optional[int] = None


@dataclass(frozen=True)
class QuoteParams:
    """
    Shared quote input.

    decimals0 / decimals1 относятся к отсортированным currency0 / currency1.
    V2 требует reserve0/reserve1 (token0 опционален - иначе сортировка адресов),
    V3/V4 требуют sqrt_price_x96; liquidity=None -> спотовая проекция.
    """
    version: ProtocolVersion
    token_in: str
    token_out: str
    amount_in: Amount
    fee: int = 3000
    tick_spacing: Optional[int] = None
    decimals0: int = 18
    decimals1: int = 18
    # V2
    reserve0: Optional[Amount] = None
    reserve1: Optional[Amount] = None
    token0: Optional[str] = None
    v2_fee_bps: int = DEFAULT_V2_FEE_BPS
    # V3 / V4
    sqrt_price_x96: Optional[Amount] = None
    liquidity: Optional[Amount] = None
    lp_fee: Optional[int] = None

    @classmethod
    def for_v2(cls, state: V2PoolState, token_in: str, token_out: str, amount_in: Amount, **kwargs) -> "QuoteParams":
        return cls(
            version=ProtocolVersion.V2,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            reserve0=state.reserve0,
            reserve1=state.reserve1,
            token0=state.token0,
            **kwargs
        )

    @classmethod
    def for_concentrated(
        cls,
        version: ProtocolVersion,
        state: ConcentratedPoolState,
        token_in: str,
        token_out: str,
        amount_in: Amount,
        **kwargs
    ) -> "QuoteParams":
        return cls(
            version=version,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            sqrt_price_x96=state.sqrt_price_x96,
            liquidity=state.liquidity,
            lp_fee=state.lp_fee,
            **kwargs
        )


def _price_impact(execution_price: Decimal, spot_price: Decimal) -> Decimal:
    if spot_price == 0:
        return Decimal(0)
    return abs(execution_price - spot_price) / spot_price * 100


def _human_ratio(amount_out: int, decimals_out: int, amount_in: int, decimals_in: int) -> Decimal:
    """(out / 10^dout) / (in / 10^din)"""
    return (Decimal(amount_out) / Decimal(amount_in)) * (Decimal(10) ** (decimals_in - decimals_out))


def get_v2_swap_quote(params: QuoteParams) -> SwapQuote:
    """
    V2 quote по формуле constant product.

    Raises:
        InputValidationError: нет резервов в снимке
    """
    if params.reserve0 is None or params.reserve1 is None:
        raise InputValidationError("V2 quote requires reserve0 and reserve1")

    amount_in = parse_amount(params.amount_in, "amount_in")
    reserve0 = parse_amount(params.reserve0, "reserve0")
    reserve1 = parse_amount(params.reserve1, "reserve1")

    currency0, _ = sort_currencies(params.token_in, params.token_out)
    token0 = params.token0 or currency0
    zero_for_one = int(params.token_in, 16) == int(token0, 16)

    reserve_in, reserve_out = (reserve0, reserve1) if zero_for_one else (reserve1, reserve0)
    decimals_in, decimals_out = (
        (params.decimals0, params.decimals1) if zero_for_one else (params.decimals1, params.decimals0)
    )

    if amount_in == 0 or reserve_in == 0 or reserve_out == 0:
        logger.warning(f"[QUOTE V2] empty quote: amount_in={amount_in}, reserves=({reserve_in}, {reserve_out})")
        return SwapQuote.empty()

    amount_out = constant_product_amount_out(amount_in, reserve_in, reserve_out, params.v2_fee_bps)

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        spot_price = _human_ratio(reserve_out, decimals_out, reserve_in, decimals_in)
        execution_price = _human_ratio(amount_out, decimals_out, amount_in, decimals_in)
        impact = _price_impact(execution_price, spot_price)

    logger.debug(f"[QUOTE V2] in={amount_in} out={amount_out} impact={impact:.4f}%")
    return SwapQuote(amount_out, impact, execution_price)


def _concentrated_quote(params: QuoteParams, fee_ppm: int, label: str) -> SwapQuote:
    if params.sqrt_price_x96 is None:
        raise InputValidationError(f"{label} quote requires sqrt_price_x96")

    amount_in = parse_amount(params.amount_in, "amount_in")
    sqrt_price_x96 = parse_amount(params.sqrt_price_x96, "sqrt_price_x96")
    liquidity = None if params.liquidity is None else parse_amount(params.liquidity, "liquidity")

    currency0, _ = sort_currencies(params.token_in, params.token_out)
    zero_for_one = int(params.token_in, 16) == int(currency0, 16)

    if amount_in == 0 or sqrt_price_x96 == 0 or liquidity == 0:
        logger.warning(
            f"[QUOTE {label}] empty quote: amount_in={amount_in}, sqrtPriceX96={sqrt_price_x96}, liquidity={liquidity}"
        )
        return SwapQuote.empty()

    amount_in_after_fee = apply_fee_ppm(amount_in, fee_ppm)
    if liquidity is None:
        amount_out = spot_amount_out(amount_in_after_fee, sqrt_price_x96, zero_for_one)
    else:
        amount_out = concentrated_amount_out(amount_in_after_fee, sqrt_price_x96, liquidity, zero_for_one)

    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        raw_price = Decimal(sqrt_price_x96 * sqrt_price_x96) / Decimal(Q192)
        if zero_for_one:
            spot_price = raw_price * Decimal(10) ** (params.decimals0 - params.decimals1)
            execution_price = _human_ratio(amount_out, params.decimals1, amount_in, params.decimals0)
        else:
            spot_price = (1 / raw_price) * Decimal(10) ** (params.decimals1 - params.decimals0)
            execution_price = _human_ratio(amount_out, params.decimals0, amount_in, params.decimals1)
        impact = _price_impact(execution_price, spot_price)

    logger.debug(
        f"[QUOTE {label}] zeroForOne={zero_for_one} fee={fee_ppm} in={amount_in} out={amount_out} impact={impact:.4f}%"
    )
    return SwapQuote(amount_out, impact, execution_price)


def get_v3_swap_quote(params: QuoteParams) -> SwapQuote:
    """
    V3 quote: fee haircut, затем проекция через sqrtPriceX96.

    Без liquidity: out = in * price (спот). С liquidity: SqrtPriceMath
    в пределах одного диапазона (без пересечения тиков).
    """
    if params.fee == DYNAMIC_FEE_FLAG:
        raise UnsupportedConfigurationError("V3 has no dynamic fee pools", value=params.fee)
    return _concentrated_quote(params, resolve_lp_fee(params.fee), "V3")


def get_v4_swap_quote(params: QuoteParams) -> SwapQuote:
    """
    V4 quote: как V3, но dynamic fee берётся из lp_fee снимка.

    Raises:
        UnsupportedConfigurationError: dynamic fee без lp_fee
    """
    return _concentrated_quote(params, resolve_lp_fee(params.fee, params.lp_fee), "V4")


def get_swap_quote(params: QuoteParams) -> SwapQuote:
    """Dispatch by protocol version."""
    if params.version == ProtocolVersion.V2:
        return get_v2_swap_quote(params)
    elif params.version == ProtocolVersion.V3:
        return get_v3_swap_quote(params)
    elif params.version == ProtocolVersion.V4:
        return get_v4_swap_quote(params)
    raise UnsupportedConfigurationError(f"Unsupported protocol version: {params.version!r}", value=params.version)
