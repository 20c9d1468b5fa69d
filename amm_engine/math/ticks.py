"""
Tick / sqrtPriceX96 Mathematics

Основные формулы:
- price(i) = 1.0001^i
- sqrtPriceX96 = sqrt(price) * 2^96
- price всегда = currency1 за единицу currency0 (raw, без decimals)

Tick spacing по fee tier:
- 0.01% (100) -> spacing 1
- 0.05% (500) -> spacing 10
- 0.30% (3000) -> spacing 60
- 1.00% (10000) -> spacing 200
- dynamic fee (0x800000) -> spacing из конфигурации деплоя

ТОЧНОСТЬ: функции на float (sqrt_price_x96_to_tick, tick_to_sqrt_price_x96)
дают ошибку до ±1 тика возле границы тика. Round trip
sqrt_price_x96_to_tick(tick_to_sqrt_price_x96(t)) НЕ гарантирует t.
Для размеров позиций и транзакций используйте точные целочисленные
get_sqrt_ratio_at_tick / get_tick_at_sqrt_ratio (TickMath).
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import InputValidationError, UnsupportedConfigurationError

logger = logging.getLogger(__name__)

# Константы
Q96 = 2 ** 96
Q192 = Q96 * Q96
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# V4 flag: the pool's LP fee is set by its hook, not by the key
DYNAMIC_FEE_FLAG = 0x800000
MAX_LP_FEE = 1_000_000
MAX_TICK_SPACING = 32767
DEFAULT_TICK_SPACING = 60

# Fee tier -> tick spacing
FEE_TO_TICK_SPACING = {
    100: 1,      # 0.01%
    500: 10,     # 0.05%
    3000: 60,    # 0.30%
    10000: 200,  # 1.00%
}


class TickRounding(Enum):
    """Rounding mode for aligning ticks to spacing."""
    DOWN = "down"
    UP = "up"
    NEAREST = "nearest"


@dataclass(frozen=True)
class TickRange:
    """Position boundaries [lower, upper)."""
    lower: int
    upper: int


# ============================================================
# FLOAT CONVERSIONS (display / user input)
# ============================================================

def sqrt_price_x96_to_raw_price(sqrt_price_x96: int) -> float:
    """
    Конвертация sqrtPriceX96 в raw цену (без поправки на decimals).

    price = (sqrtPriceX96 / 2^96)^2
    """
    if sqrt_price_x96 <= 0:
        return 0.0
    sqrt_price = sqrt_price_x96 / Q96
    return sqrt_price ** 2


def sqrt_price_x96_to_price(sqrt_price_x96: int, decimals0: int, decimals1: int) -> float:
    """
    Цена currency0 в единицах currency1 с учётом decimals.

    Args:
        sqrt_price_x96: sqrtPriceX96 пула
        decimals0: Decimals currency0
        decimals1: Decimals currency1

    Returns:
        Human-readable price (e.g. 3000.0 USDC per WETH)
    """
    return sqrt_price_x96_to_raw_price(sqrt_price_x96) * 10 ** (decimals0 - decimals1)


def price_to_sqrt_price_x96(price: float) -> int:
    """
    Конвертация raw цены в sqrtPriceX96.

    sqrtPriceX96 = floor(sqrt(price) * 2^96); price <= 0 -> 0.
    """
    if price <= 0:
        return 0
    return int(math.floor(math.sqrt(price) * Q96))


def price_to_sqrt_price_x96_with_decimals(price: float, decimals0: int, decimals1: int) -> int:
    """sqrtPriceX96 из human-readable цены (currency1 за currency0)."""
    if price <= 0:
        return 0
    return price_to_sqrt_price_x96(price / 10 ** (decimals0 - decimals1))


def sqrt_price_x96_to_tick(sqrt_price_x96: int) -> int:
    """
    Конвертация sqrtPriceX96 в тик.

    tick = floor(log(price) / log(1.0001)); sqrtPriceX96 <= 0 -> 0.
    Float: может отличаться на 1 от точного get_tick_at_sqrt_ratio.
    """
    if sqrt_price_x96 <= 0:
        return 0
    price = sqrt_price_x96_to_raw_price(sqrt_price_x96)
    return math.floor(math.log(price) / math.log(1.0001))


def tick_to_sqrt_price_x96(tick: int) -> int:
    """
    Конвертация тика в sqrtPriceX96.

    sqrtPriceX96 = floor(sqrt(1.0001^tick) * 2^96)
    """
    return int(math.floor(math.sqrt(1.0001 ** tick) * Q96))


def price_to_tick(price: float, decimals0: int = 18, decimals1: int = 18) -> int:
    """
    Тик из human-readable цены.

    Raises:
        InputValidationError: если цена не положительная
    """
    if price <= 0:
        raise InputValidationError(f"Price must be positive, got {price}")
    adjusted = price / 10 ** (decimals0 - decimals1)
    tick = math.floor(math.log(adjusted) / math.log(1.0001))
    return max(MIN_TICK, min(MAX_TICK, tick))


def tick_to_price(tick: int, decimals0: int = 18, decimals1: int = 18) -> float:
    """Human-readable цена для тика."""
    return 1.0001 ** tick * 10 ** (decimals0 - decimals1)


# ============================================================
# EXACT INTEGER TICKMATH
# ============================================================

# Q128.128 multipliers: 1/sqrt(1.0001)^(2^i)
_TICK_MULTIPLIERS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Exact sqrtPriceX96 for a tick (TickMath.getSqrtRatioAtTick).

    Bit-for-bit the on-chain algorithm: no floating point, so position
    boundaries match what the pool computes.

    Raises:
        InputValidationError: tick outside [MIN_TICK, MAX_TICK]
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise InputValidationError(f"Tick out of range: {tick}")

    abs_tick = abs(tick)
    if abs_tick & 0x1:
        ratio = 0xfffcb933bd6fad37aa2d162d1a594001
    else:
        ratio = 0x100000000000000000000000000000000

    for bit, multiplier in _TICK_MULTIPLIERS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = (2**256 - 1) // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Greatest tick whose sqrt ratio is <= sqrt_price_x96.

    Exact inverse of get_sqrt_ratio_at_tick (binary search over the
    integer function instead of the on-chain log2 approximation - same
    result, easier to verify).

    Raises:
        InputValidationError: sqrt_price_x96 outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise InputValidationError(f"sqrtPriceX96 out of range: {sqrt_price_x96}")

    low, high = MIN_TICK, MAX_TICK
    while low < high:
        mid = (low + high + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            low = mid
        else:
            high = mid - 1
    return low


# ============================================================
# TICK SPACING
# ============================================================

def tick_spacing_for_fee(fee: int, dynamic_fee_tick_spacing: Optional[int] = None) -> int:
    """
    Получение tick_spacing по fee tier.

    Args:
        fee: Fee в сотых долях bip (500 = 0.05%, 3000 = 0.3%)
             или DYNAMIC_FEE_FLAG для V4 пулов с динамической комиссией
        dynamic_fee_tick_spacing: Spacing для dynamic fee пулов из конфигурации
                                  деплоя (у каждой экосистемы своё значение)

    Returns:
        tick_spacing (60 для неизвестных статических tier)

    Raises:
        UnsupportedConfigurationError: dynamic fee без настроенного spacing
        InputValidationError: fee вне допустимого диапазона
    """
    if fee == DYNAMIC_FEE_FLAG:
        if dynamic_fee_tick_spacing is None:
            raise UnsupportedConfigurationError(
                "Dynamic fee pool has no configured tick spacing; "
                "pass tick_spacing explicitly or set dynamic_fee_tick_spacing",
                value=fee,
            )
        return dynamic_fee_tick_spacing

    if fee < 0 or fee > MAX_LP_FEE:
        raise InputValidationError(f"Fee must be within [0, {MAX_LP_FEE}], got {fee}")

    if fee not in FEE_TO_TICK_SPACING:
        logger.debug(f"Unknown fee tier {fee}, using default spacing {DEFAULT_TICK_SPACING}")
    return FEE_TO_TICK_SPACING.get(fee, DEFAULT_TICK_SPACING)


def validate_tick_spacing(tick_spacing: int) -> int:
    """tick_spacing must be an int in [1, 32767]."""
    if isinstance(tick_spacing, bool) or not isinstance(tick_spacing, int):
        raise InputValidationError(f"tick_spacing must be an integer, got {tick_spacing!r}")
    if tick_spacing < 1 or tick_spacing > MAX_TICK_SPACING:
        raise InputValidationError(
            f"tick_spacing must be within [1, {MAX_TICK_SPACING}], got {tick_spacing}"
        )
    return tick_spacing


def full_range_ticks(tick_spacing: int) -> TickRange:
    """
    Widest usable range for a spacing.

    lower = ceil(MIN_TICK / spacing) * spacing
    upper = floor(MAX_TICK / spacing) * spacing
    """
    validate_tick_spacing(tick_spacing)
    lower = -(MAX_TICK // tick_spacing) * tick_spacing  # MIN_TICK == -MAX_TICK
    upper = (MAX_TICK // tick_spacing) * tick_spacing
    return TickRange(lower=lower, upper=upper)


def round_tick_to_spacing(
    tick: int,
    tick_spacing: int,
    mode: TickRounding = TickRounding.DOWN
) -> int:
    """
    Выравнивание тика к tick_spacing.

    В V3/V4 границы позиции должны быть кратны tick_spacing.
    Результат зажат в usable диапазон (full_range_ticks), поэтому
    всегда кратен spacing и лежит в [MIN_TICK, MAX_TICK].

    Args:
        tick: Исходный тик
        tick_spacing: Шаг тиков
        mode: DOWN (к -inf), UP (к +inf), NEAREST (ближайший, .5 -> вверх)

    Returns:
        Выровненный тик
    """
    usable = full_range_ticks(tick_spacing)

    if mode == TickRounding.DOWN:
        aligned = (tick // tick_spacing) * tick_spacing
    elif mode == TickRounding.UP:
        aligned = -((-tick) // tick_spacing) * tick_spacing
    elif mode == TickRounding.NEAREST:
        aligned = ((2 * tick + tick_spacing) // (2 * tick_spacing)) * tick_spacing
    else:
        raise InputValidationError(f"Unknown rounding mode: {mode}")

    return max(usable.lower, min(usable.upper, aligned))


# ============================================================
# FEE / POSITION HELPERS
# ============================================================

def is_valid_fee_tier(fee: int) -> bool:
    """Standard static tiers only."""
    return fee in FEE_TO_TICK_SPACING


def format_fee_tier(fee: int) -> str:
    """3000 -> '0.30%', 10000 -> '1%', dynamic -> 'dynamic'."""
    if fee == DYNAMIC_FEE_FLAG:
        return "dynamic"
    percent = fee / 10000
    return f"{percent:.0f}%" if fee >= 10000 else f"{percent:.2f}%"


def is_position_in_range(current_tick: int, tick_lower: int, tick_upper: int) -> bool:
    """Active liquidity: lower <= tick < upper."""
    return tick_lower <= current_tick < tick_upper


def position_range_percentage(current_tick: int, tick_lower: int, tick_upper: int) -> float:
    """Где текущий тик внутри диапазона: 0 ниже, 100 выше."""
    if current_tick <= tick_lower:
        return 0.0
    if current_tick >= tick_upper:
        return 100.0
    return (current_tick - tick_lower) / (tick_upper - tick_lower) * 100


def sqrt_price_x96_from_amounts(amount0: int, amount1: int) -> int:
    """
    Exact sqrtPriceX96 for the deposit ratio amount1 / amount0.

    sqrtPriceX96 = isqrt(amount1 * 2^192 / amount0); 0 если одна из сумм 0.
    Используется как начальная цена нового пула, когда цена не задана явно.
    """
    if amount0 <= 0 or amount1 <= 0:
        return 0
    return math.isqrt((amount1 << 192) // amount0)


def validate_sqrt_price(sqrt_price_x96: int) -> int:
    """Initial pool price must be inside TickMath bounds."""
    if isinstance(sqrt_price_x96, bool) or not isinstance(sqrt_price_x96, int):
        raise InputValidationError(f"sqrtPriceX96 must be an integer, got {sqrt_price_x96!r}")
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise InputValidationError(
            f"sqrtPriceX96 must be within [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO}), got {sqrt_price_x96}"
        )
    return sqrt_price_x96
