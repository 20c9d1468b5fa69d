"""
Single-range swap projection (SqrtPriceMath).

Для V3/V4 котировок:
- без liquidity: проекция по спотовой цене (amount * price)
- с liquidity: движение по кривой постоянной liquidity до новой sqrt цены

Пересечение тиков не моделируется: вся liquidity считается активной
на всём пути цены. Для крупных свопов через несколько диапазонов
результат оптимистичен.
"""

import logging

from .ticks import Q96, Q192

logger = logging.getLogger(__name__)

PPM_DENOMINATOR = 1_000_000


def apply_fee_ppm(amount_in: int, fee_ppm: int) -> int:
    """amount * (1_000_000 - fee) / 1_000_000, floor."""
    return amount_in * (PPM_DENOMINATOR - fee_ppm) // PPM_DENOMINATOR


def spot_amount_out(amount_in: int, sqrt_price_x96: int, zero_for_one: bool) -> int:
    """
    Выход по спотовой цене.

    zeroForOne: out = in * sqrtP^2 / 2^192
    oneForZero: out = in * 2^192 / sqrtP^2
    """
    if amount_in <= 0 or sqrt_price_x96 <= 0:
        return 0
    price_x192 = sqrt_price_x96 * sqrt_price_x96
    if zero_for_one:
        return amount_in * price_x192 // Q192
    return amount_in * Q192 // price_x192


def next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    """
    Новая sqrt цена после входа amount_in (после комиссии).

    zeroForOne (цена падает), округление вверх:
        next = L * Q96 * sqrtP / (L * Q96 + amount * sqrtP)
    oneForZero (цена растёт), округление вниз:
        next = sqrtP + amount * Q96 / L
    """
    if amount_in <= 0 or liquidity <= 0:
        return sqrt_price_x96

    if zero_for_one:
        numerator = (liquidity << 96) * sqrt_price_x96
        denominator = (liquidity << 96) + amount_in * sqrt_price_x96
        return -(-numerator // denominator)

    return sqrt_price_x96 + (amount_in << 96) // liquidity


def amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """currency0 между двумя sqrt ценами, округление вниз."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a <= 0 or liquidity <= 0:
        return 0
    return ((liquidity << 96) * (sqrt_b - sqrt_a) // sqrt_b) // sqrt_a


def amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """currency1 между двумя sqrt ценами, округление вниз."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if liquidity <= 0:
        return 0
    return liquidity * (sqrt_b - sqrt_a) // Q96


def concentrated_amount_out(
    amount_in_after_fee: int,
    sqrt_price_x96: int,
    liquidity: int,
    zero_for_one: bool
) -> int:
    """
    Выход свопа при постоянной liquidity.

    Returns:
        amount_out; 0 для нулевого входа, цены или liquidity
    """
    if amount_in_after_fee <= 0 or sqrt_price_x96 <= 0 or liquidity <= 0:
        return 0

    sqrt_next = next_sqrt_price_from_input(sqrt_price_x96, liquidity, amount_in_after_fee, zero_for_one)
    if zero_for_one:
        return amount1_delta(sqrt_next, sqrt_price_x96, liquidity)
    return amount0_delta(sqrt_price_x96, sqrt_next, liquidity)
