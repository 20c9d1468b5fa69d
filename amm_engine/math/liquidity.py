"""
Concentrated Liquidity Mathematics

Формулы из whitepaper (sqrt цены в Q64.96):
- ниже диапазона:  L = amount0 * sqrtL * sqrtU / ((sqrtU - sqrtL) * Q96)
- выше диапазона:  L = amount1 * Q96 / (sqrtU - sqrtL)

Когда текущая цена в диапазоне:
- L0 = amount0 * sqrtP * sqrtU / ((sqrtU - sqrtP) * Q96)
- L1 = amount1 * Q96 / (sqrtP - sqrtL)
- L = min(L0, L1)

Только целочисленная арифметика (floor division): float здесь
систематически завышает liquidity и транзакция ревертится.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .ticks import Q96, get_sqrt_ratio_at_tick, sqrt_price_x96_to_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenAmounts:
    """Количество токенов в native units (wei)."""
    amount0: int
    amount1: int


@dataclass(frozen=True)
class PositionValue:
    """Display-only projection of a position."""
    amount0: Decimal
    amount1: Decimal
    total_in_currency1: Decimal


def _ordered(sqrt_lower: int, sqrt_upper: int):
    if sqrt_lower > sqrt_upper:
        return sqrt_upper, sqrt_lower
    return sqrt_lower, sqrt_upper


def liquidity_for_amount0(sqrt_lower: int, sqrt_upper: int, amount0: int) -> int:
    """
    Liquidity, которую покрывает amount0 на [sqrt_lower, sqrt_upper].

    L = amount0 * sqrtL * sqrtU / ((sqrtU - sqrtL) * Q96)
    """
    sqrt_lower, sqrt_upper = _ordered(sqrt_lower, sqrt_upper)
    diff = sqrt_upper - sqrt_lower
    if diff == 0 or amount0 <= 0:
        return 0
    return amount0 * sqrt_lower * sqrt_upper // (diff * Q96)


def liquidity_for_amount1(sqrt_lower: int, sqrt_upper: int, amount1: int) -> int:
    """
    Liquidity, которую покрывает amount1 на [sqrt_lower, sqrt_upper].

    L = amount1 * Q96 / (sqrtU - sqrtL)
    """
    sqrt_lower, sqrt_upper = _ordered(sqrt_lower, sqrt_upper)
    diff = sqrt_upper - sqrt_lower
    if diff == 0 or amount1 <= 0:
        return 0
    return amount1 * Q96 // diff


def liquidity_from_amounts(
    sqrt_price_x96: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    amount0: int,
    amount1: int
) -> int:
    """
    Максимальная liquidity, которую можно заминтить на данные суммы.

    Три случая:
    1. sqrtP <= sqrtL: позиция полностью в currency0 (amount1 не важен)
    2. sqrtP >= sqrtU: позиция полностью в currency1 (amount0 не важен)
    3. внутри диапазона: минимум из двух односторонних liquidity,
       поэтому ноль на любой стороне даёт 0

    Args:
        sqrt_price_x96: Текущая sqrt цена (Q64.96)
        sqrt_price_lower: sqrt цена нижней границы
        sqrt_price_upper: sqrt цена верхней границы
        amount0: Доступное количество currency0
        amount1: Доступное количество currency1

    Returns:
        Liquidity (L); 0 для вырожденного диапазона
    """
    sqrt_lower, sqrt_upper = _ordered(sqrt_price_lower, sqrt_price_upper)
    if sqrt_lower == sqrt_upper:
        return 0

    if sqrt_price_x96 <= sqrt_lower:
        return liquidity_for_amount0(sqrt_lower, sqrt_upper, amount0)

    if sqrt_price_x96 >= sqrt_upper:
        return liquidity_for_amount1(sqrt_lower, sqrt_upper, amount1)

    liquidity0 = liquidity_for_amount0(sqrt_price_x96, sqrt_upper, amount0)
    liquidity1 = liquidity_for_amount1(sqrt_lower, sqrt_price_x96, amount1)
    return min(liquidity0, liquidity1)


def amount0_for_liquidity(sqrt_lower: int, sqrt_upper: int, liquidity: int) -> int:
    """amount0 = L * Q96 * (sqrtU - sqrtL) / (sqrtU * sqrtL)"""
    sqrt_lower, sqrt_upper = _ordered(sqrt_lower, sqrt_upper)
    if sqrt_lower == 0 or liquidity <= 0:
        return 0
    return liquidity * Q96 * (sqrt_upper - sqrt_lower) // (sqrt_lower * sqrt_upper)


def amount1_for_liquidity(sqrt_lower: int, sqrt_upper: int, liquidity: int) -> int:
    """amount1 = L * (sqrtU - sqrtL) / Q96"""
    sqrt_lower, sqrt_upper = _ordered(sqrt_lower, sqrt_upper)
    if liquidity <= 0:
        return 0
    return liquidity * (sqrt_upper - sqrt_lower) // Q96


def amounts_from_liquidity(
    sqrt_price_x96: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    liquidity: int
) -> TokenAmounts:
    """
    Количество токенов для заданной liquidity (обратная функция).

    Округление вниз: результат никогда не больше того, что отдаст пул.
    """
    sqrt_lower, sqrt_upper = _ordered(sqrt_price_lower, sqrt_price_upper)
    if sqrt_lower == sqrt_upper or liquidity <= 0:
        return TokenAmounts(0, 0)

    if sqrt_price_x96 <= sqrt_lower:
        return TokenAmounts(amount0_for_liquidity(sqrt_lower, sqrt_upper, liquidity), 0)

    if sqrt_price_x96 >= sqrt_upper:
        return TokenAmounts(0, amount1_for_liquidity(sqrt_lower, sqrt_upper, liquidity))

    return TokenAmounts(
        amount0=amount0_for_liquidity(sqrt_price_x96, sqrt_upper, liquidity),
        amount1=amount1_for_liquidity(sqrt_lower, sqrt_price_x96, liquidity),
    )


def amounts_from_liquidity_with_ticks(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    liquidity: int
) -> TokenAmounts:
    """Same as amounts_from_liquidity, bounds given as ticks (exact TickMath)."""
    return amounts_from_liquidity(
        sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        liquidity,
    )


def liquidity_from_amounts_with_ticks(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    amount0: int,
    amount1: int
) -> int:
    """Same as liquidity_from_amounts, bounds given as ticks (exact TickMath)."""
    return liquidity_from_amounts(
        sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        amount0,
        amount1,
    )


def estimate_position_value(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    liquidity: int,
    decimals0: int,
    decimals1: int
) -> PositionValue:
    """
    Оценка стоимости позиции в currency1.

    Только для отображения, не для построения транзакций.
    """
    amounts = amounts_from_liquidity_with_ticks(sqrt_price_x96, tick_lower, tick_upper, liquidity)
    amount0 = Decimal(amounts.amount0) / Decimal(10) ** decimals0
    amount1 = Decimal(amounts.amount1) / Decimal(10) ** decimals1
    price = Decimal(str(sqrt_price_x96_to_price(sqrt_price_x96, decimals0, decimals1)))
    return PositionValue(
        amount0=amount0,
        amount1=amount1,
        total_in_currency1=amount0 * price + amount1,
    )


def pool_share_percent(position_liquidity: int, total_liquidity: int) -> float:
    """Доля позиции в пуле, %, с точностью до 0.01; 0 если пул пуст."""
    if total_liquidity <= 0:
        return 0.0
    return (position_liquidity * 10000 // total_liquidity) / 100
