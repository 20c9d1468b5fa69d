"""
Constant product (V2) math.

amountOut = in * (10000 - fee) * Rout / (Rin * 10000 + in * (10000 - fee))

С fee_bps=30 это та же формула, что 997/1000 в роутере V2.
"""

from decimal import Decimal

from ..utils import BPS_DENOMINATOR, validate_bps

DEFAULT_V2_FEE_BPS = 30


def constant_product_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_V2_FEE_BPS
) -> int:
    """
    Выход свопа по формуле x*y=k с комиссией.

    Returns:
        amount_out (floor); 0 при нулевом входе или резервах
    """
    validate_bps(fee_bps, "fee_bps")
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = amount_in * (BPS_DENOMINATOR - fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def constant_product_amount_in(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_V2_FEE_BPS
) -> int:
    """
    Вход, необходимый для получения amount_out.

    Округление вверх (+1), чтобы пул никогда не получил меньше.
    0 если amount_out >= reserve_out (столько в пуле нет).
    """
    validate_bps(fee_bps, "fee_bps")
    if amount_out <= 0 or reserve_in <= 0 or amount_out >= reserve_out:
        return 0
    if fee_bps == BPS_DENOMINATOR:
        return 0

    numerator = reserve_in * amount_out * BPS_DENOMINATOR
    denominator = (reserve_out - amount_out) * (BPS_DENOMINATOR - fee_bps)
    return numerator // denominator + 1


def quote_v2_amount(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """
    Router quote(): сумма B той же стоимости, без комиссии.

    Используется для второй стороны депозита в существующую пару.
    """
    if amount_a <= 0 or reserve_a <= 0 or reserve_b <= 0:
        return 0
    return amount_a * reserve_b // reserve_a


def v2_price(reserve0: int, reserve1: int, decimals0: int, decimals1: int) -> Decimal:
    """Цена token0 в token1 по резервам; 0 если reserve0 пуст."""
    if reserve0 <= 0:
        return Decimal(0)
    r0 = Decimal(reserve0) / Decimal(10) ** decimals0
    r1 = Decimal(reserve1) / Decimal(10) ** decimals1
    return r1 / r0
