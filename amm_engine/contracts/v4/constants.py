"""
V4 fee constants.

В V4 fee задаётся в сотых долях bip (1/1,000,000):
3000 = 0.30%, 10000 = 1.00%, 33330 = 3.333%.
Флаг 0x800000 означает dynamic fee - реальную комиссию выставляет hook.
"""

from typing import Optional

from ...errors import InputValidationError, UnsupportedConfigurationError
from ...math.ticks import DYNAMIC_FEE_FLAG, MAX_LP_FEE

MAX_V4_FEE = MAX_LP_FEE  # 100%
MIN_V4_FEE = 0

# Payload for positions/swaps without hook data
EMPTY_HOOK_DATA = b""


def is_dynamic_fee(fee: int) -> bool:
    return fee == DYNAMIC_FEE_FLAG


def resolve_lp_fee(fee: int, lp_fee: Optional[int] = None) -> int:
    """
    Effective LP fee for quoting.

    Args:
        fee: Fee из PoolKey (static tier или DYNAMIC_FEE_FLAG)
        lp_fee: Текущий lpFee из slot0 (для dynamic fee пулов)

    Returns:
        Fee в ppm

    Raises:
        UnsupportedConfigurationError: dynamic fee без известного lp_fee
        InputValidationError: fee вне [0, 1_000_000)
    """
    if is_dynamic_fee(fee):
        if lp_fee is None:
            raise UnsupportedConfigurationError(
                "Dynamic fee pool requires the current lp_fee to quote", value=fee
            )
        fee = lp_fee

    if fee < MIN_V4_FEE or fee >= MAX_V4_FEE:
        raise InputValidationError(f"LP fee must be within [0, {MAX_V4_FEE}), got {fee}")
    return fee


def v4_fee_to_percent(v4_fee: int) -> float:
    """3000 -> 0.3"""
    return v4_fee / 10000
