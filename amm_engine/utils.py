"""
Amount, slippage and deadline utilities.

Includes:
- parse_amount: strict integer parsing of token amounts (wei-like units)
- percent_to_bps / bps validation
- slippage_min / slippage_max: integer-only slippage bounds
- get_deadline: now + window
- check_uint / check_int: ABI width guards raising EncodingError
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from .errors import EncodingError, InputValidationError

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000
MAX_UINT24 = 2**24 - 1
MAX_UINT48 = 2**48 - 1
MAX_UINT128 = 2**128 - 1
MAX_UINT160 = 2**160 - 1
MAX_UINT256 = 2**256 - 1

DEFAULT_DEADLINE_SECONDS = 1200  # 20 минут

Amount = Union[int, str]
Percent = Union[int, float, str, Decimal]


def parse_amount(value: Amount, field: str = "amount") -> int:
    """
    Parse a token amount in native units.

    Accepts int or a decimal/hex string ("1000000", "0x0f4240").
    Fractional values are rejected: amounts are always whole wei.

    Raises:
        InputValidationError: if the value is not a non-negative integer
    """
    if isinstance(value, bool):
        raise InputValidationError(f"{field} must be an integer, got bool")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                result = int(text, 16)
            else:
                result = int(text, 10)
        except ValueError:
            raise InputValidationError(f"{field} is not an integer: {value!r}")
    else:
        raise InputValidationError(
            f"{field} must be int or str, got {type(value).__name__}"
        )

    if result < 0:
        raise InputValidationError(f"{field} must be non-negative: {result}")
    return result


def to_decimal(value: Percent, field: str) -> Decimal:
    """Exact Decimal from a user number (через str, без float артефактов)."""
    if isinstance(value, bool):
        raise InputValidationError(f"{field} must be a number, got bool")
    try:
        d = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise InputValidationError(f"{field} is not a number: {value!r}")
    if not d.is_finite():
        raise InputValidationError(f"{field} must be finite: {value!r}")
    return d


def percent_to_bps(percent: Percent, field: str = "percentage") -> int:
    """
    Convert a percentage in [0, 100] to whole basis points.

    0.5 -> 50, 40 -> 4000. Sub-basis-point precision is truncated.

    Raises:
        InputValidationError: if percent is outside [0, 100]
    """
    d = to_decimal(percent, field)
    if d < 0 or d > 100:
        raise InputValidationError(f"{field} must be within [0, 100], got {percent}")
    return int(d * 100)


def validate_bps(bps: int, field: str = "bps") -> int:
    """Basis points must be an int in [0, 10000]."""
    if isinstance(bps, bool) or not isinstance(bps, int):
        raise InputValidationError(f"{field} must be an integer, got {bps!r}")
    if bps < 0 or bps > BPS_DENOMINATOR:
        raise InputValidationError(f"{field} must be within [0, 10000], got {bps}")
    return bps


def slippage_min(amount: int, slippage_bps: int) -> int:
    """
    Minimum acceptable amount: amount * (1 - tolerance), rounded down.

    Integer arithmetic on native units only - no float intermediate,
    so large balances do not drift.
    """
    validate_bps(slippage_bps, "slippage_bps")
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def slippage_max(amount: int, slippage_bps: int) -> int:
    """Maximum acceptable amount: amount * (1 + tolerance), rounded up."""
    validate_bps(slippage_bps, "slippage_bps")
    return -(-amount * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR)


def reverse_slippage_min(amount_min: int, slippage_bps: int) -> int:
    """
    Inverse of slippage_min: the amount whose minimum is amount_min.

    slippage_min(reverse_slippage_min(x, b), b) is within 1 unit of x.
    """
    validate_bps(slippage_bps, "slippage_bps")
    if slippage_bps == BPS_DENOMINATOR:
        return 0
    return -(-amount_min * BPS_DENOMINATOR // (BPS_DENOMINATOR - slippage_bps))


def get_deadline(window_seconds: Optional[int] = None, now: Optional[int] = None) -> int:
    """
    Transaction deadline timestamp.

    Args:
        window_seconds: Seconds from now (default: 20 minutes)
        now: Current unix time override (для детерминированных тестов)

    Returns:
        now + window_seconds
    """
    if window_seconds is None:
        window_seconds = DEFAULT_DEADLINE_SECONDS
    if window_seconds < 0:
        raise InputValidationError(f"Deadline window must be non-negative: {window_seconds}")
    if now is None:
        now = int(time.time())
    return now + window_seconds


def check_uint(value: int, bits: int, field: str) -> int:
    """Ensure value fits uintN, otherwise fail loudly with EncodingError."""
    if value < 0 or value >= 1 << bits:
        raise EncodingError(field, value, bits)
    return value


def check_int(value: int, bits: int, field: str) -> int:
    """Ensure value fits intN (two's complement range)."""
    bound = 1 << (bits - 1)
    if value < -bound or value >= bound:
        raise EncodingError(field, value, bits, signed=True)
    return value


def to_hex(data: bytes) -> str:
    """0x-prefixed lowercase hex."""
    return "0x" + data.hex()


def to_raw_amount(amount: Percent, decimals: int) -> int:
    """
    Human amount -> native units, truncated toward zero.

    Decimal через str: 0.1 ETH = ровно 10^17 wei.
    """
    d = to_decimal(amount, "amount")
    if d < 0:
        raise InputValidationError(f"amount must be non-negative: {amount}")
    return int(d * (Decimal(10) ** decimals))


def format_from_raw(raw: Optional[Amount], decimals: int) -> Decimal:
    """Native units -> human Decimal; None -> 0."""
    if raw is None:
        return Decimal(0)
    return Decimal(parse_amount(raw, "raw")) / (Decimal(10) ** decimals)
