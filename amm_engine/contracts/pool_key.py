"""
Pool key canonicalization.

PoolKey однозначно определяет пул V4 (и сортировку токенов для V2/V3):
- currency0 < currency1 (сравнение адресов как чисел = без учёта регистра)
- native currency (0x000...0) всегда currency0
- hooks входит в идентичность пула
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from eth_abi import encode
from web3 import Web3

from ..errors import InputValidationError
from ..math.ticks import (
    DYNAMIC_FEE_FLAG,
    MAX_LP_FEE,
    tick_spacing_for_fee,
    validate_tick_spacing,
)

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
# V4 native currency (ETH) is address(0)
NATIVE_CURRENCY = ZERO_ADDRESS


def normalize_address(address: str, field: str = "address") -> str:
    """
    Checksum address or InputValidationError.
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InputValidationError(f"Invalid {field}: {address!r}")
    return Web3.to_checksum_address(address)


def is_native(currency: str) -> bool:
    """True for the native currency sentinel."""
    return int(currency, 16) == 0


def sort_currencies(currency_a: str, currency_b: str) -> Tuple[str, str]:
    """
    Сортировка адресов (currency0, currency1).

    Сравнение по числовому значению адреса - регистр не важен,
    native (address 0) всегда первый.

    Raises:
        InputValidationError: некорректный или одинаковый адрес
    """
    addr_a = normalize_address(currency_a, "currency")
    addr_b = normalize_address(currency_b, "currency")

    if int(addr_a, 16) == int(addr_b, 16):
        raise InputValidationError(f"Currencies must differ: {addr_a}")

    if int(addr_a, 16) > int(addr_b, 16):
        return addr_b, addr_a
    return addr_a, addr_b


def validate_fee(fee: int) -> int:
    """Static LP fee in [0, 1_000_000] (hundredths of a bip) or DYNAMIC_FEE_FLAG."""
    if isinstance(fee, bool) or not isinstance(fee, int):
        raise InputValidationError(f"Fee must be an integer, got {fee!r}")
    if fee == DYNAMIC_FEE_FLAG:
        return fee
    if fee < 0 or fee > MAX_LP_FEE:
        raise InputValidationError(f"Fee must be within [0, {MAX_LP_FEE}], got {fee}")
    return fee


@dataclass(frozen=True)
class PoolKey:
    """V4 Pool Key - uniquely identifies a pool."""
    currency0: str  # lower address
    currency1: str  # higher address
    fee: int        # hundredths of a bip, or DYNAMIC_FEE_FLAG
    tick_spacing: int
    hooks: str = ZERO_ADDRESS

    def __post_init__(self):
        normalize_address(self.currency0, "currency0")
        normalize_address(self.currency1, "currency1")
        normalize_address(self.hooks, "hooks")
        if int(self.currency0, 16) >= int(self.currency1, 16):
            raise InputValidationError(
                f"currency0 must sort before currency1: {self.currency0} >= {self.currency1}"
            )
        validate_fee(self.fee)
        validate_tick_spacing(self.tick_spacing)

    @classmethod
    def from_tokens(
        cls,
        token_a: str,
        token_b: str,
        fee: int,
        tick_spacing: Optional[int] = None,
        hooks: Optional[str] = None,
        dynamic_fee_tick_spacing: Optional[int] = None
    ) -> "PoolKey":
        """
        Create PoolKey from token addresses in any order.

        Tokens are sorted; tick_spacing is derived from fee when not given
        (dynamic fee uses dynamic_fee_tick_spacing from the deployment).
        """
        currency0, currency1 = sort_currencies(token_a, token_b)
        validate_fee(fee)

        if tick_spacing is None:
            tick_spacing = tick_spacing_for_fee(fee, dynamic_fee_tick_spacing)

        return cls(
            currency0=currency0,
            currency1=currency1,
            fee=fee,
            tick_spacing=tick_spacing,
            hooks=normalize_address(hooks, "hooks") if hooks else ZERO_ADDRESS,
        )

    def to_tuple(self) -> tuple:
        """Convert to tuple for contract calls."""
        return (
            Web3.to_checksum_address(self.currency0),
            Web3.to_checksum_address(self.currency1),
            self.fee,
            self.tick_spacing,
            Web3.to_checksum_address(self.hooks),
        )

    @property
    def pool_id(self) -> bytes:
        """keccak256(abi.encode(PoolKey))"""
        return compute_pool_identifier(self)

    @property
    def is_dynamic_fee(self) -> bool:
        return self.fee == DYNAMIC_FEE_FLAG

    def is_native(self) -> bool:
        """currency0 is the native currency."""
        return is_native(self.currency0)


def compute_pool_identifier(pool_key: PoolKey) -> bytes:
    """
    Pool ID: keccak256 of ABI-encoded (currency0, currency1, fee, tickSpacing, hooks).

    Opaque lookup key for collaborators probing on-chain state.
    """
    encoded = encode(
        ['address', 'address', 'uint24', 'int24', 'address'],
        list(pool_key.to_tuple())
    )
    return bytes(Web3.keccak(encoded))
