"""
Protocol versions and position identifiers.

PositionId - версия + tokenId ("v3-12345"). Только для маршрутизации
к нужному энкодеру; вне движка это непрозрачная строка.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .contracts.pool_key import normalize_address
from .errors import InputValidationError

logger = logging.getLogger(__name__)

MAX_TOKEN_ID = 2**256 - 1


class ProtocolVersion(Enum):
    """AMM protocol generation."""
    V2 = "v2"  # constant product, router calls
    V3 = "v3"  # concentrated liquidity, NonfungiblePositionManager
    V4 = "v4"  # singleton PoolManager, action streams

    @classmethod
    def parse(cls, tag: str) -> "ProtocolVersion":
        """
        'v3' / 'V3' -> ProtocolVersion.V3

        Raises:
            InputValidationError: неизвестный тег
        """
        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise InputValidationError(f"Protocol version must be a string, got {tag!r}")
        try:
            return cls(tag.strip().lower())
        except ValueError:
            raise InputValidationError(f"Unknown protocol version: {tag!r}")


def can_collect_fees(version: ProtocolVersion) -> bool:
    """
    V2 fees accrue inside LP tokens: there is nothing to collect separately.
    """
    return version in (ProtocolVersion.V3, ProtocolVersion.V4)


@dataclass(frozen=True)
class PositionId:
    """Position handle: version + NFT token id (V2: pair-scoped index)."""
    version: ProtocolVersion
    token_id: int

    def __post_init__(self):
        if not isinstance(self.version, ProtocolVersion):
            raise InputValidationError(f"Invalid protocol version: {self.version!r}")
        if isinstance(self.token_id, bool) or not isinstance(self.token_id, int) or self.token_id < 0:
            raise InputValidationError(f"Invalid token id: {self.token_id!r}")
        if self.token_id > MAX_TOKEN_ID:
            raise InputValidationError(f"Token id does not fit uint256: {self.token_id}")

    @classmethod
    def parse(cls, value: str) -> "PositionId":
        """
        Разбор строки "v3-12345".

        Raises:
            InputValidationError: неизвестный тег версии или нечисловой id
        """
        if not isinstance(value, str) or "-" not in value:
            raise InputValidationError(f"Malformed position id: {value!r}")

        tag, _, raw_id = value.strip().partition("-")
        version = ProtocolVersion.parse(tag)

        if not raw_id.isdigit():
            raise InputValidationError(f"Position token id is not an integer: {raw_id!r}")
        return cls(version=version, token_id=int(raw_id))

    def __str__(self) -> str:
        return f"{self.version.value}-{self.token_id}"


@dataclass(frozen=True)
class PositionState:
    """
    Snapshot of a live V3/V4 position, fetched by the caller.

    Используется для расчёта реальных минимумов при выводе ликвидности
    и для размера liquidity при увеличении V4 позиции.
    currency0 < currency1, как в PoolKey.
    """
    sqrt_price_x96: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    currency0: str
    currency1: str

    def __post_init__(self):
        # amounts, approvals and msg.value all follow this order
        normalize_address(self.currency0, "currency0")
        normalize_address(self.currency1, "currency1")
        if int(self.currency0, 16) >= int(self.currency1, 16):
            raise InputValidationError(
                f"currency0 must sort before currency1: {self.currency0} >= {self.currency1}"
            )
