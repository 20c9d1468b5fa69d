"""
V3 NonfungiblePositionManager call encoding.

Прямые вызовы на каждую операцию:
- createAndInitializePoolIfNecessary (идемпотентно)
- mint / increaseLiquidity / decreaseLiquidity / collect / burn
- multicall для decrease + collect (+ burn) одной транзакцией
"""

import logging
from dataclasses import dataclass
from typing import List

from web3 import Web3

from ..config import DeploymentConfig
from ..utils import MAX_UINT128, check_int, check_uint
from .abis import V3_POSITION_MANAGER_ABI
from .encoding import encode_call
from .transaction import TransactionStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MintParams:
    """Параметры для создания позиции (token0 < token1 уже отсортированы)."""
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    amount0_min: int
    amount1_min: int

    def to_tuple(self, recipient: str, deadline: int) -> tuple:
        """Конвертация в tuple для контракта."""
        check_uint(self.fee, 24, "fee")
        check_int(self.tick_lower, 24, "tickLower")
        check_int(self.tick_upper, 24, "tickUpper")
        for name in ("amount0_desired", "amount1_desired", "amount0_min", "amount1_min"):
            check_uint(getattr(self, name), 256, name)
        return (
            Web3.to_checksum_address(self.token0),
            Web3.to_checksum_address(self.token1),
            self.fee,
            self.tick_lower,
            self.tick_upper,
            self.amount0_desired,
            self.amount1_desired,
            self.amount0_min,
            self.amount1_min,
            Web3.to_checksum_address(recipient),
            deadline
        )


class V3PositionManager:
    """Encodes NonfungiblePositionManager calls into transaction steps."""

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.address = Web3.to_checksum_address(config.v3_position_manager)

    def _step(self, data: bytes, action: str, value: int = 0) -> TransactionStep:
        return TransactionStep(to=self.address, data=data, value=value, action=action)

    # ---------------- encoders ----------------

    def encode_create_and_initialize(self, token0: str, token1: str, fee: int, sqrt_price_x96: int) -> bytes:
        """createAndInitializePoolIfNecessary(token0, token1, fee, sqrtPriceX96)"""
        check_uint(sqrt_price_x96, 160, "sqrtPriceX96")
        return encode_call(V3_POSITION_MANAGER_ABI, "createAndInitializePoolIfNecessary", [
            Web3.to_checksum_address(token0),
            Web3.to_checksum_address(token1),
            fee,
            sqrt_price_x96,
        ])

    def encode_mint(self, params: MintParams, recipient: str, deadline: int) -> bytes:
        """
        Кодирование вызова mint.

        Args:
            params: Параметры позиции
            recipient: Адрес получателя NFT
            deadline: Deadline транзакции
        """
        return encode_call(V3_POSITION_MANAGER_ABI, "mint", [params.to_tuple(recipient, deadline)])

    def encode_increase_liquidity(
        self,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        deadline: int
    ) -> bytes:
        """Кодирование increaseLiquidity."""
        params = (token_id, amount0_desired, amount1_desired, amount0_min, amount1_min, deadline)
        return encode_call(V3_POSITION_MANAGER_ABI, "increaseLiquidity", [params])

    def encode_decrease_liquidity(
        self,
        token_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        deadline: int
    ) -> bytes:
        """Кодирование decreaseLiquidity."""
        check_uint(liquidity, 128, "liquidity")
        params = (token_id, liquidity, amount0_min, amount1_min, deadline)
        return encode_call(V3_POSITION_MANAGER_ABI, "decreaseLiquidity", [params])

    def encode_collect(
        self,
        token_id: int,
        recipient: str,
        amount0_max: int = MAX_UINT128,
        amount1_max: int = MAX_UINT128
    ) -> bytes:
        """Кодирование collect (по умолчанию всё накопленное)."""
        params = (token_id, Web3.to_checksum_address(recipient), amount0_max, amount1_max)
        return encode_call(V3_POSITION_MANAGER_ABI, "collect", [params])

    def encode_burn(self, token_id: int) -> bytes:
        """Кодирование burn."""
        return encode_call(V3_POSITION_MANAGER_ABI, "burn", [token_id])

    def encode_multicall(self, calls: List[bytes]) -> bytes:
        return encode_call(V3_POSITION_MANAGER_ABI, "multicall", [calls])

    # ---------------- steps ----------------

    def build_create_and_initialize(self, token0: str, token1: str, fee: int, sqrt_price_x96: int) -> TransactionStep:
        logger.debug(f"[V3 INIT] {token0}/{token1} fee={fee} sqrtPriceX96={sqrt_price_x96}")
        return self._step(self.encode_create_and_initialize(token0, token1, fee, sqrt_price_x96), "initialize")

    def build_mint(self, params: MintParams, recipient: str, deadline: int) -> TransactionStep:
        logger.debug(
            f"[V3 MINT] ticks=[{params.tick_lower}, {params.tick_upper}] "
            f"desired=({params.amount0_desired}, {params.amount1_desired}) "
            f"min=({params.amount0_min}, {params.amount1_min})"
        )
        return self._step(self.encode_mint(params, recipient, deadline), "mint")

    def build_increase(
        self,
        token_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        deadline: int
    ) -> TransactionStep:
        logger.debug(f"[V3 INCREASE] token_id={token_id} desired=({amount0_desired}, {amount1_desired})")
        data = self.encode_increase_liquidity(
            token_id, amount0_desired, amount1_desired, amount0_min, amount1_min, deadline
        )
        return self._step(data, "increase")

    def build_decrease(
        self,
        token_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        recipient: str,
        deadline: int
    ) -> TransactionStep:
        """
        multicall([decreaseLiquidity, collect]).

        decreaseLiquidity только начисляет токены позиции - без collect
        они остаются в менеджере.
        """
        logger.debug(f"[V3 DECREASE] token_id={token_id} liquidity={liquidity} min=({amount0_min}, {amount1_min})")
        calls = [
            self.encode_decrease_liquidity(token_id, liquidity, amount0_min, amount1_min, deadline),
            self.encode_collect(token_id, recipient),
        ]
        return self._step(self.encode_multicall(calls), "decrease")

    def build_burn(
        self,
        token_id: int,
        remaining_liquidity: int,
        amount0_min: int,
        amount1_min: int,
        recipient: str,
        deadline: int
    ) -> TransactionStep:
        """
        burn(tokenId); если в позиции ещё есть liquidity -
        multicall([decreaseLiquidity(all), collect, burn]).
        """
        if remaining_liquidity <= 0:
            logger.debug(f"[V3 BURN] token_id={token_id} (empty position)")
            return self._step(self.encode_burn(token_id), "burn")

        logger.debug(f"[V3 BURN] token_id={token_id} closing liquidity={remaining_liquidity} first")
        calls = [
            self.encode_decrease_liquidity(token_id, remaining_liquidity, amount0_min, amount1_min, deadline),
            self.encode_collect(token_id, recipient),
            self.encode_burn(token_id),
        ]
        return self._step(self.encode_multicall(calls), "burn")

    def build_collect(self, token_id: int, recipient: str) -> TransactionStep:
        logger.debug(f"[V3 COLLECT] token_id={token_id} -> {recipient}")
        return self._step(self.encode_collect(token_id, recipient), "collect")
