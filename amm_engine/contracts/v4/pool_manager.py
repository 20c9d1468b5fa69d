"""
V4 pool initialization and state probes.

Инициализация идёт через PositionManager.initializePool (не напрямую
через PoolManager.initialize): если пул уже инициализирован, вызов
не ревертится, поэтому шаг идемпотентен.

Пробы состояния (StateView.getSlot0 / getLiquidity) только кодируются
и декодируются - сам eth_call выполняет вызывающий.
"""

import logging
from dataclasses import dataclass

from eth_abi import decode
from web3 import Web3

from ...config import DeploymentConfig
from ...errors import UnsupportedConfigurationError
from ...math.ticks import validate_sqrt_price
from ..encoding import encode_call
from ..pool_key import PoolKey
from ..transaction import TransactionStep
from .abis import V4_POSITION_MANAGER_ABI, V4_STATE_VIEW_ABI
from .constants import v4_fee_to_percent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot0:
    """Decoded StateView.getSlot0 result."""
    sqrt_price_x96: int
    tick: int
    protocol_fee: int
    lp_fee: int

    @property
    def initialized(self) -> bool:
        return self.sqrt_price_x96 > 0


class V4PoolManager:
    """V4 pool initialization and StateView call encoding."""

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.position_manager = Web3.to_checksum_address(config.v4_position_manager)

    def encode_initialize_pool(self, pool_key: PoolKey, sqrt_price_x96: int) -> bytes:
        """PositionManager.initializePool(PoolKey, uint160 sqrtPriceX96)"""
        validate_sqrt_price(sqrt_price_x96)
        return encode_call(V4_POSITION_MANAGER_ABI, "initializePool", [
            pool_key.to_tuple(),
            sqrt_price_x96,
        ])

    def build_initialize_step(self, pool_key: PoolKey, sqrt_price_x96: int) -> TransactionStep:
        """Initialize step (no-op on chain if the pool already exists)."""
        fee_label = "dynamic" if pool_key.is_dynamic_fee else f"{v4_fee_to_percent(pool_key.fee)}%"
        logger.debug(
            f"[V4 INIT] {pool_key.currency0}/{pool_key.currency1} fee={fee_label} "
            f"ts={pool_key.tick_spacing} hooks={pool_key.hooks} sqrtPriceX96={sqrt_price_x96}"
        )
        return TransactionStep(
            to=self.position_manager,
            data=self.encode_initialize_pool(pool_key, sqrt_price_x96),
            action="initialize",
        )

    def _state_view(self) -> str:
        if not self.config.v4_state_view:
            raise UnsupportedConfigurationError(
                f"No V4 StateView configured for {self.config.name}", value=self.config.chain_id
            )
        return Web3.to_checksum_address(self.config.v4_state_view)

    def build_slot0_call(self, pool_key: PoolKey) -> TransactionStep:
        """eth_call payload: StateView.getSlot0(poolId)."""
        data = encode_call(V4_STATE_VIEW_ABI, "getSlot0", [pool_key.pool_id])
        return TransactionStep(to=self._state_view(), data=data, action="eth_call")

    def build_liquidity_call(self, pool_key: PoolKey) -> TransactionStep:
        """eth_call payload: StateView.getLiquidity(poolId)."""
        data = encode_call(V4_STATE_VIEW_ABI, "getLiquidity", [pool_key.pool_id])
        return TransactionStep(to=self._state_view(), data=data, action="eth_call")

    @staticmethod
    def decode_slot0(result: bytes) -> Slot0:
        """Decode getSlot0 return data (sqrtPriceX96 == 0 -> not initialized)."""
        sqrt_price_x96, tick, protocol_fee, lp_fee = decode(
            ['uint160', 'int24', 'uint24', 'uint24'], result
        )
        return Slot0(sqrt_price_x96, tick, protocol_fee, lp_fee)

    @staticmethod
    def decode_liquidity(result: bytes) -> int:
        return decode(['uint128'], result)[0]
