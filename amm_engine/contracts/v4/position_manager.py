"""
V4 PositionManager action streams.

В V4 нет отдельных функций mint/increase/collect - всё проходит через
modifyLiquidities(unlockData, deadline), где
unlockData = abi.encode(bytes actions, bytes[] params).

Порядок действий важен: MINT_POSITION без SETTLE_PAIR не оплачен,
DECREASE_LIQUIDITY без TAKE_PAIR оставляет токены в PoolManager.

Сбор комиссий: DECREASE_LIQUIDITY(liquidity=0) + TAKE_PAIR.
"""

import logging
from typing import List, Optional

from eth_abi import encode
from web3 import Web3

from ...config import DeploymentConfig
from ...errors import InputValidationError
from ...utils import check_int, check_uint
from ..encoding import encode_call
from ..pool_key import NATIVE_CURRENCY, PoolKey, is_native, sort_currencies
from ..transaction import TransactionStep
from .abis import ACTION_PARAM_TYPES, V4Actions, V4_POSITION_MANAGER_ABI
from .constants import EMPTY_HOOK_DATA

logger = logging.getLogger(__name__)


def encode_action(action: int, args: list) -> bytes:
    """action byte + abi-encoded params (разделяются в encode_actions)."""
    return bytes([action]) + encode(ACTION_PARAM_TYPES[action], args)


def encode_actions(actions: List[bytes]) -> bytes:
    """
    Encode list of actions into unlockData payload.

    V4 format: abi.encode(bytes actions, bytes[] params)
    - actions: packed action IDs (1 byte each)
    - params: ABI-encoded params for each action

    Each item of the input list is: action_id (1 byte) + params
    """
    action_ids = bytes([a[0] for a in actions])
    params_list = [a[1:] for a in actions]
    return encode(['bytes', 'bytes[]'], [action_ids, params_list])


def encode_mint_position(
    pool_key: PoolKey,
    tick_lower: int,
    tick_upper: int,
    liquidity: int,
    amount0_max: int,
    amount1_max: int,
    recipient: str,
    hook_data: bytes = EMPTY_HOOK_DATA
) -> bytes:
    """
    MINT_POSITION(PoolKey, tickLower, tickUpper, liquidity, amount0Max, amount1Max, owner, hookData)
    """
    check_int(tick_lower, 24, "tickLower")
    check_int(tick_upper, 24, "tickUpper")
    check_uint(liquidity, 128, "liquidity")
    check_uint(amount0_max, 128, "amount0Max")
    check_uint(amount1_max, 128, "amount1Max")

    logger.debug(f"[V4 MINT] PoolKey: {pool_key.currency0}/{pool_key.currency1} fee={pool_key.fee} ts={pool_key.tick_spacing}")
    logger.debug(f"[V4 MINT] tick_lower={tick_lower}, tick_upper={tick_upper}, liquidity={liquidity}")
    logger.debug(f"[V4 MINT] amount0_max={amount0_max}, amount1_max={amount1_max}, recipient={recipient}")

    return encode_action(V4Actions.MINT_POSITION, [
        pool_key.to_tuple(),
        tick_lower,
        tick_upper,
        liquidity,
        amount0_max,
        amount1_max,
        Web3.to_checksum_address(recipient),
        hook_data,
    ])


def encode_increase_liquidity(
    token_id: int,
    liquidity: int,
    amount0_max: int,
    amount1_max: int,
    hook_data: bytes = EMPTY_HOOK_DATA
) -> bytes:
    """INCREASE_LIQUIDITY(tokenId, liquidity, amount0Max, amount1Max, hookData)"""
    check_uint(liquidity, 128, "liquidity")
    check_uint(amount0_max, 128, "amount0Max")
    check_uint(amount1_max, 128, "amount1Max")
    logger.debug(f"[V4 INCREASE] token_id={token_id}, liquidity={liquidity}, max=({amount0_max}, {amount1_max})")
    return encode_action(V4Actions.INCREASE_LIQUIDITY, [
        token_id, liquidity, amount0_max, amount1_max, hook_data
    ])


def encode_decrease_liquidity(
    token_id: int,
    liquidity: int,
    amount0_min: int,
    amount1_min: int,
    hook_data: bytes = EMPTY_HOOK_DATA
) -> bytes:
    """DECREASE_LIQUIDITY(tokenId, liquidity, amount0Min, amount1Min, hookData)"""
    check_uint(liquidity, 128, "liquidity")
    check_uint(amount0_min, 128, "amount0Min")
    check_uint(amount1_min, 128, "amount1Min")
    logger.debug(f"[V4 DECREASE] token_id={token_id}, liquidity={liquidity}, min=({amount0_min}, {amount1_min})")
    return encode_action(V4Actions.DECREASE_LIQUIDITY, [
        token_id, liquidity, amount0_min, amount1_min, hook_data
    ])


def encode_burn_position(
    token_id: int,
    amount0_min: int,
    amount1_min: int,
    hook_data: bytes = EMPTY_HOOK_DATA
) -> bytes:
    """BURN_POSITION(tokenId, amount0Min, amount1Min, hookData)"""
    check_uint(amount0_min, 128, "amount0Min")
    check_uint(amount1_min, 128, "amount1Min")
    logger.debug(f"[V4 BURN] token_id={token_id}, min=({amount0_min}, {amount1_min})")
    return encode_action(V4Actions.BURN_POSITION, [token_id, amount0_min, amount1_min, hook_data])


def encode_settle_pair(currency0: str, currency1: str) -> bytes:
    """SETTLE_PAIR: оплатить оба долга из кошелька (через Permit2)."""
    return encode_action(V4Actions.SETTLE_PAIR, [
        Web3.to_checksum_address(currency0),
        Web3.to_checksum_address(currency1),
    ])


def encode_take_pair(currency0: str, currency1: str, recipient: str) -> bytes:
    """TAKE_PAIR: забрать оба кредита на recipient."""
    return encode_action(V4Actions.TAKE_PAIR, [
        Web3.to_checksum_address(currency0),
        Web3.to_checksum_address(currency1),
        Web3.to_checksum_address(recipient),
    ])


def encode_sweep(currency: str, recipient: str) -> bytes:
    """SWEEP: вернуть остаток msg.value (native) отправителю."""
    return encode_action(V4Actions.SWEEP, [
        Web3.to_checksum_address(currency),
        Web3.to_checksum_address(recipient),
    ])


class V4PositionManager:
    """
    Builds modifyLiquidities steps for the V4 PositionManager.

    Суммы и минимумы уже посчитаны вызывающим (LiquidityProvider);
    здесь только порядок действий и кодирование.
    """

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.address = Web3.to_checksum_address(config.v4_position_manager)

    def _modify_liquidities(
        self,
        actions: List[bytes],
        deadline: int,
        value: int = 0,
        label: str = ""
    ) -> TransactionStep:
        check_uint(deadline, 256, "deadline")
        unlock_data = encode_actions(actions)
        logger.debug(f"[V4] {label}: {len(actions)} actions {bytes(a[0] for a in actions).hex()}, value={value}")
        data = encode_call(V4_POSITION_MANAGER_ABI, "modifyLiquidities", [unlock_data, deadline])
        return TransactionStep(to=self.address, data=data, value=value, action=label)

    def build_mint(
        self,
        pool_key: PoolKey,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
        amount0_max: int,
        amount1_max: int,
        recipient: str,
        deadline: int,
        hook_data: bytes = EMPTY_HOOK_DATA
    ) -> TransactionStep:
        """
        MINT_POSITION + SETTLE_PAIR (+ SWEEP для native currency0).

        Для native currency0 value = amount0_max, излишек возвращает SWEEP.
        """
        actions = [
            encode_mint_position(
                pool_key, tick_lower, tick_upper, liquidity,
                amount0_max, amount1_max, recipient, hook_data
            ),
            encode_settle_pair(pool_key.currency0, pool_key.currency1),
        ]
        value = 0
        if pool_key.is_native():
            actions.append(encode_sweep(NATIVE_CURRENCY, recipient))
            value = amount0_max
        return self._modify_liquidities(actions, deadline, value, "mint")

    def build_increase(
        self,
        token_id: int,
        liquidity: int,
        amount0_max: int,
        amount1_max: int,
        currency0: str,
        currency1: str,
        deadline: int,
        sweep_to: Optional[str] = None,
        hook_data: bytes = EMPTY_HOOK_DATA
    ) -> TransactionStep:
        """INCREASE_LIQUIDITY + SETTLE_PAIR (+ SWEEP для native)."""
        currency0, currency1 = sort_currencies(currency0, currency1)
        actions = [
            encode_increase_liquidity(token_id, liquidity, amount0_max, amount1_max, hook_data),
            encode_settle_pair(currency0, currency1),
        ]
        value = 0
        if is_native(currency0):
            if sweep_to is None:
                raise InputValidationError("sweep_to is required when currency0 is native")
            actions.append(encode_sweep(NATIVE_CURRENCY, sweep_to))
            value = amount0_max
        return self._modify_liquidities(actions, deadline, value, "increase")

    def build_decrease(
        self,
        token_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        currency0: str,
        currency1: str,
        recipient: str,
        deadline: int,
        hook_data: bytes = EMPTY_HOOK_DATA
    ) -> TransactionStep:
        """DECREASE_LIQUIDITY + TAKE_PAIR."""
        currency0, currency1 = sort_currencies(currency0, currency1)
        actions = [
            encode_decrease_liquidity(token_id, liquidity, amount0_min, amount1_min, hook_data),
            encode_take_pair(currency0, currency1, recipient),
        ]
        return self._modify_liquidities(actions, deadline, label="decrease")

    def build_burn(
        self,
        token_id: int,
        amount0_min: int,
        amount1_min: int,
        currency0: str,
        currency1: str,
        recipient: str,
        deadline: int,
        hook_data: bytes = EMPTY_HOOK_DATA
    ) -> TransactionStep:
        """BURN_POSITION + TAKE_PAIR (burn сам выводит оставшуюся liquidity)."""
        currency0, currency1 = sort_currencies(currency0, currency1)
        actions = [
            encode_burn_position(token_id, amount0_min, amount1_min, hook_data),
            encode_take_pair(currency0, currency1, recipient),
        ]
        return self._modify_liquidities(actions, deadline, label="burn")

    def build_collect_fees(
        self,
        token_id: int,
        currency0: str,
        currency1: str,
        recipient: str,
        deadline: int
    ) -> TransactionStep:
        """
        Collect fees: DECREASE_LIQUIDITY(0, 0, 0) + TAKE_PAIR.

        Валидно и при нулевых накопленных комиссиях (TAKE_PAIR переведёт 0).
        """
        currency0, currency1 = sort_currencies(currency0, currency1)
        actions = [
            encode_decrease_liquidity(token_id, 0, 0, 0),
            encode_take_pair(currency0, currency1, recipient),
        ]
        return self._modify_liquidities(actions, deadline, label="collect")
