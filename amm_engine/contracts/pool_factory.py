"""
Pool creation with initial liquidity (V2 / V3 / V4).

- V2: один вызов роутера addLiquidity(ETH) создаёт пару и вносит обе суммы
- V3: createAndInitializePoolIfNecessary -> mint full range
- V4: PositionManager.initializePool -> modifyLiquidities(MINT_POSITION, SETTLE_PAIR)

Порядок шагов строгий: approve -> initialize -> mint.
Поиск существующих пулов (getPair / getPool / getSlot0) только кодируется.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from eth_abi import decode
from web3 import Web3

from ..config import DeploymentConfig
from ..errors import InputValidationError, UnsupportedConfigurationError
from ..math.liquidity import amounts_from_liquidity, liquidity_from_amounts
from ..math.ticks import (
    DYNAMIC_FEE_FLAG,
    full_range_ticks,
    get_sqrt_ratio_at_tick,
    sqrt_price_x96_from_amounts,
    tick_spacing_for_fee,
    validate_sqrt_price,
)
from ..positions import ProtocolVersion
from ..utils import Amount, Percent, parse_amount, slippage_max, slippage_min
from .abis import V2_FACTORY_ABI, V2_ROUTER_ABI, V3_FACTORY_ABI
from .encoding import encode_call
from .pool_key import PoolKey, is_native, normalize_address, sort_currencies, validate_fee
from .position_manager import MintParams, V3PositionManager
from .transaction import (
    Allowances,
    TransactionStep,
    build_approval_steps,
    build_permit2_approval_steps,
)
from .v4.pool_manager import V4PoolManager
from .v4.position_manager import V4PositionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatePoolParams:
    """
    Intent: create a pool (if absent) and deposit initial liquidity.

    token_a / token_b в любом порядке - сортируются внутри.
    sqrt_price_x96: начальная цена (currency1 за currency0); если не задана,
    берётся из соотношения сумм.
    """
    version: ProtocolVersion
    token_a: str
    token_b: str
    amount_a: Amount
    amount_b: Amount
    recipient: str
    fee: int = 3000
    sqrt_price_x96: Optional[int] = None
    tick_spacing: Optional[int] = None
    hooks: Optional[str] = None
    slippage: Optional[Percent] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None
    pool_initialized: bool = False
    allowances: Optional[Allowances] = None


@dataclass(frozen=True)
class _SortedDeposit:
    currency0: str
    currency1: str
    amount0: int
    amount1: int


def _sorted_deposit(params: CreatePoolParams) -> _SortedDeposit:
    amount_a = parse_amount(params.amount_a, "amount_a")
    amount_b = parse_amount(params.amount_b, "amount_b")
    currency0, currency1 = sort_currencies(params.token_a, params.token_b)
    if int(currency0, 16) == int(params.token_a, 16):
        return _SortedDeposit(currency0, currency1, amount_a, amount_b)
    return _SortedDeposit(currency0, currency1, amount_b, amount_a)


class PoolFactory:
    """Builds pool-creation step sequences for all protocol versions."""

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.v3_manager = V3PositionManager(config)
        self.v4_pool_manager = V4PoolManager(config)
        self.v4_manager = V4PositionManager(config)

    def create_pool(self, params: CreatePoolParams) -> List[TransactionStep]:
        """Dispatch on protocol version."""
        if params.version == ProtocolVersion.V2:
            return self.create_v2_pool(params)
        elif params.version == ProtocolVersion.V3:
            return self.create_v3_pool(params)
        elif params.version == ProtocolVersion.V4:
            return self.create_v4_pool(params)
        raise UnsupportedConfigurationError(f"Unsupported protocol version: {params.version!r}", value=params.version)

    # ---------------- V2 ----------------

    def create_v2_pool(self, params: CreatePoolParams) -> List[TransactionStep]:
        """
        addLiquidity / addLiquidityETH: пара создаётся роутером, если её нет.

        Минимумы = desired * (1 - slippage).
        """
        deposit = _sorted_deposit(params)
        if deposit.amount0 == 0 or deposit.amount1 == 0:
            raise InputValidationError("V2 pool creation requires both amounts to be positive")

        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)
        recipient = normalize_address(params.recipient, "recipient")
        router = Web3.to_checksum_address(self.config.v2_router)

        steps = build_approval_steps(
            [(deposit.currency0, deposit.amount0), (deposit.currency1, deposit.amount1)],
            router,
            params.allowances,
        )

        if is_native(deposit.currency0):
            # native always sorts first
            data = encode_call(V2_ROUTER_ABI, "addLiquidityETH", [
                deposit.currency1,
                deposit.amount1,
                slippage_min(deposit.amount1, bps),
                slippage_min(deposit.amount0, bps),
                recipient,
                deadline,
            ])
            value = deposit.amount0
        else:
            data = encode_call(V2_ROUTER_ABI, "addLiquidity", [
                deposit.currency0,
                deposit.currency1,
                deposit.amount0,
                deposit.amount1,
                slippage_min(deposit.amount0, bps),
                slippage_min(deposit.amount1, bps),
                recipient,
                deadline,
            ])
            value = 0

        logger.debug(f"[V2 CREATE] {deposit.currency0}/{deposit.currency1} amounts=({deposit.amount0}, {deposit.amount1}) slippage={bps}bps")
        steps.append(TransactionStep(to=router, data=data, value=value, action="add_liquidity"))
        return steps

    # ---------------- V3 ----------------

    def create_v3_pool(self, params: CreatePoolParams) -> List[TransactionStep]:
        """
        createAndInitializePoolIfNecessary + mint (full range).

        Минимумы считаются от сумм, реально нужных для рассчитанной liquidity.
        """
        deposit = _sorted_deposit(params)
        if is_native(deposit.currency0):
            raise UnsupportedConfigurationError(
                "V3 pools hold the wrapped native token; use wrapped_native instead of the native currency",
                value=deposit.currency0,
            )
        if validate_fee(params.fee) == DYNAMIC_FEE_FLAG:
            raise UnsupportedConfigurationError("V3 has no dynamic fee pools", value=params.fee)
        if params.hooks and int(params.hooks, 16) != 0:
            raise UnsupportedConfigurationError("V3 pools have no hooks", value=params.hooks)

        # V3 factory fixes spacing per fee tier
        tick_spacing = tick_spacing_for_fee(params.fee)
        if params.tick_spacing is not None and params.tick_spacing != tick_spacing:
            raise UnsupportedConfigurationError(
                f"V3 fee {params.fee} uses tick spacing {tick_spacing}, got {params.tick_spacing}",
                value=params.tick_spacing,
            )
        ticks = full_range_ticks(tick_spacing)
        sqrt_price_x96 = self._initial_sqrt_price(params, deposit)

        liquidity, expected = self._size_full_range(sqrt_price_x96, ticks.lower, ticks.upper, deposit)
        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)
        recipient = normalize_address(params.recipient, "recipient")

        steps = build_approval_steps(
            [(deposit.currency0, deposit.amount0), (deposit.currency1, deposit.amount1)],
            self.v3_manager.address,
            params.allowances,
        )
        if not params.pool_initialized:
            steps.append(self.v3_manager.build_create_and_initialize(
                deposit.currency0, deposit.currency1, params.fee, sqrt_price_x96
            ))

        mint = MintParams(
            token0=deposit.currency0,
            token1=deposit.currency1,
            fee=params.fee,
            tick_lower=ticks.lower,
            tick_upper=ticks.upper,
            amount0_desired=deposit.amount0,
            amount1_desired=deposit.amount1,
            amount0_min=slippage_min(expected.amount0, bps),
            amount1_min=slippage_min(expected.amount1, bps),
        )
        logger.debug(f"[V3 CREATE] liquidity={liquidity} expected=({expected.amount0}, {expected.amount1})")
        steps.append(self.v3_manager.build_mint(mint, recipient, deadline))
        return steps

    # ---------------- V4 ----------------

    def create_v4_pool(self, params: CreatePoolParams) -> List[TransactionStep]:
        """
        initializePool + modifyLiquidities(MINT_POSITION, SETTLE_PAIR[, SWEEP]).

        Approvals идут через Permit2 (ERC20 -> Permit2 -> PositionManager).
        """
        deposit = _sorted_deposit(params)
        pool_key = PoolKey.from_tokens(
            deposit.currency0,
            deposit.currency1,
            params.fee,
            tick_spacing=params.tick_spacing,
            hooks=params.hooks,
            dynamic_fee_tick_spacing=self.config.dynamic_fee_tick_spacing,
        )
        ticks = full_range_ticks(pool_key.tick_spacing)
        sqrt_price_x96 = self._initial_sqrt_price(params, deposit)

        liquidity, expected = self._size_full_range(sqrt_price_x96, ticks.lower, ticks.upper, deposit)
        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)
        recipient = normalize_address(params.recipient, "recipient")

        amount0_max = slippage_max(deposit.amount0, bps)
        amount1_max = slippage_max(deposit.amount1, bps)

        steps = build_permit2_approval_steps(
            [(pool_key.currency0, amount0_max), (pool_key.currency1, amount1_max)],
            self.config.permit2,
            self.v4_manager.address,
            self.config.permit2_expiration(),
            params.allowances,
        )
        if not params.pool_initialized:
            steps.append(self.v4_pool_manager.build_initialize_step(pool_key, sqrt_price_x96))

        logger.debug(f"[V4 CREATE] liquidity={liquidity} expected=({expected.amount0}, {expected.amount1})")
        steps.append(self.v4_manager.build_mint(
            pool_key,
            ticks.lower,
            ticks.upper,
            liquidity,
            amount0_max,
            amount1_max,
            recipient,
            deadline,
        ))
        return steps

    # ---------------- helpers ----------------

    @staticmethod
    def _initial_sqrt_price(params: CreatePoolParams, deposit: _SortedDeposit) -> int:
        if params.sqrt_price_x96 is not None:
            return validate_sqrt_price(params.sqrt_price_x96)
        sqrt_price_x96 = sqrt_price_x96_from_amounts(deposit.amount0, deposit.amount1)
        if sqrt_price_x96 == 0:
            raise InputValidationError("sqrt_price_x96 is required when one of the amounts is zero")
        return validate_sqrt_price(sqrt_price_x96)

    @staticmethod
    def _size_full_range(sqrt_price_x96: int, tick_lower: int, tick_upper: int, deposit: _SortedDeposit):
        sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
        sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
        liquidity = liquidity_from_amounts(
            sqrt_price_x96, sqrt_lower, sqrt_upper, deposit.amount0, deposit.amount1
        )
        if liquidity == 0:
            raise InputValidationError(
                f"Amounts ({deposit.amount0}, {deposit.amount1}) produce zero liquidity at this price"
            )
        return liquidity, amounts_from_liquidity(sqrt_price_x96, sqrt_lower, sqrt_upper, liquidity)

    # ---------------- pool lookups ----------------

    def build_v2_pair_call(self, token_a: str, token_b: str) -> TransactionStep:
        """eth_call payload: factory.getPair(token0, token1)."""
        currency0, currency1 = sort_currencies(token_a, token_b)
        data = encode_call(V2_FACTORY_ABI, "getPair", [currency0, currency1])
        return TransactionStep(to=Web3.to_checksum_address(self.config.v2_factory), data=data, action="eth_call")

    def build_v3_pool_call(self, token_a: str, token_b: str, fee: int) -> TransactionStep:
        """eth_call payload: factory.getPool(token0, token1, fee)."""
        currency0, currency1 = sort_currencies(token_a, token_b)
        data = encode_call(V3_FACTORY_ABI, "getPool", [currency0, currency1, fee])
        return TransactionStep(to=Web3.to_checksum_address(self.config.v3_factory), data=data, action="eth_call")

    @staticmethod
    def decode_pool_address(result: bytes) -> Optional[str]:
        """getPair / getPool result; None when the pool does not exist."""
        address = decode(['address'], result)[0]
        if int(address, 16) == 0:
            return None
        return Web3.to_checksum_address(address)
