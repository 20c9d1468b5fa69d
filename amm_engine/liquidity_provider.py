"""
Main Liquidity Provider Module

Единая точка входа: создание пулов, управление позициями, свопы и котировки
для V2 / V3 / V4. Маршрутизация по PositionId ("v3-12345").

Все методы возвращают список TransactionStep в порядке исполнения
(approve -> initialize -> действие). Подпись и отправка - у вызывающего.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from .config import DeploymentConfig
from .contracts.pool_key import normalize_address
from .contracts.pool_factory import CreatePoolParams, PoolFactory
from .contracts.position_manager import V3PositionManager
from .contracts.transaction import (
    Allowances,
    TransactionStep,
    build_approval_steps,
    build_permit2_approval_steps,
)
from .contracts.v4.position_manager import V4PositionManager
from .dex_swap import DexSwap, SwapParams
from .errors import BuildResult, InputValidationError, UnsupportedConfigurationError, capture
from .math.liquidity import (
    TokenAmounts,
    amounts_from_liquidity_with_ticks,
    liquidity_from_amounts_with_ticks,
)
from .positions import PositionId, PositionState, ProtocolVersion, can_collect_fees
from .quote import QuoteParams, SwapQuote, get_swap_quote
from .utils import Amount, Percent, parse_amount, percent_to_bps, slippage_max, slippage_min

logger = logging.getLogger(__name__)

PositionRef = Union[PositionId, str]


@dataclass(frozen=True)
class IncreaseParams:
    """
    Add liquidity to an existing position.

    amount0 / amount1 относятся к отсортированным currency0 / currency1 из state.
    recipient нужен для V4 с native currency0 (SWEEP остатка msg.value).
    """
    position_id: PositionRef
    amount0: Amount
    amount1: Amount
    state: PositionState
    recipient: Optional[str] = None
    slippage: Optional[Percent] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None
    allowances: Optional[Allowances] = None


@dataclass(frozen=True)
class DecreaseParams:
    """
    Remove part of a position's liquidity.

    Ровно одно из: percentage (0-100] или liquidity (абсолютное значение).
    """
    position_id: PositionRef
    state: PositionState
    recipient: str
    percentage: Optional[Percent] = None
    liquidity: Optional[Amount] = None
    slippage: Optional[Percent] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None


@dataclass(frozen=True)
class BurnParams:
    """Close a position: withdraw what is left and burn the NFT."""
    position_id: PositionRef
    state: PositionState
    recipient: str
    slippage: Optional[Percent] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None


@dataclass(frozen=True)
class CollectParams:
    """Collect accrued fees. V4 needs the position currencies for TAKE_PAIR."""
    position_id: PositionRef
    recipient: str
    currency0: Optional[str] = None
    currency1: Optional[str] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None


Intent = Union[CreatePoolParams, IncreaseParams, DecreaseParams, BurnParams, CollectParams, SwapParams, QuoteParams]


def _position(ref: PositionRef) -> PositionId:
    if isinstance(ref, PositionId):
        return ref
    return PositionId.parse(ref)


def _expected_amounts(state: PositionState, liquidity: int) -> TokenAmounts:
    """Суммы, которые позиция отдаст за liquidity при текущей цене."""
    return amounts_from_liquidity_with_ticks(
        state.sqrt_price_x96, state.tick_lower, state.tick_upper, liquidity
    )


class LiquidityProvider:
    """
    Routes intents to the V2 / V3 / V4 builders of one deployment.

    Example:
        provider = LiquidityProvider(BASE)
        steps = provider.decrease_liquidity(DecreaseParams(
            position_id="v4-1234", state=state, recipient=wallet, percentage=50
        ))
    """

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.pool_factory = PoolFactory(config)
        self.v3_manager = V3PositionManager(config)
        self.v4_manager = V4PositionManager(config)
        self.dex_swap = DexSwap(config)

    # ---------------- pools / swaps / quotes ----------------

    def create_pool(self, params: CreatePoolParams) -> List[TransactionStep]:
        return self.pool_factory.create_pool(params)

    def swap(self, params: SwapParams) -> List[TransactionStep]:
        return self.dex_swap.build_swap(params)

    def quote(self, params: QuoteParams) -> SwapQuote:
        return get_swap_quote(params)

    # ---------------- positions ----------------

    @staticmethod
    def _managed_position(ref: PositionRef, operation: str) -> PositionId:
        position = _position(ref)
        if position.version == ProtocolVersion.V2:
            raise UnsupportedConfigurationError(
                f"{operation} is not available for V2 positions (liquidity lives in LP tokens)",
                value=str(position),
            )
        return position

    def increase_liquidity(self, params: IncreaseParams) -> List[TransactionStep]:
        """
        V3: increaseLiquidity, минимумы от ожидаемых сумм.
        V4: INCREASE_LIQUIDITY + SETTLE_PAIR, liquidity по текущей цене позиции,
        максимумы = desired * (1 + slippage).
        """
        position = self._managed_position(params.position_id, "increase_liquidity")
        state = params.state
        recipient = None if params.recipient is None else normalize_address(params.recipient, "recipient")
        amount0 = parse_amount(params.amount0, "amount0")
        amount1 = parse_amount(params.amount1, "amount1")
        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)

        liquidity = liquidity_from_amounts_with_ticks(
            state.sqrt_price_x96, state.tick_lower, state.tick_upper, amount0, amount1
        )
        if liquidity == 0:
            raise InputValidationError(
                f"Amounts ({amount0}, {amount1}) add no liquidity to {position} at the current price"
            )

        if position.version == ProtocolVersion.V3:
            expected = _expected_amounts(state, liquidity)
            steps = build_approval_steps(
                [(state.currency0, amount0), (state.currency1, amount1)],
                self.v3_manager.address,
                params.allowances,
            )
            steps.append(self.v3_manager.build_increase(
                position.token_id,
                amount0,
                amount1,
                slippage_min(expected.amount0, bps),
                slippage_min(expected.amount1, bps),
                deadline,
            ))
            return steps

        amount0_max = slippage_max(amount0, bps)
        amount1_max = slippage_max(amount1, bps)
        steps = build_permit2_approval_steps(
            [(state.currency0, amount0_max), (state.currency1, amount1_max)],
            self.config.permit2,
            self.v4_manager.address,
            self.config.permit2_expiration(),
            params.allowances,
        )
        steps.append(self.v4_manager.build_increase(
            position.token_id,
            liquidity,
            amount0_max,
            amount1_max,
            state.currency0,
            state.currency1,
            deadline,
            sweep_to=recipient,
        ))
        return steps

    def _decrease_amount(self, params: DecreaseParams) -> int:
        if (params.percentage is None) == (params.liquidity is None):
            raise InputValidationError("Exactly one of percentage or liquidity is required")

        if params.liquidity is not None:
            liquidity = parse_amount(params.liquidity, "liquidity")
        else:
            bps = percent_to_bps(params.percentage, "percentage")
            liquidity = params.state.liquidity * bps // 10_000

        if liquidity <= 0:
            raise InputValidationError(f"Nothing to remove: liquidity={liquidity}")
        if liquidity > params.state.liquidity:
            raise InputValidationError(
                f"Cannot remove {liquidity}: position holds {params.state.liquidity}"
            )
        return liquidity

    def decrease_liquidity(self, params: DecreaseParams) -> List[TransactionStep]:
        """
        Вывод части ликвидности с реальными минимумами из state.

        V3: multicall([decreaseLiquidity, collect]); V4: DECREASE_LIQUIDITY + TAKE_PAIR.
        """
        position = self._managed_position(params.position_id, "decrease_liquidity")
        state = params.state
        recipient = normalize_address(params.recipient, "recipient")
        liquidity = self._decrease_amount(params)
        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)

        expected = _expected_amounts(state, liquidity)
        amount0_min = slippage_min(expected.amount0, bps)
        amount1_min = slippage_min(expected.amount1, bps)
        logger.debug(
            f"[DECREASE] {position} liquidity={liquidity}/{state.liquidity} "
            f"expected=({expected.amount0}, {expected.amount1}) min=({amount0_min}, {amount1_min})"
        )

        if position.version == ProtocolVersion.V3:
            return [self.v3_manager.build_decrease(
                position.token_id, liquidity, amount0_min, amount1_min, recipient, deadline
            )]
        return [self.v4_manager.build_decrease(
            position.token_id,
            liquidity,
            amount0_min,
            amount1_min,
            state.currency0,
            state.currency1,
            recipient,
            deadline,
        )]

    def burn(self, params: BurnParams) -> List[TransactionStep]:
        """
        Закрытие позиции.

        V3: burn, либо multicall([decrease(all), collect, burn]) если liquidity > 0.
        V4: BURN_POSITION + TAKE_PAIR.
        """
        position = self._managed_position(params.position_id, "burn")
        state = params.state
        recipient = normalize_address(params.recipient, "recipient")
        bps = self.config.resolve_slippage_bps(params.slippage)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)

        expected = _expected_amounts(state, state.liquidity)
        amount0_min = slippage_min(expected.amount0, bps)
        amount1_min = slippage_min(expected.amount1, bps)

        if position.version == ProtocolVersion.V3:
            return [self.v3_manager.build_burn(
                position.token_id, state.liquidity, amount0_min, amount1_min, recipient, deadline
            )]
        return [self.v4_manager.build_burn(
            position.token_id,
            amount0_min,
            amount1_min,
            state.currency0,
            state.currency1,
            recipient,
            deadline,
        )]

    def collect_fees(self, params: CollectParams) -> List[TransactionStep]:
        """V3: collect(MAX_UINT128, MAX_UINT128); V4: DECREASE_LIQUIDITY(0) + TAKE_PAIR."""
        position = _position(params.position_id)
        if not can_collect_fees(position.version):
            raise UnsupportedConfigurationError(
                f"Fees of {position} accrue inside the LP token; nothing to collect",
                value=str(position),
            )

        recipient = normalize_address(params.recipient, "recipient")
        if position.version == ProtocolVersion.V3:
            return [self.v3_manager.build_collect(position.token_id, recipient)]

        if params.currency0 is None or params.currency1 is None:
            raise InputValidationError("V4 fee collection requires currency0 and currency1")
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)
        return [self.v4_manager.build_collect_fees(
            position.token_id, params.currency0, params.currency1, recipient, deadline
        )]

    # ---------------- batch ----------------

    def build(self, intent: Intent):
        """Dispatch a single intent by its type."""
        if isinstance(intent, CreatePoolParams):
            return self.create_pool(intent)
        elif isinstance(intent, IncreaseParams):
            return self.increase_liquidity(intent)
        elif isinstance(intent, DecreaseParams):
            return self.decrease_liquidity(intent)
        elif isinstance(intent, BurnParams):
            return self.burn(intent)
        elif isinstance(intent, CollectParams):
            return self.collect_fees(intent)
        elif isinstance(intent, SwapParams):
            return self.swap(intent)
        elif isinstance(intent, QuoteParams):
            return self.quote(intent)
        raise UnsupportedConfigurationError(f"Unknown intent type: {type(intent).__name__}", value=intent)

    def build_many(self, intents: Iterable[Intent]) -> List[BuildResult]:
        """
        Build a batch; one rejected intent does not stop the others.

        EncodingError still propagates (defect, not bad input).
        """
        results = [capture(self.build, intent) for intent in intents]
        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.info(f"Batch: {len(results) - failed} built, {failed} rejected")
        return results
