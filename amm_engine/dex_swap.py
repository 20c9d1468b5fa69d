"""
DEX Swap Module

Построение транзакций свопа (exact input, один пул):
- V2: Router swapExactTokensForTokens / swapExactETHForTokens / swapExactTokensForETH
- V3: SwapRouter02 exactInputSingle (7 полей, sqrtPriceLimitX96 = 0)
- V4: UniversalRouter execute(V4_SWAP, [SWAP_EXACT_IN_SINGLE, SETTLE_ALL, TAKE_ALL])

zeroForOne всегда пересчитывается из канонического порядка адресов.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from web3 import Web3

from .config import DeploymentConfig
from .contracts.abis import V2_ROUTER_ABI, V3_SWAP_ROUTER_ABI
from .contracts.encoding import encode_call
from .contracts.pool_key import PoolKey, is_native, normalize_address, sort_currencies, validate_fee
from .contracts.transaction import (
    Allowances,
    TransactionStep,
    build_approval_steps,
    build_permit2_approval_steps,
)
from .contracts.v4.abis import Commands, UNIVERSAL_ROUTER_ABI, V4Actions
from .contracts.v4.constants import EMPTY_HOOK_DATA
from .contracts.v4.position_manager import encode_action, encode_actions
from .errors import InputValidationError, UnsupportedConfigurationError
from .math.ticks import DYNAMIC_FEE_FLAG
from .positions import ProtocolVersion
from .utils import Amount, Percent, check_uint, parse_amount, slippage_min

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapParams:
    """
    Intent: exact-input swap in a single pool.

    Минимальный выход: amount_out_min, либо expected_amount_out минус slippage.
    recipient обязателен для V2/V3; V4 TAKE_ALL отправляет вызывающему.
    """
    version: ProtocolVersion
    token_in: str
    token_out: str
    amount_in: Amount
    recipient: Optional[str] = None
    amount_out_min: Optional[Amount] = None
    expected_amount_out: Optional[Amount] = None
    fee: int = 3000
    tick_spacing: Optional[int] = None
    hooks: Optional[str] = None
    slippage: Optional[Percent] = None
    deadline: Optional[int] = None
    deadline_seconds: Optional[int] = None
    allowances: Optional[Allowances] = None


class DexSwap:
    """
    Builds swap transactions for V2 / V3 / V4.

    Approvals prepended only for declared insufficient allowances.
    """

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.v2_router = Web3.to_checksum_address(config.v2_router)
        self.v3_router = Web3.to_checksum_address(config.v3_swap_router)
        self.universal_router = Web3.to_checksum_address(config.universal_router)

    def resolve_min_out(self, params: SwapParams) -> int:
        """
        amount_out_min как есть, иначе expected * (1 - slippage).

        Raises:
            InputValidationError: не задан ни минимум, ни ожидаемый выход
        """
        if params.amount_out_min is not None:
            return parse_amount(params.amount_out_min, "amount_out_min")
        if params.expected_amount_out is None:
            raise InputValidationError("Either amount_out_min or expected_amount_out is required")
        expected = parse_amount(params.expected_amount_out, "expected_amount_out")
        return slippage_min(expected, self.config.resolve_slippage_bps(params.slippage))

    def build_swap(self, params: SwapParams) -> List[TransactionStep]:
        """Dispatch by protocol version."""
        if params.version == ProtocolVersion.V2:
            return self.build_v2_swap(params)
        elif params.version == ProtocolVersion.V3:
            return self.build_v3_swap(params)
        elif params.version == ProtocolVersion.V4:
            return self.build_v4_swap(params)
        raise UnsupportedConfigurationError(f"Unsupported protocol version: {params.version!r}", value=params.version)

    def _path(self, token: str) -> str:
        # V2 router paths use the wrapped token for native legs
        if is_native(token):
            return Web3.to_checksum_address(self.config.wrapped_native)
        return normalize_address(token, "token")

    def build_v2_swap(self, params: SwapParams) -> List[TransactionStep]:
        """
        swapExactTokensForTokens(amountIn, amountOutMin, path, to, deadline).

        Native вход -> swapExactETHForTokens (value = amount_in),
        native выход -> swapExactTokensForETH.
        """
        sort_currencies(params.token_in, params.token_out)
        amount_in = parse_amount(params.amount_in, "amount_in")
        min_out = self.resolve_min_out(params)
        recipient = self._recipient(params)
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)
        path = [self._path(params.token_in), self._path(params.token_out)]

        steps = build_approval_steps([(params.token_in, amount_in)], self.v2_router, params.allowances)

        if is_native(params.token_in):
            data = encode_call(V2_ROUTER_ABI, "swapExactETHForTokens", [min_out, path, recipient, deadline])
            value = amount_in
        elif is_native(params.token_out):
            data = encode_call(V2_ROUTER_ABI, "swapExactTokensForETH", [amount_in, min_out, path, recipient, deadline])
            value = 0
        else:
            data = encode_call(V2_ROUTER_ABI, "swapExactTokensForTokens", [amount_in, min_out, path, recipient, deadline])
            value = 0

        logger.debug(f"[V2 SWAP] {path[0]} -> {path[1]} in={amount_in} min_out={min_out}")
        steps.append(TransactionStep(to=self.v2_router, data=data, value=value, action="swap"))
        return steps

    def build_v3_swap(self, params: SwapParams) -> List[TransactionStep]:
        """
        SwapRouter02.exactInputSingle((tokenIn, tokenOut, fee, recipient,
        amountIn, amountOutMinimum, sqrtPriceLimitX96=0)).

        SwapRouter02 не принимает deadline в структуре.
        """
        token_in = normalize_address(params.token_in, "token_in")
        token_out = normalize_address(params.token_out, "token_out")
        sort_currencies(token_in, token_out)
        if is_native(token_in) or is_native(token_out):
            raise UnsupportedConfigurationError(
                "V3 swaps route through the wrapped native token; pass wrapped_native", value="native"
            )
        if validate_fee(params.fee) == DYNAMIC_FEE_FLAG:
            raise UnsupportedConfigurationError("V3 has no dynamic fee pools", value=params.fee)

        amount_in = parse_amount(params.amount_in, "amount_in")
        min_out = self.resolve_min_out(params)
        recipient = self._recipient(params)

        steps = build_approval_steps([(token_in, amount_in)], self.v3_router, params.allowances)
        data = encode_call(V3_SWAP_ROUTER_ABI, "exactInputSingle", [(
            token_in,
            token_out,
            params.fee,
            recipient,
            amount_in,
            min_out,
            0,
        )])
        logger.debug(f"[V3 SWAP] {token_in} -> {token_out} fee={params.fee} in={amount_in} min_out={min_out}")
        steps.append(TransactionStep(to=self.v3_router, data=data, action="swap"))
        return steps

    def build_v4_swap(self, params: SwapParams) -> List[TransactionStep]:
        """
        UniversalRouter.execute(0x10, [abi.encode(actions, params)], deadline).

        actions = SWAP_EXACT_IN_SINGLE, SETTLE_ALL(currencyIn, amountIn),
        TAKE_ALL(currencyOut, minOut). Native вход: value = amount_in.
        """
        pool_key = PoolKey.from_tokens(
            params.token_in,
            params.token_out,
            params.fee,
            tick_spacing=params.tick_spacing,
            hooks=params.hooks,
            dynamic_fee_tick_spacing=self.config.dynamic_fee_tick_spacing,
        )
        zero_for_one = int(params.token_in, 16) == int(pool_key.currency0, 16)
        currency_in, currency_out = (
            (pool_key.currency0, pool_key.currency1) if zero_for_one
            else (pool_key.currency1, pool_key.currency0)
        )

        amount_in = parse_amount(params.amount_in, "amount_in")
        min_out = self.resolve_min_out(params)
        check_uint(amount_in, 128, "amountIn")
        check_uint(min_out, 128, "amountOutMinimum")
        deadline = self.config.resolve_deadline(params.deadline, params.deadline_seconds)

        actions = [
            encode_action(V4Actions.SWAP_EXACT_IN_SINGLE, [(
                pool_key.to_tuple(),
                zero_for_one,
                amount_in,
                min_out,
                EMPTY_HOOK_DATA,
            )]),
            encode_action(V4Actions.SETTLE_ALL, [currency_in, amount_in]),
            encode_action(V4Actions.TAKE_ALL, [currency_out, min_out]),
        ]
        swap_input = encode_actions(actions)
        data = encode_call(UNIVERSAL_ROUTER_ABI, "execute", [
            bytes([Commands.V4_SWAP]),
            [swap_input],
            deadline,
        ])

        steps = build_permit2_approval_steps(
            [(currency_in, amount_in)],
            self.config.permit2,
            self.universal_router,
            self.config.permit2_expiration(),
            params.allowances,
        )
        value = amount_in if is_native(currency_in) else 0
        logger.debug(
            f"[V4 SWAP] {currency_in} -> {currency_out} zeroForOne={zero_for_one} "
            f"fee={pool_key.fee} ts={pool_key.tick_spacing} in={amount_in} min_out={min_out}"
        )
        steps.append(TransactionStep(to=self.universal_router, data=data, value=value, action="swap"))
        return steps

    @staticmethod
    def _recipient(params: SwapParams) -> str:
        if params.recipient is None:
            raise InputValidationError(f"recipient is required for {params.version.name} swaps")
        return normalize_address(params.recipient, "recipient")
