"""
AMM engine: quotes and unsigned transaction sequences for V2 / V3 / V4 pools.

Движок только считает и кодирует: подпись, газ и отправка - у вызывающего.
"""

from .config import BASE, ETHEREUM, DeploymentConfig, get_deployment, load_deployment
from .contracts.pool_factory import CreatePoolParams, PoolFactory
from .contracts.pool_key import PoolKey, compute_pool_identifier, sort_currencies
from .contracts.transaction import Allowances, TransactionStep
from .dex_swap import DexSwap, SwapParams
from .errors import (
    AmmEngineError,
    BuildResult,
    EncodingError,
    InputValidationError,
    UnsupportedConfigurationError,
)
from .liquidity_provider import (
    BurnParams,
    CollectParams,
    DecreaseParams,
    IncreaseParams,
    LiquidityProvider,
)
from .positions import PositionId, PositionState, ProtocolVersion
from .quote import QuoteParams, SwapQuote, get_swap_quote

__version__ = "0.1.0"

__all__ = [
    'DeploymentConfig',
    'BASE',
    'ETHEREUM',
    'get_deployment',
    'load_deployment',
    'PoolKey',
    'compute_pool_identifier',
    'sort_currencies',
    'TransactionStep',
    'Allowances',
    'CreatePoolParams',
    'PoolFactory',
    'SwapParams',
    'DexSwap',
    'IncreaseParams',
    'DecreaseParams',
    'BurnParams',
    'CollectParams',
    'LiquidityProvider',
    'QuoteParams',
    'SwapQuote',
    'get_swap_quote',
    'PositionId',
    'PositionState',
    'ProtocolVersion',
    'AmmEngineError',
    'InputValidationError',
    'UnsupportedConfigurationError',
    'EncodingError',
    'BuildResult',
]
