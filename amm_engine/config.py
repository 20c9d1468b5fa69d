"""
Deployment configuration for the AMM engine.

Конфигурация деплоя: адреса контрактов V2/V3/V4 и параметры по умолчанию.
Передаётся явно в каждый билдер - никаких глобальных переменных
(RPC ключей, индексов эндпоинтов и т.п.).
"""

import logging
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Dict, Optional

from dotenv import dotenv_values

from .errors import InputValidationError, UnsupportedConfigurationError
from .utils import Percent, get_deadline, percent_to_bps

logger = logging.getLogger(__name__)

ENV_PREFIX = "AMM_"


@dataclass(frozen=True)
class DeploymentConfig:
    """Contract addresses and defaults for one chain deployment."""
    chain_id: int
    name: str
    # V2
    v2_router: str
    v2_factory: str
    # V3
    v3_factory: str
    v3_position_manager: str
    v3_swap_router: str  # SwapRouter02 (exactInputSingle without deadline)
    # V4
    v4_pool_manager: str
    v4_position_manager: str
    universal_router: str
    permit2: str
    wrapped_native: str
    v4_state_view: Optional[str] = None

    # Dynamic-fee pools have no fee-derived spacing; each ecosystem picks one.
    # None = dynamic fee pools unsupported unless the caller passes tick_spacing.
    dynamic_fee_tick_spacing: Optional[int] = None

    v2_fee_bps: int = 30                    # 0.30% baked into 997/1000
    deadline_seconds: int = 1200            # 20 minutes
    slippage_tolerance: Decimal = Decimal("0.5")  # percent
    permit2_expiration_seconds: int = 30 * 24 * 3600

    def resolve_deadline(self, deadline: Optional[int] = None, window_seconds: Optional[int] = None) -> int:
        """
        Absolute deadline for a call.

        Явный deadline (timestamp) важнее окна; окно по умолчанию - deadline_seconds.
        """
        if deadline is not None:
            if deadline < 0:
                raise InputValidationError(f"Deadline must be non-negative: {deadline}")
            return deadline
        return get_deadline(window_seconds if window_seconds is not None else self.deadline_seconds)

    def resolve_slippage_bps(self, slippage: Optional[Percent] = None) -> int:
        """Slippage in percent (None -> slippage_tolerance) converted to bps."""
        return percent_to_bps(
            self.slippage_tolerance if slippage is None else slippage, "slippage"
        )

    def permit2_expiration(self, now: Optional[int] = None) -> int:
        """Permit2 allowance expiration timestamp (uint48)."""
        return get_deadline(self.permit2_expiration_seconds, now)


# ============================================================
# PRESETS
# ============================================================

# Base Mainnet (8453)
BASE = DeploymentConfig(
    chain_id=8453,
    name="Base",
    v2_router="0x4752ba5DBc23f44D87826276BF6Fd6b1C372aD24",
    v2_factory="0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6",
    v3_factory="0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
    v3_position_manager="0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1",
    v3_swap_router="0x2626664c2603336E57B271c5C0b26F421741e481",
    v4_pool_manager="0x498581ff718922c3f8e6a244956af099b2652b2b",
    v4_position_manager="0x7c5f5a4bbd8fd63184577525326123b519429bdc",
    universal_router="0x6ff5693b99212da76ad316178a184ab56d299b43",
    permit2="0x000000000022D473030F116dDEE9F6B43aC78BA3",
    wrapped_native="0x4200000000000000000000000000000000000006",
    v4_state_view="0xa3c0c9b65bad0b08107aa264b0f3db444b867a71",
    # Clanker hooked pools on Base use the dynamic fee flag with spacing 200
    dynamic_fee_tick_spacing=200,
)

# Ethereum Mainnet (1)
ETHEREUM = DeploymentConfig(
    chain_id=1,
    name="Ethereum",
    v2_router="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    v2_factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
    v3_factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
    v3_position_manager="0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
    v3_swap_router="0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45",
    v4_pool_manager="0x000000000004444c5dc75cb358380d2e3de08a90",
    v4_position_manager="0xbd216513d74c8cf14cf4747e6aaa6420ff64ee9e",
    universal_router="0x66a9893cc07d91d95644aedd05d03f95e1dba8af",
    permit2="0x000000000022D473030F116dDEE9F6B43aC78BA3",
    wrapped_native="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    v4_state_view="0x7ffe42c4a5deea5b0fec41c94c136cf115597227",
)

DEPLOYMENTS: Dict[int, DeploymentConfig] = {
    8453: BASE,
    1: ETHEREUM,
}


def get_deployment(chain_id: int) -> DeploymentConfig:
    """Получение конфигурации по chain_id."""
    if chain_id not in DEPLOYMENTS:
        raise UnsupportedConfigurationError(f"Unknown chain_id: {chain_id}", value=chain_id)
    return DEPLOYMENTS[chain_id]


def _coerce(field_type, raw: str):
    """Convert an env string to the dataclass field's type."""
    if field_type is int:
        return int(raw)
    if field_type is Decimal:
        return Decimal(raw)
    if field_type == Optional[int]:
        return None if raw.strip().lower() in ("", "none") else int(raw)
    return raw


def load_deployment(chain_id: int, env_file: Optional[str] = None) -> DeploymentConfig:
    """
    Load a preset and override fields from AMM_* variables.

    Variables are read from env_file (or .env in the working directory)
    with dotenv_values, so the process environment is never modified.
    Example: AMM_DYNAMIC_FEE_TICK_SPACING=100, AMM_DEADLINE_SECONDS=600.

    Args:
        chain_id: Chain of the base preset
        env_file: Path to a .env file (default: .env)

    Returns:
        New DeploymentConfig with overrides applied
    """
    config = get_deployment(chain_id)
    values = dotenv_values(env_file or ".env")

    overrides = {}
    for f in fields(DeploymentConfig):
        key = ENV_PREFIX + f.name.upper()
        raw = values.get(key)
        if raw is None or f.name == "chain_id":
            continue
        try:
            overrides[f.name] = _coerce(f.type, raw)
        except (ValueError, ArithmeticError) as e:
            raise ValueError(f"Invalid value for {key}: {raw!r} ({e})")

    if overrides:
        logger.info(f"Deployment {config.name}: overriding {sorted(overrides)} from env")
        config = replace(config, **overrides)
    return config
