"""
Shared fixtures for all tests.
"""

import pytest
from eth_abi import decode

from amm_engine.config import BASE, ETHEREUM
from amm_engine.contracts.transaction import Allowances


# Тестовые адреса (отсортированы: TOKEN_A < TOKEN_B по числовому значению)
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x9999999999999999999999999999999999999999"
NATIVE = "0x0000000000000000000000000000000000000000"
WALLET = "0x1234567890123456789012345678901234567890"
HOOKS = "0x5555555555555555555555555555555555555555"

USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WETH_BASE = "0x4200000000000000000000000000000000000006"

# Фиксированный deadline для детерминированного calldata
DEADLINE = 1_900_000_000

# Известные 4-byte селекторы
SELECTORS = {
    "approve": "095ea7b3",
    "permit2_approve": "87517c45",
    "addLiquidity": "e8e33700",
    "addLiquidityETH": "f305d719",
    "swapExactTokensForTokens": "38ed1739",
    "swapExactETHForTokens": "7ff36ab5",
    "swapExactTokensForETH": "18cbafe5",
    "createAndInitializePoolIfNecessary": "13ead562",
    "mint": "88316456",
    "increaseLiquidity": "219f5d17",
    "decreaseLiquidity": "0c49ccbe",
    "collect": "fc6f7865",
    "burn": "42966c68",
    "multicall": "ac9650d8",
    "exactInputSingle": "04e45aaf",
    "execute": "3593564c",
    "modifyLiquidities": "dd46508f",
    "getPair": "e6a43905",
    "getPool": "1698ee82",
}


def selector(data: bytes) -> str:
    """Первые 4 байта calldata в hex."""
    return data[:4].hex()


def decode_unlock_data(unlock_data: bytes):
    """abi.decode(bytes actions, bytes[] params) -> (list of action ids, params)."""
    actions, params = decode(['bytes', 'bytes[]'], unlock_data)
    return list(actions), list(params)


def decode_modify_liquidities(data: bytes):
    """modifyLiquidities calldata -> (actions, params, deadline)."""
    unlock_data, deadline = decode(['bytes', 'uint256'], data[4:])
    actions, params = decode_unlock_data(unlock_data)
    return actions, params, deadline


@pytest.fixture
def config():
    """Base deployment (dynamic fee spacing = 200)."""
    return BASE


@pytest.fixture
def eth_config():
    """Ethereum deployment (no dynamic fee spacing)."""
    return ETHEREUM


@pytest.fixture
def no_allowances():
    """Caller declared zero allowances everywhere."""
    return Allowances()


@pytest.fixture
def full_allowances():
    """Caller declared enough allowance for everything."""
    big = 2**160 - 1
    return Allowances(
        erc20={TOKEN_A: big, TOKEN_B: big},
        permit2={TOKEN_A: big, TOKEN_B: big},
    )
