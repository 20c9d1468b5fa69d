"""
V4 ABIs and action codes.

V4 uses a PoolManager singleton; liquidity and swaps go through
action streams: bytes(actions) + bytes[] params, executed in order.
"""

POOL_KEY_COMPONENTS = [
    {"name": "currency0", "type": "address"},
    {"name": "currency1", "type": "address"},
    {"name": "fee", "type": "uint24"},
    {"name": "tickSpacing", "type": "int24"},
    {"name": "hooks", "type": "address"}
]

# StateView (read-only pool state by poolId)
V4_STATE_VIEW_ABI = [
    {
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "name": "getSlot0",
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "protocolFee", "type": "uint24"},
            {"name": "lpFee", "type": "uint24"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "name": "getLiquidity",
        "outputs": [{"name": "liquidity", "type": "uint128"}],
        "stateMutability": "view",
        "type": "function"
    },
]

# PositionManager (v4-periphery)
V4_POSITION_MANAGER_ABI = [
    {
        "inputs": [
            {"name": "unlockData", "type": "bytes"},
            {"name": "deadline", "type": "uint256"}
        ],
        "name": "modifyLiquidities",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
    # Idempotent: returns type(int24).max instead of reverting when initialized
    {
        "inputs": [
            {"components": POOL_KEY_COMPONENTS, "name": "key", "type": "tuple"},
            {"name": "sqrtPriceX96", "type": "uint160"}
        ],
        "name": "initializePool",
        "outputs": [{"name": "", "type": "int24"}],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "inputs": [{"name": "data", "type": "bytes[]"}],
        "name": "multicall",
        "outputs": [{"name": "results", "type": "bytes[]"}],
        "stateMutability": "payable",
        "type": "function"
    },
]

# UniversalRouter
UNIVERSAL_ROUTER_ABI = [
    {
        "inputs": [
            {"name": "commands", "type": "bytes"},
            {"name": "inputs", "type": "bytes[]"},
            {"name": "deadline", "type": "uint256"}
        ],
        "name": "execute",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
]


class V4Actions:
    """V4 Position Manager / V4Router action codes."""
    # Liquidity modification
    INCREASE_LIQUIDITY = 0x00
    DECREASE_LIQUIDITY = 0x01
    MINT_POSITION = 0x02
    BURN_POSITION = 0x03

    # Swaps
    SWAP_EXACT_IN_SINGLE = 0x06

    # Settlements
    SETTLE_ALL = 0x0c
    SETTLE_PAIR = 0x0d
    TAKE_ALL = 0x0f
    TAKE_PAIR = 0x11

    # Closing
    SWEEP = 0x14


class Commands:
    """UniversalRouter command bytes."""
    V4_SWAP = 0x10


# abi types of each action's parameter blob
POOL_KEY_TYPE = "(address,address,uint24,int24,address)"

ACTION_PARAM_TYPES = {
    V4Actions.MINT_POSITION: [
        POOL_KEY_TYPE, "int24", "int24", "uint256", "uint128", "uint128", "address", "bytes"
    ],
    V4Actions.INCREASE_LIQUIDITY: ["uint256", "uint256", "uint128", "uint128", "bytes"],
    V4Actions.DECREASE_LIQUIDITY: ["uint256", "uint256", "uint128", "uint128", "bytes"],
    V4Actions.BURN_POSITION: ["uint256", "uint128", "uint128", "bytes"],
    V4Actions.SETTLE_PAIR: ["address", "address"],
    V4Actions.TAKE_PAIR: ["address", "address", "address"],
    V4Actions.SWEEP: ["address", "address"],
    V4Actions.SETTLE_ALL: ["address", "uint256"],
    V4Actions.TAKE_ALL: ["address", "uint256"],
    # ExactInputSingleParams is a single struct argument
    V4Actions.SWAP_EXACT_IN_SINGLE: [
        f"({POOL_KEY_TYPE},bool,uint128,uint128,bytes)"
    ],
}
