"""
Uniswap V4 Contracts Module

V4 uses singleton architecture: pools are initialized through the
PositionManager and every liquidity change is an action stream.
"""

from .pool_manager import V4PoolManager, Slot0
from .position_manager import V4PositionManager, encode_action, encode_actions
from .abis import V4Actions, Commands

__all__ = [
    'V4PoolManager',
    'Slot0',
    'V4PositionManager',
    'encode_action',
    'encode_actions',
    'V4Actions',
    'Commands',
]
