"""
Transaction steps and approval builders.

TransactionStep - неподписанный вызов (to, data, value). Порядок шагов
в возвращаемом списке - часть контракта (approve -> initialize -> mint).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..utils import check_uint, to_hex
from .abis import ERC20_ABI, PERMIT2_ABI
from .encoding import encode_call
from .pool_key import is_native, normalize_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionStep:
    """Unsigned call ready for a signer."""
    to: str
    data: bytes
    value: int = 0
    action: str = ""  # informational label: approve, initialize, mint, swap...

    def to_dict(self) -> dict:
        """JSON-friendly {to, data, value}: hex data, decimal-string value."""
        return {
            "to": self.to,
            "data": to_hex(self.data),
            "value": str(self.value),
        }


@dataclass(frozen=True)
class Allowances:
    """
    Allowances already on record, declared by the caller.

    erc20: token -> allowance to the direct spender (router / position
           manager), or to Permit2 for V4 flows
    permit2: token -> Permit2 allowance to the V4 spender

    Отсутствующий токен = allowance 0.
    """
    erc20: Dict[str, int] = field(default_factory=dict)
    permit2: Dict[str, int] = field(default_factory=dict)

    @staticmethod
    def _lookup(table: Dict[str, int], token: str) -> int:
        wanted = int(token, 16)
        for key, amount in table.items():
            if int(key, 16) == wanted:
                return amount
        return 0

    def erc20_allowance(self, token: str) -> int:
        return self._lookup(self.erc20, token)

    def permit2_allowance(self, token: str) -> int:
        return self._lookup(self.permit2, token)


# (token, amount required)
Requirement = Tuple[str, int]


def build_approve_step(token: str, spender: str, amount: int) -> TransactionStep:
    """ERC20.approve(spender, amount) - exact amount, never infinite."""
    check_uint(amount, 256, "approve.amount")
    data = encode_call(ERC20_ABI, "approve", [
        normalize_address(spender, "spender"),
        amount,
    ])
    return TransactionStep(to=normalize_address(token, "token"), data=data, action="approve")


def build_permit2_approve_step(
    permit2: str,
    token: str,
    spender: str,
    amount: int,
    expiration: int
) -> TransactionStep:
    """Permit2.approve(token, spender, uint160 amount, uint48 expiration)."""
    check_uint(amount, 160, "permit2.amount")
    check_uint(expiration, 48, "permit2.expiration")
    data = encode_call(PERMIT2_ABI, "approve", [
        normalize_address(token, "token"),
        normalize_address(spender, "spender"),
        amount,
        expiration,
    ])
    return TransactionStep(to=normalize_address(permit2, "permit2"), data=data, action="permit2_approve")


def build_approval_steps(
    requirements: Iterable[Requirement],
    spender: str,
    allowances: Optional[Allowances]
) -> List[TransactionStep]:
    """
    approve() для каждого токена, у которого allowance меньше нужного.

    allowances=None - вызывающий не сообщил состояние, шаги не добавляются.
    Native currency не требует approve.
    """
    if allowances is None:
        return []

    steps = []
    for token, amount in requirements:
        if amount <= 0 or is_native(token):
            continue
        current = allowances.erc20_allowance(token)
        if current < amount:
            logger.debug(f"[APPROVE] {token}: allowance {current} < {amount}, approving {spender}")
            steps.append(build_approve_step(token, spender, amount))
    return steps


def build_permit2_approval_steps(
    requirements: Iterable[Requirement],
    permit2: str,
    spender: str,
    expiration: int,
    allowances: Optional[Allowances]
) -> List[TransactionStep]:
    """
    V4 approvals: ERC20.approve(Permit2) затем Permit2.approve(spender).

    Каждая пара добавляется только если соответствующий allowance недостаточен.
    """
    if allowances is None:
        return []

    steps = []
    for token, amount in requirements:
        if amount <= 0 or is_native(token):
            continue
        if allowances.erc20_allowance(token) < amount:
            logger.debug(f"[APPROVE] {token}: approving Permit2 for {amount}")
            steps.append(build_approve_step(token, permit2, amount))
        if allowances.permit2_allowance(token) < amount:
            logger.debug(f"[APPROVE] {token}: Permit2 allowance to {spender} for {amount}")
            steps.append(build_permit2_approve_step(permit2, token, spender, amount, expiration))
    return steps
