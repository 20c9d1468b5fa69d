"""
Offline calldata encoding.

selector = keccak(signature)[:4], аргументы через eth_abi.encode.
Не нужен ни провайдер, ни объект контракта web3 - только ABI список.
"""

import logging
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

from eth_abi import encode
from web3 import Web3

from ..errors import UnsupportedConfigurationError

logger = logging.getLogger(__name__)


def abi_type(param: Dict) -> str:
    """
    Canonical type string, tuples expanded: (address,uint24)[] etc.
    """
    param_type = param["type"]
    if param_type.startswith("tuple"):
        suffix = param_type[len("tuple"):]
        inner = ",".join(abi_type(c) for c in param["components"])
        return f"({inner}){suffix}"
    return param_type


def find_function(abi: List[Dict], name: str) -> Dict:
    """Function entry by name (first match)."""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == name:
            return entry
    raise UnsupportedConfigurationError(f"Function '{name}' is not in the ABI", value=name)


def function_types(abi: List[Dict], name: str) -> List[str]:
    return [abi_type(p) for p in find_function(abi, name)["inputs"]]


def function_signature(abi: List[Dict], name: str) -> str:
    """'mint((address,address,...))'"""
    return f"{name}({','.join(function_types(abi, name))})"


@lru_cache(maxsize=None)
def selector_for(signature: str) -> bytes:
    """4-byte selector for a canonical signature."""
    return bytes(Web3.keccak(text=signature)[:4])


def function_selector(abi: List[Dict], name: str) -> bytes:
    return selector_for(function_signature(abi, name))


def encode_call(abi: List[Dict], name: str, args: Sequence) -> bytes:
    """
    Calldata для вызова функции.

    Args:
        abi: ABI список (dict как в json)
        name: Имя функции
        args: Аргументы в порядке ABI (tuple для struct)

    Returns:
        selector + abi.encode(args)
    """
    types = function_types(abi, name)
    if len(types) != len(args):
        raise UnsupportedConfigurationError(
            f"{name} expects {len(types)} arguments, got {len(args)}", value=name
        )
    signature = f"{name}({','.join(types)})"
    return selector_for(signature) + encode(types, list(args))


def split_call(data: bytes) -> Tuple[bytes, bytes]:
    """(selector, encoded args)"""
    return data[:4], data[4:]
