"""
Engine errors and batch results.

Иерархия ошибок:
- InputValidationError: некорректный ввод (суммы, проценты, теги позиций)
- UnsupportedConfigurationError: неподдерживаемая версия / fee / путь
- EncodingError: значение не помещается в ABI поле (дефект, не восстанавливаемо)

Degenerate math (нулевые резервы, пустой диапазон) никогда не бросает
исключение - такие случаи возвращают нули.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class AmmEngineError(Exception):
    """Base class for all engine errors."""


class InputValidationError(AmmEngineError, ValueError):
    """Caller input rejected before any encoding was attempted."""


class UnsupportedConfigurationError(AmmEngineError):
    """A version, fee tier or currency path the engine cannot build for."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class EncodingError(AmmEngineError):
    """
    Value does not fit the ABI field it is encoded into.

    This is an internal invariant violation: the math upstream produced
    something the contract cannot accept.
    """

    def __init__(self, field: str, value: int, bits: int, signed: bool = False):
        kind = "int" if signed else "uint"
        super().__init__(
            f"Value for '{field}' does not fit {kind}{bits}: {value}"
        )
        self.field = field
        self.value = value
        self.bits = bits
        self.signed = signed


RECOVERABLE_ERRORS = (InputValidationError, UnsupportedConfigurationError)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of one build/quote call inside a batch."""
    value: Any = None
    error: Optional[AmmEngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def capture(fn: Callable, *args, **kwargs) -> BuildResult:
    """
    Run fn and turn recoverable engine errors into a BuildResult.

    EncodingError is not caught: it signals a defect and must fail loudly.
    """
    try:
        return BuildResult(value=fn(*args, **kwargs))
    except RECOVERABLE_ERRORS as e:
        logger.warning(f"{getattr(fn, '__name__', fn)} rejected: {e}")
        return BuildResult(error=e)
