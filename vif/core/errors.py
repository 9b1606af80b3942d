"""Exception types for the Vif core.

Every error raised by the package derives from `VifError`. Range failures
also derive from `ValueError` so callers validating user input can catch them
without importing this module.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .constants import MAX_TICK, MAX_TICK_SPACING, MIN_TICK, MIN_TICK_SPACING, TICK_BITS


def _bit_length(value: int) -> int:
    return abs(int(value)).bit_length()


class VifError(Exception):
    """Base class for all Vif core errors."""


class RangeOverflowError(VifError, ValueError):
    """Raised when a value exceeds its declared fixed width."""

    def __init__(self, message: str, *, value: Any, bits: int, label: str) -> None:
        self.value = value
        self.bits = bits
        self.label = label
        self.n_bits = _bit_length(value) if isinstance(value, int) else 0
        super().__init__(message)


class BitsOverflowError(RangeOverflowError):
    """Raised when an unsigned integer does not fit within `bits` bits."""

    def __init__(self, bits: int, value: int, label: str = "amount") -> None:
        n_bits = _bit_length(value)
        super().__init__(
            f"{label} should fit within {bits} bits, got {n_bits} bits ({label}: {value})",
            value=value,
            bits=bits,
            label=label,
        )


class TokenAmountOverflowError(BitsOverflowError):
    def __init__(self, amount: int, label: str = "Token amount") -> None:
        super().__init__(256, amount, label)


class UnitOverflowError(BitsOverflowError):
    def __init__(self, unit: int, label: str = "unit") -> None:
        super().__init__(64, unit, label)


class OfferAmountOverflowError(BitsOverflowError):
    def __init__(self, amount: int, label: str = "offer amount") -> None:
        super().__init__(48, amount, label)


class FeesOverflowError(BitsOverflowError):
    def __init__(self, fees: int, label: str = "Fees") -> None:
        super().__init__(16, fees, label)


class TickOverflowError(RangeOverflowError):
    def __init__(self, tick: int) -> None:
        super().__init__(
            f"Tick {tick} is out of range [{MIN_TICK}, {MAX_TICK}]",
            value=tick,
            bits=TICK_BITS,
            label="tick",
        )


class TickSpacingOverflowError(RangeOverflowError):
    def __init__(self, tick_spacing: int) -> None:
        super().__init__(
            f"Tick spacing {tick_spacing} is out of range [{MIN_TICK_SPACING}, {MAX_TICK_SPACING}]",
            value=tick_spacing,
            bits=16,
            label="tick spacing",
        )


class PriceOverflowError(RangeOverflowError):
    def __init__(self, price: Any) -> None:
        super().__init__(
            f"Price {price} is out of range ]0, Infinity[",
            value=price,
            bits=256,
            label="price",
        )


class MaxAmountExceededError(VifError, ValueError):
    """Raised when a fee cap (`max_amount`) is lower than the amount it caps."""

    def __init__(self, max_amount: Any, amount: Any) -> None:
        self.max_amount = max_amount
        self.amount = amount
        super().__init__(f"Max amount {max_amount} is lower than amount {amount}")


class InvalidTokenError(VifError, ValueError):
    """Raised when an amount is denominated in a token outside the expected set."""

    def __init__(self, token: Any, expected: Sequence[Any]) -> None:
        self.token = token
        self.expected = tuple(expected)
        names = " or ".join(t.symbol for t in self.expected)
        super().__init__(f"Invalid token {token.symbol}, expected {names}.")


class InvalidPathError(VifError, ValueError):
    """
    Raised when a multi-hop path is invalid.

    A path is invalid if it is empty, holds a single market, or the outbound
    token of one market is not the inbound token of the next.
    """

    def __init__(self, path: Sequence[Any]) -> None:
        self.path = tuple(path)
        super().__init__(_describe_path(self.path))


class ConfigError(VifError, ValueError):
    """Raised when a configuration document is malformed."""


def _describe_path(path: Sequence[Any]) -> str:
    if not path:
        return "Invalid path for multi order, path is empty."
    if len(path) == 1:
        return "Invalid path for multi order, path is a single market"

    rendered = path[0].inbound_token.token.symbol
    prev_token: Optional[Any] = None
    for market in path:
        inbound = market.inbound_token.token
        if prev_token is not None and inbound.address != prev_token.address:
            rendered += f" -> [{prev_token.symbol} != {inbound.symbol}]"
        prev_token = market.outbound_token.token
        rendered += f" -> {prev_token.symbol}"
    return f"Invalid path for multi order (incorrect links between markets), got: {rendered}."
