"""
Process configuration threaded through the core.

The native token, the provision token and the tick-price memo are the only
shared state of the core. They live in a `VifContext`; functions that need
them take an optional `context=` and fall back to the default context.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .constants import DEFAULT_PROVISION_UNIT, ZERO_ADDRESS
from .tick_math import PriceCache
from .token import NATIVE_TOKEN, PROVISION_TOKEN, Token


@dataclass(frozen=True)
class VifContext:
    """
    Native/provision tokens and the price memo.

    The native token always lives at the zero address; only its unit,
    symbol and decimals may differ between chains.
    """

    native_token: Token = NATIVE_TOKEN
    provision_token: Token = PROVISION_TOKEN
    price_cache: PriceCache = field(default_factory=PriceCache, compare=False)

    def __post_init__(self) -> None:
        for name, token in (("native_token", self.native_token), ("provision_token", self.provision_token)):
            if not isinstance(token, Token):
                raise TypeError(f"{name} must be a Token")
            if token.address != ZERO_ADDRESS:
                raise ValueError(f"{name} must use the zero address, got {token.address}")

    def with_native_token(self, token: Token, provision_unit: Optional[int] = None) -> "VifContext":
        """Derive a context for another native token; the provision token follows it."""
        unit = DEFAULT_PROVISION_UNIT if provision_unit is None else provision_unit
        return replace(self, native_token=token, provision_token=token.with_unit(unit))

    def with_provision_unit(self, unit: int) -> "VifContext":
        return replace(self, provision_token=self.native_token.with_unit(unit))


_default_context = VifContext()


def get_default_context() -> VifContext:
    return _default_context


def set_default_context(context: VifContext) -> VifContext:
    """
    Replace the default context and return the previous one.

    Objects built before the switch keep the tokens they were built with.
    """
    global _default_context
    if not isinstance(context, VifContext):
        raise TypeError("context must be a VifContext")
    previous = _default_context
    _default_context = context
    return previous


def reset_default_context() -> VifContext:
    return set_default_context(VifContext())


def resolve_context(context: Optional[VifContext]) -> VifContext:
    return _default_context if context is None else context
