"""
Ticks: discrete indices into the geometric price ladder.

A `Tick` always holds a multiple of its tick spacing. Assigning a value
truncates it toward zero to the nearest multiple, then range-checks the
truncated value.
"""

from __future__ import annotations

import math
from typing import Optional

from .constants import MAX_TICK, MAX_TICK_SPACING, MIN_TICK, MIN_TICK_SPACING
from .context import VifContext, resolve_context
from .errors import PriceOverflowError, TickOverflowError, TickSpacingOverflowError
from .tick_math import PriceCache, Q128, check_tick, inbound_from_outbound, tick_from_price_x128
from .token import Token, TokenAmount

_LOG_TICK_BASE = math.log(1.00001)


def check_tick_spacing(tick_spacing: int) -> bool:
    return MIN_TICK_SPACING <= tick_spacing <= MAX_TICK_SPACING


def _trunc_div(a: int, b: int) -> int:
    # Python's // floors; the contract truncates toward zero.
    q = abs(a) // b
    return -q if a < 0 else q


class Tick:
    """A tick value bound to a tick spacing."""

    __slots__ = ("_tick", "tick_spacing", "_cache")

    def __init__(self, tick: int, tick_spacing: int = 1, *, cache: Optional[PriceCache] = None) -> None:
        if not check_tick_spacing(tick_spacing):
            raise TickSpacingOverflowError(tick_spacing)
        self.tick_spacing = tick_spacing
        self._cache = cache
        self._tick = 0
        self.value = tick

    @property
    def value(self) -> int:
        return self._tick

    @value.setter
    def value(self, tick: int) -> None:
        tick = self.tick_spacing * _trunc_div(tick, self.tick_spacing)
        if not check_tick(tick):
            raise TickOverflowError(tick)
        self._tick = tick

    @property
    def price(self) -> int:
        """128.128 price of the tick (memoized)."""
        cache = self._cache if self._cache is not None else resolve_context(None).price_cache
        return cache.get(self._tick)

    def inbound_from_outbound(self, outbound: TokenAmount, inbound: Token) -> TokenAmount:
        """
        Inbound amount a taker owes for `outbound` at this tick.

        Raises:
            OfferAmountOverflowError: if the inbound amount exceeds 48 bits
        """
        result = inbound.amount(0)
        result.normalized_amount = inbound_from_outbound(
            self.price,
            outbound.normalized_amount,
            outbound.token.unit,
            inbound.unit,
        )
        return result

    def index(self) -> int:
        """Position of the tick in its spacing's ladder; index 0 is the minimum tick."""
        return MAX_TICK // self.tick_spacing + _trunc_div(self._tick, self.tick_spacing)

    @staticmethod
    def check_tick(tick: int) -> bool:
        return check_tick(tick)

    @classmethod
    def from_value(cls, tick: int, tick_spacing: int = 1, *, context: Optional[VifContext] = None) -> "Tick":
        """Build a tick; `tick` is truncated toward zero to a multiple of `tick_spacing`."""
        return cls(tick, tick_spacing, cache=_cache_of(context))

    @classmethod
    def from_index(cls, index: int, tick_spacing: int = 1, *, context: Optional[VifContext] = None) -> "Tick":
        if not check_tick_spacing(tick_spacing):
            raise TickSpacingOverflowError(tick_spacing)
        return cls((index - MAX_TICK // tick_spacing) * tick_spacing, tick_spacing, cache=_cache_of(context))

    @classmethod
    def max_tick(cls, tick_spacing: int = 1, *, context: Optional[VifContext] = None) -> "Tick":
        return cls(MAX_TICK, tick_spacing, cache=_cache_of(context))

    @classmethod
    def min_tick(cls, tick_spacing: int = 1, *, context: Optional[VifContext] = None) -> "Tick":
        return cls(MIN_TICK, tick_spacing, cache=_cache_of(context))

    @classmethod
    def from_price(
        cls,
        price: float,
        round_up: bool = True,
        tick_spacing: int = 1,
        *,
        context: Optional[VifContext] = None,
    ) -> "Tick":
        """
        Estimate the tick of a float price (`inbound / outbound`).

        This is an approximation: `log(price) / log(1.00001)` in floating
        point, rounded per `round_up`, then spacing-truncated. It gives a close
        tick, not necessarily the tightest one. Use `from_price_x128` when the
        exact ladder position matters.

        Raises:
            PriceOverflowError: if `price <= 0` or is not finite
            TickOverflowError: if the estimated tick is out of range
        """
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            raise PriceOverflowError(price)
        raw = math.log(price) / _LOG_TICK_BASE
        tick = math.ceil(raw) if round_up else math.floor(raw)
        return cls(tick, tick_spacing, cache=_cache_of(context))

    @classmethod
    def from_price_x128(
        cls,
        price: int,
        round_up: bool = True,
        tick_spacing: int = 1,
        *,
        context: Optional[VifContext] = None,
    ) -> "Tick":
        """Exact counterpart of `from_price` for a 128.128 price."""
        return cls(tick_from_price_x128(price, round_up), tick_spacing, cache=_cache_of(context))

    def to_string(self, multiplier: float = 1.0, invert: bool = False) -> str:
        raw = self.price / Q128
        shown = (1 / raw) if invert else raw
        return f"Tick({self._tick}, price: {multiplier * shown})"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Tick(value={self._tick}, tick_spacing={self.tick_spacing})"


def _cache_of(context: Optional[VifContext]) -> Optional[PriceCache]:
    return None if context is None else context.price_cache
