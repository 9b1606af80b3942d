"""
Markets and semi-markets.

A `Market` pairs a base and a quote token (each carried as a minimum order
size) with a tick spacing and two fee rates. It owns two `SemiMarket`s:

- asks: makers sell base, takers buy base (outbound = base, inbound = quote)
- bids: makers buy base, takers sell base (outbound = quote, inbound = base)

Fees are parts-per-million of `FEE_DENOMINATOR` and are charged on top of
the net (post-fee) inbound amount.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, unique
from functools import cached_property
from typing import Any, Dict, List, Optional, Sequence, Union

from eth_abi import encode
from eth_utils import keccak, to_checksum_address, to_hex

from .bits import fits_within
from .constants import FEE_DENOMINATOR, FEES_BITS, MIN_OUTBOUND_UNITS_MAX, MIN_OUTBOUND_UNITS_MIN
from .context import VifContext
from .errors import (
    FeesOverflowError,
    InvalidTokenError,
    MaxAmountExceededError,
    PriceOverflowError,
    TickSpacingOverflowError,
)
from .tick import Tick, check_tick_spacing
from .token import Token, TokenAmount, same_address

logger = logging.getLogger(__name__)

_MARKET_KEY_TYPES = ["address", "uint256", "address", "uint256", "uint256"]


@unique
class BA(Enum):
    ASKS = "asks"
    BIDS = "bids"


def check_fees(fees: int) -> bool:
    return fits_within(fees, FEES_BITS)


def market_key(outbound: Token, inbound: Token, tick_spacing: int) -> str:
    """
    Identifier of one direction of a market, as keyed by the contract.

        keccak256(abi.encode(outbound, outbound.unit, inbound, inbound.unit, tick_spacing))
    """
    payload = encode(
        _MARKET_KEY_TYPES,
        [outbound.address, outbound.unit, inbound.address, inbound.unit, tick_spacing],
    )
    return to_hex(keccak(payload))


def compute_fees(
    fee_token: Token,
    amount: TokenAmount,
    fees: int,
    max_amount: Optional[TokenAmount] = None,
) -> TokenAmount:
    """
    Fee owed on top of a net `amount`.

        fee = floor(amount * fees / (FEE_DENOMINATOR - fees))

    With `max_amount` the fee is capped so that `amount + fee <= max_amount`.
    The result is expressed in `fee_token` with unit 1, so small fees are not
    truncated away by the token granularity.

    Raises:
        FeesOverflowError: if `fees` does not fit in 16 bits
        InvalidTokenError: if `amount` or `max_amount` is not in `fee_token`
        MaxAmountExceededError: if `max_amount < amount`
    """
    if not check_fees(fees):
        raise FeesOverflowError(fees)
    if not same_address(amount.token, fee_token) or (
        max_amount is not None and not same_address(max_amount.token, fee_token)
    ):
        raise InvalidTokenError(amount.token, [fee_token])
    computed = (amount.amount * fees) // (FEE_DENOMINATOR - fees)
    if max_amount is not None:
        if max_amount.amount < amount.amount:
            raise MaxAmountExceededError(max_amount, amount)
        computed = min(computed, max_amount.amount - amount.amount)
    return fee_token.with_unit(1).amount(computed)


def excluding_fees(amount: TokenAmount, fee_token: Token, fees: int) -> TokenAmount:
    """
    Net amount left once fees are set aside from a gross `amount`.

        net = floor(normalized * (FEE_DENOMINATOR - fees) / FEE_DENOMINATOR) * unit
    """
    if not check_fees(fees):
        raise FeesOverflowError(fees)
    if not same_address(amount.token, fee_token):
        raise InvalidTokenError(amount.token, [fee_token])
    result = amount.copy()
    result.normalized_amount = (amount.normalized_amount * (FEE_DENOMINATOR - fees)) // FEE_DENOMINATOR
    return result


@dataclass(frozen=True)
class OpenMarketSide:
    """One direction of an `openMarkets` reader row (already ABI-decoded)."""

    outbound_token: str
    inbound_token: str
    outbound_units: int
    inbound_units: int
    tick_spacing: int
    fees: int
    min_outbound_units: int = MIN_OUTBOUND_UNITS_MIN
    active: bool = True

    def __post_init__(self) -> None:
        if not MIN_OUTBOUND_UNITS_MIN <= self.min_outbound_units <= MIN_OUTBOUND_UNITS_MAX:
            raise ValueError(
                f"min_outbound_units {self.min_outbound_units} is out of range "
                f"[{MIN_OUTBOUND_UNITS_MIN}, {MIN_OUTBOUND_UNITS_MAX}]"
            )


@dataclass(frozen=True)
class OpenMarketResult:
    market01: OpenMarketSide
    market10: OpenMarketSide


class Market:
    """A base/quote pair with a tick spacing and per-direction fees."""

    FEE_DENOMINATOR = FEE_DENOMINATOR

    def __init__(
        self,
        base: TokenAmount,
        quote: TokenAmount,
        tick_spacing: int,
        *,
        context: Optional[VifContext] = None,
    ) -> None:
        if not check_tick_spacing(tick_spacing):
            raise TickSpacingOverflowError(tick_spacing)
        self.base = base
        self.quote = quote
        self.tick_spacing = tick_spacing
        self.context = context
        self._ask_fees: Optional[int] = None
        self._bid_fees: Optional[int] = None
        self.asks = SemiMarket(BA.ASKS, self)
        self.bids = SemiMarket(BA.BIDS, self)

    @classmethod
    def create(
        cls,
        base: Union[Token, TokenAmount],
        quote: Union[Token, TokenAmount],
        tick_spacing: int,
        ask_fees: Optional[int] = None,
        bid_fees: Optional[int] = None,
        *,
        context: Optional[VifContext] = None,
    ) -> "Market":
        """
        Create a market.

        `base`/`quote` may be bare tokens, in which case the minimum order
        size is one unit of the token.
        """
        if isinstance(base, Token):
            base = base.amount(base.unit)
        if isinstance(quote, Token):
            quote = quote.amount(quote.unit)
        market = cls(base, quote, tick_spacing, context=context)
        if ask_fees is not None:
            market.ask_fees = ask_fees
        if bid_fees is not None:
            market.bid_fees = bid_fees
        return market

    @classmethod
    def create_many(cls, params: Sequence[Dict[str, Any]]) -> List["Market"]:
        return [cls.create(**p) for p in params]

    @classmethod
    def from_open_market_result(
        cls,
        result: OpenMarketResult,
        tokens: Sequence[Token],
        *,
        context: Optional[VifContext] = None,
    ) -> Optional["Market"]:
        """
        Build a market from an `openMarkets` reader row.

        Whichever token of the pair comes first in `tokens` becomes the base,
        and the fee assignment follows the base. Returns None if either token
        of the row is unknown.
        """
        side = result.market01
        outbound = to_checksum_address(side.outbound_token)
        inbound = to_checksum_address(side.inbound_token)
        index0 = next((i for i, t in enumerate(tokens) if t.address == outbound), -1)
        index1 = next((i for i, t in enumerate(tokens) if t.address == inbound), -1)
        if index0 == -1 or index1 == -1:
            logger.debug("open market %s/%s skipped: unknown token", outbound, inbound)
            return None

        token0 = tokens[index0].with_unit(side.outbound_units)
        token1 = tokens[index1].with_unit(side.inbound_units)
        if index0 > index1:
            return cls.create(
                base=token1,
                quote=token0,
                tick_spacing=side.tick_spacing,
                ask_fees=result.market10.fees,
                bid_fees=side.fees,
                context=context,
            )
        return cls.create(
            base=token0,
            quote=token1,
            tick_spacing=side.tick_spacing,
            ask_fees=side.fees,
            bid_fees=result.market10.fees,
            context=context,
        )

    @staticmethod
    def check_tick_spacing(tick_spacing: int) -> bool:
        return check_tick_spacing(tick_spacing)

    @staticmethod
    def check_fees(fees: int) -> bool:
        return check_fees(fees)

    @property
    def ask_fees(self) -> Optional[int]:
        return self._ask_fees

    @ask_fees.setter
    def ask_fees(self, fees: Optional[int]) -> None:
        if fees is not None and not check_fees(fees):
            raise FeesOverflowError(fees)
        self._ask_fees = fees

    @property
    def bid_fees(self) -> Optional[int]:
        return self._bid_fees

    @bid_fees.setter
    def bid_fees(self, fees: Optional[int]) -> None:
        if fees is not None and not check_fees(fees):
            raise FeesOverflowError(fees)
        self._bid_fees = fees

    @cached_property
    def asks_key(self) -> str:
        return market_key(self.base.token, self.quote.token, self.tick_spacing)

    @cached_property
    def bids_key(self) -> str:
        return market_key(self.quote.token, self.base.token, self.tick_spacing)

    @property
    def price_multiplier(self) -> float:
        """Scale from raw price to human price; display only, never used in integer math."""
        return 10.0 ** (self.base.token.decimals - self.quote.token.decimals)

    def ask_price(self, price: float) -> Tick:
        """Ask tick for a human price (quote per base)."""
        return Tick.from_price(price / self.price_multiplier, True, self.tick_spacing, context=self.context)

    def bid_price(self, price: float) -> Tick:
        """Bid tick for a human price (quote per base)."""
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            raise PriceOverflowError(price)
        return Tick.from_price((1 / price) * self.price_multiplier, True, self.tick_spacing, context=self.context)

    def compute_ask_fees(self, amount: TokenAmount, max_amount: Optional[TokenAmount] = None) -> TokenAmount:
        return compute_fees(self.quote.token, amount, self._ask_fees or 0, max_amount)

    def compute_bid_fees(self, amount: TokenAmount, max_amount: Optional[TokenAmount] = None) -> TokenAmount:
        return compute_fees(self.base.token, amount, self._bid_fees or 0, max_amount)

    def excluding_ask_fees(self, amount: TokenAmount) -> TokenAmount:
        return excluding_fees(amount, self.quote.token, self._ask_fees or 0)

    def excluding_bid_fees(self, amount: TokenAmount) -> TokenAmount:
        return excluding_fees(amount, self.base.token, self._bid_fees or 0)

    def __repr__(self) -> str:
        return f"Market({self.base.token.symbol}/{self.quote.token.symbol}, tick_spacing={self.tick_spacing})"


class SemiMarket:
    """One trading direction of a market. Holds a read-only back-reference to it."""

    __slots__ = ("ba", "market")

    def __init__(self, ba: BA, market: Market) -> None:
        self.ba = ba
        self.market = market

    @property
    def key(self) -> str:
        return self.market.asks_key if self.ba is BA.ASKS else self.market.bids_key

    @property
    def outbound_token(self) -> TokenAmount:
        """What makers give; in a market order, the bought token."""
        return self.market.base if self.ba is BA.ASKS else self.market.quote

    @property
    def inbound_token(self) -> TokenAmount:
        """What makers receive; in a market order, the sold token."""
        return self.market.quote if self.ba is BA.ASKS else self.market.base

    @property
    def fees(self) -> int:
        fees = self.market.ask_fees if self.ba is BA.ASKS else self.market.bid_fees
        return fees or 0

    @property
    def context(self) -> Optional[VifContext]:
        return self.market.context

    def price(self, price: float) -> Tick:
        return self.market.ask_price(price) if self.ba is BA.ASKS else self.market.bid_price(price)

    def max_tick(self) -> Tick:
        return Tick.max_tick(self.market.tick_spacing, context=self.market.context)

    def compute_fees(self, amount: TokenAmount, max_amount: Optional[TokenAmount] = None) -> TokenAmount:
        if self.ba is BA.ASKS:
            return self.market.compute_ask_fees(amount, max_amount)
        return self.market.compute_bid_fees(amount, max_amount)

    def excluding_fees(self, amount: TokenAmount) -> TokenAmount:
        if self.ba is BA.ASKS:
            return self.market.excluding_ask_fees(amount)
        return self.market.excluding_bid_fees(amount)

    def __repr__(self) -> str:
        return f"SemiMarket({self.ba.value}, {self.outbound_token.token.symbol}/{self.inbound_token.token.symbol})"
