"""
Order planning for single markets and multi-hop paths.

These helpers resolve the arguments a transaction builder needs (market keys,
fill direction, limits) and validate them; they do not encode calldata.

A multi-hop path is a sequence of semi-markets where each market's inbound
token is the previous market's outbound token:

    WETH -(bids WETH/USDC)-> USDC -(asks WBTC/USDC)-> WBTC
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .constants import MAX_UINT256
from .errors import InvalidPathError, InvalidTokenError
from .market import BA, SemiMarket
from .tick import Tick
from .token import Token, TokenAmount

DEFAULT_MAX_OFFERS_SINGLE = 100
DEFAULT_MAX_OFFERS_MULTI = 50


@dataclass(frozen=True)
class SingleOrderPlan:
    market_key: str
    max_tick: Tick
    fill_volume: TokenAmount
    fill_wants: bool
    max_offers: int


@dataclass(frozen=True)
class MultiOrderPlan:
    market_keys: Tuple[str, ...]
    fill_volume: TokenAmount
    fill_wants: bool
    max_offers: int
    limit_volume: TokenAmount


def plan_single_order(
    market: SemiMarket,
    fill_volume: TokenAmount,
    max_tick: Optional[Tick] = None,
    max_offers: int = DEFAULT_MAX_OFFERS_SINGLE,
) -> SingleOrderPlan:
    """
    Resolve a market order on one semi-market.

    Expressing the volume in base on the asks side (or in quote on the bids
    side) means the taker fixes what they receive (`fill_wants`).
    """
    base = market.market.base.token
    quote = market.market.quote.token
    is_base = fill_volume.token == base
    if not is_base and fill_volume.token != quote:
        raise InvalidTokenError(fill_volume.token, [base, quote])
    fill_wants = market.ba is BA.ASKS if is_base else market.ba is BA.BIDS
    return SingleOrderPlan(
        market_key=market.key,
        max_tick=max_tick if max_tick is not None else market.max_tick(),
        fill_volume=fill_volume,
        fill_wants=fill_wants,
        max_offers=max_offers,
    )


def validate_path(markets: Sequence[SemiMarket]) -> Tuple[Token, Token]:
    """
    Check that `markets` form a connected path of at least two hops.

    Returns:
        (send_token, receive_token)

    Raises:
        InvalidPathError: if the path is empty, single-hop, or broken
    """
    if len(markets) < 2:
        raise InvalidPathError(markets)
    send = markets[0].inbound_token.token
    prev = send
    for market in markets:
        if market.inbound_token.token.address != prev.address:
            raise InvalidPathError(markets)
        prev = market.outbound_token.token
    return send, markets[-1].outbound_token.token


def plan_multi_order(
    markets: Sequence[SemiMarket],
    fill_volume: TokenAmount,
    limit_volume: Optional[TokenAmount] = None,
    max_offers: int = DEFAULT_MAX_OFFERS_MULTI,
) -> MultiOrderPlan:
    """
    Resolve a multi-hop market order.

    `fill_volume` in the receive token fixes the output (`fill_wants`); in the
    send token it fixes the input. The default limit is "spend anything" when
    fixing the output and "receive at least zero" when fixing the input.
    """
    send, receive = validate_path(markets)

    fill_wants = fill_volume.token == receive
    if not fill_wants and fill_volume.token != send:
        raise InvalidTokenError(fill_volume.token, [send, receive])

    if limit_volume is None:
        limit_volume = send.amount(MAX_UINT256) if fill_wants else receive.amount(0)
    expected_limit = send if fill_wants else receive
    if limit_volume.token != expected_limit:
        raise InvalidTokenError(limit_volume.token, [send, receive])

    return MultiOrderPlan(
        market_keys=tuple(m.key for m in markets),
        fill_volume=fill_volume,
        fill_wants=fill_wants,
        max_offers=max_offers,
        limit_volume=limit_volume,
    )
