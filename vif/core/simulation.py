"""
Deterministic market-order simulation over a resting offer list.

The simulator walks offers in the given order (best price first; the caller
sorts, the simulator does not) and reproduces the contract's matching
arithmetic:

- exact-in (amount in the inbound token): fees are set aside once up front,
  partial fills round the output down, and the fee is recomputed from the
  final `gave`, capped by the gross amount.
- exact-out (amount in the outbound token): partial fills round the payment
  up; the fee is charged on `gave` without a cap.

Expired offers are skipped and forfeit their provision (bounded by the
current provision passed by the caller) as a bounty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from .bits import mul_div_down, mul_div_up
from .context import VifContext, resolve_context
from .errors import InvalidTokenError
from .market import SemiMarket
from .tick import Tick
from .token import TokenAmount

logger = logging.getLogger(__name__)


def as_utc(date: datetime) -> datetime:
    """Naive datetimes are read as UTC, aware ones are converted to it."""
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date.astimezone(timezone.utc)


@dataclass(frozen=True)
class SimpleOffer:
    """The part of an offer the simulator needs."""

    gives: TokenAmount
    tick: Tick
    expiry: Optional[datetime] = None
    provision: Optional[TokenAmount] = None

    def is_expired(self, date: datetime) -> bool:
        return self.expiry is not None and as_utc(date) >= as_utc(self.expiry)


@dataclass
class OrderResult:
    """Outcome of a market order."""

    gave: TokenAmount  # sold, inbound token
    got: TokenAmount  # bought, outbound token
    fee: TokenAmount  # inbound token with unit 1
    bounty: TokenAmount  # provision token


def _empty_result(market: SemiMarket, ctx: VifContext) -> OrderResult:
    inbound = market.inbound_token.token
    return OrderResult(
        gave=inbound.amount(0),
        got=market.outbound_token.token.amount(0),
        fee=inbound.with_unit(1).amount(0),
        bounty=ctx.provision_token.amount(0),
    )


def _collect_bounty(result: OrderResult, offer: SimpleOffer, cap: TokenAmount) -> None:
    from_offer = offer.provision.amount if offer.provision is not None else 0
    result.bounty.amount += min(from_offer, cap.amount)


def _simulate_exact_in(
    market: SemiMarket,
    amount: TokenAmount,
    offers: Iterable[SimpleOffer],
    max_tick: Tick,
    date: datetime,
    provision: TokenAmount,
    ctx: VifContext,
) -> OrderResult:
    result = _empty_result(market, ctx)
    inbound = market.inbound_token.token
    remaining = market.excluding_fees(amount)

    for offer in offers:
        if remaining.amount == 0:
            break
        if offer.tick.value > max_tick.value:
            logger.debug("stop at tick %d above max tick %d", offer.tick.value, max_tick.value)
            break
        if offer.is_expired(date):
            _collect_bounty(result, offer, provision)
            logger.debug("expired offer at tick %d skipped", offer.tick.value)
            continue
        wants = offer.tick.inbound_from_outbound(offer.gives, inbound)
        if remaining.amount >= wants.amount:
            # Full amounts are unit-aligned, normalizing would not change them.
            result.gave.amount += wants.amount
            result.got.amount += offer.gives.amount
            remaining.amount -= wants.amount
            logger.debug("consumed offer at tick %d: gave %s got %s", offer.tick.value, wants, offer.gives)
        else:
            received = mul_div_down(offer.gives.normalized_amount, remaining.normalized_amount, wants.normalized_amount)
            if received == 0:
                break
            result.got.normalized_amount += received
            result.gave.amount += remaining.amount
            logger.debug("partial fill at tick %d: gave %s", offer.tick.value, remaining)
            remaining.amount = 0

    result.fee = market.compute_fees(result.gave, amount)
    return result


def _simulate_exact_out(
    market: SemiMarket,
    amount: TokenAmount,
    offers: Iterable[SimpleOffer],
    max_tick: Tick,
    date: datetime,
    provision: TokenAmount,
    ctx: VifContext,
) -> OrderResult:
    result = _empty_result(market, ctx)
    inbound = market.inbound_token.token
    remaining = amount.copy()

    for offer in offers:
        if remaining.amount == 0:
            break
        if offer.tick.value > max_tick.value:
            logger.debug("stop at tick %d above max tick %d", offer.tick.value, max_tick.value)
            break
        if offer.is_expired(date):
            _collect_bounty(result, offer, provision)
            logger.debug("expired offer at tick %d skipped", offer.tick.value)
            continue
        wants = offer.tick.inbound_from_outbound(offer.gives, inbound)
        if remaining.amount >= offer.gives.amount:
            result.gave.amount += wants.amount
            result.got.amount += offer.gives.amount
            remaining.amount -= offer.gives.amount
            logger.debug("consumed offer at tick %d: gave %s got %s", offer.tick.value, wants, offer.gives)
        else:
            result.gave.normalized_amount += mul_div_up(
                wants.normalized_amount,
                remaining.normalized_amount,
                offer.gives.normalized_amount,
            )
            result.got.amount += remaining.amount
            logger.debug("partial fill at tick %d: got %s", offer.tick.value, remaining)
            remaining.amount = 0

    result.fee = market.compute_fees(result.gave)
    return result


def simulate(
    market: SemiMarket,
    amount: TokenAmount,
    offers: Iterable[SimpleOffer],
    max_tick: Optional[Tick] = None,
    date: Optional[datetime] = None,
    provision: Optional[TokenAmount] = None,
    *,
    context: Optional[VifContext] = None,
) -> OrderResult:
    """
    Simulate a market order of `amount` against `offers`.

    Args:
        market: The semi-market the offers rest on
        amount: Inbound token for exact-in, outbound token for exact-out
        offers: Offers sorted by ascending tick (not checked)
        max_tick: Worst acceptable tick (defaults to the maximum tick)
        date: Expiry reference (defaults to now, UTC; naive dates are read as UTC)
        provision: Current provision, caps the bounty of each expired offer (defaults to zero)

    Returns:
        OrderResult with `gave`, `got`, `fee` and `bounty`

    Raises:
        InvalidTokenError: if `amount` is in neither token of the market
    """
    ctx = resolve_context(context if context is not None else market.context)
    if max_tick is None:
        max_tick = market.max_tick()
    if date is None:
        date = datetime.now(timezone.utc)
    if provision is None:
        provision = ctx.provision_token.amount(0)

    inbound = market.inbound_token.token
    outbound = market.outbound_token.token
    if amount.token == inbound:
        return _simulate_exact_in(market, amount, offers, max_tick, date, provision, ctx)
    if amount.token == outbound:
        return _simulate_exact_out(market, amount, offers, max_tick, date, provision, ctx)
    raise InvalidTokenError(amount.token, [inbound, outbound])
