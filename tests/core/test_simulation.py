from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from vif.core.context import VifContext, get_default_context
from vif.core.errors import InvalidTokenError
from vif.core.market import Market, SemiMarket
from vif.core.simulation import SimpleOffer, simulate
from vif.core.tick import Tick
from vif.core.tick_math import Q128, tick_to_price
from vif.core.token import Token, TokenAmount

BASE = Token("0x000000000000000000000000000000000000000a", 18, "BASE")
QUOTE = Token("0x000000000000000000000000000000000000000b", 6, "QUOTE")

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _market(ask_fees: Optional[int] = None, bid_fees: Optional[int] = None) -> Market:
    return Market.create(BASE, QUOTE, 1, ask_fees=ask_fees, bid_fees=bid_fees)


def _offer(gives: int, tick: int = 0, token: Token = BASE, **kwargs) -> SimpleOffer:
    return SimpleOffer(gives=token.amount(gives), tick=Tick(tick), **kwargs)


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _manual_exact_in(market: SemiMarket, amount: TokenAmount, offers: List[SimpleOffer]) -> int:
    """Fee-free per-offer consumption, on raw amounts and the bare tick law."""
    out_unit = market.outbound_token.token.unit
    in_unit = market.inbound_token.token.unit
    remaining = amount.amount // in_unit
    got = 0
    for offer in offers:
        gives = offer.gives.amount // out_unit
        wants = _ceil_div(_ceil_div(offer.gives.amount * tick_to_price(offer.tick.value), Q128), in_unit)
        if remaining >= wants:
            got += gives
            remaining -= wants
        else:
            got += gives * remaining // wants
            break
    return got * out_unit


# ---------------------------------------------------------------------------
# Exact in
# ---------------------------------------------------------------------------


def test_exact_in_fills_then_partially_fills() -> None:
    market = _market()
    offers = [_offer(100), _offer(200), _offer(300)]
    result = simulate(market.asks, QUOTE.amount(250), offers, date=NOW)
    assert result.gave.amount == 250
    assert result.got.amount == 250
    assert result.fee.amount == 0
    assert result.bounty.amount == 0
    assert result.gave.token == QUOTE
    assert result.got.token == BASE


def test_exact_in_sets_fees_aside() -> None:
    market = _market(ask_fees=1000)
    offers = [_offer(600_000), _offer(600_000)]
    result = simulate(market.asks, QUOTE.amount(1_001_000), offers, date=NOW)
    # net budget: 1_001_000 * 999_000 / 1_000_000 = 999_999
    assert result.gave.amount == 999_999
    assert result.got.amount == 999_999
    # 999_999 * 1000 / 999_000 = 1001 exactly, which the gross amount still covers
    assert result.fee.amount == 1001
    assert result.gave.amount + result.fee.amount <= 1_001_000


def test_exact_in_partial_rounds_output_down() -> None:
    market = _market()
    # tick 1 prices 3 base at 4 quote
    offer = _offer(3, tick=1)
    assert offer.tick.inbound_from_outbound(offer.gives, QUOTE).amount == 4
    result = simulate(market.asks, QUOTE.amount(2), [offer], date=NOW)
    assert result.gave.amount == 2
    assert result.got.amount == 1


def test_exact_in_stops_when_partial_buys_nothing() -> None:
    market = _market()
    result = simulate(market.asks, QUOTE.amount(1), [_offer(3, tick=1), _offer(1000, tick=2)], date=NOW)
    assert result.gave.amount == 0
    assert result.got.amount == 0


def test_exact_in_stops_at_max_tick() -> None:
    market = _market()
    offers = [_offer(100, tick=0), _offer(100, tick=10), _offer(100, tick=20)]
    result = simulate(market.asks, QUOTE.amount(10_000), offers, max_tick=Tick(5), date=NOW)
    assert result.gave.amount == 100
    assert result.got.amount == 100


def test_exact_in_on_bids() -> None:
    market = _market(bid_fees=0)
    offers = [_offer(50, token=QUOTE), _offer(50, token=QUOTE)]
    result = simulate(market.bids, BASE.amount(70), offers, date=NOW)
    assert result.gave.token == BASE
    assert result.got.token == QUOTE
    assert result.gave.amount == 70
    assert result.got.amount == 70


def test_exact_in_matches_manual_consumption(weth_usdc: Market, weth: Token, usdc: Token) -> None:
    asks = weth_usdc.asks
    offers = [
        SimpleOffer(gives=weth.amount("1"), tick=asks.price(3500 * (1 + i / 1000)))
        for i in range(10)
    ]
    amount = usdc.amount("10000")
    result = simulate(asks, amount, offers, date=NOW)
    assert result.got.amount == _manual_exact_in(asks, amount, offers)
    assert result.gave.amount == amount.amount
    assert 2.8 < float(result.got.amount_string) < 2.9


# ticks of asks.price(3500 * (1 + i / 1000)) for i in 0..9
LADDER_TICKS = [
    -1947060, -1946960, -1946860, -1946760, -1946660,
    -1946561, -1946461, -1946362, -1946263, -1946164,
]


@pytest.mark.parametrize(
    "ask_fees,gave,got,fee",
    [
        (None, 10_000_000_000, 2_854_400_000_000_000_000, 0),
        (300, 9_997_000_000, 2_853_500_000_000_000_000, 3_000_000),
    ],
)
def test_exact_in_ladder_matches_contract(
    weth: Token, usdc: Token, ask_fees: Optional[int], gave: int, got: int, fee: int
) -> None:
    asks = Market.create(weth, usdc, 1, ask_fees=ask_fees).asks
    offers = [SimpleOffer(gives=weth.amount("1"), tick=Tick(t)) for t in LADDER_TICKS]
    result = simulate(asks, usdc.amount("10000"), offers, date=NOW)
    assert (result.gave.amount, result.got.amount, result.fee.amount) == (gave, got, fee)


def test_ladder_ticks_follow_human_prices(weth_usdc: Market) -> None:
    assert [weth_usdc.asks.price(3500 * (1 + i / 1000)).value for i in range(10)] == LADDER_TICKS


# ---------------------------------------------------------------------------
# Exact out
# ---------------------------------------------------------------------------


def test_exact_out_fills_then_partially_fills() -> None:
    market = _market()
    offers = [_offer(100), _offer(200)]
    result = simulate(market.asks, BASE.amount(250), offers, date=NOW)
    assert result.got.amount == 250
    assert result.gave.amount == 250
    assert result.gave.token == QUOTE


def test_exact_out_partial_rounds_payment_up() -> None:
    market = _market()
    result = simulate(market.asks, BASE.amount(1), [_offer(3, tick=1)], date=NOW)
    # ceil(4 * 1 / 3)
    assert result.gave.amount == 2
    assert result.got.amount == 1


def test_exact_out_fee_is_uncapped() -> None:
    market = _market(ask_fees=1000)
    result = simulate(market.asks, BASE.amount(1_000_000), [_offer(2_000_000)], date=NOW)
    assert result.gave.amount == 1_000_000
    assert result.got.amount == 1_000_000
    assert result.fee.amount == 1001
    assert result.fee.token.unit == 1


def test_exact_out_runs_out_of_offers() -> None:
    market = _market()
    result = simulate(market.asks, BASE.amount(1000), [_offer(100), _offer(100)], date=NOW)
    assert result.got.amount == 200
    assert result.gave.amount == 200


# ---------------------------------------------------------------------------
# Expiry and bounty
# ---------------------------------------------------------------------------


def test_expired_offers_pay_bounty() -> None:
    market = _market()
    provision_token = get_default_context().provision_token
    offers = [
        _offer(100, expiry=NOW - timedelta(days=1), provision=provision_token.amount(5 * 10**14)),
        _offer(100, expiry=NOW + timedelta(days=1)),
    ]
    budget = provision_token.amount(3 * 10**14)
    result = simulate(market.asks, QUOTE.amount(1000), offers, date=NOW, provision=budget)
    assert result.bounty.amount == 3 * 10**14
    assert result.bounty.token == provision_token
    # only the live offer was consumed
    assert result.got.amount == 100


def test_expiry_is_inclusive() -> None:
    market = _market()
    offers = [_offer(100, expiry=NOW)]
    result = simulate(market.asks, QUOTE.amount(1000), offers, date=NOW)
    assert result.got.amount == 0


def test_bounty_without_provision_is_zero() -> None:
    market = _market()
    provision_token = get_default_context().provision_token
    offers = [_offer(100, expiry=NOW - timedelta(seconds=1), provision=provision_token.amount(10**15))]
    result = simulate(market.asks, BASE.amount(100), offers, date=NOW)
    assert result.bounty.amount == 0


def test_naive_dates_are_read_as_utc() -> None:
    market = _market()
    naive_now = NOW.replace(tzinfo=None)
    offers = [
        _offer(100, expiry=NOW - timedelta(hours=1)),
        _offer(100, expiry=naive_now + timedelta(hours=1)),
    ]
    result = simulate(market.asks, QUOTE.amount(1000), offers, date=naive_now)
    assert result.got.amount == 100
    assert offers[0].is_expired(naive_now)
    assert not offers[1].is_expired(NOW)


def test_bounty_uses_context_provision_token() -> None:
    ctx = VifContext().with_provision_unit(10**10)
    market = Market.create(BASE, QUOTE, 1, context=ctx)
    result = simulate(market.asks, QUOTE.amount(1), [], date=NOW)
    assert result.bounty.token.unit == 10**10


# ---------------------------------------------------------------------------
# Errors and defaults
# ---------------------------------------------------------------------------


def test_amount_in_unrelated_token_is_rejected() -> None:
    market = _market()
    other = Token("0x000000000000000000000000000000000000000c", 18, "OTHER")
    with pytest.raises(InvalidTokenError) as exc:
        simulate(market.asks, other.amount(1), [_offer(100)], date=NOW)
    assert {t.symbol for t in exc.value.expected} == {"BASE", "QUOTE"}


def test_defaults_to_now_and_max_tick() -> None:
    market = _market()
    far_future = datetime.now(timezone.utc) + timedelta(days=365)
    result = simulate(market.asks, QUOTE.amount(10**8), [_offer(100, tick=1_000_000, expiry=far_future)])
    assert result.got.amount > 0


def test_provision_caps_each_expired_offer() -> None:
    market = _market()
    provision_token = get_default_context().provision_token
    expired = NOW - timedelta(minutes=5)
    offers = [
        _offer(100, expiry=expired, provision=provision_token.amount(5 * 10**14)),
        _offer(100, expiry=expired, provision=provision_token.amount(10**14)),
    ]
    cap = provision_token.amount(3 * 10**14)
    result = simulate(market.asks, QUOTE.amount(1000), offers, date=NOW, provision=cap)
    assert result.bounty.amount == 3 * 10**14 + 10**14
    assert result.got.amount == 0
