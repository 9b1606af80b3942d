from __future__ import annotations

from datetime import datetime, timezone

import pytest

from vif.core.constants import MAX_TICK
from vif.core.context import VifContext, set_default_context
from vif.core.errors import BitsOverflowError, OfferAmountOverflowError
from vif.core.market import Market
from vif.core.tick import Tick
from vif.core.token import Token
from vif.state.offer import Offer, OfferData, RawOfferData, pack_offer, unpack_offer

OWNER = "0x00000000000000000000000000000000000000aa"


def _word(
    prev: int = 0,
    next: int = 0,
    expiry: int = 0,
    gives: int = 0,
    received: int = 0,
    tick_field: int = 0,
    provision: int = 0,
    is_active: int = 0,
) -> int:
    # Hand-assembled per the documented layout, independent of pack_offer.
    return (
        (prev << 216)
        | (next << 176)
        | (expiry << 144)
        | (gives << 96)
        | (received << 48)
        | (tick_field << 24)
        | (provision << 1)
        | is_active
    )


# ---------------------------------------------------------------------------
# Word decoding
# ---------------------------------------------------------------------------


def test_unpack_reads_every_field() -> None:
    word = _word(
        prev=1,
        next=2,
        expiry=1_700_000_000,
        gives=1000,
        received=2000,
        tick_field=0xFFFFFB,
        provision=7,
        is_active=1,
    )
    raw = unpack_offer(word)
    assert raw.prev == 1
    assert raw.next == 2
    assert raw.expiry == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert raw.gives == 1000
    assert raw.received == 2000
    assert raw.tick == -5
    assert raw.provision == 7
    assert raw.is_active is True
    assert pack_offer(raw) == word


def test_zero_expiry_means_none() -> None:
    raw = unpack_offer(_word(gives=1))
    assert raw.expiry is None
    assert raw.is_active is False


@pytest.mark.parametrize(
    "tick_field,tick",
    [
        (0x000000, 0),
        (0x7FFFFF, MAX_TICK),
        (0x800001, -MAX_TICK),
        (0x800000, -(1 << 23)),
        (0xFFFFFF, -1),
    ],
)
def test_tick_field_is_sign_extended(tick_field: int, tick: int) -> None:
    assert unpack_offer(_word(tick_field=tick_field)).tick == tick


def test_field_maxima_do_not_bleed() -> None:
    word = _word(
        prev=2**40 - 1,
        next=2**40 - 1,
        expiry=2**32 - 1,
        gives=2**48 - 1,
        received=2**48 - 1,
        tick_field=0xFFFFFF,
        provision=2**23 - 1,
        is_active=1,
    )
    assert word == 2**256 - 1
    raw = unpack_offer(word)
    assert raw.prev == raw.next == 2**40 - 1
    assert raw.gives == raw.received == 2**48 - 1
    assert raw.provision == 2**23 - 1


def test_pack_reads_naive_expiry_as_utc() -> None:
    naive = datetime(2023, 11, 14, 22, 13, 20)
    raw = RawOfferData(prev=0, next=0, expiry=naive, gives=1, received=0, tick=0, provision=0, is_active=True)
    word = pack_offer(raw)
    assert word == _word(expiry=1_700_000_000, gives=1, is_active=1)
    assert unpack_offer(word).expiry == naive.replace(tzinfo=timezone.utc)


def test_unpack_rejects_oversized_words() -> None:
    with pytest.raises(BitsOverflowError):
        unpack_offer(2**256)


def test_pack_checks_field_widths() -> None:
    raw = RawOfferData(prev=0, next=0, expiry=None, gives=2**48, received=0, tick=0, provision=0, is_active=True)
    with pytest.raises(BitsOverflowError) as exc:
        pack_offer(raw)
    assert exc.value.label == "gives"
    with pytest.raises(BitsOverflowError):
        pack_offer(RawOfferData(0, 0, None, 0, 0, 1 << 23, 0, False))


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


def test_from_packed_rescales_by_units(weth_usdc: Market, weth: Token, usdc: Token) -> None:
    word = _word(prev=3, next=4, gives=1000, received=2000, tick_field=0xFFFFFB, provision=7, is_active=1)
    offer = Offer.from_packed(weth_usdc.asks, word, id=9, owner=OWNER)
    assert offer.id == 9
    assert offer.owner == OWNER
    assert offer.data.gives.token == weth
    assert offer.data.gives.amount == 1000 * 10**14
    assert offer.data.received.token == usdc
    assert offer.data.received.amount == 2000 * 100
    assert offer.data.provision.amount == 7 * 10**9
    assert offer.data.tick.value == -5
    assert offer.data.expiry is None
    assert offer.data.is_active


def test_from_packed_applies_tick_spacing(weth: Token, usdc: Token) -> None:
    market = Market.create(weth, usdc, 5)
    offer = Offer.from_packed(market.bids, _word(gives=1, tick_field=13))
    assert offer.data.tick.value == 10
    assert offer.data.gives.token == usdc


def test_offer_keeps_provision_token_across_context_switch(weth_usdc: Market) -> None:
    offer = Offer.from_packed(weth_usdc.asks, _word(gives=1, provision=1))
    set_default_context(VifContext().with_provision_unit(10**10))
    assert offer.data.provision.token.unit == 10**9
    later = Offer.from_packed(weth_usdc.asks, _word(gives=1, provision=1))
    assert later.data.provision.amount == 10**10


def test_offer_amounts_must_fit_48_bits(weth_usdc: Market, weth: Token, usdc: Token) -> None:
    data = OfferData(
        prev=0,
        next=0,
        gives=weth.amount(2**48 * weth.unit),
        received=usdc.amount(0),
        tick=Tick(0),
        provision=VifContext().provision_token.amount(0),
        is_active=True,
    )
    with pytest.raises(OfferAmountOverflowError) as exc:
        Offer.from_data(weth_usdc.asks, data)
    assert exc.value.label == "gives"


def test_offer_str_lists_fields(weth_usdc: Market) -> None:
    offer = Offer.from_packed(weth_usdc.asks, _word(gives=10_000, tick_field=0, is_active=1), id=1)
    text = str(offer)
    assert text.startswith("Offer(")
    assert "gives: TokenAmount(1 WETH)" in text
    assert "id: 1" in text
