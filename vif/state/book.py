"""
Book: per-tick aggregates of an offer list.

Layout of a packed book element (most significant first, widths in bits):

    index(24) head(40) tail(40) offer_count(40) total_gives(64)

The index sits in the top bits so that the contract can sort elements by
index. Index 0 is the minimum tick for the market's spacing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from ..core.bits import check_fits_within
from ..core.market import SemiMarket
from ..core.simulation import OrderResult, SimpleOffer, simulate
from ..core.tick import Tick
from ..core.token import TokenAmount

logger = logging.getLogger(__name__)

_HEAD_MASK = 0xFFFFFFFFFF  # 5 bytes
_TAIL_MASK = 0xFFFFFFFFFF  # 5 bytes
_OFFER_COUNT_MASK = 0xFFFFFFFFFF  # 5 bytes
_TOTAL_GIVES_MASK = 0xFFFFFFFFFFFFFFFF  # 8 bytes
_INDEX_MASK = 0xFFFFFF  # 3 bytes

_INDEX_SHIFT = 0xB8
_HEAD_SHIFT = 0x90
_TAIL_SHIFT = 0x68
_OFFER_COUNT_SHIFT = 0x40
_TOTAL_GIVES_SHIFT = 0x00


@dataclass(frozen=True)
class RawBookElement:
    head: int
    tail: int
    offer_count: int
    total_gives: int  # outbound token units
    index: int


@dataclass(frozen=True)
class BookElement:
    head: int
    tail: int
    offer_count: int
    total_gives: TokenAmount
    tick: Tick


def unpack_book_element(word: int) -> RawBookElement:
    check_fits_within(word, 256, "packed book element")
    return RawBookElement(
        head=(word >> _HEAD_SHIFT) & _HEAD_MASK,
        tail=(word >> _TAIL_SHIFT) & _TAIL_MASK,
        offer_count=(word >> _OFFER_COUNT_SHIFT) & _OFFER_COUNT_MASK,
        total_gives=(word >> _TOTAL_GIVES_SHIFT) & _TOTAL_GIVES_MASK,
        index=(word >> _INDEX_SHIFT) & _INDEX_MASK,
    )


def pack_book_element(raw: RawBookElement) -> int:
    return (
        check_fits_within(raw.index, 24, "index") << _INDEX_SHIFT
        | check_fits_within(raw.head, 40, "head") << _HEAD_SHIFT
        | check_fits_within(raw.tail, 40, "tail") << _TAIL_SHIFT
        | check_fits_within(raw.offer_count, 40, "offer_count") << _OFFER_COUNT_SHIFT
        | check_fits_within(raw.total_gives, 64, "total_gives") << _TOTAL_GIVES_SHIFT
    )


class Book:
    """Price points of a semi-market, without individual offers."""

    def __init__(self, elements: List[BookElement], market: SemiMarket) -> None:
        self.elements = elements
        self.market = market

    @classmethod
    def from_packed(cls, market: SemiMarket, words: Iterable[int]) -> "Book":
        book = cls([], market)
        book.set_elements_from_packed(words)
        return book

    def set_elements_from_packed(self, words: Iterable[int]) -> None:
        """Replace the elements with decoded `words`, sorted by ascending index."""
        outbound = self.market.outbound_token.token
        spacing = self.market.market.tick_spacing
        context = self.market.context
        raws = sorted((unpack_book_element(w) for w in words), key=lambda e: e.index)
        self.elements = [
            BookElement(
                head=e.head,
                tail=e.tail,
                offer_count=e.offer_count,
                total_gives=outbound.amount(e.total_gives * outbound.unit),
                tick=Tick.from_index(e.index, spacing, context=context),
            )
            for e in raws
        ]
        logger.debug("decoded %d book elements for %s", len(self.elements), self.market.key)

    def gross_simulation(
        self,
        amount: TokenAmount,
        max_tick: Optional[Tick] = None,
        date: Optional[datetime] = None,
    ) -> OrderResult:
        """
        Approximate simulation against the aggregates.

        Each price point is treated as a single offer, so per-offer rounding
        and expired offers are not accounted for. Simulate against the
        `OfferList` for an exact result.
        """
        offers = [SimpleOffer(gives=e.total_gives, tick=e.tick) for e in self.elements]
        return simulate(self.market, amount, offers, max_tick=max_tick, date=date)
