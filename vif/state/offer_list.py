"""
Offer lists: every resting offer of a semi-market, in book order.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ..core.market import SemiMarket
from ..core.simulation import OrderResult, SimpleOffer, simulate
from ..core.tick import Tick
from ..core.token import TokenAmount
from .offer import Offer

logger = logging.getLogger(__name__)


class OfferList:
    def __init__(self, offers: List[Offer], market: SemiMarket) -> None:
        self.offers = offers
        self.market = market

    @classmethod
    def from_semi_market(cls, market: SemiMarket) -> "OfferList":
        return cls([], market)

    @classmethod
    def from_packed(
        cls,
        market: SemiMarket,
        offer_ids: Sequence[int],
        packed_offers: Sequence[int],
        owners: Sequence[str],
    ) -> "OfferList":
        offer_list = cls([], market)
        offer_list.set_offers_from_packed(offer_ids, packed_offers, owners)
        return offer_list

    def set_offers_from_packed(
        self,
        offer_ids: Sequence[int],
        packed_offers: Sequence[int],
        owners: Sequence[str],
    ) -> None:
        """
        Replace the offers with decoded words.

        The three sequences are parallel (as returned by the reader contract)
        and already in book order.

        Raises:
            ValueError: if the sequences differ in length or hold an empty entry
        """
        if not len(offer_ids) == len(packed_offers) == len(owners):
            raise ValueError(
                f"offer data length mismatch: {len(offer_ids)} ids, "
                f"{len(packed_offers)} offers, {len(owners)} owners"
            )
        offers: List[Offer] = []
        for offer_id, word, owner in zip(offer_ids, packed_offers, owners):
            if not offer_id or not word or not owner:
                raise ValueError("Unexpected invalid offer data")
            offers.append(Offer.from_packed(self.market, word, offer_id, owner))
        self.offers = offers
        logger.debug("decoded %d offers for %s", len(offers), self.market.key)

    def simulate_order(
        self,
        amount: TokenAmount,
        max_tick: Optional[Tick] = None,
        date: Optional[datetime] = None,
        provision: Optional[TokenAmount] = None,
    ) -> OrderResult:
        """Exact simulation of a market order against these offers."""
        offers = [
            SimpleOffer(
                gives=o.data.gives,
                tick=o.data.tick,
                expiry=o.data.expiry,
                provision=o.data.provision,
            )
            for o in self.offers
        ]
        return simulate(self.market, amount, offers, max_tick=max_tick, date=date, provision=provision)

    def __len__(self) -> int:
        return len(self.offers)

    def __iter__(self):
        return iter(self.offers)
