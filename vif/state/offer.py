"""
Resting offers and their packed 256-bit encoding.

Layout (most significant first, widths in bits):

    prev(40) next(40) expiry(32) gives(48) received(48) tick(24, signed) provision(23) is_active(1)

`gives`/`received` are normalized by the outbound/inbound token units,
`provision` by the provision token unit. An expiry of 0 means "no expiry".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..core.bits import check_fits_within, fits_within
from ..core.constants import OFFER_AMOUNT_BITS, ZERO_ADDRESS
from ..core.context import VifContext, resolve_context
from ..core.errors import BitsOverflowError, OfferAmountOverflowError
from ..core.market import BA, SemiMarket
from ..core.simulation import as_utc
from ..core.tick import Tick
from ..core.token import TokenAmount

_PREV_MASK = 0xFFFFFFFFFF  # 5 bytes
_NEXT_MASK = 0xFFFFFFFFFF  # 5 bytes
_EXPIRY_MASK = 0xFFFFFFFF  # 4 bytes
_GIVES_MASK = 0xFFFFFFFFFFFF  # 6 bytes
_RECEIVED_MASK = 0xFFFFFFFFFFFF  # 6 bytes
_TICK_MASK = 0xFFFFFF  # 3 bytes
_PROVISION_MASK = 0x7FFFFF  # 3 bytes - 1 bit
_IS_ACTIVE_MASK = 0x01

_PREV_SHIFT = 0xD8
_NEXT_SHIFT = 0xB0
_EXPIRY_SHIFT = 0x90
_GIVES_SHIFT = 0x60
_RECEIVED_SHIFT = 0x30
_TICK_SHIFT = 0x18
_PROVISION_SHIFT = 0x01
_IS_ACTIVE_SHIFT = 0x00

_TICK_SIGN_BIT = 1 << 23


@dataclass(frozen=True)
class RawOfferData:
    """Decoded offer word; amounts are in token units, ids are list links."""

    prev: int
    next: int
    expiry: Optional[datetime]
    gives: int
    received: int
    tick: int
    provision: int
    is_active: bool


@dataclass(frozen=True)
class OfferData:
    prev: int
    next: int
    gives: TokenAmount
    received: TokenAmount
    tick: Tick
    provision: TokenAmount
    is_active: bool
    expiry: Optional[datetime] = None


def _to_signed_24(value: int) -> int:
    return value - (1 << 24) if value & _TICK_SIGN_BIT else value


def unpack_offer(word: int) -> RawOfferData:
    """
    Decode a packed offer word.

    Total over 256-bit inputs; the tick field is sign-extended.
    """
    check_fits_within(word, 256, "packed offer")
    expiry = (word >> _EXPIRY_SHIFT) & _EXPIRY_MASK
    return RawOfferData(
        prev=(word >> _PREV_SHIFT) & _PREV_MASK,
        next=(word >> _NEXT_SHIFT) & _NEXT_MASK,
        expiry=None if expiry == 0 else datetime.fromtimestamp(expiry, tz=timezone.utc),
        gives=(word >> _GIVES_SHIFT) & _GIVES_MASK,
        received=(word >> _RECEIVED_SHIFT) & _RECEIVED_MASK,
        tick=_to_signed_24((word >> _TICK_SHIFT) & _TICK_MASK),
        provision=(word >> _PROVISION_SHIFT) & _PROVISION_MASK,
        is_active=((word >> _IS_ACTIVE_SHIFT) & _IS_ACTIVE_MASK) == _IS_ACTIVE_MASK,
    )


def pack_offer(raw: RawOfferData) -> int:
    """Inverse of `unpack_offer`. Every field is width-checked."""
    expiry = 0 if raw.expiry is None else int(as_utc(raw.expiry).timestamp())
    if not -(1 << 23) <= raw.tick < (1 << 23):
        raise BitsOverflowError(24, raw.tick, "tick")
    fields = (
        (check_fits_within(raw.prev, 40, "prev"), _PREV_SHIFT),
        (check_fits_within(raw.next, 40, "next"), _NEXT_SHIFT),
        (check_fits_within(expiry, 32, "expiry"), _EXPIRY_SHIFT),
        (check_fits_within(raw.gives, 48, "gives"), _GIVES_SHIFT),
        (check_fits_within(raw.received, 48, "received"), _RECEIVED_SHIFT),
        (raw.tick & _TICK_MASK, _TICK_SHIFT),
        (check_fits_within(raw.provision, 23, "provision"), _PROVISION_SHIFT),
        (1 if raw.is_active else 0, _IS_ACTIVE_SHIFT),
    )
    word = 0
    for value, shift in fields:
        word |= value << shift
    return word


@dataclass(frozen=True)
class Offer:
    """
    An offer resting on a semi-market.

    Immutable: to reflect an on-chain update, build a new offer.
    """

    market: SemiMarket
    data: OfferData
    owner: str = ZERO_ADDRESS
    id: int = 0

    def __post_init__(self) -> None:
        for label, amount in (("gives", self.data.gives), ("received", self.data.received)):
            normalized = amount.amount // amount.token.unit
            if not fits_within(normalized, OFFER_AMOUNT_BITS):
                raise OfferAmountOverflowError(normalized, label)

    @classmethod
    def from_data(cls, market: SemiMarket, data: OfferData, id: int = 0, owner: str = ZERO_ADDRESS) -> "Offer":
        return cls(market=market, data=data, owner=owner, id=id)

    @classmethod
    def from_packed(
        cls,
        market: SemiMarket,
        word: int,
        id: int = 0,
        owner: str = ZERO_ADDRESS,
        *,
        context: Optional[VifContext] = None,
    ) -> "Offer":
        """
        Decode an offer word fetched for `market`.

        Raises:
            OfferAmountOverflowError: if gives/received overflow 48 bits once re-scaled
        """
        ctx = resolve_context(context if context is not None else market.context)
        raw = unpack_offer(word)
        outbound = market.outbound_token.token
        inbound = market.inbound_token.token
        provision = ctx.provision_token
        data = OfferData(
            prev=raw.prev,
            next=raw.next,
            expiry=raw.expiry,
            gives=outbound.amount(raw.gives * outbound.unit),
            received=inbound.amount(raw.received * inbound.unit),
            tick=Tick.from_value(raw.tick, market.market.tick_spacing, context=ctx),
            provision=provision.amount(raw.provision * provision.unit),
            is_active=raw.is_active,
        )
        return cls(market=market, data=data, owner=owner, id=id)

    def __str__(self) -> str:
        fields = {
            "id": self.id,
            "owner": self.owner,
            "expiry": self.data.expiry,
            "gives": self.data.gives,
            "received": self.data.received,
            "tick": self.data.tick.to_string(self.market.market.price_multiplier, self.market.ba is BA.BIDS),
            "provision": self.data.provision,
            "is_active": self.data.is_active,
        }
        body = "\n".join(f"\t{k}: {v}" for k, v in fields.items())
        return f"Offer(\n{body}\n)"
