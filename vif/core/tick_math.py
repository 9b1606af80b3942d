"""
Tick law: integer tick <-> 128.128 fixed-point price.

Algorithm Design:
- Type: Binary fixed-point exponentiation
- price(tick) = 1.00001^tick, encoded as `floor(price * 2**128)`
- For each set bit k of |tick| the running product is multiplied by the
  constant 1.00001^(-2^k) (128.128) and shifted right by 128.
- The constants are calibrated for negative ticks; positive ticks invert
  the result as `2**256 // price`.

The 23 constants must match the settlement contract bit-for-bit. They are
not re-derivable from floating point.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Tuple

from .bits import div_up, fits_within
from .constants import MAX_TICK, MIN_TICK, OFFER_AMOUNT_BITS
from .errors import OfferAmountOverflowError, PriceOverflowError, TickOverflowError

logger = logging.getLogger(__name__)

Q128: int = 1 << 128
Q256: int = 1 << 256

# 1.00001^(-2^k) in 128.128 fixed point, k = 0..22
TICK_LAW_CONSTANTS: Tuple[int, ...] = (
    0xFFFF583AC1AC1C114B9160DDEB4791B7,
    0xFFFEB075F14B276D06CDBC6B138E4C4B,
    0xFFFD60ED9A60EBCB383DE6EDB7557EF0,
    0xFFFAC1E213E349A0CF1E3D3EC62BF25B,
    0xFFF583DFA4044E3DFE90C4057E3E4C27,
    0xFFEB082D36BF2958D476EE75C4DA258A,
    0xFFD61212165632BD1DDA4C1ABDF5F9F1,
    0xFFAC2B0240039D9CDADB751E0ACC14C4,
    0xFF5871784DC6FA608DCA410BDECB9FF4,
    0xFEB1509BDFF34CCB280FAD9A309403CF,
    0xFD6456C5E15445B458F4403D279C1A89,
    0xFACF7AD7076227F61D95F764E8D7E35A,
    0xF5B9E413DD1B4E7046F8F721E1F1B295,
    0xEBDD5589751F38FD7ADCE84988DBA856,
    0xD9501A6728F01C1F121094AACF4C9475,
    0xB878E5D36699C3A0FD844110D8B9945F,
    0x84EE037828011D8035F12EB571B46C2A,
    0x450650DE5CB791D4A002074D7F179CB3,
    0x129C67BFC1F3084F1F52DD418A4A8F6D,
    0x15A5E2593066B11CD1C3EA05EB95F74,
    0x1D4A2A0310AD5F70AD53EF4D3DCF3,
    0x359E3010271ED5CFCE08F99AA,
    0xB3AE1A60D291E4871,
)


def check_tick(tick: int) -> bool:
    return MIN_TICK <= tick <= MAX_TICK


def tick_to_price(tick: int) -> int:
    """
    Exact 128.128 price of `tick`, as computed by the settlement contract.

    Raises:
        TickOverflowError: if `tick` is outside [MIN_TICK, MAX_TICK]
    """
    if not check_tick(tick):
        raise TickOverflowError(tick)
    abs_tick = -tick if tick < 0 else tick

    price = Q128
    for k, factor in enumerate(TICK_LAW_CONSTANTS):
        if abs_tick & (1 << k):
            price = (price * factor) >> 128

    if tick > 0:
        return Q256 // price
    return price


def tick_from_price_x128(price: int, round_up: bool = True) -> int:
    """
    Tightest tick for a 128.128 price (exact, unlike the float estimate).

    With `round_up` this is the smallest tick whose price is >= `price`;
    otherwise the largest tick whose price is <= `price`. `tick_to_price` is
    non-decreasing (neighbouring ticks near MIN_TICK can share a price), so a
    binary search over the ladder is exact.

    Raises:
        PriceOverflowError: if `price` is not strictly positive
        TickOverflowError: if no tick of the ladder satisfies the bound
    """
    if not isinstance(price, int) or isinstance(price, bool) or price <= 0:
        raise PriceOverflowError(price)

    lo, hi = MIN_TICK, MAX_TICK
    if round_up:
        if tick_to_price(MAX_TICK) < price:
            raise TickOverflowError(MAX_TICK + 1)
        while lo < hi:
            mid = (lo + hi) // 2
            if tick_to_price(mid) >= price:
                hi = mid
            else:
                lo = mid + 1
        return lo

    if tick_to_price(MIN_TICK) > price:
        raise TickOverflowError(MIN_TICK - 1)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if tick_to_price(mid) <= price:
            lo = mid
        else:
            hi = mid - 1
    return lo


def inbound_from_outbound(price: int, outbound: int, outbound_unit: int, inbound_unit: int) -> int:
    """
    Normalized inbound amount owed for `outbound` normalized units at `price`.

    Both divisions round up: the inbound side is what a taker pays.

        inbound = ceil(ceil(outbound * outbound_unit * price / 2**128) / inbound_unit)

    Raises:
        OfferAmountOverflowError: if the result does not fit in 48 bits
    """
    inbound = div_up(div_up(outbound * outbound_unit * price, Q128), inbound_unit)
    if not fits_within(inbound, OFFER_AMOUNT_BITS):
        raise OfferAmountOverflowError(inbound, "inbound")
    return inbound


class PriceCache:
    """
    Memo of tick value -> 128.128 price.

    The price depends only on the numeric tick, so ticks of different
    spacing share entries. Concurrent inserts of the same key are
    idempotent; the lock only keeps the dict consistent.
    """

    def __init__(self) -> None:
        self._prices: Dict[int, int] = {}
        self._lock = threading.Lock()

    def get(self, tick: int) -> int:
        price = self._prices.get(tick)
        if price is not None:
            return price
        price = tick_to_price(tick)
        logger.debug("price cache miss for tick %d", tick)
        with self._lock:
            self._prices[tick] = price
        return price

    def clear(self) -> None:
        with self._lock:
            self._prices.clear()

    def __contains__(self, tick: object) -> bool:
        return tick in self._prices

    def __len__(self) -> int:
        return len(self._prices)
