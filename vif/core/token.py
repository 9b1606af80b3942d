"""
Tokens and token amounts.

A `Token` is an immutable description of an on-chain asset viewed at a given
integer granularity (`unit`). The same asset can be re-scoped with a different
unit (e.g. the provision token is the native token counted in gwei).

A `TokenAmount` is a mutable quantity of a token. Its raw amount is always
truncated down to a multiple of `token.unit` and always fits in 256 bits.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from eth_utils import to_checksum_address

from .bits import fits_within
from .constants import DEFAULT_PROVISION_UNIT, TOKEN_AMOUNT_BITS, UNITS_BITS, ZERO_ADDRESS
from .errors import TokenAmountOverflowError, UnitOverflowError


def parse_units(text: str, decimals: int) -> int:
    """
    Parse a human-scale decimal string into smallest-denomination units.

    "1.23" with 6 decimals -> 1_230_000. Digits beyond `decimals` are rounded
    half-up, matching the usual wallet parsers.
    """
    if not isinstance(text, str):
        raise TypeError("text must be a str")
    s = text.strip()
    if not s:
        raise ValueError("cannot parse an empty amount")
    with localcontext() as ctx:
        ctx.prec = max(100, len(s) + decimals + 2)
        try:
            scaled = Decimal(s).scaleb(decimals)
        except InvalidOperation as exc:
            raise ValueError(f"invalid decimal amount: {text!r}") from exc
        if not scaled.is_finite():
            raise ValueError(f"invalid decimal amount: {text!r}")
        return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def format_units(value: int, decimals: int) -> str:
    """Inverse of `parse_units`; trailing fractional zeros are dropped."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_s = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_s}"


@dataclass(frozen=True)
class Token:
    """
    An asset at a given integer granularity.

    Equality covers address, decimals, symbol and unit. Addresses are stored
    in checksum form so comparison is case-insensitive.
    """

    address: str
    decimals: int
    symbol: str
    unit: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.unit, int) or isinstance(self.unit, bool):
            raise TypeError("unit must be an int")
        if not fits_within(self.unit, UNITS_BITS):
            raise UnitOverflowError(self.unit)
        if self.unit == 0:
            raise ValueError("unit must be positive")
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool) or self.decimals < 0:
            raise ValueError(f"decimals must be a non-negative int: {self.decimals}")
        object.__setattr__(self, "address", to_checksum_address(self.address))

    @classmethod
    def create(cls, address: str, decimals: int, symbol: str, unit: int = 1) -> "Token":
        return cls(address, decimals, symbol, unit)

    def with_unit(self, unit: int) -> "Token":
        """Same asset, different integer granularity."""
        return Token(self.address, self.decimals, self.symbol, unit)

    def amount(self, value: Union[int, str]) -> "TokenAmount":
        """
        Build an amount of this token.

        A `str` is parsed with the token decimals ("1" -> 10**decimals); an
        `int` is used as a raw amount. Both are truncated to `unit`.
        """
        return TokenAmount.create(value, self)

    def __str__(self) -> str:
        return f"Token({self.symbol}, {self.address}, decimals={self.decimals}, unit={self.unit})"


class TokenAmount:
    """Mutable amount of a token (raw smallest-denomination integer)."""

    __slots__ = ("_amount", "token")

    def __init__(self, amount: int, token: Token) -> None:
        self.token = token
        self._amount = 0
        self.amount = amount

    @classmethod
    def create(cls, value: Union[int, str], token: Token) -> "TokenAmount":
        if isinstance(value, str):
            return cls(parse_units(value, token.decimals), token)
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("amount must be an int or a decimal string")
        return cls(value, token)

    @property
    def amount(self) -> int:
        return self._amount

    @amount.setter
    def amount(self, amount: int) -> None:
        if not fits_within(amount, TOKEN_AMOUNT_BITS):
            raise TokenAmountOverflowError(amount)
        self._amount = amount - (amount % self.token.unit)

    @property
    def normalized_amount(self) -> int:
        """The amount counted in token units."""
        return self._amount // self.token.unit

    @normalized_amount.setter
    def normalized_amount(self, amount: int) -> None:
        self.amount = amount * self.token.unit

    @property
    def amount_string(self) -> str:
        return format_units(self._amount, self.token.decimals)

    @amount_string.setter
    def amount_string(self, text: str) -> None:
        self.amount = parse_units(text, self.token.decimals)

    def copy(self) -> "TokenAmount":
        return TokenAmount(self._amount, self.token)

    def is_zero(self) -> bool:
        return self._amount == 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenAmount):
            return NotImplemented
        return self.token == other.token and self._amount == other._amount

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"TokenAmount({self.amount_string} {self.token.symbol})"

    __str__ = __repr__


# Defaults for the native and provision tokens. Override them through
# `vif.core.context.VifContext` rather than by rebinding these names.
NATIVE_TOKEN = Token(ZERO_ADDRESS, 18, "ETH", 1)
PROVISION_TOKEN = NATIVE_TOKEN.with_unit(DEFAULT_PROVISION_UNIT)


def same_address(a: Optional[Token], b: Optional[Token]) -> bool:
    """True iff both tokens exist and point at the same on-chain asset."""
    if a is None or b is None:
        return False
    return a.address == b.address
