"""
Fixed-width integer guards (deterministic, integer-only).

Every quantity stored by the settlement contract lives in an unsigned field
of a declared width. These helpers are the single place where widths are
checked so that error payloads (declared width, actual bit length, label)
stay uniform.
"""

from __future__ import annotations

from typing import Type

from .errors import BitsOverflowError


def fits_within(value: int, bits: int) -> bool:
    """True iff `0 <= value < 2**bits`."""
    if value < 0:
        return False
    return value >> bits == 0


def check_fits_within(
    value: int,
    bits: int,
    label: str = "amount",
    *,
    error: Type[BitsOverflowError] = BitsOverflowError,
) -> int:
    """
    Return `value` unchanged if it fits within `bits` bits, raise otherwise.

    `error` selects the overflow subclass; subclasses with a fixed width take
    `(value, label)`, the generic class takes `(bits, value, label)`.
    """
    if fits_within(value, bits):
        return value
    if error is BitsOverflowError:
        raise BitsOverflowError(bits, value, label)
    raise error(value, label)  # type: ignore[call-arg]


def div_up(a: int, b: int) -> int:
    """Ceil division for non-negative `a` and positive `b`."""
    if b <= 0:
        raise ValueError(f"denominator must be positive: {b}")
    return (a + b - 1) // b


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """`ceil(a * b / denominator)` without intermediate rounding."""
    return div_up(a * b, denominator)


def mul_div_down(a: int, b: int, denominator: int) -> int:
    """`floor(a * b / denominator)` without intermediate rounding."""
    if denominator <= 0:
        raise ValueError(f"denominator must be positive: {denominator}")
    return (a * b) // denominator
