"""
Protocol constants shared with the on-chain settlement contract.

Bit widths are the storage widths of the packed contract state; a value that
does not fit its width cannot be represented on-chain.
"""

from __future__ import annotations

# Tick ladder bounds (24-bit signed, symmetric)
MAX_TICK: int = 8_388_607
MIN_TICK: int = -8_388_607
TICK_BITS: int = 24

# Storage widths
OFFER_AMOUNT_BITS: int = 48
UNITS_BITS: int = 64
FEES_BITS: int = 16
TOKEN_AMOUNT_BITS: int = 256

# Tick spacing bounds
MIN_TICK_SPACING: int = 1
MAX_TICK_SPACING: int = 2**16 - 1

# Minimum outbound units accepted by the contract
MIN_OUTBOUND_UNITS_MIN: int = 1
MIN_OUTBOUND_UNITS_MAX: int = 2**32 - 1

# Fees are expressed in parts-per-million
FEE_DENOMINATOR: int = 1_000_000

ZERO_ADDRESS: str = "0x" + "00" * 20
MAX_UINT256: int = 2**256 - 1

# 1 provision unit = 1 gwei of the native token
DEFAULT_PROVISION_UNIT: int = 10**9
