"""
Core Vif algorithms: tokens, ticks, markets, fees and order simulation.
"""

from .bits import check_fits_within, div_up, fits_within, mul_div_down, mul_div_up
from .context import VifContext, get_default_context, reset_default_context, set_default_context
from .errors import (
    BitsOverflowError,
    ConfigError,
    FeesOverflowError,
    InvalidPathError,
    InvalidTokenError,
    MaxAmountExceededError,
    OfferAmountOverflowError,
    PriceOverflowError,
    RangeOverflowError,
    TickOverflowError,
    TickSpacingOverflowError,
    TokenAmountOverflowError,
    UnitOverflowError,
    VifError,
)
from .market import BA, Market, OpenMarketResult, OpenMarketSide, SemiMarket, market_key
from .routing import MultiOrderPlan, SingleOrderPlan, plan_multi_order, plan_single_order, validate_path
from .simulation import OrderResult, SimpleOffer, simulate
from .tick import Tick
from .tick_math import PriceCache, inbound_from_outbound, tick_from_price_x128, tick_to_price
from .token import NATIVE_TOKEN, PROVISION_TOKEN, Token, TokenAmount, format_units, parse_units

__all__ = [
    "check_fits_within",
    "div_up",
    "fits_within",
    "mul_div_down",
    "mul_div_up",
    "VifContext",
    "get_default_context",
    "reset_default_context",
    "set_default_context",
    "BitsOverflowError",
    "ConfigError",
    "FeesOverflowError",
    "InvalidPathError",
    "InvalidTokenError",
    "MaxAmountExceededError",
    "OfferAmountOverflowError",
    "PriceOverflowError",
    "RangeOverflowError",
    "TickOverflowError",
    "TickSpacingOverflowError",
    "TokenAmountOverflowError",
    "UnitOverflowError",
    "VifError",
    "BA",
    "Market",
    "OpenMarketResult",
    "OpenMarketSide",
    "SemiMarket",
    "market_key",
    "MultiOrderPlan",
    "SingleOrderPlan",
    "plan_multi_order",
    "plan_single_order",
    "validate_path",
    "OrderResult",
    "SimpleOffer",
    "simulate",
    "Tick",
    "PriceCache",
    "inbound_from_outbound",
    "tick_from_price_x128",
    "tick_to_price",
    "NATIVE_TOKEN",
    "PROVISION_TOKEN",
    "Token",
    "TokenAmount",
    "format_units",
    "parse_units",
]
