from __future__ import annotations

import pytest

from vif.core import Market, Token, reset_default_context

WETH_ADDRESS = "0x0000000000000000000000000000000000000001"
USDC_ADDRESS = "0x0000000000000000000000000000000000000002"
WBTC_ADDRESS = "0x0000000000000000000000000000000000000003"


@pytest.fixture(autouse=True)
def _fresh_default_context():
    # Each test starts from the stock native/provision tokens and an empty price memo.
    reset_default_context()
    yield
    reset_default_context()


@pytest.fixture
def weth() -> Token:
    return Token(WETH_ADDRESS, 18, "WETH", 10**14)


@pytest.fixture
def usdc() -> Token:
    return Token(USDC_ADDRESS, 6, "USDC", 100)


@pytest.fixture
def wbtc() -> Token:
    return Token(WBTC_ADDRESS, 8, "WBTC", 1)


@pytest.fixture
def weth_usdc(weth: Token, usdc: Token) -> Market:
    return Market.create(weth, usdc, 1)
